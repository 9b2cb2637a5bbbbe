"""Dynamic-programming trainer: iterative policy evaluation over a transition table.

Multi-agent backup rule
-----------------------
The trainer keeps one value row per agent, ``values[k, s]`` = expected return
of agent ``k`` from position ``s`` when every agent follows its own policy.
Each edge ``e`` out of ``s`` is weighted by the policy of the agent that owns
it, so a single sweep mixes different agents' policies at different branching
points:

    V'_k(s) = Σ_{e ∈ out(s)}  π_{agent(e)}(s, a_e) · ( r_k(e) + γ · V_k(dst_e) )

``r_k(e)`` is agent k's reward for the edge's resulting position (stored in
``Transition.rewards``).  Terminal positions have no edges and keep value 0.
In a turn-based game every edge out of a position has the same owner, so the
weights at each non-terminal position sum to 1.

Sweep order
~~~~~~~~~~~
Jacobi: every epoch reads the previous epoch's array and writes a fresh one.
After ``n`` epochs ``V_k(s)`` is the exact expected return over the next ``n``
plies, so for a game whose longest line has ``d`` plies the values stop
changing after ``d`` epochs (9 for tic-tac-toe).

Flat edge arrays
~~~~~~~~~~~~~~~~
The transition table is flattened once per run into parallel NumPy arrays
(``src``, ``dst``, ``action``, ``agent`` and ``rewards[num_agents, E]``) and the
edge weights are computed once per policy set.  A sweep is then one gather and
one ``np.bincount`` per agent.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import numpy as np

from src.engine.environment import SolvableEnvironment
from src.engine.types import PositionId, TransitionTable
from src.solvers.policy import TabularPolicy

log = logging.getLogger(__name__)


# ─── Configuration / result types ─────────────────────────────────────────────


@dataclass(frozen=True)
class DPTrainerConfig:
    """Trainer settings.

    Attributes:
        num_epochs: Maximum number of evaluation sweeps.
        discount:   Discount factor γ in (0, 1].  Default 1 (undiscounted):
                    the games solved here are episodic with a finite horizon.
        tolerance:  Stop early once the largest absolute value change of a
                    sweep is ≤ tolerance.  None runs all ``num_epochs``.
        log_every:  Emit a DEBUG progress line every this many epochs.
    """

    num_epochs: int
    discount: float = 1.0
    tolerance: float | None = None
    log_every: int = 100

    def __post_init__(self) -> None:
        if self.num_epochs < 0:
            raise ValueError(f"num_epochs must be >= 0, got {self.num_epochs}")
        if not 0.0 < self.discount <= 1.0:
            raise ValueError(f"discount must be in (0, 1], got {self.discount}")
        if self.tolerance is not None and self.tolerance < 0.0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}")
        if self.log_every < 1:
            raise ValueError(f"log_every must be >= 1, got {self.log_every}")


@dataclass
class TrainingResult:
    """Output of ``DPTrainer.train``.

    Attributes:
        values:      Value function, float64[num_agents, num_states].
        epochs_run:  Sweeps actually performed (< num_epochs on early stop).
        converged:   True if the tolerance criterion stopped training.
        final_delta: Largest absolute value change of the last sweep
                     (0.0 when no sweep ran).
        deltas:      Per-epoch largest absolute value change.
    """

    values: np.ndarray
    epochs_run: int
    converged: bool
    final_delta: float
    deltas: list[float] = field(default_factory=list)

    def value_for(self, state_id: int, agent_id: int) -> float:
        return float(self.values[agent_id, state_id])


@dataclass
class FlatTransitions:
    """Transition table as parallel edge arrays.

    Attributes:
        src:        int64[E]   source PositionId of each edge.
        dst:        int64[E]   resulting PositionId.
        action:     int64[E]   ActionId.
        agent:      int64[E]   owning AgentId.
        rewards:    float64[num_agents, E] reward of every agent.
        num_states: Number of positions (length of each value row).
    """

    src: np.ndarray
    dst: np.ndarray
    action: np.ndarray
    agent: np.ndarray
    rewards: np.ndarray
    num_states: int

    @property
    def num_edges(self) -> int:
        return len(self.src)


# ─── Sweep primitives ─────────────────────────────────────────────────────────


def flatten_transition_table(
    table: TransitionTable,
    num_agents: int,
    num_states: int | None = None,
) -> FlatTransitions:
    """Flatten *table* into ``FlatTransitions``.

    Positions in ``[0, num_states)`` without a key have no edges: they are
    terminal and keep value 0.

    Args:
        table:      Transition table; keys need not cover every id.
        num_agents: Number of agents (length of each edge's ``rewards``).
        num_states: Length of each value row, normally ``env.max_state_id()``.
                    None → one past the largest key or destination id.

    Raises:
        ValueError: If a key or destination id falls outside ``[0, num_states)``
                    or an edge does not carry one reward per agent.
    """
    if num_states is None:
        ids = list(table) + [t.new_state_id for ts in table.values() for t in ts]
        num_states = max(ids) + 1 if ids else 0

    src: list[int] = []
    dst: list[int] = []
    action: list[int] = []
    agent: list[int] = []
    rewards: list[tuple[float, ...]] = []

    for state_id, transitions in table.items():
        if not 0 <= state_id < num_states:
            raise ValueError(f"Position id {state_id} outside [0, {num_states})")
        for t in transitions:
            if not 0 <= t.new_state_id < num_states:
                raise ValueError(
                    f"Edge {state_id} -> {t.new_state_id} leads outside [0, {num_states})"
                )
            if len(t.rewards) != num_agents:
                raise ValueError(
                    f"Edge {state_id} -> {t.new_state_id} has {len(t.rewards)} rewards, "
                    f"expected {num_agents}"
                )
            src.append(state_id)
            dst.append(t.new_state_id)
            action.append(t.action_id)
            agent.append(t.agent_id)
            rewards.append(t.rewards)

    return FlatTransitions(
        src=np.asarray(src, dtype=np.int64),
        dst=np.asarray(dst, dtype=np.int64),
        action=np.asarray(action, dtype=np.int64),
        agent=np.asarray(agent, dtype=np.int64),
        rewards=np.asarray(rewards, dtype=np.float64).reshape(-1, num_agents).T.copy(),
        num_states=num_states,
    )


def edge_weights(flat: FlatTransitions, policies: list[TabularPolicy]) -> np.ndarray:
    """Probability of each edge under its owning agent's policy, float64[E]."""
    weights = np.empty(flat.num_edges, dtype=np.float64)
    for e in range(flat.num_edges):
        policy = policies[flat.agent[e]]
        weights[e] = policy.probability_for_action(int(flat.src[e]), int(flat.action[e]))
    return weights


def _sweep(
    flat: FlatTransitions,
    weights: np.ndarray,
    values: np.ndarray,
    discount: float,
) -> np.ndarray:
    """One Jacobi sweep: return the new value array, *values* is left untouched."""
    backups = flat.rewards + discount * values[:, flat.dst]
    new_values = np.empty_like(values)
    for k in range(values.shape[0]):
        new_values[k] = np.bincount(
            flat.src, weights=weights * backups[k], minlength=flat.num_states
        )
    return new_values


def evaluate_policies(
    table: TransitionTable,
    policies: list[TabularPolicy],
    values: np.ndarray,
    discount: float = 1.0,
) -> np.ndarray:
    """Apply one policy-evaluation sweep to *values* and return the result.

    Convenience wrapper that flattens *table* on every call.  ``DPTrainer.train``
    runs the same sweep but flattens once and reuses the arrays across epochs.

    Args:
        table:    Transition table; ids without a key are terminal.
        policies: One policy per agent.
        values:   float64[num_agents, num_states] from the previous sweep.
        discount: Discount factor γ.

    Returns:
        New float64[num_agents, num_states] array.
    """
    flat = flatten_transition_table(table, len(policies), num_states=values.shape[1])
    return _sweep(flat, edge_weights(flat, policies), values, discount)


# ─── Trainer ──────────────────────────────────────────────────────────────────


class DPTrainer:
    """Owns an environment, one policy per agent, and the value function.

    The environment is only asked for its transition table, position count
    and agent count.
    It is never stepped during training.
    """

    def __init__(
        self,
        env: SolvableEnvironment,
        config: DPTrainerConfig,
        policies: list[TabularPolicy],
    ) -> None:
        if len(policies) != env.num_agents():
            raise ValueError(
                f"Expected one policy per agent ({env.num_agents()}), got {len(policies)}"
            )
        self.env = env
        self.config = config
        self.policies = policies
        self.value_function: np.ndarray | None = None

    @classmethod
    def init_with_uniform_policies(
        cls, env: SolvableEnvironment, config: DPTrainerConfig
    ) -> DPTrainer:
        policies = [TabularPolicy.create_uniform_policy(env) for _ in range(env.num_agents())]
        return cls(env, config, policies)

    def train(self) -> TrainingResult:
        """Run up to ``config.num_epochs`` Jacobi policy-evaluation sweeps.

        Returns:
            TrainingResult; the final array is also kept on ``value_function``.
        """
        log.info("Starting training with %s", self.config)
        started = time.perf_counter()

        table = self.env.state_transitions()
        num_agents = self.env.num_agents()
        flat = flatten_transition_table(table, num_agents, int(self.env.max_state_id()))
        weights = edge_weights(flat, self.policies)

        values = np.zeros((num_agents, flat.num_states), dtype=np.float64)
        deltas: list[float] = []
        converged = False

        for epoch in range(1, self.config.num_epochs + 1):
            new_values = _sweep(flat, weights, values, self.config.discount)
            delta = float(np.max(np.abs(new_values - values))) if values.size else 0.0
            values = new_values
            deltas.append(delta)

            if epoch % self.config.log_every == 0:
                log.debug("epoch %d: delta=%.3e", epoch, delta)
            if self.config.tolerance is not None and delta <= self.config.tolerance:
                converged = True
                break

        self.value_function = values
        result = TrainingResult(
            values=values,
            epochs_run=len(deltas),
            converged=converged,
            final_delta=deltas[-1] if deltas else 0.0,
            deltas=deltas,
        )
        log.info(
            "Training finished: %d epochs, final delta %.3e, converged=%s (%.2fs)",
            result.epochs_run,
            result.final_delta,
            result.converged,
            time.perf_counter() - started,
        )
        return result

    def improve_policies(self, values: np.ndarray | None = None) -> int:
        """Replace every agent's policy with its greedy policy against *values*.

        Every agent responds to the same value function at once.  Alternating
        ``train()`` and ``improve_policies()`` is therefore not guaranteed to
        reach a fixed point: each agent best-responds to the other's old policy.

        Args:
            values: Value function to act greedily on.  Defaults to the array
                    from the last ``train()`` call.

        Returns:
            Number of (agent, position) entries whose action distribution
            changed, including positions added to or dropped from a policy.

        Raises:
            ValueError: If no values are given and ``train()`` has not run.
        """
        if values is None:
            values = self.value_function
        if values is None:
            raise ValueError("No value function: call train() first or pass values")

        table = self.env.state_transitions()
        changed = 0
        new_policies = []
        for agent_id, old_policy in enumerate(self.policies):
            new_policy = TabularPolicy.create_greedy_policy(
                table, values, agent_id, self.config.discount
            )
            state_ids = old_policy.probs_table.keys() | new_policy.probs_table.keys()
            changed += sum(
                1
                for state_id in state_ids
                if old_policy.actions_for(state_id) != new_policy.actions_for(state_id)
            )
            new_policies.append(new_policy)
        self.policies = new_policies
        log.info("Policy improvement changed %d entries", changed)
        return changed

    def value_of(self, state_id: int, agent_id: int) -> float:
        """Value of *state_id* for *agent_id* from the last training run."""
        if self.value_function is None:
            raise ValueError("No value function: call train() first")
        return float(self.value_function[agent_id, PositionId(state_id)])
