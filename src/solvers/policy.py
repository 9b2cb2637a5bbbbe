"""
Tabular policies: a per-position distribution over legal actions.

A policy lists ``(ActionId, probability)`` pairs for the positions it covers.
Lookups are total: a position or action the policy does not list has
probability 0.0.  Every listed distribution sums to 1 by construction; it is
not re-checked on read.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from src.engine.environment import SolvableEnvironment
from src.engine.types import ActionId, AgentId, PositionId, Probability, TransitionTable

PolicyTable = dict[PositionId, list[tuple[ActionId, Probability]]]


@dataclass
class TabularPolicy:
    """Per-position action distribution.

    Attributes:
        probs_table: PositionId → list of (ActionId, probability) pairs.
    """

    probs_table: PolicyTable = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.probs_table)

    def __contains__(self, state_id: object) -> bool:
        return state_id in self.probs_table

    # ── Lookup ───────────────────────────────────────────────────────────────

    def probability_for_action(self, state_id: int, action_id: int) -> Probability:
        """Probability of *action_id* at *state_id*; 0.0 when either is unlisted."""
        for listed_action, prob in self.probs_table.get(PositionId(state_id), ()):
            if listed_action == action_id:
                return prob
        return Probability(0.0)

    def actions_for(self, state_id: int) -> list[tuple[ActionId, Probability]]:
        """Listed (action, probability) pairs at *state_id* (empty when unlisted)."""
        return list(self.probs_table.get(PositionId(state_id), ()))

    # ── Constructors ─────────────────────────────────────────────────────────

    @classmethod
    def from_transition_table(cls, table: TransitionTable) -> TabularPolicy:
        """Uniform policy over each position's listed transitions.

        Positions without transitions (terminal) are omitted.
        """
        probs_table: PolicyTable = {}
        for state_id, transitions in table.items():
            if not transitions:
                continue
            prob = Probability(1.0 / len(transitions))
            probs_table[state_id] = [(t.action_id, prob) for t in transitions]
        return cls(probs_table)

    @classmethod
    def create_uniform_policy(cls, env: SolvableEnvironment) -> TabularPolicy:
        """Uniform policy over every non-terminal position of *env*."""
        return cls.from_transition_table(env.state_transitions())

    @classmethod
    def create_greedy_policy(
        cls,
        table: TransitionTable,
        values: np.ndarray,
        agent_id: int,
        discount: float = 1.0,
    ) -> TabularPolicy:
        """Deterministic policy maximising one agent's one-step lookahead.

        At every position whose transitions are owned by *agent_id*, all the
        probability goes to the action maximising

            reward_k + discount * values[k, new_state_id]

        with ``k = agent_id``.  Ties go to the lowest ActionId.  Positions
        owned by other agents and terminal positions are omitted.

        Args:
            table:    Transition table of the environment.
            values:   Value function of shape (num_agents, num_states).
            agent_id: Agent whose policy is built.
            discount: Discount factor applied to the successor value.

        Returns:
            TabularPolicy with probability 1.0 on one action per owned position.
        """
        row = values[agent_id]
        probs_table: PolicyTable = {}
        for state_id, transitions in table.items():
            owned = [t for t in transitions if t.agent_id == agent_id]
            if not owned:
                continue
            best = max(
                owned,
                key=lambda t: (t.rewards[agent_id] + discount * row[t.new_state_id], -t.action_id),
            )
            probs_table[state_id] = [(best.action_id, Probability(1.0))]
        return cls(probs_table)
