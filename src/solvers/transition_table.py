"""
Exhaustive transition-table builder.

Turns an enumerable environment into its complete Markov model: for every id
in ``[0, max_state_id())`` the position is decoded independently from the
codec, its legal actions are applied to that (immutable) decoded position, and
each resulting edge is recorded with:

    - the probability of a uniform-random baseline policy, 1 / len(actions),
    - the owning agent and that agent's reward,
    - the rewards of every agent for the same resulting position.

Terminal positions map to an empty tuple.  The table is total: every id is a key.

Because no shared position is mutated, the id range can be split into
contiguous chunks and built in worker processes (``n_workers > 1``); the merged
result is identical to the serial build.
"""

from __future__ import annotations

import logging
import multiprocessing
import time
from collections import deque

from src.engine.environment import EnumerableEnvironment
from src.engine.types import (
    AgentId,
    PositionId,
    Probability,
    Transition,
    TransitionTable,
)

log = logging.getLogger(__name__)

_DEFAULT_CHUNK_SIZE: int = 2048


# ─── Per-position expansion ───────────────────────────────────────────────────


def _transitions_for_id(env: EnumerableEnvironment, state_id: int) -> tuple[Transition, ...]:
    """Decode *state_id* and expand its outgoing edges."""
    state = env.create_state_with_id(state_id)
    if state is None:
        raise RuntimeError(
            f"Codec returned no state for id {state_id} < max_state_id "
            f"{env.max_state_id()}; codec and count disagree"
        )
    actions = state.actions()
    if not actions:
        return ()

    prob = Probability(1.0 / len(actions))
    agents = [AgentId(k) for k in range(env.num_agents())]
    transitions = []
    for action in actions:
        new_state = state.apply_action(action)
        agent_id = env.agent_id_for_action(action)
        rewards = tuple(env.reward_for_agent(new_state, k) for k in agents)
        transitions.append(
            Transition(
                action_id=action.id(),
                new_state_id=new_state.id(),
                reward=rewards[agent_id],
                prob=prob,
                agent_id=agent_id,
                rewards=rewards,
            )
        )
    return tuple(transitions)


def _build_chunk(args: tuple) -> list[tuple[int, tuple[Transition, ...]]]:
    """Worker entry point: expand the contiguous id range ``[start, stop)``.

    Top-level so ``multiprocessing`` can pickle it.
    """
    env, start, stop = args
    return [(state_id, _transitions_for_id(env, state_id)) for state_id in range(start, stop)]


# ─── Public API ───────────────────────────────────────────────────────────────


def build_transition_table(
    env: EnumerableEnvironment,
    *,
    n_workers: int = 1,
    chunk_size: int = _DEFAULT_CHUNK_SIZE,
) -> TransitionTable:
    """Build the complete transition table of *env*.

    Args:
        env:        Environment exposing the position codec, agent ownership and
                    per-agent rewards (see ``EnumerableEnvironment``).
        n_workers:  Worker processes.  1 builds in the calling process.
        chunk_size: Ids per work item when ``n_workers > 1``.

    Returns:
        Dict mapping every PositionId in ``[0, max_state_id())`` to its
        transitions (``()`` for terminal positions), keys in ascending order.

    Raises:
        ValueError:   If ``n_workers`` or ``chunk_size`` is < 1.
        RuntimeError: If the codec cannot decode an id below ``max_state_id()``.
    """
    if n_workers < 1:
        raise ValueError(f"n_workers must be >= 1, got {n_workers}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    num_states = int(env.max_state_id())
    log.info("Building transition table over %d positions (workers=%d)", num_states, n_workers)
    started = time.perf_counter()

    table: TransitionTable = {}
    if n_workers == 1:
        for state_id in range(num_states):
            table[PositionId(state_id)] = _transitions_for_id(env, state_id)
    else:
        chunks = [
            (env, start, min(start + chunk_size, num_states))
            for start in range(0, num_states, chunk_size)
        ]
        with multiprocessing.Pool(processes=n_workers) as pool:
            # imap preserves chunk order, so keys stay ascending.
            for rows in pool.imap(_build_chunk, chunks):
                for state_id, transitions in rows:
                    table[PositionId(state_id)] = transitions

    num_edges = sum(len(t) for t in table.values())
    log.info(
        "Transition table built: %d positions, %d terminal, %d edges in %.2fs",
        len(table),
        count_terminal_positions(table),
        num_edges,
        time.perf_counter() - started,
    )
    return table


def count_terminal_positions(table: TransitionTable) -> int:
    """Number of positions with no outgoing transitions."""
    return sum(1 for transitions in table.values() if not transitions)


def reachable_position_ids(table: TransitionTable, root_id: int = 0) -> set[PositionId]:
    """Ids reachable from *root_id* (inclusive) by following table edges.

    Breadth-first over an already built table; used for reporting only.

    Examples:
        >>> len(reachable_position_ids(TicTacToeEnvironment().state_transitions()))  # doctest: +SKIP
        5478
    """
    root = PositionId(root_id)
    seen: set[PositionId] = {root}
    frontier: deque[PositionId] = deque([root])
    while frontier:
        state_id = frontier.popleft()
        for transition in table.get(state_id, ()):
            if transition.new_state_id not in seen:
                seen.add(transition.new_state_id)
                frontier.append(transition.new_state_id)
    return seen
