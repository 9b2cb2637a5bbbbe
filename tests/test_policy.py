"""Tests for src/solvers/policy.py — tabular policies and greedy improvement."""

from __future__ import annotations

import numpy as np
import pytest

from src.engine.tictactoe import TicTacToeEnvironment
from src.engine.types import (
    ActionId,
    AgentId,
    PositionId,
    Probability,
    Reward,
    Transition,
    TransitionTable,
)
from src.solvers.policy import TabularPolicy
from tests.conftest import board


def _edge(action_id: int, new_state_id: int, agent_id: int, rewards: tuple[float, ...]) -> Transition:
    return Transition(
        action_id=ActionId(action_id),
        new_state_id=PositionId(new_state_id),
        reward=Reward(rewards[agent_id]),
        prob=Probability(0.5),
        agent_id=AgentId(agent_id),
        rewards=tuple(Reward(r) for r in rewards),
    )


@pytest.fixture
def tiny_table() -> TransitionTable:
    """Two-agent toy model: agent 0 acts at 0, agent 1 acts at 1, 2 and 3 are terminal."""
    return {
        PositionId(0): (_edge(5, 1, 0, (0.0, 0.0)), _edge(3, 2, 0, (0.0, 0.0))),
        PositionId(1): (_edge(1, 3, 1, (-1.0, 1.0)), _edge(2, 2, 1, (0.0, 0.0))),
        PositionId(2): (),
        PositionId(3): (),
    }


# ─── Lookup ───────────────────────────────────────────────────────────────────


class TestLookup:
    def test_listed_probability(self) -> None:
        policy = TabularPolicy({PositionId(4): [(ActionId(1), 0.25), (ActionId(7), 0.75)]})
        assert policy.probability_for_action(4, 7) == 0.75

    def test_unlisted_action_is_zero(self) -> None:
        policy = TabularPolicy({PositionId(4): [(ActionId(1), 1.0)]})
        assert policy.probability_for_action(4, 2) == 0.0

    def test_unlisted_position_is_zero(self) -> None:
        assert TabularPolicy().probability_for_action(123, 1) == 0.0

    def test_actions_for(self) -> None:
        listing = [(ActionId(1), 0.5), (ActionId(4), 0.5)]
        policy = TabularPolicy({PositionId(9): listing})
        assert policy.actions_for(9) == listing
        assert policy.actions_for(10) == []

    def test_len_and_contains(self) -> None:
        policy = TabularPolicy({PositionId(9): [(ActionId(1), 1.0)]})
        assert len(policy) == 1
        assert 9 in policy
        assert 10 not in policy


# ─── Uniform construction ─────────────────────────────────────────────────────


class TestUniformPolicy:
    def test_from_transition_table_skips_terminal(self, tiny_table: TransitionTable) -> None:
        policy = TabularPolicy.from_transition_table(tiny_table)
        assert set(policy.probs_table) == {0, 1}
        assert policy.actions_for(0) == [(5, 0.5), (3, 0.5)]

    def test_uniform_over_environment(self, env: TicTacToeEnvironment) -> None:
        policy = TabularPolicy.create_uniform_policy(env)
        table = env.state_transitions()
        non_terminal = [s for s, t in table.items() if t]
        assert len(policy) == len(non_terminal)
        for state_id in non_terminal:
            probs = [p for _, p in policy.actions_for(state_id)]
            assert sum(probs) == pytest.approx(1.0)
            assert len(set(probs)) == 1

    def test_empty_board_ninth(self, env: TicTacToeEnvironment) -> None:
        policy = TabularPolicy.create_uniform_policy(env)
        assert policy.probability_for_action(0, 13) == pytest.approx(1 / 9)
        assert policy.probability_for_action(0, 14) == 0.0


# ─── Greedy improvement ───────────────────────────────────────────────────────


class TestGreedyPolicy:
    def test_only_owned_positions_listed(self, tiny_table: TransitionTable) -> None:
        values = np.zeros((2, 4))
        assert set(TabularPolicy.create_greedy_policy(tiny_table, values, 0).probs_table) == {0}
        assert set(TabularPolicy.create_greedy_policy(tiny_table, values, 1).probs_table) == {1}

    def test_picks_best_immediate_reward(self, tiny_table: TransitionTable) -> None:
        policy = TabularPolicy.create_greedy_policy(tiny_table, np.zeros((2, 4)), 1)
        assert policy.actions_for(1) == [(1, 1.0)]

    def test_picks_best_successor_value(self, tiny_table: TransitionTable) -> None:
        values = np.zeros((2, 4))
        values[0, 1] = 0.8
        values[0, 2] = 0.2
        policy = TabularPolicy.create_greedy_policy(tiny_table, values, 0)
        assert policy.actions_for(0) == [(5, 1.0)]

    def test_ties_go_to_lowest_action_id(self, tiny_table: TransitionTable) -> None:
        policy = TabularPolicy.create_greedy_policy(tiny_table, np.zeros((2, 4)), 0)
        assert policy.actions_for(0) == [(3, 1.0)]

    def test_discount_scales_successor_value(self, tiny_table: TransitionTable) -> None:
        values = np.zeros((2, 4))
        values[1, 2] = 1.5
        # 1.0 + 0.5 * 0 beats 0.0 + 0.5 * 1.5; undiscounted it does not.
        assert TabularPolicy.create_greedy_policy(tiny_table, values, 1, 0.5).actions_for(1) == [
            (1, 1.0)
        ]
        assert TabularPolicy.create_greedy_policy(tiny_table, values, 1, 1.0).actions_for(1) == [
            (2, 1.0)
        ]

    def test_takes_immediate_win(self, env: TicTacToeEnvironment) -> None:
        table = env.state_transitions()
        values = np.zeros((2, len(table)))
        state = board("xx.", "oo.", "...")
        policy = TabularPolicy.create_greedy_policy(table, values, 0)
        assert policy.actions_for(state.id()) == [(2 * 3 + 1, 1.0)]
