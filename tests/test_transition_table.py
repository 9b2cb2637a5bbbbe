"""Tests for src/solvers/transition_table.py — the exhaustive Markov-model builder.

The full table (19,683 positions) is built once per session by the ``table``
fixture in conftest.py; the parallel-build test builds a second copy.
"""

from __future__ import annotations

import pytest

from src.engine.board import MAX_STATE_ID, TicTacToeState
from src.engine.tictactoe import TicTacToeEnvironment
from src.engine.types import TransitionTable
from src.solvers.transition_table import (
    build_transition_table,
    count_terminal_positions,
    reachable_position_ids,
)
from tests.conftest import board

# ─── Shape of the table ───────────────────────────────────────────────────────


class TestTotality:
    def test_every_id_is_a_key(self, table: TransitionTable) -> None:
        assert len(table) == MAX_STATE_ID
        assert list(table) == list(range(MAX_STATE_ID))

    def test_terminal_positions_map_to_empty_tuple(self, table: TransitionTable) -> None:
        for state_id, transitions in table.items():
            state = TicTacToeState.from_id(state_id)
            assert (transitions == ()) == state.is_terminal()

    def test_one_edge_per_legal_action(self, table: TransitionTable) -> None:
        for state_id, transitions in table.items():
            actions = TicTacToeState.from_id(state_id).actions()
            assert [t.action_id for t in transitions] == [a.id() for a in actions]

    def test_terminal_count_matches_helper(self, table: TransitionTable) -> None:
        expected = sum(
            1 for state_id in range(MAX_STATE_ID) if TicTacToeState.from_id(state_id).is_terminal()
        )
        assert count_terminal_positions(table) == expected


class TestEdges:
    def test_empty_board_edges(self, table: TransitionTable) -> None:
        transitions = table[0]
        assert len(transitions) == 9
        assert [t.action_id for t in transitions] == [cell * 3 + 1 for cell in range(9)]
        assert [t.new_state_id for t in transitions] == [3 ** (8 - cell) for cell in range(9)]
        assert all(t.agent_id == 0 for t in transitions)
        assert all(t.prob == pytest.approx(1 / 9) for t in transitions)
        assert all(t.rewards == (0.0, 0.0) for t in transitions)

    def test_probabilities_sum_to_one(self, table: TransitionTable) -> None:
        for transitions in table.values():
            if transitions:
                assert sum(t.prob for t in transitions) == pytest.approx(1.0)

    def test_reward_is_owner_entry_of_rewards(self, table: TransitionTable) -> None:
        for transitions in table.values():
            for t in transitions:
                assert t.reward == t.rewards[t.agent_id]
                assert t.rewards[0] == -t.rewards[1]

    def test_edges_point_to_successor_position(self, table: TransitionTable) -> None:
        state = board("xo.", ".x.", "...")
        for t in table[state.id()]:
            assert t.agent_id == 1
            successor = TicTacToeState.from_id(t.new_state_id)
            assert sum(a != b for a, b in zip(state.cells, successor.cells)) == 1

    def test_single_move_edge(self, table: TransitionTable) -> None:
        (t,) = table[board("xox", "oox", "x.o").id()]
        assert t.action_id == 7 * 3 + 1
        assert t.new_state_id == board("xox", "oox", "xxo").id()
        assert t.prob == 1.0
        assert t.rewards == (0.0, 0.0)

    def test_winning_edge_rewards(self, table: TransitionTable) -> None:
        by_action = {t.action_id: t for t in table[board("xx.", "oo.", "...").id()]}
        winning = by_action[2 * 3 + 1]
        assert winning.rewards == (1.0, -1.0)
        assert table[winning.new_state_id] == ()


# ─── Reachability ─────────────────────────────────────────────────────────────


class TestReachable:
    def test_reachable_from_empty_board(self, table: TransitionTable) -> None:
        assert len(reachable_position_ids(table)) == 5478

    def test_root_is_included(self, table: TransitionTable) -> None:
        assert 0 in reachable_position_ids(table)

    def test_terminal_root_reaches_only_itself(self, table: TransitionTable) -> None:
        root = board("xxx", "oo.", "...").id()
        assert reachable_position_ids(table, root) == {root}

    def test_unreachable_board_not_reached(self, table: TransitionTable) -> None:
        assert board("xxx", "xx.", "...").id() not in reachable_position_ids(table)


# ─── Build options ────────────────────────────────────────────────────────────


class TestBuildOptions:
    def test_parallel_build_matches_serial(self, table: TransitionTable) -> None:
        parallel = build_transition_table(TicTacToeEnvironment(), n_workers=2, chunk_size=4096)
        assert list(parallel) == list(table)
        assert parallel == table

    @pytest.mark.parametrize("n_workers", [0, -1])
    def test_bad_worker_count_raises(self, n_workers: int) -> None:
        with pytest.raises(ValueError, match="n_workers"):
            build_transition_table(TicTacToeEnvironment(), n_workers=n_workers)

    def test_bad_chunk_size_raises(self) -> None:
        with pytest.raises(ValueError, match="chunk_size"):
            build_transition_table(TicTacToeEnvironment(), n_workers=2, chunk_size=0)

    def test_codec_mismatch_raises(self) -> None:
        class OverCountingEnvironment(TicTacToeEnvironment):
            def max_state_id(self):
                return super().max_state_id() + 1

        with pytest.raises(RuntimeError, match="codec and count disagree"):
            build_transition_table(OverCountingEnvironment())
