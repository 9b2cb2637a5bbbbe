"""Tests for move-value heat maps (src/analysis/heat_maps.py).

Tests verify data-matrix shapes and value invariants (no display required)
plus that each plot function returns a well-formed matplotlib Figure.
The Agg backend is activated before any pyplot import so CI/CD environments
without a display server can run the suite safely.
"""

from __future__ import annotations

import os

import matplotlib

matplotlib.use("Agg")  # must precede any pyplot import

import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np
import pytest

from src.analysis.heat_maps import (
    acting_agent,
    build_move_value_data,
    build_policy_data,
    plot_agent_comparison,
    plot_move_values,
)
from src.engine.board import TicTacToeState
from src.engine.tictactoe import TicTacToeEnvironment
from src.engine.types import TransitionTable
from src.solvers.dp_trainer import DPTrainer, DPTrainerConfig, TrainingResult
from src.solvers.policy import TabularPolicy
from tests.conftest import board


@pytest.fixture(scope="module")
def result(env: TicTacToeEnvironment) -> TrainingResult:
    trainer = DPTrainer.init_with_uniform_policies(
        env, DPTrainerConfig(num_epochs=20, tolerance=0.0)
    )
    return trainer.train()


# ─── acting_agent ─────────────────────────────────────────────────────────────


class TestActingAgent:
    def test_cross_on_empty_board(self, table: TransitionTable) -> None:
        assert acting_agent(table, 0) == 0

    def test_circle_after_one_move(self, table: TransitionTable) -> None:
        assert acting_agent(table, board("x..", "...", "...").id()) == 1

    def test_none_when_terminal(self, table: TransitionTable) -> None:
        assert acting_agent(table, board("xxx", "oo.", "...").id()) is None


# ─── build_move_value_data ────────────────────────────────────────────────────


class TestBuildMoveValueData:
    def test_shape(self, table: TransitionTable, result: TrainingResult) -> None:
        data = build_move_value_data(table, result.values, 0)
        assert data.shape == (3, 3)

    def test_empty_board_all_cells_legal(
        self, table: TransitionTable, result: TrainingResult
    ) -> None:
        data = build_move_value_data(table, result.values, 0)
        assert not np.isnan(data).any()

    def test_occupied_cells_nan(self, table: TransitionTable, result: TrainingResult) -> None:
        data = build_move_value_data(table, result.values, board("x..", ".o.", "...").id())
        assert np.isnan(data[0, 0])
        assert np.isnan(data[1, 1])
        assert np.isnan(data).sum() == 2

    def test_terminal_all_nan(self, table: TransitionTable, result: TrainingResult) -> None:
        data = build_move_value_data(table, result.values, board("xxx", "oo.", "...").id())
        assert np.isnan(data).all()

    def test_winning_move_valued_one(self, table: TransitionTable, result: TrainingResult) -> None:
        data = build_move_value_data(table, result.values, board("xx.", "oo.", "...").id())
        assert data[0, 2] == pytest.approx(1.0)

    def test_values_in_range(self, table: TransitionTable, result: TrainingResult) -> None:
        data = build_move_value_data(table, result.values, 0)
        assert np.all(np.abs(data) <= 1.0)

    def test_other_agent_perspective_is_negated(
        self, table: TransitionTable, result: TrainingResult
    ) -> None:
        cross = build_move_value_data(table, result.values, 0, agent_id=0)
        circle = build_move_value_data(table, result.values, 0, agent_id=1)
        np.testing.assert_allclose(circle, -cross)

    def test_centre_is_best_opening(self, table: TransitionTable, result: TrainingResult) -> None:
        data = build_move_value_data(table, result.values, 0)
        assert np.unravel_index(np.argmax(data), data.shape) == (1, 1)


# ─── build_policy_data ────────────────────────────────────────────────────────


class TestBuildPolicyData:
    def test_uniform_empty_board(self, env: TicTacToeEnvironment, table: TransitionTable) -> None:
        data = build_policy_data(TabularPolicy.create_uniform_policy(env), table, 0)
        np.testing.assert_allclose(data, np.full((3, 3), 1 / 9))

    def test_silent_policy_is_zero(self, table: TransitionTable) -> None:
        data = build_policy_data(TabularPolicy(), table, board("x..", "...", "...").id())
        assert np.isnan(data[0, 0])
        assert np.nansum(data) == 0.0


# ─── plot_move_values ─────────────────────────────────────────────────────────


class TestPlotMoveValues:
    def test_returns_figure(self, table: TransitionTable, result: TrainingResult) -> None:
        state = board("x..", ".o.", "...")
        data = build_move_value_data(table, result.values, state.id())
        fig = plot_move_values(data, state, "test", show=False)
        assert isinstance(fig, matplotlib.figure.Figure)
        plt.close(fig)

    def test_save_path(self, table: TransitionTable, result: TrainingResult, tmp_path) -> None:
        state = TicTacToeState.empty()
        data = build_move_value_data(table, result.values, state.id())
        path = str(tmp_path / "values.png")
        fig = plot_move_values(data, state, "empty board", show=False, save_path=path)
        assert os.path.exists(path)
        assert os.path.getsize(path) > 0
        plt.close(fig)


# ─── plot_agent_comparison ────────────────────────────────────────────────────


class TestPlotAgentComparison:
    def test_one_panel_per_agent(self, table: TransitionTable, result: TrainingResult) -> None:
        fig = plot_agent_comparison(table, result.values, TicTacToeState.empty(), show=False)
        image_axes = [ax for ax in fig.axes if ax.images]
        assert len(image_axes) == 2
        plt.close(fig)

    def test_terminal_position(self, table: TransitionTable, result: TrainingResult) -> None:
        fig = plot_agent_comparison(
            table, result.values, board("xxx", "oo.", "..."), show=False
        )
        assert "terminal" in fig._suptitle.get_text()
        plt.close(fig)
