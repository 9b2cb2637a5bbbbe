"""
Shared pytest fixtures for tic-tac-toe DP solver tests.

Provides a board() helper for building known positions and session-scoped
fixtures for the full transition table, which every solver test reuses.
"""

from __future__ import annotations

import pytest

from src.engine.board import TicTacToeState
from src.engine.tictactoe import TicTacToeEnvironment
from src.engine.types import TransitionTable


def board(*rows: str) -> TicTacToeState:
    """Build a position from three row strings ('x', 'o', '.' or ' ').

    Examples:
        >>> board("x..", ".o.", "...").id()
        6723
    """
    return TicTacToeState.from_string("/".join(rows))


@pytest.fixture(scope="session")
def env() -> TicTacToeEnvironment:
    """Environment whose transition table is built once per test session."""
    return TicTacToeEnvironment()


@pytest.fixture(scope="session")
def table(env: TicTacToeEnvironment) -> TransitionTable:
    return env.state_transitions()

