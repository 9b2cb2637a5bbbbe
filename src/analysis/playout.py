"""
Play-out driver and Monte Carlo statistics for tic-tac-toe.

The driver is the only protocol between an environment and its caller:

    while not env.state().is_terminal():
        action = chooser(env)
        reward = env.apply_action(action)

Choosers:
    random_chooser(rng)            — uniform over legal actions
    policy_chooser(policies, rng)  — samples each agent's TabularPolicy

``simulate_games`` plays many games and summarises outcomes; it is used to
cross-check the DP value of the empty board (the value for CROSS equals
P(cross wins) − P(circle wins) under the same policies).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from src.engine.board import TicTacToeAction, TicTacToeState
from src.engine.cells import CellValue
from src.engine.tictactoe import TicTacToeEnvironment
from src.engine.types import Reward
from src.solvers.policy import TabularPolicy

Chooser = Callable[[TicTacToeEnvironment], TicTacToeAction]
"""chooser(env) -> one legal action of env's current position."""


# ─── Result types ─────────────────────────────────────────────────────────────


@dataclass
class PlayoutStep:
    """One applied action and the reward it produced for its agent."""

    state: TicTacToeState
    action: TicTacToeAction
    reward: Reward


@dataclass
class GameRecord:
    """A completed game: every step plus the final position."""

    steps: list[PlayoutStep] = field(default_factory=list)
    final_state: TicTacToeState = field(default_factory=TicTacToeState.empty)

    @property
    def winner(self) -> CellValue:
        return self.final_state.winning_value()

    def __len__(self) -> int:
        return len(self.steps)


@dataclass
class PlayoutStats:
    """Aggregate outcomes of ``simulate_games``.

    Attributes:
        n_games:       Number of games played.
        cross_wins:    Games won by CROSS.
        circle_wins:   Games won by CIRCLE.
        draws:         Games ending on a full board with no line.
        mean_length:   Mean number of plies per game.
        cross_value:   Mean CROSS reward per game (+1 win, −1 loss, 0 draw).
        ci_95_low:     Lower bound of the 95% confidence interval of cross_value.
        ci_95_high:    Upper bound of the 95% confidence interval of cross_value.
    """

    n_games: int
    cross_wins: int
    circle_wins: int
    draws: int
    mean_length: float
    cross_value: float
    ci_95_low: float
    ci_95_high: float

    @property
    def cross_win_rate(self) -> float:
        return self.cross_wins / self.n_games if self.n_games else 0.0

    @property
    def circle_win_rate(self) -> float:
        return self.circle_wins / self.n_games if self.n_games else 0.0

    @property
    def draw_rate(self) -> float:
        return self.draws / self.n_games if self.n_games else 0.0

    def __str__(self) -> str:
        return (
            f"Games: {self.n_games:,} | "
            f"x: {self.cross_win_rate:.2%} | o: {self.circle_win_rate:.2%} | "
            f"draw: {self.draw_rate:.2%} | "
            f"x value: {self.cross_value:+.4f} "
            f"[{self.ci_95_low:+.4f}, {self.ci_95_high:+.4f}] | "
            f"mean length: {self.mean_length:.2f}"
        )


# ─── Choosers ─────────────────────────────────────────────────────────────────


def random_chooser(rng: np.random.Generator) -> Chooser:
    """Uniform-random legal action."""

    def choose(env: TicTacToeEnvironment) -> TicTacToeAction:
        actions = env.actions()
        return actions[int(rng.integers(len(actions)))]

    return choose


def policy_chooser(policies: list[TabularPolicy], rng: np.random.Generator) -> Chooser:
    """Sample the acting agent's policy; fall back to uniform where it is silent.

    The acting agent is the owner of the position's legal actions.
    """

    def choose(env: TicTacToeEnvironment) -> TicTacToeAction:
        actions = env.actions()
        agent_id = env.agent_id_for_action(actions[0])
        state_id = env.state().id()
        probs = np.array(
            [policies[agent_id].probability_for_action(state_id, a.id()) for a in actions]
        )
        total = probs.sum()
        if total <= 0.0:
            return actions[int(rng.integers(len(actions)))]
        return actions[int(rng.choice(len(actions), p=probs / total))]

    return choose


# ─── Driver ───────────────────────────────────────────────────────────────────


def play_game(env: TicTacToeEnvironment, chooser: Chooser) -> GameRecord:
    """Play from env's current position until it is terminal.

    Args:
        env:     Environment to step (mutated in place).
        chooser: Picks one legal action for the current position.

    Returns:
        GameRecord with one step per applied action.
    """
    record = GameRecord()
    while not env.state().is_terminal():
        state = env.state()
        action = chooser(env)
        reward = env.apply_action(action)
        record.steps.append(PlayoutStep(state=state, action=action, reward=reward))
    record.final_state = env.state()
    return record


def simulate_games(
    n_games: int = 10_000,
    policies: list[TabularPolicy] | None = None,
    seed: int | None = 42,
    start: TicTacToeState | None = None,
) -> PlayoutStats:
    """Play *n_games* from *start* and summarise outcomes.

    Args:
        n_games:  Number of games.
        policies: One policy per agent; None plays uniformly at random.
        seed:     Seed for ``np.random.default_rng``; None for a fresh seed.
        start:    Starting position (default: empty board).

    Returns:
        PlayoutStats for the run.

    Raises:
        ValueError: If n_games < 1.
    """
    if n_games < 1:
        raise ValueError(f"n_games must be >= 1, got {n_games}")

    rng = np.random.default_rng(seed)
    chooser = random_chooser(rng) if policies is None else policy_chooser(policies, rng)
    env = TicTacToeEnvironment()

    outcomes = np.empty(n_games, dtype=np.float64)
    lengths = np.empty(n_games, dtype=np.float64)
    for i in range(n_games):
        env.reset(start)
        record = play_game(env, chooser)
        winner = record.winner
        outcomes[i] = 1.0 if winner is CellValue.CROSS else -1.0 if winner is CellValue.CIRCLE else 0.0
        lengths[i] = len(record)

    mean = float(outcomes.mean())
    std = float(outcomes.std(ddof=1)) if n_games > 1 else 0.0
    half_width = 1.96 * std / math.sqrt(n_games)
    return PlayoutStats(
        n_games=n_games,
        cross_wins=int((outcomes > 0).sum()),
        circle_wins=int((outcomes < 0).sum()),
        draws=int((outcomes == 0).sum()),
        mean_length=float(lengths.mean()),
        cross_value=mean,
        ci_95_low=mean - half_width,
        ci_95_high=mean + half_width,
    )
