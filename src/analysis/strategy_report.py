"""Text reports for a tic-tac-toe DP training run.

Three public functions format trainer output into human-readable tables:

    print_training_summary(table, result)         — model size, epochs, root values
    print_move_values(table, values, state)       — ranked moves at one position
    print_playout_comparison(result, stats)       — DP root value vs Monte Carlo
"""

from __future__ import annotations

import numpy as np

from src.analysis.heat_maps import acting_agent
from src.analysis.playout import PlayoutStats
from src.engine.board import TicTacToeAction, TicTacToeState
from src.engine.tictactoe import CROSS_AGENT
from src.engine.types import TransitionTable
from src.solvers.dp_trainer import TrainingResult
from src.solvers.transition_table import count_terminal_positions, reachable_position_ids

_AGENT_NAMES: list[str] = ["cross", "circle"]
_ROOT_ID: int = 0


def _agent_name(agent_id: int) -> str:
    return _AGENT_NAMES[agent_id] if agent_id < len(_AGENT_NAMES) else f"agent {agent_id}"


# ─── Public report functions ──────────────────────────────────────────────────


def print_training_summary(table: TransitionTable, result: TrainingResult) -> None:
    """Print transition-model size, training progress and the empty-board values.

    Args:
        table:  Transition table the run was trained on.
        result: TrainingResult returned by DPTrainer.train().
    """
    num_edges = sum(len(t) for t in table.values())
    reachable = reachable_position_ids(table, _ROOT_ID)

    print("=" * 56)
    print("DP Training Summary")
    print("=" * 56)
    print(f"  Encodable positions: {len(table):,}")
    print(f"  Reachable positions: {len(reachable):,}")
    print(f"  Terminal positions:  {count_terminal_positions(table):,}")
    print(f"  Transitions:         {num_edges:,}")
    print(f"  Epochs run:          {result.epochs_run}")
    print(f"  Final delta:         {result.final_delta:.3e}")
    print(f"  Converged:           {'yes' if result.converged else 'no'}")
    print()
    print("  Empty-board value:")
    for k in range(result.values.shape[0]):
        print(f"    {_agent_name(k):<8} {result.value_for(_ROOT_ID, k):+.4f}")


def print_move_values(
    table: TransitionTable,
    values: np.ndarray,
    state: TicTacToeState,
    discount: float = 1.0,
) -> None:
    """Print the position and its legal moves ranked by the mover's value.

    Args:
        table:    Transition table of the environment.
        values:   Value function, float64[num_agents, num_states].
        state:    Position to report.
        discount: Discount factor γ used in the backup.
    """
    print(state)
    print()
    mover = acting_agent(table, state.id())
    if mover is None:
        print(f"  Terminal position (winner: {state.winning_value().name})")
        return

    moves = sorted(
        table[state.id()],
        key=lambda t: t.rewards[mover] + discount * values[mover, t.new_state_id],
        reverse=True,
    )
    header = "  ".join(f"{_agent_name(k):>8}" for k in range(values.shape[0]))
    print(f"  {_agent_name(mover)} to move")
    print(f"  {'cell':>4}  {'action':>6}  {header}")
    print("  " + "-" * (14 + 10 * values.shape[0]))
    for t in moves:
        cell = TicTacToeAction.from_id(t.action_id).cell_index
        qs = "  ".join(
            f"{t.rewards[k] + discount * values[k, t.new_state_id]:>+8.4f}"
            for k in range(values.shape[0])
        )
        print(f"  {cell:>4}  {t.action_id:>6}  {qs}")


def print_playout_comparison(result: TrainingResult, stats: PlayoutStats) -> None:
    """Compare the DP empty-board value for cross with a Monte Carlo estimate.

    Both must be produced under the same policies for the comparison to hold.
    """
    dp_value = result.value_for(_ROOT_ID, CROSS_AGENT)
    inside = stats.ci_95_low <= dp_value <= stats.ci_95_high

    print("=" * 56)
    print("DP vs Monte Carlo (empty board, cross perspective)")
    print("=" * 56)
    print(f"  DP value:        {dp_value:+.4f}")
    print(f"  MC value:        {stats.cross_value:+.4f}  ({stats.n_games:,} games)")
    print(f"  MC 95% CI:       [{stats.ci_95_low:+.4f}, {stats.ci_95_high:+.4f}]")
    print(f"  DP inside CI:    {'yes' if inside else 'no'}")
    print(
        f"  Outcome rates:   x {stats.cross_win_rate:.2%}  "
        f"o {stats.circle_win_rate:.2%}  draw {stats.draw_rate:.2%}"
    )
