"""Move-value heat maps for trained tic-tac-toe value functions.

Two public data-builder functions return 3×3 NumPy matrices laid out like the
board, usable programmatically or passed to the plot helpers:

    build_move_value_data(table, values, state_id, agent_id)  — Q-value per legal cell
    build_policy_data(policy, table, state_id)                — P(play cell) per legal cell

Two public plot functions render matplotlib figures:

    plot_move_values(data, state, title, ...)       — one 3×3 panel
    plot_agent_comparison(table, values, state, ...) — 1×N panels, one per agent

Matrix convention (both builders):
    Shape  : (3, 3) — row-major board cells
    Values : move value  r_k + γ·V_k(next)  (value builder) or a probability
             (policy builder); np.nan = occupied cell or terminal position
"""

from __future__ import annotations

import matplotlib
import matplotlib.axes
import matplotlib.colors
import matplotlib.figure
import matplotlib.image
import matplotlib.pyplot as plt
import numpy as np

from src.engine.board import GRID_SIZE, TicTacToeAction, TicTacToeState
from src.engine.types import TransitionTable
from src.solvers.policy import TabularPolicy

# ─── Constants ────────────────────────────────────────────────────────────────

_AGENT_NAMES: list[str] = ["Cross (x)", "Circle (o)"]
_NAN_COLOR: str = "#cccccc"


def _make_value_cmap() -> matplotlib.colors.Colormap:
    """RdYlGn gradient: red=-1 (loss), green=+1 (win), grey=occupied (NaN)."""
    cmap = matplotlib.colormaps["RdYlGn"].copy()
    cmap.set_bad(color=_NAN_COLOR)
    return cmap


_VALUE_CMAP: matplotlib.colors.Colormap = _make_value_cmap()


def acting_agent(table: TransitionTable, state_id: int) -> int | None:
    """Owner of the actions at *state_id*, or None for a terminal position."""
    transitions = table.get(state_id, ())
    return int(transitions[0].agent_id) if transitions else None


# ─── Data builders ────────────────────────────────────────────────────────────


def build_move_value_data(
    table: TransitionTable,
    values: np.ndarray,
    state_id: int,
    agent_id: int | None = None,
    discount: float = 1.0,
) -> np.ndarray:
    """Return the 3×3 matrix of one-step move values at *state_id*.

    Args:
        table:    Transition table of the environment.
        values:   Value function, float64[num_agents, num_states].
        state_id: Position to inspect.
        agent_id: Perspective of the values.  None → the acting agent.
        discount: Discount factor γ used in the backup.

    Returns:
        float64 (3, 3) matrix; np.nan where no legal action targets the cell.
    """
    data = np.full((GRID_SIZE, GRID_SIZE), np.nan)
    transitions = table.get(state_id, ())
    if not transitions:
        return data
    k = transitions[0].agent_id if agent_id is None else agent_id
    for t in transitions:
        cell = TicTacToeAction.from_id(t.action_id).cell_index
        data[divmod(cell, GRID_SIZE)] = t.rewards[k] + discount * values[k, t.new_state_id]
    return data


def build_policy_data(
    policy: TabularPolicy,
    table: TransitionTable,
    state_id: int,
) -> np.ndarray:
    """Return the 3×3 matrix of *policy*'s probability of playing each legal cell.

    Returns:
        float64 (3, 3) matrix; np.nan where no legal action targets the cell.
    """
    data = np.full((GRID_SIZE, GRID_SIZE), np.nan)
    for t in table.get(state_id, ()):
        cell = TicTacToeAction.from_id(t.action_id).cell_index
        data[divmod(cell, GRID_SIZE)] = policy.probability_for_action(state_id, t.action_id)
    return data


# ─── Rendering helper ─────────────────────────────────────────────────────────


def _render_panel(
    ax: matplotlib.axes.Axes,
    data: np.ndarray,
    state: TicTacToeState,
    vmin: float,
    vmax: float,
) -> matplotlib.image.AxesImage:
    """Render one board panel onto *ax* and return the AxesImage.

    Legal cells are annotated with their value; occupied cells with their symbol.
    """
    masked = np.ma.masked_invalid(data)
    im = ax.imshow(masked, cmap=_VALUE_CMAP, vmin=vmin, vmax=vmax)

    ax.set_xticks(range(GRID_SIZE))
    ax.set_yticks(range(GRID_SIZE))
    ax.set_xticklabels([str(c) for c in range(GRID_SIZE)], fontsize=9)
    ax.set_yticklabels([str(r) for r in range(GRID_SIZE)], fontsize=9)

    for r in range(GRID_SIZE):
        for c in range(GRID_SIZE):
            cell = state.cells[r * GRID_SIZE + c]
            val = data[r, c]
            if cell.is_set():
                text, size = cell.symbol, 20
            elif np.isnan(val):
                continue
            else:
                text, size = f"{val:+.2f}", 10
            ax.text(c, r, text, ha="center", va="center", fontsize=size, fontweight="bold")

    return im


# ─── Public plot functions ────────────────────────────────────────────────────


def plot_move_values(
    data: np.ndarray,
    state: TicTacToeState,
    title: str,
    *,
    vmin: float = -1.0,
    vmax: float = 1.0,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot one 3×3 move-value (or move-probability) heat map.

    Args:
        data:      (3, 3) array from a ``build_*_data`` builder.  NaN = no move.
        state:     Position the data was built for (occupied cells are labelled).
        title:     Figure title.
        vmin:      Colour scale minimum (-1 for values, 0 for probabilities).
        vmax:      Colour scale maximum.
        show:      If True, call plt.show() after rendering.
        save_path: If not None, save the figure to this path before showing.

    Returns:
        matplotlib.figure.Figure.
    """
    fig, ax = plt.subplots(figsize=(4.5, 4.5))
    im = _render_panel(ax, data, state, vmin, vmax)
    ax.set_title(title, fontsize=11, fontweight="bold")
    plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)
    plt.tight_layout()

    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()

    return fig


def plot_agent_comparison(
    table: TransitionTable,
    values: np.ndarray,
    state: TicTacToeState,
    *,
    discount: float = 1.0,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Side-by-side move values at *state* from every agent's perspective.

    Produces a 1×num_agents figure.  Every panel shows the same legal moves
    (those of the acting agent); panel k colours them by agent k's value.

    Returns:
        matplotlib.figure.Figure with one subplot per agent.
    """
    num_agents = values.shape[0]
    fig, axes = plt.subplots(1, num_agents, figsize=(4.5 * num_agents, 4.5), squeeze=False)
    mover = acting_agent(table, state.id())
    mover_label = "terminal" if mover is None else f"{_AGENT_NAMES[mover]} to move"
    fig.suptitle(f"Move values  ({mover_label})", fontsize=13, fontweight="bold")

    for k in range(num_agents):
        ax = axes[0, k]
        data = build_move_value_data(table, values, state.id(), agent_id=k, discount=discount)
        im = _render_panel(ax, data, state, -1.0, 1.0)
        name = _AGENT_NAMES[k] if k < len(_AGENT_NAMES) else f"Agent {k}"
        ax.set_title(name, fontsize=10)
        plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    plt.tight_layout()

    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()

    return fig
