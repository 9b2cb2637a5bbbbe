"""Interactive Plotly move-value lookup for trained tic-tac-toe values.

Two public functions:

    build_move_lookup_figure(table, values, state, discount)
        — One 3×3 heatmap per agent; hover a legal cell to see the move,
          its ActionId, the resulting position id and every agent's value.
    save_lookup_html(fig, path)
        — Export any figure to a self-contained HTML file.
"""

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from src.analysis.heat_maps import acting_agent, build_move_value_data
from src.engine.board import GRID_SIZE, TicTacToeAction, TicTacToeState
from src.engine.types import TransitionTable

# ─── Constants ────────────────────────────────────────────────────────────────

_AXIS_LABELS: list[str] = [str(i) for i in range(GRID_SIZE)]
_AGENT_NAMES: list[str] = ["Cross (x)", "Circle (o)"]
_VALUE_COLORSCALE: str = "RdYlGn"


# ─── Hover text builder ───────────────────────────────────────────────────────


def _build_hover(
    table: TransitionTable,
    values: np.ndarray,
    state: TicTacToeState,
    discount: float,
) -> list[list[str]]:
    """Return a 3×3 list of hover strings for *state*.

    Legal cells list the move and every agent's one-step value; occupied cells
    show their symbol.
    """
    rows: list[list[str]] = [["" for _ in range(GRID_SIZE)] for _ in range(GRID_SIZE)]
    for index, cell in enumerate(state.cells):
        if cell.is_set():
            rows[index // GRID_SIZE][index % GRID_SIZE] = f"Occupied: <b>{cell.symbol}</b>"

    for t in table.get(state.id(), ()):
        action = TicTacToeAction.from_id(t.action_id)
        lines = [
            f"Cell: <b>{action.cell_index}</b>",
            f"Move: {action.cell_value.symbol} (action {t.action_id})",
            f"Next position: {t.new_state_id}",
        ]
        for k in range(values.shape[0]):
            name = _AGENT_NAMES[k] if k < len(_AGENT_NAMES) else f"Agent {k}"
            q = t.rewards[k] + discount * values[k, t.new_state_id]
            lines.append(f"{name}: <b>{q:+.4f}</b>")
        rows[action.cell_index // GRID_SIZE][action.cell_index % GRID_SIZE] = "<br>".join(lines)
    return rows


# ─── Public figure builders ───────────────────────────────────────────────────


def build_move_lookup_figure(
    table: TransitionTable,
    values: np.ndarray,
    state: TicTacToeState,
    discount: float = 1.0,
) -> go.Figure:
    """Build an interactive figure of move values at *state*, one panel per agent.

    NaN cells (occupied, or every cell of a terminal position) render blank.

    Args:
        table:    Transition table of the environment.
        values:   Value function, float64[num_agents, num_states].
        state:    Position to inspect.
        discount: Discount factor γ used in the backup.

    Returns:
        go.Figure with one heatmap trace per agent in a 1×num_agents layout.
    """
    num_agents = values.shape[0]
    names = [_AGENT_NAMES[k] if k < len(_AGENT_NAMES) else f"Agent {k}" for k in range(num_agents)]
    hover = _build_hover(table, values, state, discount)

    fig = make_subplots(rows=1, cols=num_agents, subplot_titles=names, horizontal_spacing=0.12)
    for k in range(num_agents):
        data = build_move_value_data(table, values, state.id(), agent_id=k, discount=discount)
        z = [[None if np.isnan(v) else v for v in row] for row in data.tolist()]
        fig.add_trace(
            go.Heatmap(
                z=z,
                x=_AXIS_LABELS,
                y=_AXIS_LABELS,
                colorscale=_VALUE_COLORSCALE,
                zmin=-1.0,
                zmax=1.0,
                text=hover,
                hovertemplate="%{text}<extra></extra>",
                showscale=k == 0,
                colorbar={"title": "Value"},
                name=names[k],
            ),
            row=1,
            col=k + 1,
        )

    mover = acting_agent(table, state.id())
    mover_label = "terminal" if mover is None else f"{names[mover]} to move"
    fig.update_layout(
        title_text=f"Move Value Lookup — position {state.id()} ({mover_label})",
        title_font_size=15,
        height=420,
        width=390 * num_agents,
    )
    fig.update_yaxes(autorange="reversed")
    return fig


def save_lookup_html(fig: go.Figure, path: str) -> None:
    """Save a Plotly figure to a self-contained HTML file.

    Plotly JS is loaded from the CDN so the file itself remains compact.
    """
    fig.write_html(path, include_plotlyjs="cdn")
