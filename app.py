"""Tic-Tac-Toe DP Solver — Streamlit Dashboard.

Three-tab interactive dashboard for exploring trained move values:
  Tab 1 — Move Value Heat Map   (matplotlib, one panel per agent)
  Tab 2 — Interactive Lookup    (Plotly, hover for move, next position and values)
  Tab 3 — Random Play-out       (one game step by step + Monte Carlo cross-check)

Run:
    PYTHONPATH=. streamlit run app.py
"""

from __future__ import annotations

import contextlib
import io

import matplotlib

matplotlib.use("Agg")  # must be set before any other matplotlib imports

import streamlit as st

# ─── Page config ──────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Tic-Tac-Toe DP Solver",
    page_icon="⭕",
    layout="wide",
)

# ─── Lazy imports (inside functions to keep startup fast) ─────────────────────


@st.cache_resource
def _load_analysis_modules():
    """Import analysis modules once (cached for the process lifetime)."""
    import numpy as np

    from src.analysis.heat_maps import build_policy_data, plot_agent_comparison, plot_move_values
    from src.analysis.playout import play_game, random_chooser, simulate_games
    from src.analysis.plotly_lookup import build_move_lookup_figure
    from src.analysis.strategy_report import (
        print_move_values,
        print_playout_comparison,
        print_training_summary,
    )
    from src.engine.board import TicTacToeState
    from src.engine.tictactoe import TicTacToeEnvironment

    return {
        "np": np,
        "build_policy_data": build_policy_data,
        "plot_agent_comparison": plot_agent_comparison,
        "plot_move_values": plot_move_values,
        "build_move_lookup_figure": build_move_lookup_figure,
        "play_game": play_game,
        "random_chooser": random_chooser,
        "simulate_games": simulate_games,
        "print_move_values": print_move_values,
        "print_playout_comparison": print_playout_comparison,
        "print_training_summary": print_training_summary,
        "TicTacToeState": TicTacToeState,
        "TicTacToeEnvironment": TicTacToeEnvironment,
    }


@st.cache_resource
def _train(num_epochs: int, discount: float, improve: bool):
    """Build the transition table, train, and cache the trainer (keyed on settings)."""
    from src.engine.tictactoe import TicTacToeEnvironment
    from src.solvers.dp_trainer import DPTrainer, DPTrainerConfig

    env = TicTacToeEnvironment()
    trainer = DPTrainer.init_with_uniform_policies(
        env, DPTrainerConfig(num_epochs=num_epochs, discount=discount, tolerance=0.0)
    )
    result = trainer.train()
    if improve:
        trainer.improve_policies()
        result = trainer.train()
    return env, trainer, result


# ─── Sidebar controls ─────────────────────────────────────────────────────────

with st.sidebar:
    st.title("⭕ Tic-Tac-Toe DP Solver")
    st.markdown("---")

    num_epochs = st.slider(
        "Max epochs",
        min_value=1,
        max_value=20,
        value=10,
        step=1,
    )

    discount = st.slider(
        "Discount γ",
        min_value=0.5,
        max_value=1.0,
        value=1.0,
        step=0.05,
    )

    improve = st.selectbox(
        "Policies",
        options=[False, True],
        format_func=lambda v: "One greedy improvement step" if v else "Uniform random",
        index=0,
    )

    board_text = st.text_input(
        "Position (rows separated by '/', '.' = empty)",
        value=".../.../...",
    )

    st.markdown("---")
    n_mc_games = st.slider(
        "MC games (play-out tab)",
        min_value=1_000,
        max_value=20_000,
        value=5_000,
        step=1_000,
    )
    seed = st.number_input("Play-out seed", min_value=0, value=42, step=1)

    st.markdown("---")
    st.caption("Engine → Transition table → DP → Analysis")

m = _load_analysis_modules()

with st.spinner("Building transition table and training …"):
    env, trainer, result = _train(num_epochs, discount, improve)
table = env.state_transitions()

try:
    state = m["TicTacToeState"].from_string(board_text)
except ValueError as exc:
    st.sidebar.error(str(exc))
    state = m["TicTacToeState"].empty()

st.sidebar.success(
    f"Trained {result.epochs_run} epochs | "
    f"x value: {result.value_for(0, 0):+.4f} | o value: {result.value_for(0, 1):+.4f}"
)

# ─── Tabs ─────────────────────────────────────────────────────────────────────

tab1, tab2, tab3 = st.tabs(
    [
        "Move Value Heat Map",
        "Interactive Lookup",
        "Random Play-out",
    ]
)

# ── Tab 1: Move Value Heat Map ────────────────────────────────────────────────

with tab1:
    st.header("Move Value Heat Map")
    st.caption(
        "Cell = legal move | Colour = r + γ·V(next) for the panel's agent | "
        "Green = good, Red = bad, Grey = occupied"
    )

    fig_values = m["plot_agent_comparison"](
        table, result.values, state, discount=discount, show=False
    )
    st.pyplot(fig_values)

    st.markdown("---")

    mover = table[state.id()][0].agent_id if table[state.id()] else None
    if mover is not None:
        st.subheader("Acting agent's policy")
        policy_data = m["build_policy_data"](trainer.policies[mover], table, state.id())
        fig_policy = m["plot_move_values"](
            policy_data, state, "P(play cell)", vmin=0.0, vmax=1.0, show=False
        )
        st.pyplot(fig_policy)

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        m["print_move_values"](table, result.values, state, discount)
    st.code(buf.getvalue(), language=None)

# ── Tab 2: Interactive Lookup ─────────────────────────────────────────────────

with tab2:
    st.header("Interactive Plotly Move Lookup")
    st.caption("Hover over a legal cell to see the action, the next position and every value.")

    fig_lookup = m["build_move_lookup_figure"](table, result.values, state, discount)
    st.plotly_chart(fig_lookup, use_container_width=True)

    st.markdown("---")
    st.subheader("Training Summary")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        m["print_training_summary"](table, result)
    st.code(buf.getvalue(), language=None)

# ── Tab 3: Random Play-out ────────────────────────────────────────────────────

with tab3:
    st.header("Random Play-out")
    st.caption("Both agents play uniformly at random from the selected position.")

    game_env = m["TicTacToeEnvironment"](state=state)
    record = m["play_game"](game_env, m["random_chooser"](m["np"].random.default_rng(int(seed))))

    if not record.steps:
        st.info("The selected position is terminal: there is nothing to play.")
    for i, step in enumerate(record.steps, start=1):
        st.text(
            f"ply {i}: {step.action.cell_value.symbol} on cell {step.action.cell_index} "
            f"(reward {step.reward:+.1f})"
        )
    st.code(str(record.final_state), language=None)
    st.metric("Winner", record.winner.name)

    st.markdown("---")
    st.subheader("DP vs Monte Carlo")

    if improve:
        st.info("The Monte Carlo check plays uniform policies; switch the sidebar to uniform.")
    else:
        with st.spinner(f"Simulating {n_mc_games:,} games …"):
            stats = m["simulate_games"](n_games=n_mc_games, seed=int(seed))

        col1, col2, col3, col4 = st.columns(4)
        col1.metric("x wins", f"{stats.cross_win_rate:.2%}")
        col2.metric("o wins", f"{stats.circle_win_rate:.2%}")
        col3.metric("Draws", f"{stats.draw_rate:.2%}")
        col4.metric("Mean length", f"{stats.mean_length:.2f}")

        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            m["print_playout_comparison"](result, stats)
        st.code(buf.getvalue(), language=None)
