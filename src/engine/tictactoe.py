"""
Tic-tac-toe environment: the two-agent instantiation of the environment protocols.

Agents:
    AgentId 0 — CROSS  (moves first)
    AgentId 1 — CIRCLE

Rewards are a pure function of (resulting position, agent):
    +1.0 if the agent's symbol completed a line,
    -1.0 if the opponent's symbol completed a line,
     0.0 otherwise (game in progress or draw).
"""

from __future__ import annotations

from src.engine.board import TicTacToeAction, TicTacToeState
from src.engine.cells import CellValue
from src.engine.types import AgentId, PositionId, Reward, TransitionTable
from src.solvers.transition_table import build_transition_table

CROSS_AGENT: AgentId = AgentId(0)
CIRCLE_AGENT: AgentId = AgentId(1)

_AGENT_SYMBOLS: dict[AgentId, CellValue] = {
    CROSS_AGENT: CellValue.CROSS,
    CIRCLE_AGENT: CellValue.CIRCLE,
}


class TicTacToeEnvironment:
    """Mutable play-out wrapper around an immutable ``TicTacToeState``.

    Only ``apply_action`` and ``reset`` change the stored position.  The
    transition model does not depend on it: ``state_transitions`` enumerates
    every encodable position from the codec and is built once per instance.

    Args:
        state:     Starting position (defaults to the empty board, id 0).
        n_workers: Worker processes used when building the transition table.
    """

    def __init__(self, state: TicTacToeState | None = None, n_workers: int = 1) -> None:
        self._state = state if state is not None else TicTacToeState.from_id(0)
        self._n_workers = n_workers
        self._transition_table: TransitionTable | None = None

    def __repr__(self) -> str:
        return f"TicTacToeEnvironment(state_id={self._state.id()})"

    # ── Play-out ─────────────────────────────────────────────────────────────

    def state(self) -> TicTacToeState:
        return self._state

    def actions(self) -> list[TicTacToeAction]:
        return self._state.actions()

    def apply_action(self, action: TicTacToeAction) -> Reward:
        """Play *action* and return the reward of the agent that played it.

        Raises:
            ValueError: If the current position is terminal or *action* is illegal.
        """
        self._state = self._state.apply_action(action)
        return self.reward_for_agent(self._state, self.agent_id_for_action(action))

    def reset(self, state: TicTacToeState | None = None) -> TicTacToeState:
        self._state = state if state is not None else TicTacToeState.from_id(0)
        return self._state

    # ── Agents and rewards ───────────────────────────────────────────────────

    def agent_id_for_action(self, action: TicTacToeAction) -> AgentId:
        if action.cell_value is CellValue.CROSS:
            return CROSS_AGENT
        if action.cell_value is CellValue.CIRCLE:
            return CIRCLE_AGENT
        raise ValueError(f"Action does not place a symbol: {action}")

    def num_agents(self) -> int:
        return len(_AGENT_SYMBOLS)

    def reward_for_agent(self, state: TicTacToeState, agent_id: AgentId) -> Reward:
        """Reward of *agent_id* for having reached *state*.

        Raises:
            ValueError: For an agent id other than 0 (cross) or 1 (circle).
        """
        symbol = _AGENT_SYMBOLS.get(agent_id)
        if symbol is None:
            raise ValueError(f"Unexpected agent_id: {agent_id}")
        winner = state.winning_value()
        if winner is CellValue.NONE:
            return Reward(0.0)
        return Reward(1.0) if winner is symbol else Reward(-1.0)

    # ── Codec and transition model ───────────────────────────────────────────

    def max_state_id(self) -> PositionId:
        return TicTacToeState.max_state_id()

    def create_state_with_id(self, state_id: int) -> TicTacToeState | None:
        return TicTacToeState.create_state_with_id(state_id)

    def state_transitions(self) -> TransitionTable:
        """Complete transition table over every encodable position (cached).

        Callers share the cached table and must treat it as read-only.
        """
        if self._transition_table is None:
            self._transition_table = build_transition_table(self, n_workers=self._n_workers)
        return self._transition_table

    def __getstate__(self) -> dict:
        # Worker processes get the environment without its cached table.
        state = self.__dict__.copy()
        state["_transition_table"] = None
        return state
