"""
Tic-tac-toe positions, actions and the position codec.

Cells are arranged left to right, top to bottom (row-major):

    0 | 1 | 2
    ---------
    3 | 4 | 5
    ---------
    6 | 7 | 8

Position codec (bijection between positions and [0, 3**9)):
    id = Σ cells[i].value_id * 3**(8 - i)

The last cell is the least significant base-3 digit, so decoding peels digits
off from cell 8 back to cell 0.  The all-empty board is id 0.  Every id in
range decodes to a board, including boards that legal play never reaches
(e.g. five crosses and no circles) — the codec is total, not filtered.

Action encoding:
    ActionId = cell_index * 3 + cell_value.value_id

Cross always moves first; the symbol to play is fixed by the parity of the
number of occupied cells.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

from src.engine.cells import NUM_CELL_VALUES, CellValue
from src.engine.types import ActionId, PositionId

# ─── Constants ────────────────────────────────────────────────────────────────

GRID_SIZE: int = 3
"""Side length of the board."""

NUM_CELLS: int = GRID_SIZE * GRID_SIZE
"""Number of cells (K, the number of codec digits)."""

MAX_STATE_ID: int = NUM_CELL_VALUES**NUM_CELLS
"""Total number of encodable positions (V**K = 19683)."""

_LINES: tuple[tuple[int, ...], ...] = (
    tuple(tuple(r * GRID_SIZE + c for c in range(GRID_SIZE)) for r in range(GRID_SIZE))
    + tuple(tuple(r * GRID_SIZE + c for r in range(GRID_SIZE)) for c in range(GRID_SIZE))
    + (tuple(i * GRID_SIZE + i for i in range(GRID_SIZE)),)
    + (tuple(i * GRID_SIZE + GRID_SIZE - 1 - i for i in range(GRID_SIZE)),)
)
"""Winning lines: rows, then columns, then the main and the anti diagonal."""


# ─── Win detection ────────────────────────────────────────────────────────────


@functools.cache
def _winning_value(cells: tuple[CellValue, ...]) -> CellValue:
    """Return the symbol owning a completed line, or NONE.

    Lines are checked in ``_LINES`` order and the first completed one wins.
    Boards with two completed lines of different symbols cannot arise in
    legal play; for such unreachable boards the earliest line decides.
    """
    for line in _LINES:
        first = cells[line[0]]
        if first.is_set() and all(cells[i] is first for i in line[1:]):
            return first
    return CellValue.NONE


# ─── Action ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TicTacToeAction:
    """Place ``cell_value`` on cell ``cell_index``."""

    cell_value: CellValue
    cell_index: int

    def id(self) -> ActionId:
        """Encoded action id.

        Examples:
            >>> TicTacToeAction(CellValue.CROSS, 4).id()
            13
        """
        return ActionId(self.cell_index * NUM_CELL_VALUES + self.cell_value.value_id)

    @classmethod
    def from_id(cls, action_id: int) -> TicTacToeAction:
        """Inverse of ``id()``.

        Raises:
            ValueError: If *action_id* does not encode a cell on the board.
        """
        cell_index, value_id = divmod(action_id, NUM_CELL_VALUES)
        if action_id < 0 or cell_index >= NUM_CELLS:
            raise ValueError(f"Action id out of range: {action_id}")
        return cls(CellValue.from_value_id(value_id), cell_index)


# ─── State ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TicTacToeState:
    """Immutable tic-tac-toe position.

    Frozen (hashable) so positions compare cell-by-cell and can be used as
    dict keys.  Actions never mutate a state; ``apply_action`` returns a new one.
    """

    cells: tuple[CellValue, ...]

    def __post_init__(self) -> None:
        if len(self.cells) != NUM_CELLS:
            raise ValueError(f"Expected {NUM_CELLS} cells, got {len(self.cells)}")

    # ── Constructors ─────────────────────────────────────────────────────────

    @classmethod
    def empty(cls) -> TicTacToeState:
        return cls((CellValue.NONE,) * NUM_CELLS)

    @classmethod
    def from_string(cls, board: str) -> TicTacToeState:
        """Parse a board written row by row.

        Rows are separated by ``/``, ``|`` or newlines; within a row each
        character is one cell (``x``, ``o``, and ``' '`` or ``.`` for empty).

        Examples:
            >>> TicTacToeState.from_string("xox/oox/x.o").id()
            12350

        Raises:
            ValueError: On a wrong row count, row length or unknown symbol.
        """
        rows = board.replace("|", "/").replace("\n", "/").split("/")
        if len(rows) != GRID_SIZE or any(len(row) != GRID_SIZE for row in rows):
            raise ValueError(f"Board must have {GRID_SIZE} rows of {GRID_SIZE} cells: {board!r}")
        return cls(tuple(CellValue.from_symbol(ch) for row in rows for ch in row))

    @classmethod
    def create_state_with_id(cls, state_id: int) -> TicTacToeState | None:
        """Decode *state_id*, or return None when it lies outside the codec range."""
        if state_id < 0 or state_id >= MAX_STATE_ID:
            return None
        cells = [CellValue.NONE] * NUM_CELLS
        remaining = state_id
        for cell_index in reversed(range(NUM_CELLS)):
            remaining, value_id = divmod(remaining, NUM_CELL_VALUES)
            cells[cell_index] = CellValue.from_value_id(value_id)
        return cls(tuple(cells))

    @classmethod
    def from_id(cls, state_id: int) -> TicTacToeState:
        """Decode *state_id*; unlike ``create_state_with_id`` an out-of-range id is a bug.

        Raises:
            ValueError: If *state_id* is outside ``[0, max_state_id())``.
        """
        state = cls.create_state_with_id(state_id)
        if state is None:
            raise ValueError(f"State id {state_id} outside [0, {MAX_STATE_ID})")
        return state

    @staticmethod
    def max_state_id() -> PositionId:
        return PositionId(MAX_STATE_ID)

    # ── Codec ────────────────────────────────────────────────────────────────

    def id(self) -> PositionId:
        """Encode this position (mirror of ``create_state_with_id``)."""
        state_id = 0
        for cell in self.cells:
            state_id = state_id * NUM_CELL_VALUES + cell.value_id
        return PositionId(state_id)

    # ── Rules ────────────────────────────────────────────────────────────────

    def next_cell_value(self) -> CellValue:
        """Symbol to play next: CROSS on an even number of set cells."""
        num_set = sum(1 for cell in self.cells if cell.is_set())
        return CellValue.CROSS if num_set % 2 == 0 else CellValue.CIRCLE

    def all_cells_set(self) -> bool:
        return all(cell.is_set() for cell in self.cells)

    def winning_value(self) -> CellValue:
        return _winning_value(self.cells)

    def is_terminal(self) -> bool:
        return self.winning_value() is not CellValue.NONE or self.all_cells_set()

    def actions(self) -> list[TicTacToeAction]:
        """Legal actions in cell order; empty for a terminal position."""
        if self.is_terminal():
            return []
        value = self.next_cell_value()
        return [
            TicTacToeAction(value, index)
            for index, cell in enumerate(self.cells)
            if not cell.is_set()
        ]

    def apply_action(self, action: TicTacToeAction) -> TicTacToeState:
        """Return the position reached by *action*.

        Raises:
            ValueError: If this position is terminal, the target cell is
                        already set, or the action plays the wrong symbol.
        """
        if self.is_terminal():
            raise ValueError(f"Tried applying {action} to a terminal state:\n{self}")
        if not 0 <= action.cell_index < NUM_CELLS:
            raise ValueError(f"Cell index out of range: {action}")
        if self.cells[action.cell_index].is_set():
            raise ValueError(f"Action tried setting a cell that was already set: {action}\n{self}")
        if action.cell_value is not self.next_cell_value():
            raise ValueError(
                f"Action plays {action.cell_value.name}, expected {self.next_cell_value().name}"
            )
        cells = list(self.cells)
        cells[action.cell_index] = action.cell_value
        return TicTacToeState(tuple(cells))

    # ── Rendering ────────────────────────────────────────────────────────────

    def __str__(self) -> str:
        rows = [
            "|".join(cell.symbol for cell in self.cells[r * GRID_SIZE : (r + 1) * GRID_SIZE])
            for r in range(GRID_SIZE)
        ]
        separator = "\n" + "-" * (GRID_SIZE * 2 - 1) + "\n"
        return separator.join(rows)
