"""
Cell symbols and their digit encoding.

Cell encoding (integer 0–2, the base-3 digit used by the position codec):
    0 = NONE    (empty cell, rendered ' ')
    1 = CROSS   (first agent, rendered 'x')
    2 = CIRCLE  (second agent, rendered 'o')

The digit values are fixed: the position codec and ActionId both depend on
them, so reordering the members changes every identifier.
"""

from __future__ import annotations

from enum import Enum


class CellValue(Enum):
    """Symbol held by one board cell."""

    NONE = 0
    CROSS = 1
    CIRCLE = 2

    @property
    def value_id(self) -> int:
        """Digit of this symbol in the position codec."""
        return self.value

    @classmethod
    def from_value_id(cls, value_id: int) -> CellValue:
        """Inverse of ``value_id``.

        Examples:
            >>> CellValue.from_value_id(2)
            <CellValue.CIRCLE: 2>
        """
        return _CELL_VALUES[value_id]

    @classmethod
    def from_symbol(cls, symbol: str) -> CellValue:
        """Parse a rendered symbol ('x', 'o', ' ' or '.').

        Raises:
            ValueError: If *symbol* is not a known cell symbol.
        """
        try:
            return _SYMBOL_TO_CELL[symbol.lower()]
        except KeyError:
            raise ValueError(f"Unknown cell symbol: {symbol!r}") from None

    @property
    def symbol(self) -> str:
        return _CELL_SYMBOLS[self.value]

    def is_set(self) -> bool:
        return self is not CellValue.NONE


_CELL_VALUES: tuple[CellValue, ...] = (CellValue.NONE, CellValue.CROSS, CellValue.CIRCLE)
_CELL_SYMBOLS: tuple[str, ...] = (" ", "x", "o")
_SYMBOL_TO_CELL: dict[str, CellValue] = {
    " ": CellValue.NONE,
    ".": CellValue.NONE,
    "x": CellValue.CROSS,
    "o": CellValue.CIRCLE,
}

NUM_CELL_VALUES: int = len(_CELL_VALUES)
"""Radix of the position codec (V)."""
