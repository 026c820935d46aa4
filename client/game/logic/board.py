"""10x10 boards for the local fleet and the enemy waters.

Cells change monotonically: once a cell holds anything but the blank state
it can only move to another non-blank state. The two exceptions are a full
clear (new game / fleet redraw) and a row resync sent by the server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from game.logic.enums import EnemyCell, SelfCell
from game.logic.types import BOARD_SIZE, in_bounds

if TYPE_CHECKING:
    from collections.abc import Iterable
    from enum import StrEnum

    from game.logic.types import Ship


class Board:
    """Flat row-major grid with bounds-checked accessors."""

    cell_type: ClassVar[type[StrEnum]]
    blank: ClassVar[StrEnum]

    def __init__(self) -> None:
        self._cells: list[StrEnum] = [self.blank] * (BOARD_SIZE * BOARD_SIZE)

    @staticmethod
    def _index(x: int, y: int) -> int:
        if not in_bounds(x, y):
            raise IndexError(f"cell ({x},{y}) outside {BOARD_SIZE}x{BOARD_SIZE} board")
        return y * BOARD_SIZE + x

    def get(self, x: int, y: int) -> StrEnum:
        return self._cells[self._index(x, y)]

    def mark(self, x: int, y: int, cell: StrEnum) -> None:
        """Set one cell. Reverting a known cell to blank raises ValueError."""
        index = self._index(x, y)
        cell = self.cell_type(cell)
        if cell == self.blank and self._cells[index] != self.blank:
            raise ValueError(f"cell ({x},{y}) is {self._cells[index].value!r} and cannot revert to blank")
        self._cells[index] = cell

    def clear(self) -> None:
        self._cells = [self.blank] * (BOARD_SIZE * BOARD_SIZE)

    def resync_row(self, y: int, row: str) -> None:
        """Overwrite row y wholesale from its 10-character wire form.

        The row is validated completely before anything is written, so a bad
        character leaves the board untouched.
        """
        if not 0 <= y < BOARD_SIZE:
            raise IndexError(f"row {y} outside board")
        if len(row) != BOARD_SIZE:
            raise ValueError(f"row must have {BOARD_SIZE} cells, got {len(row)}")
        cells = [self.cell_type(ch) for ch in row]
        start = y * BOARD_SIZE
        self._cells[start : start + BOARD_SIZE] = cells

    def row(self, y: int) -> str:
        start = y * BOARD_SIZE
        return "".join(cell.value for cell in self._cells[start : start + BOARD_SIZE])

    @property
    def rows(self) -> tuple[str, ...]:
        return tuple(self.row(y) for y in range(BOARD_SIZE))

    def count(self, cell: StrEnum) -> int:
        return self._cells.count(self.cell_type(cell))


class SelfBoard(Board):
    cell_type = SelfCell
    blank = SelfCell.EMPTY

    def draw_fleet(self, ships: Iterable[Ship]) -> None:
        """Clear the board, then mark every cell covered by a ship."""
        self.clear()
        for ship in ships:
            for x, y in ship.cells():
                if in_bounds(x, y):
                    self.mark(x, y, SelfCell.SHIP)


class EnemyBoard(Board):
    cell_type = EnemyCell
    blank = EnemyCell.UNKNOWN

    def is_known(self, x: int, y: int) -> bool:
        return self.get(x, y) != EnemyCell.UNKNOWN
