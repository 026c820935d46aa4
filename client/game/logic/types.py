"""Immutable value types shared by setup and game phases."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from game.logic.enums import Orientation

BOARD_SIZE = 10
# Exactly one ship of each entry; the two 3s are distinct ships.
FLEET_LENGTHS: tuple[int, ...] = (5, 4, 3, 3, 2)


def in_bounds(x: int, y: int) -> bool:
    return 0 <= x < BOARD_SIZE and 0 <= y < BOARD_SIZE


class Ship(BaseModel):
    """A placed ship: top-left cell, length and orientation.

    Only the anchor cell is range-checked here. Whether the whole ship fits
    is a placement rule checked by SetupState before a Ship is built.
    """

    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0, lt=BOARD_SIZE)
    y: int = Field(ge=0, lt=BOARD_SIZE)
    length: int = Field(ge=min(FLEET_LENGTHS), le=max(FLEET_LENGTHS))
    orientation: Orientation

    @field_validator("orientation", mode="before")
    @classmethod
    def _parse_orientation(cls, v: object) -> object:
        if isinstance(v, str) and not isinstance(v, Orientation):
            return Orientation.parse(v)
        return v

    def cells(self) -> list[tuple[int, int]]:
        """Every (x, y) the ship covers, anchor first."""
        return ship_cells(self.x, self.y, self.length, self.orientation)

    def __str__(self) -> str:
        return f"{self.length}{self.orientation.value} @ ({self.x},{self.y})"


def ship_cells(x: int, y: int, length: int, orientation: Orientation) -> list[tuple[int, int]]:
    dx, dy = (1, 0) if orientation is Orientation.HORIZONTAL else (0, 1)
    return [(x + dx * i, y + dy * i) for i in range(length)]
