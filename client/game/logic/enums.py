"""
String enum definitions for client phases, board cells and game outcome.
"""

from __future__ import annotations

from enum import StrEnum


class Phase(StrEnum):
    """Top-level client mode.

    NONE is pre-connection or just reset. WAITING is a lobby sub-state meaning
    "room joined, opponent not yet present" and is only used for the room
    phase tracked by the lobby; the router never switches to it.
    """

    NONE = "none"
    LOBBY = "lobby"
    WAITING = "waiting"
    SETUP = "setup"
    GAME = "game"
    RESULT = "result"


class Orientation(StrEnum):
    HORIZONTAL = "H"
    VERTICAL = "V"

    @classmethod
    def parse(cls, value: str) -> Orientation:
        """Accept "H"/"V" in either case."""
        return cls(value.upper())

    @property
    def flipped(self) -> Orientation:
        return Orientation.VERTICAL if self is Orientation.HORIZONTAL else Orientation.HORIZONTAL


class SelfCell(StrEnum):
    """Own board cell. Values are the characters used in BSELF rows."""

    EMPTY = "."
    SHIP = "S"
    HIT = "H"
    MISS = "M"


class EnemyCell(StrEnum):
    """Enemy board cell. Values are the characters used in BENEMY rows."""

    UNKNOWN = "."
    MISS = "M"
    HIT = "H"
    SUNK = "K"


class Outcome(StrEnum):
    WIN = "win"
    LOSS = "loss"
