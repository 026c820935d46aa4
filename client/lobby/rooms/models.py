"""Room directory models for the lobby."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from game.logic.exceptions import ProtocolParseError
from game.messaging.types import parse_int, tokenize
from game.messaging.wire_enums import ServerLine

ROOM_CAPACITY = 2
_ROOM_LINE_FIELDS = 7  # ROOM <id> <players> <state> <phase> <p1> <p2>


class RoomInfo(BaseModel):
    """Snapshot of one server room as listed by the directory.

    state and phase are server enums passed through as text; p1 and p2
    describe the two player slots (e.g. "P1=UP").
    """

    model_config = ConfigDict(frozen=True)

    id: int
    players: int = Field(ge=0, le=ROOM_CAPACITY)
    state: str
    phase: str
    p1: str = ""
    p2: str = ""

    @property
    def players_text(self) -> str:
        return f"{self.players}/{ROOM_CAPACITY}"

    @classmethod
    def from_line(cls, line: str) -> RoomInfo:
        """Parse a ROOM directory line. Raises ProtocolParseError on a malformed line."""
        tokens = tokenize(line)
        if len(tokens) < _ROOM_LINE_FIELDS or tokens[0] != ServerLine.ROOM:
            raise ProtocolParseError(line, f"ROOM line needs {_ROOM_LINE_FIELDS} fields")
        try:
            return cls(
                id=parse_int(tokens[1], line),
                players=parse_int(tokens[2], line),
                state=tokens[3],
                phase=tokens[4],
                p1=tokens[5],
                p2=tokens[6],
            )
        except ValidationError as e:
            raise ProtocolParseError(line, str(e)) from e
