"""Typed views of protocol lines: outbound command builders and inbound parsers.

Parsers raise ProtocolParseError for malformed input. Callers drop such
lines; a parse failure is never fatal to the session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from game.logic.exceptions import ProtocolParseError
from game.logic.types import BOARD_SIZE, in_bounds
from game.messaging.wire_enums import ClientCommand, ServerLine

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.types import Ship


def tokenize(line: str) -> list[str]:
    """Split a line on runs of spaces, ignoring empty tokens."""
    return line.split()


def command_word(line: str) -> str:
    """First token of a line, or "" for a blank line."""
    tokens = tokenize(line)
    return tokens[0] if tokens else ""


# ============================================================================
# Outbound
# ============================================================================


def hello(nick: str) -> str:
    return f"{ClientCommand.HELLO} {nick}"


def join(room_id: int) -> str:
    return f"{ClientCommand.JOIN} {room_id}"


def rejoin(room_id: int) -> str:
    return f"{ClientCommand.REJOIN} {room_id}"


def place(ship: Ship) -> str:
    return f"{ClientCommand.PLACE} {ship.x} {ship.y} {ship.length} {ship.orientation.value}"


def shoot(x: int, y: int) -> str:
    return f"{ClientCommand.SHOOT} {x} {y}"


def ship_submission(ships: Sequence[Ship]) -> list[str]:
    """The full readiness sequence: PLACING_START, one PLACE per ship, PLACING_STOP."""
    return [str(ClientCommand.PLACING_START), *(place(ship) for ship in ships), str(ClientCommand.PLACING_STOP)]


# ============================================================================
# Inbound
# ============================================================================


class JoinedMessage(BaseModel):
    """JOINED <roomId> <playerNo>"""

    model_config = ConfigDict(frozen=True)

    room_id: int
    player_no: int = Field(ge=1, le=2)


class BoardRowMessage(BaseModel):
    """BENEMY|BSELF <row> <10-char cells>"""

    model_config = ConfigDict(frozen=True)

    board: Literal["BENEMY", "BSELF"]
    y: int = Field(ge=0, lt=BOARD_SIZE)
    cells: str = Field(min_length=BOARD_SIZE, max_length=BOARD_SIZE)


def parse_int(token: str, line: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise ProtocolParseError(line, f"expected integer, got {token!r}") from None


def parse_rooms_count(line: str) -> int | None:
    """Count announced by ROOMS <n>, or None when it does not parse."""
    tokens = tokenize(line)
    if len(tokens) < 2:  # noqa: PLR2004
        return None
    try:
        count = int(tokens[1])
    except ValueError:
        return None
    return count if count >= 0 else None


def parse_joined(line: str) -> JoinedMessage:
    tokens = tokenize(line)
    if len(tokens) < 3 or tokens[0] != ServerLine.JOINED:  # noqa: PLR2004
        raise ProtocolParseError(line, "JOINED needs room id and player number")
    try:
        return JoinedMessage(room_id=parse_int(tokens[1], line), player_no=parse_int(tokens[2], line))
    except ValidationError as e:
        raise ProtocolParseError(line, str(e)) from e


def parse_board_row(line: str) -> BoardRowMessage:
    tokens = tokenize(line)
    if len(tokens) != 3:  # noqa: PLR2004
        raise ProtocolParseError(line, "board row needs exactly a tag, a row index and the cells")
    try:
        return BoardRowMessage(board=tokens[0], y=parse_int(tokens[1], line), cells=tokens[2])
    except ValidationError as e:
        raise ProtocolParseError(line, str(e)) from e


def parse_sunk_cells(line: str) -> list[tuple[int, int]]:
    """Coordinate pairs of SUNK x1 y1 x2 y2 ...

    Pairs that fail to parse or fall off the board are skipped and a
    trailing unpaired token is ignored.
    """
    tokens = tokenize(line)[1:]
    cells: list[tuple[int, int]] = []
    for i in range(0, len(tokens) - 1, 2):
        try:
            x, y = int(tokens[i]), int(tokens[i + 1])
        except ValueError:
            continue
        if in_bounds(x, y):
            cells.append((x, y))
    return cells
