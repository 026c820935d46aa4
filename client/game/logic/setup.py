"""Setup phase: fleet placement and the readiness handshake."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.logic.board import SelfBoard
from game.logic.enums import Orientation, SelfCell
from game.logic.exceptions import PlacementError
from game.logic.types import FLEET_LENGTHS, Ship, in_bounds, ship_cells
from game.messaging.wire_enums import PLAY_LINES, SETUP_LINES, SHIP_REJECTION_PREFIXES, ClientCommand, ServerLine
from shared.observable import Observable, ObservableField

if TYPE_CHECKING:
    from game.messaging.protocol import Outbox

logger = structlog.get_logger()

INITIAL_STATUS = "SETUP: Place your ships."


def validate_placement(board: SelfBoard, x: int, y: int, length: int, orientation: Orientation) -> Ship:
    """Build the ship for a placement, or raise PlacementError without touching the board."""
    cells = ship_cells(x, y, length, orientation)
    if not all(in_bounds(cx, cy) for cx, cy in cells):
        raise PlacementError("Out of bounds.")
    if any(board.get(cx, cy) != SelfCell.EMPTY for cx, cy in cells):
        raise PlacementError("Overlap with another ship.")
    return Ship(x=x, y=y, length=length, orientation=orientation)


class SetupState(Observable):
    """Local fleet under construction and the ship submission guard.

    The sending guard is raised when READY is accepted and only dropped by a
    failed send, a server rejection or a full reset.
    """

    derived_fields = {
        "remaining": ("selected_length", "can_place", "can_ready"),
        "sending": ("can_place", "can_ready"),
        "ships": ("can_ready",),
        "orientation": ("direction_text",),
        "opponent_ready": ("opponent_ready_text",),
    }

    ships = ObservableField(())
    remaining = ObservableField(FLEET_LENGTHS)
    orientation = ObservableField(Orientation.HORIZONTAL)
    sending = ObservableField(False)
    opponent_ready = ObservableField(False)
    self_rows = ObservableField(SelfBoard().rows)
    status = ObservableField(INITIAL_STATUS)
    room_badge = ObservableField("Room: —")

    def __init__(self, outbox: Outbox) -> None:
        super().__init__()
        self._outbox = outbox
        self._board = SelfBoard()

    @property
    def selected_length(self) -> int:
        return self.remaining[0] if self.remaining else 0

    @property
    def can_place(self) -> bool:
        return not self.sending and bool(self.remaining)

    @property
    def can_ready(self) -> bool:
        return not self.sending and not self.remaining and len(self.ships) == len(FLEET_LENGTHS)

    @property
    def direction_text(self) -> str:
        return "HORIZONTAL" if self.orientation is Orientation.HORIZONTAL else "VERTICAL"

    @property
    def opponent_ready_text(self) -> str:
        return "Opponent ready" if self.opponent_ready else "Opponent not ready"

    def set_room_badge(self, badge: str) -> None:
        if badge.strip():
            self.room_badge = badge

    def reset(self) -> None:
        """Full reset for a new setup phase: guard, opponent flag, orientation and fleet."""
        self.sending = False
        self.opponent_ready = False
        self.orientation = Orientation.HORIZONTAL
        self._reset_fleet()
        self.status = INITIAL_STATUS

    def _reset_fleet(self) -> None:
        self._board.clear()
        self.ships = ()
        self.remaining = FLEET_LENGTHS
        self.self_rows = self._board.rows

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def place_at(self, x: int, y: int) -> bool:
        """Place the next ship with its top-left cell at (x, y). Returns True if placed."""
        if not self.can_place:
            return False
        length = self.selected_length
        try:
            ship = validate_placement(self._board, x, y, length, self.orientation)
        except PlacementError as e:
            self.status = e.reason
            return False

        for cx, cy in ship.cells():
            self._board.mark(cx, cy, SelfCell.SHIP)
        remaining = list(self.remaining)
        remaining.remove(length)
        self.ships = (*self.ships, ship)
        self.remaining = tuple(remaining)
        self.self_rows = self._board.rows

        if self.remaining:
            self.status = f"Placed {length}{ship.orientation.value}. Remaining: {len(self.remaining)} ships."
        else:
            self.status = "All ships placed. Click READY to send."
        return True

    def toggle_direction(self) -> None:
        if self.sending:
            return
        self.orientation = self.orientation.flipped

    def reset_placement(self) -> None:
        if self.sending:
            return
        self._reset_fleet()
        self.status = "Reset done. Place ships again."

    def submit_ready(self) -> bool:
        """Hand the fleet to the outbox once. A no-op until the whole fleet is placed."""
        if not self.can_ready:
            return False
        self.sending = True
        self.status = "Sending ships to server…"
        self._outbox.send_ships(self.ships)
        return True

    def send_failed(self, reason: str) -> None:
        self.sending = False
        self.status = f"Send failed: {reason.strip() or 'unknown error'}"

    def request_leave(self) -> None:
        self._outbox.send_line(ClientCommand.LEAVE)
        self.status = "Leaving…"

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def handle_line(self, line: str) -> None:
        if line == ServerLine.SHIPS_OK:
            # the guard stays raised until the game starts
            self.status = "Ships accepted. Waiting for opponent…"
            return

        if line == ServerLine.OPPONENT_READY:
            self.opponent_ready = True
            self.status = "Opponent ready. Starting soon…"
            return

        if line.startswith(SHIP_REJECTION_PREFIXES):
            logger.info("ships rejected by server", line=line)
            self.sending = False
            self._reset_fleet()
            self.status = f"Invalid ships. Resetting. ({line})"
            return

        if line in SETUP_LINES:
            self.status = "SETUP phase."
            return

        if line in PLAY_LINES:
            self.status = "GAME START!"
            return

        logger.debug("setup ignored line", line=line)
