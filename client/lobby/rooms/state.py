"""Lobby phase: room directory, membership and membership intents."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.logic.enums import Phase
from game.logic.exceptions import ProtocolParseError
from game.messaging.types import command_word, join, parse_joined, parse_rooms_count, rejoin
from game.messaging.wire_enums import MEMBERSHIP_COMMANDS, SETUP_LINES, ClientCommand, ServerLine
from lobby.rooms.models import RoomInfo
from shared.observable import Observable, ObservableField

if TYPE_CHECKING:
    from collections.abc import Callable

    from game.messaging.protocol import Outbox

logger = structlog.get_logger()

NO_ROOM_BADGE = "Room: —"
NOT_IN_ROOM = "Not in a room."
BACK_IN_LOBBY = "Back in lobby."

_LEAVABLE_PHASES = frozenset({Phase.LOBBY, Phase.WAITING})


def room_badge(room_id: int | None, player_no: int) -> str:
    if room_id is None:
        return NO_ROOM_BADGE
    return f"Room #{room_id} (P{player_no})"


class LobbyState(Observable):
    """Room directory and membership as reported by the server.

    The directory is a snapshot: ROOMS clears it and the following ROOM lines
    repopulate it. Membership follows JOINED / WAIT / SETUP and is cleared by
    any forced return to the lobby.
    """

    derived_fields = {
        "connected": ("can_join_selected", "can_leave"),
        "rooms": ("selected_room", "can_join_selected"),
        "selected_room_id": ("selected_room", "can_join_selected"),
        "room_id": ("can_leave",),
        "room_phase": ("can_leave",),
    }

    connected = ObservableField(False)
    rooms = ObservableField(())
    rooms_header = ObservableField("Rooms")
    expected_room_count = ObservableField(None)
    selected_room_id = ObservableField(None)
    room_id = ObservableField(None)
    player_no = ObservableField(0)
    room_phase = ObservableField(Phase.NONE)
    room_status = ObservableField(NOT_IN_ROOM)
    room_badge = ObservableField(NO_ROOM_BADGE)
    notice = ObservableField("")

    def __init__(self, outbox: Outbox, is_active: Callable[[], bool] | None = None) -> None:
        super().__init__()
        self._outbox = outbox
        self._is_active = is_active or (lambda: True)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def selected_room(self) -> RoomInfo | None:
        """The selected room as listed in the current directory snapshot."""
        if self.selected_room_id is None:
            return None
        for room in self.rooms:
            if room.id == self.selected_room_id:
                return room
        return None

    @property
    def can_join_selected(self) -> bool:
        return self.connected and self.selected_room is not None

    @property
    def can_leave(self) -> bool:
        return self.connected and self.room_id is not None and self.room_phase in _LEAVABLE_PHASES

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def on_connected(self) -> None:
        self.connected = True
        self.notice = ""
        self.reset_room(NOT_IN_ROOM)

    def on_disconnected(self) -> None:
        self.connected = False
        self.rooms = ()
        self.rooms_header = "Rooms"
        self.expected_room_count = None
        self.selected_room_id = None
        self.reset_room("Disconnected.")

    def reset_room(self, status: str = BACK_IN_LOBBY) -> None:
        """Forget room membership. The directory itself is left alone."""
        self.room_id = None
        self.player_no = 0
        self.room_phase = Phase.LOBBY if self.connected else Phase.NONE
        self.room_status = status
        self.room_badge = NO_ROOM_BADGE

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def handle_line(self, line: str) -> None:
        word = command_word(line)

        if word == ServerLine.WELCOME:
            self.send_command(ClientCommand.LIST)
            return

        if word == ServerLine.ROOMS:
            count = parse_rooms_count(line)
            self.rooms = ()
            self.expected_room_count = count
            self.rooms_header = f"Server reports {count} room(s)" if count is not None else "Server reports rooms"
            return

        if word == ServerLine.ROOM:
            try:
                room = RoomInfo.from_line(line)
            except ProtocolParseError as e:
                logger.debug("dropped room line", line=line, reason=e.reason)
                return
            self.rooms = (*self.rooms, room)
            return

        if word == ServerLine.JOINED:
            self._on_joined(line)
            return

        if word == ServerLine.WAIT:
            self.room_phase = Phase.WAITING
            if self.room_id is not None:
                self.room_status = f"Room #{self.room_id}: waiting for opponent…"
            return

        if line in SETUP_LINES:
            self.room_phase = Phase.SETUP
            if self.room_id is not None:
                self.room_status = f"Room #{self.room_id}: SETUP phase."
            return

        if word in (ServerLine.RETURNED_TO_LOBBY, ServerLine.OPPONENT_LEFT, ServerLine.LEFT, ServerLine.ROOM_CLOSED):
            self.reset_room(line if word == ServerLine.ROOM_CLOSED else BACK_IN_LOBBY)
            self.send_command(ClientCommand.LIST)
            return

        logger.debug("lobby ignored line", line=line)

    def _on_joined(self, line: str) -> None:
        try:
            joined = parse_joined(line)
        except ProtocolParseError as e:
            logger.debug("dropped joined line", line=line, reason=e.reason)
            return
        self.room_id = joined.room_id
        self.player_no = joined.player_no
        self.room_phase = Phase.LOBBY
        self.room_badge = room_badge(joined.room_id, joined.player_no)
        if joined.player_no == 1:
            self.room_status = "In room, waiting for opponent…"
        else:
            self.room_status = "In room, opponent found."

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def send_command(self, line: str) -> None:
        """Send a line; anything but a membership command is followed by LIST while the lobby is active."""
        self._outbox.send_line(line)
        if self._is_active() and command_word(line) not in MEMBERSHIP_COMMANDS:
            self._outbox.send_line(ClientCommand.LIST)

    def list_rooms(self) -> None:
        self.send_command(ClientCommand.LIST)

    def create_room(self) -> None:
        self.send_command(ClientCommand.CREATE)

    def join_room(self, room_id: int) -> None:
        self.send_command(join(room_id))

    def rejoin_room(self, room_id: int) -> None:
        self.send_command(rejoin(room_id))

    def select_room(self, room_id: int | None) -> None:
        self.selected_room_id = room_id

    def join_selected(self) -> bool:
        room = self.selected_room
        if not self.connected or room is None:
            self.notice = "Select a room first."
            return False
        self.notice = ""
        self.join_room(room.id)
        return True

    def rejoin_selected(self) -> bool:
        room = self.selected_room
        if not self.connected or room is None:
            self.notice = "Select a room first."
            return False
        self.notice = ""
        self.rejoin_room(room.id)
        return True

    def leave_room(self) -> bool:
        """Send LEAVE while joined or waiting. Returns False when leaving is not allowed here."""
        if not self.can_leave:
            logger.debug("leave refused", room_id=self.room_id, room_phase=self.room_phase)
            return False
        self.send_command(ClientCommand.LEAVE)
        return True
