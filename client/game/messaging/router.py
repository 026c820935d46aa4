import logging
from collections import deque
from typing import TYPE_CHECKING

from game.logic.enums import Phase
from game.logic.game import GameState
from game.logic.result import ResultState
from game.logic.setup import SetupState
from game.messaging.events import (
    Connected,
    Diagnostic,
    Disconnected,
    InboundEvent,
    LineReceived,
    LivenessTick,
    SendFailed,
)
from game.messaging.types import command_word
from game.messaging.wire_enums import (
    SETUP_LINES,
    SHIP_SUBMISSION_COMMANDS,
    ClientCommand,
    ServerLine,
)
from game.session.heartbeat import LivenessWatchdog
from lobby.rooms.state import LobbyState
from shared.observable import Observable, ObservableField

if TYPE_CHECKING:
    from game.messaging.protocol import Outbox

logger = logging.getLogger(__name__)

DIAGNOSTICS_LIMIT = 500

_FORCED_LOBBY_LINES = frozenset({ServerLine.RETURNED_TO_LOBBY, ServerLine.OPPONENT_LEFT})
_OUTCOME_LINES = frozenset({ServerLine.WIN, ServerLine.LOSE})


def is_forced_lobby_line(line: str) -> bool:
    return (
        line in _FORCED_LOBBY_LINES
        or line.startswith(f"{ServerLine.LEFT} ")
    )


class ProtocolRouter(Observable):
    """
    Top-level phase state machine.

    Every inbound event passes through handle_event, called only from the
    session dispatch loop. Global rules (liveness, forced return to the
    lobby, outcome, phase entry) are applied before a line reaches the phase
    component that owns the current phase.
    """

    phase = ObservableField(Phase.NONE)

    def __init__(
        self,
        outbox: "Outbox",
        watchdog: LivenessWatchdog | None = None,
        *,
        diagnostics_limit: int = DIAGNOSTICS_LIMIT,
    ) -> None:
        super().__init__()
        self._outbox = outbox
        self.watchdog = watchdog or LivenessWatchdog()
        self.lobby = LobbyState(outbox, is_active=lambda: self.phase is Phase.LOBBY)
        self.setup = SetupState(outbox)
        self.game = GameState(outbox)
        self.result = ResultState(outbox)
        self._log: deque[str] = deque(maxlen=diagnostics_limit)

    @property
    def log(self) -> tuple[str, ...]:
        """Diagnostic side channel, oldest first."""
        return tuple(self._log)

    def add_diagnostic(self, text: str) -> None:
        self._log.append(text)
        self.notify("log")

    def handle_event(self, event: InboundEvent) -> None:
        if isinstance(event, LineReceived):
            self.handle_line(event.line)
        elif isinstance(event, Diagnostic):
            self.add_diagnostic(event.text)
        elif isinstance(event, LivenessTick):
            self._on_tick(event.now)
        elif isinstance(event, Connected):
            self._on_connected()
        elif isinstance(event, Disconnected):
            self._on_disconnected()
        elif isinstance(event, SendFailed):
            self._on_send_failed(event)
        else:
            logger.warning("unknown event type: %s", type(event).__name__)

    def handle_line(self, line: str) -> None:
        self.add_diagnostic(f"< {line}")
        logger.debug("< %s", line)

        if line == ServerLine.PING:
            self.watchdog.record_ping()
            self._outbox.send_line(ClientCommand.PONG)
            return

        if is_forced_lobby_line(line):
            self._reset_phases()
            self.phase = Phase.LOBBY
            self.lobby.handle_line(line)
            return

        if line in _OUTCOME_LINES:
            self.game.handle_line(line)
            self.result.set_outcome(line)
            self.phase = Phase.RESULT
            return

        if line == ServerLine.PLAY:
            self.game.reset()
            self.result.reset()
            self.game.set_fleet(self.setup.ships)
            self.game.set_room_badge(self.lobby.room_badge)
            self.phase = Phase.GAME
            self.setup.handle_line(line)
            self.game.handle_line(line)
            return

        if line in SETUP_LINES:
            self.setup.reset()
            self.result.reset()
            self.phase = Phase.SETUP
            self.lobby.handle_line(line)
            self.setup.handle_line(line)
            self.setup.set_room_badge(self.lobby.room_badge)
            return

        self._route_by_phase(line)

    def _route_by_phase(self, line: str) -> None:
        if self.phase is Phase.SETUP:
            self.setup.handle_line(line)
        elif self.phase is Phase.GAME:
            self.game.handle_line(line)
        else:
            # LOBBY, plus RESULT and NONE as a fallback
            self.lobby.handle_line(line)

    def _reset_phases(self) -> None:
        self.setup.reset()
        self.game.reset()
        self.result.reset()

    def _on_tick(self, now: float) -> None:
        if not self.watchdog.check(now):
            return
        text = f"No PING for {self.watchdog.timeout:g}s - disconnecting (liveness timeout)."
        self.add_diagnostic(text)
        logger.warning("liveness timeout after %gs without PING", self.watchdog.timeout)
        self._outbox.request_disconnect("Liveness timeout.")

    def _on_connected(self) -> None:
        self.watchdog.reset()
        self._reset_phases()
        self.lobby.on_connected()
        self.phase = Phase.LOBBY

    def _on_disconnected(self) -> None:
        self.watchdog.reset()
        self._reset_phases()
        self.lobby.on_disconnected()
        self.phase = Phase.NONE

    def _on_send_failed(self, event: SendFailed) -> None:
        logger.warning("send failed: %s (%s)", event.command, event.reason)
        self.add_diagnostic(f"Send failed: {event.command} ({event.reason})")
        if command_word(event.command) in SHIP_SUBMISSION_COMMANDS and self.phase is Phase.SETUP:
            self.setup.send_failed(event.reason)
