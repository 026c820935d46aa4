import asyncio
import contextlib
import time
from collections.abc import Callable, Coroutine, Sequence
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from game.client.connection import TransportSession
from game.client.settings import ClientSettings
from game.logic.enums import Phase
from game.logic.exceptions import ClientError, ConnectError
from game.messaging.events import Diagnostic, Disconnected, InboundEvent, SendFailed
from game.messaging.protocol import Outbox
from game.messaging.router import ProtocolRouter
from game.messaging.types import ship_submission
from game.session.heartbeat import Clock, LivenessTicker, LivenessWatchdog

if TYPE_CHECKING:
    from game.logic.types import Ship

logger = structlog.get_logger()


class Transport(Protocol):
    @property
    def is_connected(self) -> bool: ...

    async def connect(self, host: str, port: int, nick: str) -> None: ...

    async def send_line(self, text: str) -> None: ...

    async def disconnect(self, reason: str = ...) -> None: ...


TransportFactory = Callable[[asyncio.Queue[InboundEvent]], Transport]


class SessionManager(Outbox):
    """
    Composition root of the client engine.

    Owns the inbound queue and its single consumer (run), the transport, the
    liveness ticker and the router. Intent methods are called from the event
    loop thread; every wire write runs as its own task and reports failure
    back through the queue.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._inbox: asyncio.Queue[InboundEvent] = asyncio.Queue()
        if transport_factory is None:
            self._transport: Transport = TransportSession(
                self._inbox,
                read_chunk_size=self._settings.read_chunk_size,
                connect_timeout=self._settings.connect_timeout_seconds,
            )
        else:
            self._transport = transport_factory(self._inbox)
        self._watchdog = LivenessWatchdog(timeout=self._settings.ping_timeout_seconds, clock=clock)
        self._ticker = LivenessTicker(
            self._inbox,
            interval=self._settings.liveness_check_interval_seconds,
            clock=clock,
        )
        self.router = ProtocolRouter(self, self._watchdog)
        self._send_tasks: set[asyncio.Task[None]] = set()
        self._dispatch_task: asyncio.Task[None] | None = None

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def inbox(self) -> asyncio.Queue[InboundEvent]:
        return self._inbox

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def is_connected(self) -> bool:
        return self._transport.is_connected

    @property
    def phase(self) -> Phase:
        return self.router.phase

    @property
    def log(self) -> tuple[str, ...]:
        return self.router.log

    @property
    def pending_send_count(self) -> int:
        return len(self._send_tasks)

    # ------------------------------------------------------------------
    # Dispatch loop
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the dispatch loop as a background task."""
        if self._dispatch_task is None or self._dispatch_task.done():
            self._dispatch_task = asyncio.create_task(self.run())

    async def run(self) -> None:
        """Consume the inbound queue forever. The only caller of router.handle_event."""
        while True:
            event = await self._inbox.get()
            self._dispatch(event)

    def process_pending(self) -> int:
        """Dispatch every event already queued. Returns the number handled."""
        handled = 0
        while not self._inbox.empty():
            self._dispatch(self._inbox.get_nowait())
            handled += 1
        return handled

    def _dispatch(self, event: InboundEvent) -> None:
        if isinstance(event, Disconnected):
            self._ticker.stop()
        try:
            self.router.handle_event(event)
        except Exception:
            logger.exception("error handling inbound event", event_type=type(event).__name__)

    async def stop(self) -> None:
        """Disconnect and cancel every background task."""
        await self._transport.disconnect()
        await self._ticker.aclose()
        tasks = list(self._send_tasks)
        if self._dispatch_task is not None:
            tasks.append(self._dispatch_task)
            self._dispatch_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.process_pending()

    # ------------------------------------------------------------------
    # Outbox
    # ------------------------------------------------------------------

    def send_line(self, line: str) -> None:
        self._spawn(self._send_all([str(line)]))

    def send_ships(self, ships: Sequence["Ship"]) -> None:
        self._spawn(self._send_all(ship_submission(ships)))

    def request_disconnect(self, reason: str) -> None:
        self._spawn(self._transport.disconnect(reason))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    async def _send_all(self, lines: list[str]) -> None:
        """Write lines in order, stopping at the first failure."""
        for line in lines:
            try:
                await self._transport.send_line(line)
            except ClientError as e:
                logger.warning("send failed", line=line, error=str(e))
                self._inbox.put_nowait(SendFailed(command=line, reason=str(e)))
                return

    # ------------------------------------------------------------------
    # Connection intents
    # ------------------------------------------------------------------

    async def connect(self, host: str | None = None, port: int | None = None, nick: str | None = None) -> bool:
        """Validate inputs and connect. Failures become diagnostics; returns True when connected."""
        host = host if host is not None else self._settings.host
        port = port if port is not None else self._settings.port
        nick = (nick if nick is not None else self._settings.nick).strip()

        if not 1 <= port <= 65535:  # noqa: PLR2004
            self._inbox.put_nowait(Diagnostic("Invalid port."))
            return False
        if not nick:
            self._inbox.put_nowait(Diagnostic("Nick is empty."))
            return False
        if any(ch.isspace() for ch in nick):
            self._inbox.put_nowait(Diagnostic("Nick must not contain spaces or line breaks."))
            return False

        try:
            await self._transport.connect(host, port, nick)
        except ConnectError as e:
            self._inbox.put_nowait(Diagnostic(f"Connect failed: {e}"))
            return False

        self._ticker.start()
        return True

    async def disconnect(self) -> None:
        self._ticker.stop()
        await self._transport.disconnect()

    # ------------------------------------------------------------------
    # Lobby intents
    # ------------------------------------------------------------------

    def list_rooms(self) -> None:
        self.router.lobby.list_rooms()

    def create_room(self) -> None:
        self.router.lobby.create_room()

    def join_room(self, room_id: int) -> None:
        self.router.lobby.join_room(room_id)

    def rejoin_room(self, room_id: int) -> None:
        self.router.lobby.rejoin_room(room_id)

    def join_selected(self) -> bool:
        return self.router.lobby.join_selected()

    def rejoin_selected(self) -> bool:
        return self.router.lobby.rejoin_selected()

    def select_room(self, room_id: int | None) -> None:
        self.router.lobby.select_room(room_id)

    def send_raw(self, line: str) -> None:
        line = line.strip()
        if line:
            self.router.lobby.send_command(line)

    def leave(self) -> bool:
        """LEAVE through whichever phase is active. Returns False if the lobby refuses."""
        phase = self.router.phase
        if phase is Phase.SETUP:
            self.router.setup.request_leave()
        elif phase is Phase.GAME:
            self.router.game.request_leave()
        elif phase is Phase.RESULT:
            self.router.result.request_leave()
        else:
            return self.router.lobby.leave_room()
        return True

    # ------------------------------------------------------------------
    # Setup and game intents
    # ------------------------------------------------------------------

    def place_at(self, x: int, y: int) -> bool:
        return self.router.setup.place_at(x, y)

    def toggle_direction(self) -> None:
        self.router.setup.toggle_direction()

    def reset_placement(self) -> None:
        self.router.setup.reset_placement()

    def submit_ready(self) -> bool:
        return self.router.setup.submit_ready()

    def shoot_at(self, x: int, y: int) -> bool:
        return self.router.game.shoot_at(x, y)
