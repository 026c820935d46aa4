import asyncio
import contextlib

import structlog

from game.logic.exceptions import ConnectError, NotConnectedError, ProtocolParseError, TransportError
from game.messaging.encoder import DecodeError, LineFramer, encode_line
from game.messaging.events import Connected, Diagnostic, Disconnected, InboundEvent, LineReceived
from game.messaging.types import hello

logger = structlog.get_logger()

DEFAULT_READ_CHUNK_SIZE = 4096
DEFAULT_CONNECT_TIMEOUT = 10.0

DISCONNECTED_TEXT = "Disconnected."


class TransportSession:
    """Own one TCP connection to the game server and frame it into lines.

    The reader task and the write path never touch client state. Every
    line, diagnostic and lifecycle change is pushed onto the inbound queue.
    Teardown has a single path (disconnect) shared by user action, peer EOF,
    I/O errors and the liveness watchdog; only its first caller has any
    effect per connect/disconnect cycle.
    """

    def __init__(
        self,
        inbox: asyncio.Queue[InboundEvent],
        *,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self._inbox = inbox
        self._read_chunk_size = read_chunk_size
        self._connect_timeout = connect_timeout
        self._writer: asyncio.StreamWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._framer = LineFramer()
        self._connecting = False
        self._closed = True  # no live session until connect() succeeds

    @property
    def is_connected(self) -> bool:
        return not self._closed and self._writer is not None

    async def connect(self, host: str, port: int, nick: str) -> None:
        """Open the connection, send the HELLO greeting and start reading.

        Raises ConnectError if a session is already active or connecting, or if
        the connection or greeting fails. On failure nothing is left running.
        """
        if self._connecting or not self._closed:
            raise ConnectError("Already connected.")

        greeting = hello(nick)
        try:
            greeting_data = encode_line(greeting)
        except ProtocolParseError as e:
            raise ConnectError(f"invalid greeting: {e.reason}") from e

        self._connecting = True
        self._emit(Diagnostic(f"Connecting to {host}:{port}..."))
        try:
            try:
                reader, writer = await asyncio.wait_for(
                    asyncio.open_connection(host, port),
                    timeout=self._connect_timeout,
                )
            except OSError as e:  # includes TimeoutError and DNS failures
                logger.info("connect failed", host=host, port=port, error=str(e) or type(e).__name__)
                raise ConnectError(f"cannot connect to {host}:{port}: {str(e) or type(e).__name__}") from e

            try:
                writer.write(greeting_data)
                await writer.drain()
            except OSError as e:
                writer.close()
                with contextlib.suppress(OSError):
                    await writer.wait_closed()
                raise ConnectError(f"greeting failed: {e}") from e
        finally:
            self._connecting = False

        self._writer = writer
        self._framer = LineFramer()
        self._closed = False

        self._emit(Diagnostic("Connected."))
        self._emit(Diagnostic(f"> {greeting}"))
        self._emit(Connected(host=host, port=port, nick=nick))
        logger.info("connected", host=host, port=port, nick=nick)

        self._reader_task = asyncio.create_task(self._read_loop(reader))

    async def send_line(self, text: str) -> None:
        """Write one line and flush it immediately.

        Raises NotConnectedError without a live session. Text containing a line
        break raises ProtocolParseError and nothing is written. An I/O failure
        tears the session down first and then raises TransportError.
        """
        writer = self._writer
        if self._closed or writer is None:
            raise NotConnectedError("Not connected.")

        data = encode_line(text)
        self._emit(Diagnostic(f"> {text}"))
        logger.debug("line sent", line=text)
        try:
            writer.write(data)
            await writer.drain()
        except (OSError, RuntimeError) as e:
            await self.disconnect(f"TX error: {e}")
            raise TransportError(str(e) or type(e).__name__) from e

    async def disconnect(self, reason: str = DISCONNECTED_TEXT) -> None:
        """Cancel reading, release the socket and emit Disconnected once.

        Safe to call any number of times from any task, including the reader
        task itself.
        """
        if self._closed:
            return
        self._closed = True

        task, self._reader_task = self._reader_task, None
        writer, self._writer = self._writer, None
        self._framer.reset()

        if reason != DISCONNECTED_TEXT:
            self._emit(Diagnostic(reason))
        self._emit(Diagnostic(DISCONNECTED_TEXT))
        self._emit(Disconnected(reason=reason))
        logger.info("disconnected", reason=reason)

        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        if writer is not None:
            writer.close()
            with contextlib.suppress(OSError, RuntimeError):
                await writer.wait_closed()
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        reason = DISCONNECTED_TEXT
        try:
            while True:
                chunk = await reader.read(self._read_chunk_size)
                if not chunk:
                    reason = "Server closed the connection."
                    break
                for line in self._framer.feed(chunk):
                    logger.debug("line received", line=line)
                    self._emit(LineReceived(line))
        except (OSError, DecodeError) as e:
            reason = f"RX error: {e}"
            logger.warning("read loop failed", error=str(e))
        finally:
            await self.disconnect(reason)

    def _emit(self, event: InboundEvent) -> None:
        self._inbox.put_nowait(event)
