import asyncio
from collections.abc import Sequence

from game.logic.exceptions import ConnectError, NotConnectedError
from game.logic.types import Ship
from game.messaging.encoder import encode_line
from game.messaging.events import Connected, Diagnostic, Disconnected, InboundEvent, LineReceived
from game.messaging.protocol import Outbox
from game.messaging.types import hello


class MockOutbox(Outbox):
    def __init__(self) -> None:
        self._lines: list[str] = []
        self._ship_batches: list[list[Ship]] = []
        self._disconnect_reasons: list[str] = []

    @property
    def sent_lines(self) -> list[str]:
        return [str(line) for line in self._lines]

    @property
    def ship_batches(self) -> list[list[Ship]]:
        return [batch.copy() for batch in self._ship_batches]

    @property
    def disconnect_reasons(self) -> list[str]:
        return self._disconnect_reasons.copy()

    def send_line(self, line: str) -> None:
        self._lines.append(line)

    def send_ships(self, ships: Sequence[Ship]) -> None:
        self._ship_batches.append(list(ships))

    def request_disconnect(self, reason: str) -> None:
        self._disconnect_reasons.append(reason)

    def clear(self) -> None:
        self._lines.clear()
        self._ship_batches.clear()
        self._disconnect_reasons.clear()


class MockTransport:
    """
    Socket-free stand-in for TransportSession.

    Written lines are recorded; inbound traffic is injected with
    simulate_line / simulate_eof and lands on the same queue a real
    transport would feed.
    """

    def __init__(self, inbox: asyncio.Queue[InboundEvent]) -> None:
        self._inbox = inbox
        self._written: list[str] = []
        self._closed = True
        self._fail_sends: Exception | None = None
        self.disconnect_calls = 0

    @property
    def is_connected(self) -> bool:
        return not self._closed

    @property
    def written_lines(self) -> list[str]:
        return self._written.copy()

    def fail_sends_with(self, error: Exception | None) -> None:
        """Make every following send_line raise error (None restores normal sends)."""
        self._fail_sends = error

    async def connect(self, host: str, port: int, nick: str) -> None:
        if not self._closed:
            raise ConnectError("Already connected.")
        self._closed = False
        self._written.append(hello(nick))
        self._inbox.put_nowait(Diagnostic("Connected."))
        self._inbox.put_nowait(Connected(host=host, port=port, nick=nick))

    async def send_line(self, text: str) -> None:
        if self._closed:
            raise NotConnectedError("Not connected.")
        if self._fail_sends is not None:
            raise self._fail_sends
        encode_line(text)
        self._written.append(str(text))

    async def disconnect(self, reason: str = "Disconnected.") -> None:
        self.disconnect_calls += 1
        if self._closed:
            return
        self._closed = True
        self._inbox.put_nowait(Disconnected(reason=reason))

    def simulate_line(self, line: str) -> None:
        self._inbox.put_nowait(LineReceived(line))

    async def simulate_eof(self) -> None:
        await self.disconnect("Server closed the connection.")
