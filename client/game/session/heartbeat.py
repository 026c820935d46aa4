"""Monitor server liveness via the PING heartbeat."""

import asyncio
import contextlib
import time
from collections.abc import Callable

import structlog

from game.messaging.events import InboundEvent, LivenessTick

LIVENESS_CHECK_INTERVAL = 1.0  # seconds between watchdog ticks
LIVENESS_TIMEOUT = 5.0  # seconds without PING before disconnecting

logger = structlog.get_logger()

Clock = Callable[[], float]


class LivenessWatchdog:
    """Decide when the server has gone silent.

    No judgment is made before the first PING of a connection. Once the
    timeout has fired it stays fired until reset() is called for the next
    connection, so it fires at most once per connection.
    """

    def __init__(self, timeout: float = LIVENESS_TIMEOUT, clock: Clock = time.monotonic) -> None:
        self._timeout = timeout
        self._clock = clock
        self._last_ping: float | None = None
        self._timed_out = False
        self._fired = False

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def last_ping(self) -> float | None:
        return self._last_ping

    @property
    def timed_out(self) -> bool:
        return self._timed_out

    def record_ping(self) -> None:
        self._last_ping = self._clock()
        self._timed_out = False

    def check(self, now: float | None = None) -> bool:
        """Return True exactly once, when more than `timeout` seconds passed since the last PING."""
        if self._fired or self._last_ping is None:
            return False
        if now is None:
            now = self._clock()
        if now - self._last_ping <= self._timeout:
            return False
        self._timed_out = True
        self._fired = True
        logger.warning("liveness timeout", seconds_since_ping=round(now - self._last_ping, 2))
        return True

    def reset(self) -> None:
        self._last_ping = None
        self._timed_out = False
        self._fired = False


class LivenessTicker:
    """Push a LivenessTick into the inbound queue every interval.

    The ticker never evaluates liveness itself; the router does that when it
    consumes the tick, so all state changes stay in the dispatch loop.
    """

    def __init__(
        self,
        inbox: asyncio.Queue[InboundEvent],
        interval: float = LIVENESS_CHECK_INTERVAL,
        clock: Clock = time.monotonic,
    ) -> None:
        self._inbox = inbox
        self._interval = interval
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking, replacing any previous ticker task."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self._tick_loop())

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self._inbox.put_nowait(LivenessTick(now=self._clock()))
