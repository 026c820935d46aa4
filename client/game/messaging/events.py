"""Typed events pushed into the single inbound queue.

The transport reader, the liveness ticker and outbound send workers never
touch client state. They only put one of these events on the queue; the
session dispatch loop is the sole consumer.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LineReceived:
    """One complete, non-empty protocol line from the server."""

    line: str


@dataclass(frozen=True)
class Diagnostic:
    """Human-readable text for the client log. Never parsed as protocol."""

    text: str


@dataclass(frozen=True)
class Connected:
    host: str
    port: int
    nick: str


@dataclass(frozen=True)
class Disconnected:
    """Emitted exactly once per connect/disconnect cycle."""

    reason: str


@dataclass(frozen=True)
class LivenessTick:
    """Periodic watchdog tick carrying the monotonic time it was taken."""

    now: float


@dataclass(frozen=True)
class SendFailed:
    command: str
    reason: str


InboundEvent = LineReceived | Diagnostic | Connected | Disconnected | LivenessTick | SendFailed
