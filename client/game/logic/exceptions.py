"""Typed exceptions for the battleship client.

Transport failures are raised by the transport layer and always end in a
session teardown. Parse and validation failures never escape a phase
component: handlers catch them and turn them into a dropped line or a
status message.
"""


class ClientError(Exception):
    """Base exception for all client engine errors."""


class ConnectError(ClientError, ConnectionError):
    """Connection could not be established (already active, DNS, refused, timeout).

    The caller must treat this as "never connected": no reader task is left running.
    """


class NotConnectedError(ClientError):
    """A line was sent while no session is live."""


class TransportError(ClientError):
    """Mid-session I/O failure. The session is torn down before this is raised."""


class ProtocolParseError(ClientError, ValueError):
    """A server line does not match the expected shape. The line is dropped."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"{reason}: {line!r}")


class PlacementError(ClientError):
    """Ship placement would leave the board or overlap another ship.

    Attributes:
        reason: User-facing explanation shown as setup status text.

    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ShotRejectedError(ClientError):
    """Shot intent refused locally. No wire traffic is sent.

    Attributes:
        reason: User-facing explanation shown as game status text.

    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
