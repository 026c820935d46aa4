"""Abstract outbound channel used by the router and phase components."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.types import Ship


class Outbox(ABC):
    """
    Fire-and-forget sink for user intents.

    Implementations must never block the caller: each send runs on its own
    worker and reports failure back through the inbound event queue. This
    lets phase logic be tested without sockets.
    """

    @abstractmethod
    def send_line(self, line: str) -> None:
        """
        Queue one protocol line for sending.
        """
        ...

    @abstractmethod
    def send_ships(self, ships: Sequence[Ship]) -> None:
        """
        Queue the full ship submission sequence as one ordered unit.
        """
        ...

    @abstractmethod
    def request_disconnect(self, reason: str) -> None:
        """
        Ask for the session to be torn down (idempotent).
        """
        ...
