"""Result phase: the terminal win/lose summary."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.logic.enums import Outcome
from game.messaging.wire_enums import ClientCommand
from shared.observable import Observable, ObservableField

if TYPE_CHECKING:
    from game.messaging.protocol import Outbox

logger = structlog.get_logger()

_SUMMARIES: dict[Outcome, tuple[str, str]] = {
    Outcome.WIN: ("YOU WIN", "GG. Enemy fleet is now an archeological site."),
    Outcome.LOSS: ("YOU LOSE", "Unlucky. Run it back."),
}


def parse_outcome(text: str) -> Outcome | None:
    """Map WIN / LOSE / LOSS (any case) to an Outcome."""
    value = text.strip().upper()
    if value == "WIN":
        return Outcome.WIN
    if value in ("LOSE", "LOSS"):
        return Outcome.LOSS
    return None


class ResultState(Observable):
    """Outcome of the finished game, fixed until the next reset."""

    outcome = ObservableField(None)
    title = ObservableField("RESULT")
    message = ObservableField("")

    def __init__(self, outbox: Outbox) -> None:
        super().__init__()
        self._outbox = outbox

    def set_outcome(self, result: str) -> bool:
        """Record the outcome once per game. Later calls are ignored and return False."""
        if self.outcome is not None:
            logger.debug("outcome already set", outcome=self.outcome, ignored=result)
            return False
        outcome = parse_outcome(result)
        if outcome is None:
            self.title = "RESULT"
            self.message = result.strip().upper()
            return False
        self.outcome = outcome
        self.title, self.message = _SUMMARIES[outcome]
        return True

    def reset(self) -> None:
        self.outcome = None
        self.title = "RESULT"
        self.message = ""

    def request_leave(self) -> None:
        self._outbox.send_line(ClientCommand.LEAVE)
