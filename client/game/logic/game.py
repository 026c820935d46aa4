"""
Game phase: both boards, turn order and shot resolution.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.logic.board import EnemyBoard, SelfBoard
from game.logic.enums import EnemyCell
from game.logic.exceptions import ProtocolParseError, ShotRejectedError
from game.logic.types import in_bounds
from game.messaging.types import command_word, parse_board_row, parse_sunk_cells, shoot
from game.messaging.wire_enums import PLAY_LINES, ClientCommand, ServerLine
from shared.observable import Observable, ObservableField

if TYPE_CHECKING:
    from collections.abc import Iterable

    from game.logic.types import Ship
    from game.messaging.protocol import Outbox

logger = structlog.get_logger()

INITIAL_STATUS = "GAME"

# Shot results for our own pending shot: cell to mark and status text.
_SHOT_RESULTS: dict[str, tuple[EnemyCell, str]] = {
    ServerLine.WATER: (EnemyCell.MISS, "Water."),
    ServerLine.HIT: (EnemyCell.HIT, "Hit!"),
    # SINK carries no coordinates; the shot cell is all we know about.
    ServerLine.SINK: (EnemyCell.HIT, "Sunk!"),
}

_OPPONENT_SHOTS: dict[str, str] = {
    ServerLine.OPP_WATER: "Opponent shot: WATER.",
    ServerLine.OPP_HIT: "Opponent shot: HIT.",
    ServerLine.OPP_SINK: "Opponent shot: SINK.",
}


class GameState(Observable):
    """
    Boards, turn flag and the single pending shot.

    Results of our own shots carry no coordinates and are matched to the
    pending shot. At most one shot is pending; it is cleared exactly once by
    a result, a SUNK line or the end of the game.
    """

    derived_fields = {
        "my_turn": ("turn_text",),
        "game_over": ("turn_text",),
    }

    my_turn = ObservableField(False)
    game_over = ObservableField(False)
    pending_shot = ObservableField(None)
    enemy_rows = ObservableField(EnemyBoard().rows)
    self_rows = ObservableField(SelfBoard().rows)
    status = ObservableField(INITIAL_STATUS)
    room_badge = ObservableField("Room: —")

    def __init__(self, outbox: Outbox) -> None:
        super().__init__()
        self._outbox = outbox
        self.enemy = EnemyBoard()
        self.own = SelfBoard()

    @property
    def turn_text(self) -> str:
        if self.game_over:
            return "GAME OVER"
        return "YOUR TURN" if self.my_turn else "OPPONENT TURN"

    def set_room_badge(self, badge: str) -> None:
        if badge.strip():
            self.room_badge = badge

    def reset(self) -> None:
        self.enemy.clear()
        self.own.clear()
        self.pending_shot = None
        self.game_over = False
        self.my_turn = False
        self._publish_boards()
        self.status = INITIAL_STATUS

    def set_fleet(self, ships: Iterable[Ship]) -> None:
        """Redraw the own board from the finalized fleet. Enemy knowledge is kept."""
        self.own.draw_fleet(ships)
        self.self_rows = self.own.rows

    def _publish_boards(self) -> None:
        self.enemy_rows = self.enemy.rows
        self.self_rows = self.own.rows

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def check_shot(self, x: int, y: int) -> None:
        """Raise ShotRejectedError if a shot at (x, y) may not be sent now."""
        if self.game_over:
            raise ShotRejectedError("Game is over.")
        if not self.my_turn:
            raise ShotRejectedError("Not your turn.")
        if self.pending_shot is not None:
            raise ShotRejectedError("Wait for shot result…")
        if not in_bounds(x, y):
            raise ShotRejectedError("Invalid coordinates.")
        if self.enemy.is_known(x, y):
            raise ShotRejectedError("Already shot there.")

    def shoot_at(self, x: int, y: int) -> bool:
        """Send SHOOT x y unless the shot is rejected locally. Returns True if sent."""
        try:
            self.check_shot(x, y)
        except ShotRejectedError as e:
            self.status = e.reason
            return False
        self.pending_shot = (x, y)
        self.status = f"Shooting {x},{y}…"
        self._outbox.send_line(shoot(x, y))
        return True

    def request_leave(self) -> None:
        self._outbox.send_line(ClientCommand.LEAVE)
        self.status = "Leaving…"

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def handle_line(self, line: str) -> None:  # noqa: PLR0911
        word = command_word(line)

        if line in PLAY_LINES:
            self.status = "GAME started."
            return

        if line == ServerLine.YOUR_TURN:
            self.my_turn = True
            if not self.game_over:
                self.status = "Your turn."
            return

        if line == ServerLine.OPP_TURN:
            self.my_turn = False
            if not self.game_over:
                self.status = "Opponent turn."
            return

        if word == ServerLine.SUNK:
            self._apply_sunk(line)
            return

        if line in _SHOT_RESULTS:
            cell, text = _SHOT_RESULTS[line]
            self._resolve_pending(cell)
            if not self.game_over:
                self.status = text
            return

        if line in (ServerLine.WIN, ServerLine.LOSE):
            if self.game_over:
                logger.debug("outcome after game over ignored", line=line)
                return
            self._resolve_pending(EnemyCell.HIT)
            self.game_over = True
            self.my_turn = False
            self.status = "You WIN!" if line == ServerLine.WIN else "You LOSE."
            return

        if line in _OPPONENT_SHOTS:
            self.status = _OPPONENT_SHOTS[line]
            return

        if word in (ServerLine.BENEMY, ServerLine.BSELF):
            self._apply_resync(line)
            return

        logger.debug("game ignored line", line=line)

    def _resolve_pending(self, cell: EnemyCell) -> None:
        if self.pending_shot is not None:
            x, y = self.pending_shot
            self.enemy.mark(x, y, cell)
            self.enemy_rows = self.enemy.rows
        self.pending_shot = None

    def _apply_sunk(self, line: str) -> None:
        cells = parse_sunk_cells(line)
        for x, y in cells:
            self.enemy.mark(x, y, EnemyCell.SUNK)
        if cells:
            self.enemy_rows = self.enemy.rows
            self.status = "Sunk!"
        # cleared even when no pair was valid
        self.pending_shot = None

    def _apply_resync(self, line: str) -> None:
        try:
            msg = parse_board_row(line)
        except ProtocolParseError as e:
            logger.debug("dropped board row", line=line, reason=e.reason)
            return
        board = self.enemy if msg.board == ServerLine.BENEMY else self.own
        try:
            board.resync_row(msg.y, msg.cells)
        except ValueError as e:
            logger.debug("dropped board row", line=line, reason=str(e))
            return
        self._publish_boards()
