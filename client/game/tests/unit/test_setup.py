import pytest

from game.logic.enums import Orientation
from game.logic.setup import INITIAL_STATUS, SetupState
from game.logic.types import FLEET_LENGTHS
from game.messaging.mock import MockOutbox
from game.tests.helpers.flow import FLEET_ANCHORS


@pytest.fixture
def setup(outbox):
    return SetupState(outbox)


def _place_all(setup: SetupState) -> None:
    for x, y in FLEET_ANCHORS:
        assert setup.place_at(x, y)


class TestPlacement:
    def test_initial_state(self, setup):
        assert setup.remaining == FLEET_LENGTHS
        assert setup.selected_length == 5
        assert setup.can_place
        assert not setup.can_ready
        assert setup.direction_text == "HORIZONTAL"
        assert setup.status == INITIAL_STATUS

    def test_place_first_ship(self, setup):
        assert setup.place_at(2, 1)

        assert len(setup.ships) == 1
        assert setup.ships[0].length == 5
        assert setup.self_rows[1] == "..SSSSS..."
        assert setup.remaining == (4, 3, 3, 2)
        assert setup.selected_length == 4
        assert setup.status == "Placed 5H. Remaining: 4 ships."

    def test_out_of_bounds_leaves_state_unchanged(self, setup):
        # fill in the 5 and 4 so that the next ship is a 3
        setup.place_at(0, 0)
        setup.place_at(0, 1)
        rows_before = setup.self_rows

        assert setup.selected_length == 3
        assert not setup.place_at(8, 0)

        assert setup.status == "Out of bounds."
        assert len(setup.ships) == 2
        assert setup.remaining == (3, 3, 2)
        assert setup.self_rows == rows_before

    def test_fits_exactly_at_edge(self, setup):
        assert setup.place_at(5, 0)
        assert setup.self_rows[0] == ".....SSSSS"

    def test_vertical_out_of_bounds(self, setup):
        setup.toggle_direction()

        assert not setup.place_at(0, 6)
        assert setup.status == "Out of bounds."

    def test_overlap_rejected(self, setup):
        setup.place_at(0, 0)
        setup.toggle_direction()

        assert not setup.place_at(2, 0)

        assert setup.status == "Overlap with another ship."
        assert len(setup.ships) == 1

    def test_full_fleet_enables_ready(self, setup):
        _place_all(setup)

        assert setup.remaining == ()
        assert sorted(s.length for s in setup.ships) == sorted(FLEET_LENGTHS)
        assert setup.selected_length == 0
        assert not setup.can_place
        assert setup.can_ready
        assert setup.status == "All ships placed. Click READY to send."

    def test_no_placement_after_fleet_complete(self, setup):
        _place_all(setup)

        assert not setup.place_at(5, 9)
        assert len(setup.ships) == 5

    def test_toggle_direction(self, setup):
        setup.toggle_direction()
        assert setup.orientation is Orientation.VERTICAL
        assert setup.direction_text == "VERTICAL"

        setup.place_at(9, 0)
        assert setup.ships[0].orientation is Orientation.VERTICAL

    def test_reset_placement(self, setup):
        setup.place_at(0, 0)
        setup.reset_placement()

        assert setup.ships == ()
        assert setup.remaining == FLEET_LENGTHS
        assert setup.self_rows == ("..........",) * 10
        assert setup.status == "Reset done. Place ships again."


class TestReadiness:
    def test_ready_before_full_fleet_is_noop(self, setup, outbox):
        setup.place_at(0, 0)

        assert not setup.submit_ready()
        assert outbox.ship_batches == []
        assert not setup.sending

    def test_ready_sends_fleet_once(self, setup, outbox):
        _place_all(setup)

        assert setup.submit_ready()
        assert not setup.submit_ready()

        assert setup.sending
        assert setup.status == "Sending ships to server…"
        assert len(outbox.ship_batches) == 1
        assert outbox.ship_batches[0] == list(setup.ships)

    def test_sending_guard_blocks_edits(self, setup):
        _place_all(setup)
        setup.submit_ready()

        setup.toggle_direction()
        setup.reset_placement()

        assert setup.orientation is Orientation.HORIZONTAL
        assert len(setup.ships) == 5

    def test_send_failed_releases_guard(self, setup, outbox):
        _place_all(setup)
        setup.submit_ready()

        setup.send_failed("Not connected.")

        assert not setup.sending
        assert setup.can_ready
        assert setup.status == "Send failed: Not connected."
        assert setup.submit_ready()
        assert len(outbox.ship_batches) == 2

    def test_send_failed_without_reason(self, setup):
        setup.send_failed("  ")

        assert setup.status == "Send failed: unknown error"


class TestServerLines:
    def test_ships_ok_keeps_guard(self, setup):
        _place_all(setup)
        setup.submit_ready()

        setup.handle_line("SHIPS_OK")

        assert setup.sending
        assert not setup.can_ready
        assert setup.status == "Ships accepted. Waiting for opponent…"

    def test_opponent_ready(self, setup):
        assert setup.opponent_ready_text == "Opponent not ready"

        setup.handle_line("OPPONENT_READY")

        assert setup.opponent_ready
        assert setup.opponent_ready_text == "Opponent ready"
        assert setup.status == "Opponent ready. Starting soon…"

    @pytest.mark.parametrize("line", ["ERROR SHIPS overlap", "ERROR READY", "ERROR PLACE 0 0 5 H"])
    def test_rejection_resets_fleet(self, setup, line):
        _place_all(setup)
        setup.submit_ready()

        setup.handle_line(line)

        assert not setup.sending
        assert setup.ships == ()
        assert setup.remaining == FLEET_LENGTHS
        assert setup.self_rows == ("..........",) * 10
        assert setup.status == f"Invalid ships. Resetting. ({line})"

    def test_unrelated_error_ignored(self, setup):
        _place_all(setup)
        setup.submit_ready()

        setup.handle_line("ERROR UNKNOWN_COMMAND")

        assert setup.sending
        assert len(setup.ships) == 5

    def test_play_updates_status(self, setup):
        setup.handle_line("PLAY")

        assert setup.status == "GAME START!"

    def test_reset_clears_everything(self, setup):
        _place_all(setup)
        setup.toggle_direction()
        setup.submit_ready()
        setup.handle_line("OPPONENT_READY")

        setup.reset()

        assert not setup.sending
        assert not setup.opponent_ready
        assert setup.orientation is Orientation.HORIZONTAL
        assert setup.ships == ()
        assert setup.status == INITIAL_STATUS


class TestLeave:
    def test_request_leave_sends_leave(self):
        outbox = MockOutbox()
        setup = SetupState(outbox)

        setup.request_leave()

        assert outbox.sent_lines == ["LEAVE"]
        assert setup.status == "Leaving…"


class TestNotifications:
    def test_placement_notifies_derived_fields(self, setup):
        seen: list[str] = []
        setup.subscribe(lambda _source, name: seen.append(name))

        setup.place_at(0, 0)

        assert {"ships", "remaining", "selected_length", "can_place", "can_ready", "self_rows", "status"} <= set(
            seen,
        )
