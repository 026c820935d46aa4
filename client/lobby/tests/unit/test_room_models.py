import pytest

from game.logic.exceptions import ProtocolParseError
from lobby.rooms.models import RoomInfo


class TestRoomInfoFromLine:
    def test_parses_all_fields(self):
        room = RoomInfo.from_line("ROOM 7 1 WAITING LOBBY P1=UP P2=DOWN")

        assert room.id == 7
        assert room.players == 1
        assert room.state == "WAITING"
        assert room.phase == "LOBBY"
        assert (room.p1, room.p2) == ("P1=UP", "P2=DOWN")
        assert room.players_text == "1/2"

    @pytest.mark.parametrize(
        "line",
        [
            "ROOM 7 1 WAITING LOBBY P1=UP",
            "ROOM x 1 WAITING LOBBY P1=UP P2=DOWN",
            "ROOM 7 3 WAITING LOBBY P1=UP P2=DOWN",
            "ROOMS 7 1 WAITING LOBBY P1=UP P2=DOWN",
        ],
    )
    def test_malformed(self, line):
        with pytest.raises(ProtocolParseError):
            RoomInfo.from_line(line)

    def test_snapshot_is_immutable(self):
        room = RoomInfo.from_line("ROOM 1 0 OPEN LOBBY - -")

        with pytest.raises(ValueError):
            room.players = 2
