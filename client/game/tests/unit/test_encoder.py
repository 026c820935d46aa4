"""
Tests for line framing of the text protocol.
"""

import pytest

from game.logic.exceptions import ClientError, ProtocolParseError
from game.messaging.encoder import MAX_LINE_LEN, DecodeError, LineFramer, encode_line


class TestEncodeLine:
    def test_appends_single_newline(self) -> None:
        assert encode_line("SHOOT 2 3") == b"SHOOT 2 3\n"

    def test_encodes_utf8(self) -> None:
        assert encode_line("HELLO žluťoučký") == "HELLO žluťoučký\n".encode()

    @pytest.mark.parametrize("text", ["LIST\nLEAVE", "LIST\r", "\n"])
    def test_rejects_embedded_line_breaks(self, text: str) -> None:
        with pytest.raises(ProtocolParseError, match="line breaks"):
            encode_line(text)

    def test_line_break_error_is_a_client_error(self) -> None:
        with pytest.raises(ClientError):
            encode_line("CREATE\rLIST")


class TestLineFramer:
    def test_single_complete_line(self) -> None:
        assert LineFramer().feed(b"WELCOME\n") == ["WELCOME"]

    def test_several_lines_in_one_chunk(self) -> None:
        assert LineFramer().feed(b"ROOMS 1\nROOM 7 1 WAITING LOBBY P1=UP P2=DOWN\n") == [
            "ROOMS 1",
            "ROOM 7 1 WAITING LOBBY P1=UP P2=DOWN",
        ]

    def test_partial_line_persists_across_feeds(self) -> None:
        framer = LineFramer()

        assert framer.feed(b"JOI") == []
        assert framer.pending == b"JOI"
        assert framer.feed(b"NED 7 ") == []
        assert framer.feed(b"1\nWA") == ["JOINED 7 1"]
        assert framer.pending == b"WA"

    def test_byte_by_byte_delivery(self) -> None:
        framer = LineFramer()
        lines: list[str] = []
        for byte in b"PING\nHIT\n":
            lines.extend(framer.feed(bytes([byte])))

        assert lines == ["PING", "HIT"]

    def test_trailing_carriage_return_stripped(self) -> None:
        assert LineFramer().feed(b"PING\r\nWATER\r\n") == ["PING", "WATER"]

    def test_empty_lines_dropped(self) -> None:
        assert LineFramer().feed(b"\n\r\nWIN\n\n") == ["WIN"]

    def test_only_trailing_carriage_return_removed(self) -> None:
        assert LineFramer().feed(b" ROOM_CLOSED 7 \r\r\n  \n") == [" ROOM_CLOSED 7 \r", "  "]

    def test_multibyte_character_split_across_chunks(self) -> None:
        framer = LineFramer()
        data = "ROOM_CLOSED ř\n".encode()

        assert framer.feed(data[:-2]) == []
        assert framer.feed(data[-2:]) == ["ROOM_CLOSED ř"]

    def test_invalid_utf8_replaced(self) -> None:
        assert LineFramer().feed(b"BAD \xff\n") == ["BAD �"]

    def test_overlong_unterminated_line_raises(self) -> None:
        framer = LineFramer(max_line_len=16)

        with pytest.raises(DecodeError, match="too long"):
            framer.feed(b"x" * 17)

        assert framer.pending == b""

    def test_long_line_within_limit_accepted(self) -> None:
        framer = LineFramer()
        line = "x" * (MAX_LINE_LEN - 1)

        assert framer.feed(line.encode() + b"\n") == [line]

    def test_reset_drops_partial_line(self) -> None:
        framer = LineFramer()
        framer.feed(b"HALF")
        framer.reset()

        assert framer.feed(b"LINE\n") == ["LINE"]
