"""
Line framing for the UTF-8 text protocol.

Outbound text is encoded as one line terminated by a single "\\n". Inbound
bytes are buffered until a "\\n" arrives; a trailing "\\r" is tolerated.
Partial lines persist across reads.
"""

from game.logic.exceptions import ProtocolParseError

DEFAULT_ENCODING = "utf-8"

# A peer that never sends a newline must not grow the buffer without bound.
MAX_LINE_LEN = 64 * 1024  # 64KB per line


class DecodeError(Exception):
    """Error raised when the inbound byte stream cannot be framed."""


def encode_line(text: str) -> bytes:
    """
    Encode one protocol line, appending the terminator.

    Raises ProtocolParseError if the text itself contains a line break, which
    would put a second command on the wire.
    """
    if "\n" in text or "\r" in text:
        raise ProtocolParseError(text, "line must not contain line breaks")
    return f"{text}\n".encode(DEFAULT_ENCODING)


class LineFramer:
    """Reassemble complete protocol lines from arbitrary read chunks."""

    def __init__(self, max_line_len: int = MAX_LINE_LEN) -> None:
        self._buffer = bytearray()
        self._max_line_len = max_line_len

    @property
    def pending(self) -> bytes:
        """Bytes received after the last complete line."""
        return bytes(self._buffer)

    def feed(self, data: bytes) -> list[str]:
        """
        Append a chunk and return every complete, non-empty line it finishes.

        Lines are decoded as UTF-8 (undecodable bytes are replaced) and
        stripped of one trailing "\\r". Lines that are empty after that are
        dropped; other whitespace is kept.

        Raises DecodeError if an unterminated line exceeds the size limit.
        """
        self._buffer.extend(data)
        lines: list[str] = []
        while True:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            raw = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            line = raw.decode(DEFAULT_ENCODING, errors="replace").removesuffix("\r")
            if line:
                lines.append(line)
        if len(self._buffer) > self._max_line_len:
            size = len(self._buffer)
            self._buffer.clear()
            raise DecodeError(f"unterminated line too long: {size} bytes (max {self._max_line_len})")
        return lines

    def reset(self) -> None:
        self._buffer.clear()
