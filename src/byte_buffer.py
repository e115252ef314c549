"""Varint and length-prefixed string primitives for the binary build format.

Optional numeric fields use 0 as "absent": ``None`` is written as 0 and a
decoded 0 comes back as ``None`` from the ``*_optional`` readers. Real
game IDs are always >= 1, so nothing legitimate is lost.
"""

from typing import Optional, Tuple
from exceptions import BuildDecodeError, FieldOutOfRangeError, TruncatedInputError


def write_varint(buffer: bytearray, value: Optional[int]):
    """Append ``value`` 7 bits at a time, least significant group first."""
    value = value or 0
    if value < 0:
        raise FieldOutOfRangeError(f"Varint values must be non-negative, got {value}")
    while value > 0x7F:
        buffer.append((value & 0x7F) | 0x80)
        value >>= 7
    buffer.append(value)


def read_varint(buffer: bytes, cursor: int) -> Tuple[int, int]:
    """Read a varint at ``cursor``. Returns ``(value, new_cursor)``."""
    value = 0
    shift = 0
    while True:
        if cursor >= len(buffer):
            raise TruncatedInputError(f"Varint runs past end of payload at byte {cursor}")
        byte = buffer[cursor]
        cursor += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, cursor
        shift += 7


def write_string(buffer: bytearray, text: Optional[str]):
    """Append the UTF-8 byte length as a varint, then the bytes. Empty or None is a single 0x00."""
    if not text:
        buffer.append(0)
        return
    data = text.encode("utf-8")
    write_varint(buffer, len(data))
    buffer.extend(data)


def read_string(buffer: bytes, cursor: int) -> Tuple[str, int]:
    """Read a length-prefixed UTF-8 string at ``cursor``. Returns ``(text, new_cursor)``."""
    length, cursor = read_varint(buffer, cursor)
    end = cursor + length
    if end > len(buffer):
        raise TruncatedInputError(
            f"String of {length} bytes at byte {cursor} runs past end of payload ({len(buffer)} bytes)")
    try:
        text = bytes(buffer[cursor:end]).decode("utf-8")
    except UnicodeDecodeError as e:
        raise BuildDecodeError(f"String at byte {cursor} is not valid UTF-8: {e}") from e
    return text, end


class ByteReader:
    """Cursor over a payload, wrapping the module-level readers."""

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def read_byte(self) -> int:
        if self.pos >= len(self.data):
            raise TruncatedInputError(f"Payload ended at byte {self.pos}")
        byte = self.data[self.pos]
        self.pos += 1
        return byte

    def read_varint(self) -> int:
        value, self.pos = read_varint(self.data, self.pos)
        return value

    def read_optional_id(self) -> Optional[int]:
        """Varint where 0 means the field is absent."""
        return self.read_varint() or None

    def read_string(self) -> str:
        text, self.pos = read_string(self.data, self.pos)
        return text

    def read_optional_string(self) -> Optional[str]:
        """String where empty means the field is absent."""
        return self.read_string() or None
