"""
Message Codec — byte-oriented encoding for attribution sets.

Wire layout (all counts are unsigned varints, all ids zigzag varints):

    header          := MAGIC VERSION
    set             := entry_count entry* chain_count chain*
    entry           := id optional_string
    chain           := node_count node*
    node            := id optional_string
    optional_string := 0x00 | 0x01 length utf8_bytes

Varints are little-endian base-128, so ids of any size round trip.
Zigzag folding keeps small negative ids (such as -1) short.

The writer accepts anything the data model can hold. The reader bounds
every count by the bytes left in the message, so a corrupt count fails
fast instead of driving a huge loop, and writer output always decodes.

Malformed input raises DecodeError. A reader never hands back a partially
decoded value.
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

MAGIC = b"ATTR"
FORMAT_VERSION = 1

# Smallest wire size of one item, used to bound counts while decoding.
# An entry or node is at least a 1-byte id plus a 1-byte presence flag.
MIN_ENTRY_BYTES = 2
MIN_CHAIN_BYTES = 1
MIN_NODE_BYTES = 2

_ABSENT = 0x00
_PRESENT = 0x01


# =============================================================================
# ERRORS
# =============================================================================

class DecodeError(ValueError):
    """Raised when serialized input cannot be decoded into a valid value."""

    def __init__(self, reason: str, offset: Optional[int] = None):
        self.reason = reason
        self.offset = offset
        if offset is None:
            super().__init__(reason)
        else:
            super().__init__(f"{reason} (at byte {offset})")


class EncodeError(ValueError):
    """Raised when a writer is handed a value its field cannot carry."""
    pass


# =============================================================================
# WRITER
# =============================================================================

class MessageWriter:
    """Accumulates encoded fields into a byte buffer."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_uvarint(self, value: int) -> None:
        if value < 0:
            raise EncodeError(f"Unsigned varint cannot hold {value}")
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._buffer.append(byte | 0x80)
            else:
                self._buffer.append(byte)
                break

    def write_varint(self, value: int) -> None:
        """Write a signed value using zigzag folding."""
        if value >= 0:
            self.write_uvarint(value << 1)
        else:
            self.write_uvarint(((-value) << 1) - 1)

    def write_optional_string(self, value: Optional[str]) -> None:
        if value is None:
            self._buffer.append(_ABSENT)
            return
        data = value.encode("utf-8")
        self._buffer.append(_PRESENT)
        self.write_uvarint(len(data))
        self._buffer += data

    def write_header(self) -> None:
        self._buffer += MAGIC
        self._buffer.append(FORMAT_VERSION)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


# =============================================================================
# READER
# =============================================================================

class MessageReader:
    """Reads encoded fields back out of a byte string, front to back."""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._offset = 0

    @property
    def offset(self) -> int:
        return self._offset

    def _take(self, size: int) -> bytes:
        end = self._offset + size
        if end > len(self._data):
            raise DecodeError(
                f"Truncated input: wanted {size} bytes, "
                f"{len(self._data) - self._offset} left",
                self._offset,
            )
        chunk = self._data[self._offset:end]
        self._offset = end
        return chunk

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def read_uvarint(self) -> int:
        result = 0
        shift = 0
        while True:
            byte = self._take(1)[0]
            result |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return result
            shift += 7

    def read_varint(self) -> int:
        folded = self.read_uvarint()
        if folded & 1:
            return -((folded + 1) >> 1)
        return folded >> 1

    def read_count(self, min_item_bytes: int, what: str) -> int:
        """
        Read an item count and check the rest of the message can hold it.

        Raises:
            DecodeError: If count items of min_item_bytes each would not fit
        """
        start = self._offset
        count = self.read_uvarint()
        if count * min_item_bytes > self.remaining:
            raise DecodeError(
                f"{what} count {count} exceeds what the remaining "
                f"{self.remaining} bytes can hold",
                start,
            )
        return count

    def read_optional_string(self) -> Optional[str]:
        start = self._offset
        flag = self._take(1)[0]
        if flag == _ABSENT:
            return None
        if flag != _PRESENT:
            raise DecodeError(f"Invalid presence flag 0x{flag:02x}", start)

        length = self.read_uvarint()
        data_at = self._offset
        try:
            return self._take(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 in string: {e.reason}", data_at) from e

    def read_header(self) -> None:
        magic = self._take(len(MAGIC))
        if magic != MAGIC:
            raise DecodeError(f"Bad magic {magic!r}, expected {MAGIC!r}", 0)
        version = self._take(1)[0]
        if version != FORMAT_VERSION:
            raise DecodeError(
                f"Unsupported format version {version}", len(MAGIC)
            )

    def at_end(self) -> bool:
        return self._offset >= len(self._data)

    def expect_end(self) -> None:
        if not self.at_end():
            raise DecodeError(
                f"{len(self._data) - self._offset} trailing bytes after message",
                self._offset,
            )
