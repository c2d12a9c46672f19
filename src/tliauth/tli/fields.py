"""
TLIAuth Packet Fields

Bounds-checked packet buffer and the field writers used to lay out
TLI requests.

Every TLI field is one of:
- length-prefixed text: 2-byte big-endian length, then wire-encoded text
- raw bytes: constants and zero-filled placeholders, written verbatim

The first two bytes of a packet hold its total length, patched after all
other fields are written.
"""

from __future__ import annotations

import struct
from typing import Optional

import attrs

from tliauth.core.exceptions import BufferOverflow, EncodingError
from tliauth.core.types import MAX_FIELD_LENGTH
from tliauth.tli.charset import encode_text


# Matches the gateway's fixed-size reply region
PACKET_CAPACITY = 100

# Unused buffer bytes hold a host 'F'
FILL_BYTE = 0x46

LENGTH_PREFIX_SIZE = 2


@attrs.define
class PacketBuffer:
    """
    Fixed-capacity packet buffer with a write cursor.

    INVARIANT: cursor never exceeds capacity
    INVARIANT: bytes past the cursor hold FILL_BYTE
    """

    capacity: int = PACKET_CAPACITY
    _data: bytearray = attrs.field(init=False, repr=False, factory=bytearray)
    cursor: int = attrs.field(init=False, default=0)

    def __attrs_post_init__(self) -> None:
        self._data = bytearray([FILL_BYTE] * self.capacity)

    @property
    def remaining(self) -> int:
        return self.capacity - self.cursor

    def reset(self) -> None:
        """Clear contents and rewind the cursor for the next exchange."""
        self._data[:] = bytes([FILL_BYTE] * self.capacity)
        self.cursor = 0

    def append(self, data: bytes) -> int:
        """
        Append bytes at the cursor.

        Raises:
            BufferOverflow: If data does not fit; nothing is written
        """
        if len(data) > self.remaining:
            raise BufferOverflow(needed=len(data), available=self.remaining)
        self._data[self.cursor : self.cursor + len(data)] = data
        self.cursor += len(data)
        return self.cursor

    def overwrite(self, offset: int, data: bytes) -> None:
        """Replace already-written bytes without moving the cursor."""
        if offset < 0 or offset + len(data) > self.cursor:
            raise EncodingError(
                f"Cannot overwrite {len(data)} bytes at offset {offset}: "
                f"only {self.cursor} bytes written"
            )
        self._data[offset : offset + len(data)] = data

    def to_bytes(self) -> bytes:
        """Return the written portion of the packet."""
        return bytes(self._data[: self.cursor])

    def raw(self) -> bytes:
        """Return the full buffer including fill bytes."""
        return bytes(self._data)


def write_length_prefixed_text(buffer: PacketBuffer, text: str) -> int:
    """
    Write a 2-byte big-endian length followed by wire-encoded text.

    Returns:
        New cursor position
    """
    encoded = encode_text(text)
    if len(encoded) > MAX_FIELD_LENGTH:
        raise EncodingError(f"Field of {len(encoded)} bytes exceeds the 2-byte length prefix")
    return buffer.append(struct.pack(">H", len(encoded)) + encoded)


def write_raw(buffer: PacketBuffer, data: bytes) -> int:
    """Write already-encoded bytes verbatim and return the new cursor."""
    return buffer.append(data)


def write_zero_field(buffer: PacketBuffer) -> int:
    """Write an unused field: a zero length prefix with no body."""
    return buffer.append(b"\x00" * LENGTH_PREFIX_SIZE)


def patch_length(buffer: PacketBuffer, total_length: Optional[int] = None) -> None:
    """
    Store the packet's total length in bytes [0, 2).

    Defaults to the buffer's cursor, which is the logical packet length.
    """
    if total_length is None:
        total_length = buffer.cursor
    if not 0 <= total_length <= MAX_FIELD_LENGTH:
        raise EncodingError(f"Packet length {total_length} does not fit 2 bytes")
    buffer.overwrite(0, struct.pack(">H", total_length))
