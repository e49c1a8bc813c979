"""BACnet tag headers per ASHRAE 135-2016 Clause 20.2.1.

Who-Is and I-Am only carry short primitive values, but the decoder
accepts any well-formed header so an unexpected tag fails with a clear
message instead of an IndexError.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

# Values of the low three bits (L/V/T) and the tag-number nibble
_LVT_EXTENDED = 5
_LVT_OPENING = 6
_LVT_CLOSING = 7
_NUMBER_EXTENDED = 0x0F


class TagClass(IntEnum):
    """Application tags name a datatype, context tags name a field."""

    APPLICATION = 0
    CONTEXT = 1


@dataclass(frozen=True, slots=True)
class Tag:
    """A decoded tag header."""

    number: int
    cls: TagClass
    length: int
    is_opening: bool = False
    is_closing: bool = False


def encode_tag(tag_number: int, cls: TagClass, length: int) -> bytes:
    """Build the header for *length* content octets.

    :raises ValueError: If *tag_number* is outside 0-254 or *length* is
        negative.
    """
    if not 0 <= tag_number <= 254:
        msg = f"Tag number must be 0-254, got {tag_number}"
        raise ValueError(msg)
    if length < 0:
        msg = f"Tag length must be non-negative, got {length}"
        raise ValueError(msg)

    header = bytearray([cls << 3])
    if tag_number < _NUMBER_EXTENDED:
        header[0] |= tag_number << 4
    else:
        header[0] |= _NUMBER_EXTENDED << 4
        header.append(tag_number)

    if length < _LVT_EXTENDED:
        header[0] |= length
        return bytes(header)

    header[0] |= _LVT_EXTENDED
    if length < 254:
        header.append(length)
    elif length <= 0xFFFF:
        header.append(254)
        header += length.to_bytes(2, "big")
    else:
        header.append(255)
        header += length.to_bytes(4, "big")
    return bytes(header)


def decode_tag(buf: memoryview | bytes, offset: int) -> tuple[Tag, int]:
    """Decode the tag header at *offset*.

    :returns: The header and the offset of its first content octet.
    :raises ValueError: If the header runs past the end of *buf*.
    """
    if offset >= len(buf):
        msg = f"Tag decode: offset {offset} beyond buffer length {len(buf)}"
        raise ValueError(msg)

    def take(count: int) -> int:
        nonlocal offset
        if offset + count > len(buf):
            msg = f"Tag header truncated: need {count} byte(s) at offset {offset}"
            raise ValueError(msg)
        value = int.from_bytes(buf[offset : offset + count], "big")
        offset += count
        return value

    initial = take(1)
    number = initial >> 4
    cls = TagClass((initial >> 3) & 0x01)
    lvt = initial & 0x07
    if number == _NUMBER_EXTENDED:
        number = take(1)

    if cls is TagClass.CONTEXT and lvt in (_LVT_OPENING, _LVT_CLOSING):
        tag = Tag(
            number=number,
            cls=cls,
            length=0,
            is_opening=lvt == _LVT_OPENING,
            is_closing=lvt == _LVT_CLOSING,
        )
        return tag, offset

    length = lvt
    if lvt >= _LVT_EXTENDED:
        length = take(1)
        if length == 254:
            length = take(2)
        elif length == 255:
            length = take(4)
    return Tag(number=number, cls=cls, length=length), offset


class TagReader:
    """Walks the tagged fields of a service request in order."""

    def __init__(self, data: memoryview | bytes) -> None:
        self._buf = memoryview(data)
        self._offset = 0

    def read(self) -> tuple[Tag, memoryview]:
        """Consume the next tag and return it with its content octets."""
        tag, start = decode_tag(self._buf, self._offset)
        end = start + tag.length
        if end > len(self._buf):
            msg = f"Tag {tag.number} contents truncated: need {tag.length} bytes"
            raise ValueError(msg)
        self._offset = end
        return tag, self._buf[start:end]

    def read_application(self, tag_number: int) -> memoryview:
        """Consume the next field, which must carry application tag *tag_number*."""
        tag, contents = self.read()
        if tag.cls is not TagClass.APPLICATION or tag.number != tag_number:
            msg = f"Expected application tag {tag_number}, got {tag.cls.name} tag {tag.number}"
            raise ValueError(msg)
        return contents

