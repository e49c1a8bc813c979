"""Primitive values carried by Who-Is and I-Am (ASHRAE 135-2016 Clause 20.2).

Unsigned, Enumerated and BACnetObjectIdentifier are all that discovery
needs; other datatypes are not implemented.
"""

from __future__ import annotations

from bac_whois.encoding.tags import TagClass, encode_tag

# Application tag numbers
TAG_UNSIGNED = 2
TAG_ENUMERATED = 9
TAG_OBJECT_IDENTIFIER = 12

MAX_INSTANCE = 0x3FFFFF
MAX_OBJECT_TYPE = 0x3FF
_MAX_UNSIGNED = 0xFFFFFFFF


def encode_unsigned(value: int) -> bytes:
    """Big-endian octets of *value*, as few as possible (at least one).

    :raises ValueError: If *value* does not fit Unsigned32.
    """
    if not 0 <= value <= _MAX_UNSIGNED:
        msg = f"Unsigned integer must be 0-{_MAX_UNSIGNED}, got {value}"
        raise ValueError(msg)
    return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")


def decode_unsigned(data: memoryview | bytes) -> int:
    """Decode an Unsigned (or Enumerated) from its content octets.

    :raises ValueError: If *data* is empty or longer than 4 octets.
    """
    if not 1 <= len(data) <= 4:
        msg = f"Unsigned integer must be 1-4 bytes, got {len(data)}"
        raise ValueError(msg)
    return int.from_bytes(data, "big")


def encode_object_identifier(obj_type: int, instance: int) -> bytes:
    """Pack a 10-bit object type and 22-bit instance into 4 octets.

    :raises ValueError: If either field is out of range.
    """
    if not 0 <= obj_type <= MAX_OBJECT_TYPE:
        msg = f"Object type must be 0-{MAX_OBJECT_TYPE}, got {obj_type}"
        raise ValueError(msg)
    if not 0 <= instance <= MAX_INSTANCE:
        msg = f"Instance number must be 0-{MAX_INSTANCE}, got {instance}"
        raise ValueError(msg)
    return ((obj_type << 22) | instance).to_bytes(4, "big")


def decode_object_identifier(data: memoryview | bytes) -> tuple[int, int]:
    """Unpack 4 octets into ``(object_type, instance)``."""
    if len(data) != 4:
        msg = f"ObjectIdentifier data must be 4 bytes, got {len(data)}"
        raise ValueError(msg)
    value = int.from_bytes(data, "big")
    return value >> 22, value & MAX_INSTANCE


def encode_context_tagged(tag_number: int, data: bytes) -> bytes:
    return encode_tag(tag_number, TagClass.CONTEXT, len(data)) + data


def _application(tag_number: int, data: bytes) -> bytes:
    return encode_tag(tag_number, TagClass.APPLICATION, len(data)) + data


def encode_application_unsigned(value: int) -> bytes:
    return _application(TAG_UNSIGNED, encode_unsigned(value))


def encode_application_enumerated(value: int) -> bytes:
    return _application(TAG_ENUMERATED, encode_unsigned(value))


def encode_application_object_id(obj_type: int, instance: int) -> bytes:
    return _application(TAG_OBJECT_IDENTIFIER, encode_object_identifier(obj_type, instance))
