"""Who-Is and I-Am services per ASHRAE 135-2016 Clause 16.10."""

from __future__ import annotations

from dataclasses import dataclass

from bac_whois.encoding.primitives import (
    MAX_INSTANCE,
    TAG_ENUMERATED,
    TAG_OBJECT_IDENTIFIER,
    TAG_UNSIGNED,
    decode_object_identifier,
    decode_unsigned,
    encode_application_enumerated,
    encode_application_object_id,
    encode_application_unsigned,
    encode_context_tagged,
    encode_unsigned,
)
from bac_whois.encoding.tags import TagReader
from bac_whois.types.enums import ObjectType, Segmentation


@dataclass(frozen=True, slots=True)
class WhoIsRequest:
    """Who-Is-Request service parameters (Clause 16.10.1).

    The device instance range is optional, but its two limits travel
    together: a request carrying only one of them is treated as
    unbounded (Clause 16.10.1.1.1).
    """

    low_limit: int | None = None
    high_limit: int | None = None

    def __post_init__(self) -> None:
        if (self.low_limit is None) != (self.high_limit is None):
            object.__setattr__(self, "low_limit", None)
            object.__setattr__(self, "high_limit", None)
            return
        for limit in (self.low_limit, self.high_limit):
            if limit is not None and not 0 <= limit <= MAX_INSTANCE:
                msg = f"Device instance limit must be 0-{MAX_INSTANCE}, got {limit}"
                raise ValueError(msg)

    def encode(self) -> bytes:
        """Service request octets; empty when no range is set."""
        if self.low_limit is None or self.high_limit is None:
            return b""
        low = encode_context_tagged(0, encode_unsigned(self.low_limit))
        return low + encode_context_tagged(1, encode_unsigned(self.high_limit))


@dataclass(frozen=True, slots=True)
class IAmRequest:
    """I-Am-Request service parameters (Clause 16.10.2).

    Every field is application tagged, in this order: device identifier,
    max APDU length accepted, segmentation supported, vendor identifier.
    """

    device_instance: int
    max_apdu_length: int
    segmentation_supported: Segmentation
    vendor_id: int

    def encode(self) -> bytes:
        return b"".join(
            (
                encode_application_object_id(ObjectType.DEVICE, self.device_instance),
                encode_application_unsigned(self.max_apdu_length),
                encode_application_enumerated(self.segmentation_supported),
                encode_application_unsigned(self.vendor_id),
            )
        )

    @classmethod
    def decode(cls, data: memoryview | bytes) -> IAmRequest:
        """Decode an I-Am from its service request octets.

        :raises ValueError: If the request is truncated, carries the wrong
            application tags, identifies a non-device object, or names an
            unknown segmentation option.
        """
        reader = TagReader(data)
        obj_type, instance = decode_object_identifier(
            reader.read_application(TAG_OBJECT_IDENTIFIER)
        )
        if obj_type != ObjectType.DEVICE:
            msg = f"I-Am identifier is not a device object (type {obj_type})"
            raise ValueError(msg)
        max_apdu_length = decode_unsigned(reader.read_application(TAG_UNSIGNED))
        segmentation = Segmentation(decode_unsigned(reader.read_application(TAG_ENUMERATED)))
        vendor_id = decode_unsigned(reader.read_application(TAG_UNSIGNED))
        return cls(
            device_instance=instance,
            max_apdu_length=max_apdu_length,
            segmentation_supported=segmentation,
            vendor_id=vendor_id,
        )
