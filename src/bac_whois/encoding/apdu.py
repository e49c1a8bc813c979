"""APDU headers per ASHRAE 135-2016 Clause 20.1.

A discovery client sends Unconfirmed-Requests (Who-Is, I-Am) and, when a
peer addresses it with a Confirmed-Request, a Reject or an Abort.  It
reacts to Reject and Abort from peers.  Acknowledgement and Error PDUs
decode to :class:`UnhandledPDU` so callers can ignore them without
treating the frame as malformed.
"""

from __future__ import annotations

from dataclasses import dataclass

from bac_whois.types.enums import PduType

# Max-APDU-length-accepted codes 0-5 (Clause 20.1.2.5); reserved codes read as 1476
_MAX_APDU_SIZES = (50, 128, 206, 480, 1024, 1476)

_SEGMENTED = 0x08
_SENT_BY_SERVER = 0x01


@dataclass(frozen=True, slots=True)
class ConfirmedRequestPDU:
    """Confirmed-Request header (Clause 20.1.2).

    Only decoded, so that the request can be answered with a Reject or
    an Abort.
    """

    segmented: bool
    max_apdu_length: int
    invoke_id: int
    service_choice: int
    service_request: bytes


@dataclass(frozen=True, slots=True)
class UnconfirmedRequestPDU:
    """Unconfirmed-Request (Clause 20.1.3)."""

    service_choice: int
    service_request: bytes

    def encode(self) -> bytes:
        return bytes([PduType.UNCONFIRMED_REQUEST << 4, self.service_choice]) + (
            self.service_request
        )


@dataclass(frozen=True, slots=True)
class RejectPDU:
    """Reject-PDU (Clause 20.1.8).

    ``reject_reason`` is a :class:`RejectReason` value or a proprietary
    code of 64 and above.
    """

    invoke_id: int
    reject_reason: int

    def encode(self) -> bytes:
        return bytes([PduType.REJECT << 4, self.invoke_id, self.reject_reason])


@dataclass(frozen=True, slots=True)
class AbortPDU:
    """Abort-PDU (Clause 20.1.9)."""

    sent_by_server: bool
    invoke_id: int
    abort_reason: int

    def encode(self) -> bytes:
        first = PduType.ABORT << 4
        if self.sent_by_server:
            first |= _SENT_BY_SERVER
        return bytes([first, self.invoke_id, self.abort_reason])


@dataclass(frozen=True, slots=True)
class UnhandledPDU:
    """A well-formed APDU of a type this client does not process."""

    pdu_type: PduType


APDU = ConfirmedRequestPDU | UnconfirmedRequestPDU | RejectPDU | AbortPDU | UnhandledPDU

# Fixed header octets each handled PDU type needs before its payload
_HEADER_LENGTH: dict[PduType, int] = {
    PduType.CONFIRMED_REQUEST: 4,
    PduType.UNCONFIRMED_REQUEST: 2,
    PduType.REJECT: 3,
    PduType.ABORT: 3,
}


def encode_apdu(pdu: APDU) -> bytes:
    """Encode an APDU this client is allowed to send.

    :raises TypeError: For Confirmed-Requests and unhandled PDU types.
    """
    if isinstance(pdu, UnconfirmedRequestPDU | RejectPDU | AbortPDU):
        return pdu.encode()
    msg = f"Cannot encode PDU type: {type(pdu).__name__}"
    raise TypeError(msg)


def decode_apdu(data: memoryview | bytes) -> APDU:
    """Decode the APDU carried by an NPDU.

    :raises ValueError: If *data* is shorter than its header or the PDU
        type nibble is reserved.
    """
    if not data:
        msg = "APDU data too short: need at least 1 byte"
        raise ValueError(msg)

    first = data[0]
    pdu_type = PduType(first >> 4)
    if pdu_type not in _HEADER_LENGTH:
        return UnhandledPDU(pdu_type=pdu_type)

    segmented = pdu_type is PduType.CONFIRMED_REQUEST and bool(first & _SEGMENTED)
    # sequence-number and proposed-window-size precede the service choice
    header = _HEADER_LENGTH[pdu_type] + (2 if segmented else 0)
    if len(data) < header:
        msg = f"{pdu_type.name} APDU too short: need at least {header} bytes, got {len(data)}"
        raise ValueError(msg)

    match pdu_type:
        case PduType.CONFIRMED_REQUEST:
            size_code = data[1] & 0x0F
            return ConfirmedRequestPDU(
                segmented=segmented,
                max_apdu_length=(
                    _MAX_APDU_SIZES[size_code] if size_code < len(_MAX_APDU_SIZES) else 1476
                ),
                invoke_id=data[2],
                service_choice=data[header - 1],
                service_request=bytes(data[header:]),
            )
        case PduType.UNCONFIRMED_REQUEST:
            return UnconfirmedRequestPDU(service_choice=data[1], service_request=bytes(data[2:]))
        case PduType.REJECT:
            return RejectPDU(invoke_id=data[1], reject_reason=data[2])
        case _:
            return AbortPDU(
                sent_by_server=bool(first & _SENT_BY_SERVER),
                invoke_id=data[1],
                abort_reason=data[2],
            )
