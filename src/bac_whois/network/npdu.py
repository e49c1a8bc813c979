"""NPDU header encoding and decoding per ASHRAE 135-2016 Clause 6.2."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntFlag

from bac_whois.types.enums import NetworkPriority

logger = logging.getLogger(__name__)

BACNET_PROTOCOL_VERSION = 1


class _Control(IntFlag):
    """NPCI control octet bits (Clause 6.2.2); the low two bits are the priority."""

    EXPECTING_REPLY = 0x04
    SOURCE = 0x08
    DESTINATION = 0x20
    NETWORK_MESSAGE = 0x80


@dataclass(frozen=True, slots=True)
class NPDU:
    """A network-layer message.

    ``dnet``/``snet`` are ``None`` when the control octet omits the
    destination/source specifier.  An empty ``dadr`` with a ``dnet`` is a
    broadcast on that network; ``dnet`` 0xFFFF is a global broadcast.
    Routers fill in ``snet``/``sadr`` when they forward a message.
    """

    is_network_message: bool = False
    expecting_reply: bool = False
    priority: NetworkPriority = NetworkPriority.NORMAL
    dnet: int | None = None
    dadr: bytes = b""
    snet: int | None = None
    sadr: bytes = b""
    hop_count: int = 255
    message_type: int | None = None
    apdu: bytes = b""


def _check_source(snet: int | None, sadr: bytes) -> None:
    if snet is None:
        return
    if snet in (0, 0xFFFF):
        msg = f"Source SNET must be 1-65534, got {snet}"
        raise ValueError(msg)
    if not sadr:
        msg = "Source SLEN cannot be 0 when source is present"
        raise ValueError(msg)


def encode_npdu(npdu: NPDU) -> bytes:
    """Encode *npdu* for the data link.

    :raises ValueError: If the source specifier is invalid or a network
        message has no message type.
    """
    _check_source(npdu.snet, npdu.sadr)
    if npdu.is_network_message and npdu.message_type is None:
        msg = "message_type must be set when is_network_message is True"
        raise ValueError(msg)

    control = _Control(npdu.priority & 0x03)
    if npdu.is_network_message:
        control |= _Control.NETWORK_MESSAGE
    if npdu.dnet is not None:
        control |= _Control.DESTINATION
    if npdu.snet is not None:
        control |= _Control.SOURCE
    if npdu.expecting_reply:
        control |= _Control.EXPECTING_REPLY

    out = bytearray([BACNET_PROTOCOL_VERSION, control])
    if npdu.dnet is not None:
        out += npdu.dnet.to_bytes(2, "big") + bytes([len(npdu.dadr)]) + npdu.dadr
    if npdu.snet is not None:
        out += npdu.snet.to_bytes(2, "big") + bytes([len(npdu.sadr)]) + npdu.sadr
    if npdu.dnet is not None:
        out.append(npdu.hop_count)
    if npdu.is_network_message:
        out.append(npdu.message_type)
    else:
        out += npdu.apdu
    return bytes(out)


class _Cursor:
    def __init__(self, data: memoryview | bytes) -> None:
        self.data = data
        self.offset = 0

    def take(self, count: int, what: str) -> bytes:
        end = self.offset + count
        if end > len(self.data):
            remaining = len(self.data) - self.offset
            msg = f"NPDU too short for {what}: need {count} bytes, {remaining} remain"
            raise ValueError(msg)
        chunk = bytes(self.data[self.offset : end])
        self.offset = end
        return chunk

    def specifier(self, name: str) -> tuple[int, bytes]:
        """Read a NET(2) + LEN(1) + ADR(LEN) specifier."""
        net = int.from_bytes(self.take(2, name), "big")
        length = self.take(1, name)[0]
        return net, self.take(length, f"{name} address")


def decode_npdu(data: memoryview | bytes) -> NPDU:
    """Decode a received NPDU.

    Network-layer messages are decoded only as far as their message type.

    :raises ValueError: If *data* is truncated, the protocol version is
        not 1, or the source specifier is invalid.
    """
    if len(data) < 2:
        msg = f"NPDU data too short: need at least 2 bytes, got {len(data)}"
        raise ValueError(msg)
    if data[0] != BACNET_PROTOCOL_VERSION:
        msg = f"Unsupported BACnet protocol version: {data[0]}"
        raise ValueError(msg)

    control = _Control(data[1] & 0xAC)
    cursor = _Cursor(data)
    cursor.offset = 2

    dnet, dadr = None, b""
    snet, sadr = None, b""
    if control & _Control.DESTINATION:
        dnet, dadr = cursor.specifier("destination")
    if control & _Control.SOURCE:
        snet, sadr = cursor.specifier("source")
        _check_source(snet, sadr)
    hop_count = cursor.take(1, "hop count")[0] if dnet is not None else 255

    message_type = None
    apdu = b""
    is_network_message = bool(control & _Control.NETWORK_MESSAGE)
    if is_network_message:
        message_type = cursor.take(1, "network message type")[0]
    else:
        apdu = bytes(data[cursor.offset :])

    if snet is not None and logger.isEnabledFor(logging.DEBUG):
        logger.debug("decode_npdu: snet=%d sadr=%s", snet, sadr.hex())
    return NPDU(
        is_network_message=is_network_message,
        expecting_reply=bool(control & _Control.EXPECTING_REPLY),
        priority=NetworkPriority(data[1] & 0x03),
        dnet=dnet,
        dadr=dadr,
        snet=snet,
        sadr=sadr,
        hop_count=hop_count,
        message_type=message_type,
        apdu=apdu,
    )
