"""BACnet Virtual Link Layer framing for BACnet/IP (Annex J.2)."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from bac_whois.network.address import BIPAddress
from bac_whois.types.enums import BvlcFunction

BVLC_TYPE_BACNET_IP = 0x81

# Type(1) + Function(1) + Length(2), length counting the header itself
_HEADER = struct.Struct("!BBH")
BVLL_HEADER_LENGTH = _HEADER.size
_BIP_ADDRESS_LENGTH = 6


@dataclass(frozen=True, slots=True)
class BvllMessage:
    """One decoded BVLL datagram.

    ``originating_address`` is only set for Forwarded-NPDU, where it names
    the station that first broadcast the NPDU.
    """

    function: BvlcFunction
    data: bytes
    originating_address: BIPAddress | None = None


def encode_bvll(
    function: BvlcFunction,
    payload: bytes,
    originating_address: BIPAddress | None = None,
) -> bytes:
    """Frame *payload* for UDP.

    :raises ValueError: If a Forwarded-NPDU has no originating address.
    """
    if function == BvlcFunction.FORWARDED_NPDU:
        if originating_address is None:
            msg = "Forwarded-NPDU requires originating_address"
            raise ValueError(msg)
        payload = originating_address.encode() + payload
    return _HEADER.pack(BVLC_TYPE_BACNET_IP, function, _HEADER.size + len(payload)) + payload


def decode_bvll(data: memoryview | bytes) -> BvllMessage:
    """Parse a received UDP datagram.

    Octets beyond the declared length are ignored.

    :raises ValueError: If the datagram is shorter than its header or its
        declared length, is not BACnet/IP, names an unknown function, or
        is a Forwarded-NPDU without a complete originating address.
    """
    if len(data) < _HEADER.size:
        msg = f"BVLL data too short: need at least {_HEADER.size} bytes, got {len(data)}"
        raise ValueError(msg)

    bvlc_type, code, length = _HEADER.unpack_from(data)
    if bvlc_type != BVLC_TYPE_BACNET_IP:
        msg = f"Invalid BVLC type: {bvlc_type:#x}"
        raise ValueError(msg)
    function = BvlcFunction(code)
    if not _HEADER.size <= length <= len(data):
        msg = f"Invalid BVLL length: declared {length}, actual {len(data)}"
        raise ValueError(msg)

    body = bytes(data[_HEADER.size : length])
    if function != BvlcFunction.FORWARDED_NPDU:
        return BvllMessage(function=function, data=body)

    if len(body) < _BIP_ADDRESS_LENGTH:
        msg = f"Forwarded-NPDU too short: got {length} bytes"
        raise ValueError(msg)
    return BvllMessage(
        function=function,
        data=body[_BIP_ADDRESS_LENGTH:],
        originating_address=BIPAddress.decode(body[:_BIP_ADDRESS_LENGTH]),
    )
