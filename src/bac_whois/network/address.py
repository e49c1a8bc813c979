"""BACnet addressing types per ASHRAE 135-2016 Clause 6."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAX_MAC_LEN = 7
"""Largest MAC/DADR/SADR the network layer carries (Clause 6.2.2)."""

LOCAL_NETWORK = 0
BROADCAST_NETWORK = 0xFFFF

# Default BACnet/IP port
DEFAULT_PORT = 0xBAC0


@dataclass(frozen=True, slots=True)
class BIPAddress:
    """6-octet BACnet/IP address: 4 bytes IP + 2 bytes port."""

    host: str
    port: int

    def encode(self) -> bytes:
        """Encode to 6-byte wire format."""
        parts = [int(x) for x in self.host.split(".")]
        return bytes(parts) + self.port.to_bytes(2, "big")

    @classmethod
    def decode(cls, data: bytes | memoryview) -> BIPAddress:
        """Decode from 6-byte wire format."""
        if len(data) != 6:
            msg = f"BACnet/IP MAC must be 6 bytes, got {len(data)}"
            raise ValueError(msg)
        host = f"{data[0]}.{data[1]}.{data[2]}.{data[3]}"
        port = int.from_bytes(data[4:6], "big")
        return cls(host=host, port=port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class BACnetAddress:
    """A full BACnet address as seen by the network layer.

    ``network`` is 0 for the local network and 0xFFFF for a global
    broadcast.  ``mac_address`` is the data-link hop (the station itself
    on the local network, or the router that reaches a remote network).
    ``remote_address`` is the station address on the remote network
    (DADR when sending, SADR when receiving); it is empty locally.

    An empty ``mac_address`` means a broadcast on the data link.
    """

    network: int = LOCAL_NETWORK
    mac_address: bytes = b""
    remote_address: bytes = b""

    def __post_init__(self) -> None:
        if not LOCAL_NETWORK <= self.network <= BROADCAST_NETWORK:
            msg = f"Network number must be 0-65535, got {self.network}"
            raise ValueError(msg)
        if len(self.mac_address) > MAX_MAC_LEN:
            msg = f"MAC address longer than {MAX_MAC_LEN} bytes: {self.mac_address.hex()}"
            raise ValueError(msg)
        if len(self.remote_address) > MAX_MAC_LEN:
            msg = f"Remote address longer than {MAX_MAC_LEN} bytes: {self.remote_address.hex()}"
            raise ValueError(msg)

    @property
    def is_local(self) -> bool:
        """True if addressing the local network."""
        return self.network == LOCAL_NETWORK

    @property
    def is_global_broadcast(self) -> bool:
        """True if this is a global broadcast address."""
        return self.network == BROADCAST_NETWORK

    @property
    def is_broadcast(self) -> bool:
        """True if the data-link hop is a broadcast."""
        return len(self.mac_address) == 0

    def __str__(self) -> str:
        """Human-readable address string.

        - ``"192.168.1.100:47808"`` for local BACnet/IP unicast
        - ``"*"`` for global broadcast
        - ``"2:*"`` for a broadcast on network 2
        - ``"2:0a@192.168.1.1:47808"`` for station 0a on network 2 via a router
        - ``""`` for local broadcast
        """
        hop = format_mac(self.mac_address)
        if self.is_global_broadcast and not self.mac_address:
            return "*"
        if self.is_local:
            return hop
        station = self.remote_address.hex() if self.remote_address else "*"
        if hop:
            return f"{self.network}:{station}@{hop}"
        return f"{self.network}:{station}"


# Convenience constants
LOCAL_BROADCAST = BACnetAddress()
GLOBAL_BROADCAST = BACnetAddress(network=BROADCAST_NETWORK)


def format_mac(mac: bytes) -> str:
    """Format a data-link MAC for log output (IP:port for 6-byte B/IP MACs)."""
    if len(mac) == 6:
        return str(BIPAddress.decode(mac))
    return mac.hex()


_IP_RE = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})(?::(\d{1,5}))?$")
_HEX_OCTETS_RE = re.compile(r"^[0-9A-Fa-f]{1,2}(?::[0-9A-Fa-f]{1,2})*$")
_HEX_RUN_RE = re.compile(r"^(?:[0-9A-Fa-f]{2})+$")


def parse_mac(text: str) -> bytes | None:
    """Parse a MAC address hint from the command line.

    Accepted formats::

        "10.1.2.3"            -> 6-byte BACnet/IP MAC, port 47808
        "10.1.2.3:47809"      -> 6-byte BACnet/IP MAC, explicit port
        "00:21:70:7e:32:bb"   -> colon separated octets
        "05" / "0a0b"         -> bare hex octets (MS/TP, ARCNET)

    Returns ``None`` when *text* is not a usable MAC; callers treat that as
    an absent hint rather than an error.
    """
    text = text.strip()
    m = _IP_RE.match(text)
    if m:
        octets = [int(g) for g in m.groups()[:4]]
        port = int(m.group(5)) if m.group(5) else DEFAULT_PORT
        if all(o <= 255 for o in octets) and port <= 0xFFFF:
            return bytes(octets) + port.to_bytes(2, "big")
        logger.warning("Ignoring out-of-range IP address %r", text)
        return None

    if _HEX_OCTETS_RE.match(text) and ":" in text:
        mac = bytes(int(part, 16) for part in text.split(":"))
    elif _HEX_RUN_RE.match(text) or _HEX_OCTETS_RE.match(text):
        mac = bytes.fromhex(text.zfill(len(text) + len(text) % 2))
    else:
        logger.warning("Ignoring unparseable MAC address %r", text)
        return None

    if len(mac) > MAX_MAC_LEN:
        logger.warning("Ignoring MAC address %r longer than %d bytes", text, MAX_MAC_LEN)
        return None
    return mac
