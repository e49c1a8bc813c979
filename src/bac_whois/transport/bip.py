"""Blocking BACnet/IP data link over a UDP socket per Annex J."""

from __future__ import annotations

import logging
import socket

from bac_whois.network.address import DEFAULT_PORT, BIPAddress
from bac_whois.transport.bvll import decode_bvll, encode_bvll
from bac_whois.types.enums import BvlcFunction, BvlcResultCode

logger = logging.getLogger(__name__)

MAX_BVLL_LENGTH = 1497
_NPDU_FUNCTIONS = (
    BvlcFunction.ORIGINAL_UNICAST_NPDU,
    BvlcFunction.ORIGINAL_BROADCAST_NPDU,
    BvlcFunction.FORWARDED_NPDU,
)


def _resolve_local_ip() -> str:
    """Resolve the local machine's outgoing interface address.

    Uses a UDP connect, which sends no traffic.  Falls back to
    ``127.0.0.1`` if resolution fails.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("10.255.255.255", 1))
            ip: str = s.getsockname()[0]
            return ip
    except OSError:
        return "127.0.0.1"


class BIPDatalink:
    """BACnet/IP data link with a socket-timeout bounded receive.

    When a BBMD address is configured the port registers as a foreign
    device (Annex J.5), re-registers every TTL/2 seconds from
    :meth:`maintenance`, and sends broadcasts as
    Distribute-Broadcast-To-Network through the BBMD.
    """

    def __init__(
        self,
        interface: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        broadcast_address: str = "255.255.255.255",
        *,
        bbmd_address: BIPAddress | None = None,
        bbmd_ttl: int = 60,
    ) -> None:
        """Initialize the BACnet/IP data link.

        :param interface: Local IP address to bind. ``"0.0.0.0"`` binds all
            interfaces.
        :param port: UDP port number. Defaults to ``0xBAC0`` (47808).
        :param broadcast_address: Directed broadcast address for this subnet.
        :param bbmd_address: BBMD to register with as a foreign device.
        :param bbmd_ttl: Foreign device registration time-to-live in seconds.
        """
        if bbmd_ttl < 1:
            msg = f"TTL must be >= 1 second, got {bbmd_ttl}"
            raise ValueError(msg)
        self._interface = interface
        self._port = port
        self._broadcast_address = broadcast_address
        self._bbmd_address = bbmd_address
        self._bbmd_ttl = bbmd_ttl
        self._sock: socket.socket | None = None
        self._local_address: BIPAddress | None = None
        self._registered = False
        self._reregister_in = 0

    @property
    def local_address(self) -> BIPAddress:
        """The local BACnet/IP address of this port."""
        if self._local_address is None:
            msg = "Datalink not open"
            raise RuntimeError(msg)
        return self._local_address

    @property
    def local_mac(self) -> bytes:
        """The 6-byte MAC of this port (4-byte IP + 2-byte port)."""
        return self.local_address.encode()

    @property
    def is_registered(self) -> bool:
        """Whether the BBMD acknowledged the foreign device registration."""
        return self._registered

    def open(self) -> None:
        """Bind the UDP socket and register with the BBMD if configured.

        :raises OSError: If the socket cannot be bound.
        """
        if self._sock is not None:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((self._interface, self._port))
        except OSError:
            sock.close()
            raise
        self._sock = sock

        host, port = sock.getsockname()[:2]
        if host == "0.0.0.0":
            host = _resolve_local_ip()
        self._local_address = BIPAddress(host=host, port=port)
        logger.info("BACnet/IP datalink open on %s", self._local_address)

        if self._bbmd_address is not None:
            self._register()

    def close(self) -> None:
        """Deregister from the BBMD (if registered) and close the socket."""
        if self._sock is None:
            return
        if self._registered and self._bbmd_address is not None:
            payload = self.local_address.encode()
            self._sendto(
                encode_bvll(BvlcFunction.DELETE_FOREIGN_DEVICE_TABLE_ENTRY, payload),
                self._bbmd_address,
            )
            self._registered = False
        self._sock.close()
        self._sock = None
        logger.info("BACnet/IP datalink closed")

    def __enter__(self) -> BIPDatalink:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def send_unicast(self, npdu: bytes, mac_address: bytes) -> None:
        """Send a directed message (Original-Unicast-NPDU).

        :param mac_address: 6-byte destination MAC (4-byte IP + 2-byte port).
        """
        destination = BIPAddress.decode(mac_address)
        self._sendto(encode_bvll(BvlcFunction.ORIGINAL_UNICAST_NPDU, npdu), destination)

    def send_broadcast(self, npdu: bytes) -> None:
        """Send a local broadcast.

        Foreign devices use Distribute-Broadcast-To-Network via the BBMD
        instead of Original-Broadcast-NPDU (Annex J.5.6).
        """
        if self._bbmd_address is not None:
            bvll = encode_bvll(BvlcFunction.DISTRIBUTE_BROADCAST_TO_NETWORK, npdu)
            self._sendto(bvll, self._bbmd_address)
            return
        bvll = encode_bvll(BvlcFunction.ORIGINAL_BROADCAST_NPDU, npdu)
        self._sendto(bvll, BIPAddress(host=self._broadcast_address, port=self._port))

    def receive(self, timeout_ms: int) -> tuple[bytes, bytes] | None:
        """Wait up to *timeout_ms* for a datagram carrying an NPDU.

        BVLC-Result messages are consumed here; malformed datagrams and
        our own broadcasts echoed back are dropped.  All of these return
        ``None`` just like an elapsed wait.
        """
        sock = self._require_socket()
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000)
        else:
            sock.setblocking(False)
        try:
            data, addr = sock.recvfrom(MAX_BVLL_LENGTH)
        except (TimeoutError, BlockingIOError):
            return None

        source = BIPAddress(host=addr[0], port=addr[1])
        if source == self._local_address:
            return None
        try:
            msg = decode_bvll(data)
        except (ValueError, IndexError):
            logger.warning("Dropped malformed BVLL from %s", source)
            return None

        if msg.function == BvlcFunction.BVLC_RESULT:
            self._handle_bvlc_result(msg.data, source)
            return None
        if msg.function not in _NPDU_FUNCTIONS:
            logger.debug("Ignoring BVLC function %s from %s", msg.function.name, source)
            return None
        if msg.function == BvlcFunction.FORWARDED_NPDU and msg.originating_address is not None:
            if msg.originating_address == self._local_address:
                return None
            return msg.data, msg.originating_address.encode()
        return msg.data, source.encode()

    def maintenance(self, elapsed_seconds: int) -> None:
        """Count down the foreign device registration and renew it at TTL/2."""
        if self._bbmd_address is None or self._sock is None:
            return
        self._reregister_in -= elapsed_seconds
        if self._reregister_in <= 0:
            self._register()

    def _register(self) -> None:
        if self._bbmd_address is None:
            return
        payload = self._bbmd_ttl.to_bytes(2, "big")
        self._sendto(encode_bvll(BvlcFunction.REGISTER_FOREIGN_DEVICE, payload), self._bbmd_address)
        self._reregister_in = max(1, self._bbmd_ttl // 2)
        logger.debug(
            "Register-Foreign-Device sent to %s (ttl=%ds)", self._bbmd_address, self._bbmd_ttl
        )

    def _handle_bvlc_result(self, data: bytes, source: BIPAddress) -> None:
        if len(data) < 2:
            return
        code = int.from_bytes(data[0:2], "big")
        if source != self._bbmd_address:
            logger.debug("Ignoring BVLC-Result %#06x from %s", code, source)
            return
        if code == BvlcResultCode.SUCCESSFUL_COMPLETION:
            if not self._registered:
                logger.info("Registered as foreign device with %s", source)
            self._registered = True
        else:
            self._registered = False
            logger.warning("BBMD %s rejected request: BVLC-Result %#06x", source, code)

    def _sendto(self, data: bytes, destination: BIPAddress) -> None:
        sock = self._require_socket()
        try:
            sock.sendto(data, (destination.host, destination.port))
        except OSError as exc:
            logger.warning("Send to %s failed: %s", destination, exc)

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            msg = "Datalink not open"
            raise RuntimeError(msg)
        return self._sock
