"""Shared test utilities for bac-whois tests."""

from __future__ import annotations

from collections import deque

from bac_whois.app.loop import DispatchOutcome, DispatchResult
from bac_whois.encoding.apdu import AbortPDU, RejectPDU, UnconfirmedRequestPDU, encode_apdu
from bac_whois.network.address import BACnetAddress, BIPAddress
from bac_whois.network.layer import ReceivedFrame
from bac_whois.network.npdu import NPDU, encode_npdu
from bac_whois.services.who_is import IAmRequest
from bac_whois.types.enums import Segmentation, UnconfirmedServiceChoice

LOCAL_MAC = BIPAddress(host="192.168.1.100", port=0xBAC0).encode()
PEER_MAC = BIPAddress(host="192.168.1.10", port=0xBAC0).encode()
PEER2_MAC = BIPAddress(host="192.168.1.11", port=0xBAC0).encode()
ROUTER_MAC = BIPAddress(host="192.168.1.1", port=0xBAC0).encode()

PEER = BACnetAddress(mac_address=PEER_MAC)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms / 1000


class FakeStack:
    """Scripted discovery stack.

    Each receive consumes one script entry: ``None`` is an elapsed wait,
    a :class:`DispatchResult` is a frame that dispatches to that result.
    Every receive advances the clock by its full timeout.
    """

    def __init__(self, clock: FakeClock, script: list[DispatchResult | None] | None = None) -> None:
        self.clock = clock
        self.script: deque[DispatchResult | None] = deque(script or [])
        self.sent: list[tuple] = []
        self.send_times: list[float] = []
        self.receives = 0
        self.dispatched: list[ReceivedFrame] = []
        self.maintenance: list[int] = []
        self.events: list[str] = []
        self._results: dict[int, DispatchResult] = {}

    def send_i_am(self, destination, device_id, max_apdu, segmentation, vendor_id) -> None:
        self.sent.append(("i-am", destination, device_id, max_apdu, segmentation, vendor_id))
        self.events.append("send")
        self.send_times.append(self.clock())

    def send_who_is(self, destination, low_limit, high_limit) -> None:
        self.sent.append(("who-is", destination, low_limit, high_limit))
        self.events.append("send")
        self.send_times.append(self.clock())

    def receive_frame(self, timeout_ms: int) -> ReceivedFrame | None:
        self.receives += 1
        self.clock.advance_ms(timeout_ms)
        if not self.script:
            return None
        result = self.script.popleft()
        if result is None:
            return None
        frame = ReceivedFrame(apdu=b"\x10\x00", source=PEER)
        self._results[id(frame)] = result
        return frame

    def dispatch(self, frame: ReceivedFrame) -> DispatchResult:
        self.dispatched.append(frame)
        return self._results.pop(id(frame), DispatchResult(DispatchOutcome.IGNORED))

    def maintenance_tick(self, elapsed_seconds: int) -> None:
        self.maintenance.append(elapsed_seconds)
        self.events.append("maintenance")


class FakeDatalink:
    """In-memory data link recording what the network layer sends."""

    def __init__(self, local_mac: bytes = LOCAL_MAC) -> None:
        self._local_mac = local_mac
        self.opened = False
        self.closed = False
        self.unicasts: list[tuple[bytes, bytes]] = []
        self.broadcasts: list[bytes] = []
        self.inbound: deque[tuple[bytes, bytes]] = deque()
        self.maintenance_calls: list[int] = []

    @property
    def local_mac(self) -> bytes:
        return self._local_mac

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def send_unicast(self, npdu: bytes, mac_address: bytes) -> None:
        if len(mac_address) != 6:
            msg = f"BACnet/IP MAC must be 6 bytes, got {len(mac_address)}"
            raise ValueError(msg)
        self.unicasts.append((npdu, mac_address))

    def send_broadcast(self, npdu: bytes) -> None:
        self.broadcasts.append(npdu)

    def receive(self, timeout_ms: int) -> tuple[bytes, bytes] | None:
        if self.inbound:
            return self.inbound.popleft()
        return None

    def maintenance(self, elapsed_seconds: int) -> None:
        self.maintenance_calls.append(elapsed_seconds)

    def deliver(self, npdu: bytes, source_mac: bytes = PEER_MAC) -> None:
        self.inbound.append((npdu, source_mac))

    @property
    def sent_count(self) -> int:
        return len(self.unicasts) + len(self.broadcasts)


def i_am_apdu(
    device_id: int,
    max_apdu: int = 1476,
    segmentation: Segmentation = Segmentation.NONE,
    vendor_id: int = 260,
) -> bytes:
    """Encode an Unconfirmed-Request I-Am APDU."""
    request = IAmRequest(
        device_instance=device_id,
        max_apdu_length=max_apdu,
        segmentation_supported=segmentation,
        vendor_id=vendor_id,
    )
    return encode_apdu(
        UnconfirmedRequestPDU(
            service_choice=UnconfirmedServiceChoice.I_AM,
            service_request=request.encode(),
        )
    )


def i_am_npdu(device_id: int, *, snet: int | None = None, sadr: bytes = b"", **kwargs) -> bytes:
    """Encode an NPDU carrying an I-Am, optionally routed from *snet*/*sadr*."""
    return encode_npdu(NPDU(snet=snet, sadr=sadr, apdu=i_am_apdu(device_id, **kwargs)))


def abort_npdu(reason: int = 4) -> bytes:
    return encode_npdu(
        NPDU(apdu=encode_apdu(AbortPDU(sent_by_server=True, invoke_id=1, abort_reason=reason)))
    )


def reject_npdu(reason: int = 9) -> bytes:
    return encode_npdu(NPDU(apdu=encode_apdu(RejectPDU(invoke_id=1, reject_reason=reason))))
