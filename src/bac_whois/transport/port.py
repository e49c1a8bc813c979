"""Data-link abstraction for the network layer.

Defines the ``Datalink`` protocol that a blocking data-link transport must
satisfy so the network layer can poll it from a single thread.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Datalink(Protocol):
    """Abstract interface for a blocking data-link port.

    MAC encoding conventions (by data-link type):
        - BACnet/IP:  6 bytes  (4-byte IPv4 + 2-byte port, big-endian)
        - MS/TP:      1 byte   (station address 0-254)
    """

    def open(self) -> None:
        """Bind the underlying transport."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...

    def send_unicast(self, npdu: bytes, mac_address: bytes) -> None:
        """Send an NPDU to a specific station."""
        ...

    def send_broadcast(self, npdu: bytes) -> None:
        """Send an NPDU as a local broadcast."""
        ...

    def receive(self, timeout_ms: int) -> tuple[bytes, bytes] | None:
        """Wait up to *timeout_ms* for one NPDU.

        Returns ``(npdu_bytes, source_mac)``, or ``None`` when the wait
        elapsed or the datagram carried no NPDU.
        """
        ...

    def maintenance(self, elapsed_seconds: int) -> None:
        """Periodic housekeeping, called roughly once a second."""
        ...

    @property
    def local_mac(self) -> bytes:
        """The MAC address of this port in its native encoding."""
        ...
