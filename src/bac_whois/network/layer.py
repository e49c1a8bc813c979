"""Network layer wiring a data link to the application per Clause 6."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bac_whois.network.address import BROADCAST_NETWORK, LOCAL_NETWORK, BACnetAddress, format_mac
from bac_whois.network.npdu import NPDU, decode_npdu, encode_npdu
from bac_whois.types.enums import NetworkPriority

if TYPE_CHECKING:
    from bac_whois.transport.port import Datalink

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReceivedFrame:
    """An application-layer APDU together with the address it came from."""

    apdu: bytes
    source: BACnetAddress
    expecting_reply: bool = False


class NetworkLayer:
    """Network layer (non-router mode).

    Wraps outgoing APDUs in NPDUs and chooses unicast or broadcast on the
    data link from the destination address.  Incoming NPDUs are unwrapped
    into :class:`ReceivedFrame` objects whose source carries SNET/SADR for
    routed traffic and the data-link MAC of the last hop.
    """

    def __init__(self, datalink: Datalink) -> None:
        self._datalink = datalink

    @property
    def datalink(self) -> Datalink:
        return self._datalink

    def send(
        self,
        apdu: bytes,
        destination: BACnetAddress,
        *,
        expecting_reply: bool = False,
        priority: NetworkPriority = NetworkPriority.NORMAL,
    ) -> None:
        """Send an APDU to *destination*.

        A non-local destination adds DNET (and DADR when a remote station
        is named).  An empty ``mac_address`` broadcasts on the data link,
        otherwise the NPDU is unicast to that MAC (the station itself, or
        the router for a remote network).

        :raises ValueError: If the MAC does not fit the data link.
        """
        npdu = NPDU(
            expecting_reply=expecting_reply,
            priority=priority,
            dnet=None if destination.is_local else destination.network,
            dadr=b"" if destination.is_local else destination.remote_address,
            apdu=apdu,
        )
        npdu_bytes = encode_npdu(npdu)

        if destination.is_broadcast:
            self._datalink.send_broadcast(npdu_bytes)
        else:
            self._datalink.send_unicast(npdu_bytes, destination.mac_address)

    def receive(self, timeout_ms: int) -> ReceivedFrame | None:
        """Wait up to *timeout_ms* for an APDU addressed to this station.

        Returns ``None`` on timeout and for NPDUs that carry nothing for
        the application (malformed, network-layer messages, or traffic for
        another network).
        """
        received = self._datalink.receive(timeout_ms)
        if received is None:
            return None
        data, source_mac = received
        if not data:
            return None

        try:
            npdu = decode_npdu(data)
            source = BACnetAddress(
                network=npdu.snet if npdu.snet is not None else LOCAL_NETWORK,
                mac_address=source_mac,
                remote_address=npdu.sadr,
            )
        except (ValueError, IndexError) as exc:
            logger.warning("Dropped malformed NPDU from %s: %s", format_mac(source_mac), exc)
            return None

        if npdu.is_network_message:
            logger.debug("Ignoring network message type %s (non-router)", npdu.message_type)
            return None
        if npdu.dnet is not None and npdu.dnet != BROADCAST_NETWORK:
            logger.debug("Ignoring NPDU for network %d", npdu.dnet)
            return None

        return ReceivedFrame(apdu=npdu.apdu, source=source, expecting_reply=npdu.expecting_reply)

    def maintenance(self, elapsed_seconds: int) -> None:
        self._datalink.maintenance(elapsed_seconds)
