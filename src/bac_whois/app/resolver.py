"""Destination address resolution from command-line addressing hints."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bac_whois.network.address import BROADCAST_NETWORK, LOCAL_NETWORK, BACnetAddress

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AddressHint:
    """Partial addressing supplied by the operator.

    ``mac`` is the data-link hop (``--mac``), ``network`` the destination
    network number (``--dnet``) and ``remote_mac`` the station on that
    network (``--dadr``).  Any of them may be unset.
    """

    mac: bytes | None = None
    network: int | None = None
    remote_mac: bytes | None = None


@dataclass(frozen=True, slots=True)
class Resolution:
    """A resolved destination and whether a specific target was requested."""

    destination: BACnetAddress
    specific: bool


def _valid_network(network: int | None) -> bool:
    return network is not None and LOCAL_NETWORK <= network <= BROADCAST_NETWORK


def resolve_destination(hint: AddressHint, *, default: BACnetAddress) -> Resolution:
    """Resolve *hint* into the destination used for every send of a run.

    The first matching rule wins:

    1. hop MAC and remote MAC: routed station, network from the hint or
       global broadcast.
    2. hop MAC only: network from the hint or local.
    3. network only: broadcast on that network.
    4. nothing usable: *default*.

    An out-of-range network number counts as absent.  Resolution never
    fails; bad hints degrade toward broadcast.
    """
    network = hint.network if _valid_network(hint.network) else None
    if hint.network is not None and network is None:
        logger.warning("Ignoring out-of-range network number %d", hint.network)

    specific = bool(hint.mac or hint.remote_mac or network is not None)
    if not specific:
        return Resolution(destination=default, specific=False)

    if hint.mac and hint.remote_mac:
        destination = BACnetAddress(
            network=BROADCAST_NETWORK if network is None else network,
            mac_address=hint.mac,
            remote_address=hint.remote_mac,
        )
    elif hint.mac:
        destination = BACnetAddress(
            network=LOCAL_NETWORK if network is None else network,
            mac_address=hint.mac,
        )
    else:
        # A remote MAC needs a router hop; without one only the network is usable.
        destination = BACnetAddress(network=BROADCAST_NETWORK if network is None else network)

    logger.debug("Resolved destination %s", destination)
    return Resolution(destination=destination, specific=True)
