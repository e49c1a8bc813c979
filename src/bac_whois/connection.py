"""Bridge between the Click commands and an open BACnet stack."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from bac_whois.app.stack import BACnetStack
from bac_whois.transport.bip import BIPDatalink

if TYPE_CHECKING:
    from bac_whois.app.collector import ResponseCollector
    from bac_whois.config import DatalinkConfig
    from bac_whois.transport.port import Datalink

T = TypeVar("T")


def create_datalink(config: DatalinkConfig) -> Datalink:
    """Build the BACnet/IP data link described by *config*."""
    return BIPDatalink(
        interface=config.interface,
        port=config.port,
        broadcast_address=config.broadcast_address,
        bbmd_address=config.bbmd_address,
        bbmd_ttl=config.bbmd_ttl,
    )


def run_command(
    config: DatalinkConfig,
    func: Callable[[BACnetStack], T],
    collector: ResponseCollector | None = None,
) -> T:
    """Open a stack on a fresh data link, run *func* with it, and close it.

    Args:
        config: Data-link settings.
        func: Callable that receives the open stack.
        collector: Roster that received I-Am requests are recorded in.

    Returns:
        The return value of *func*.

    Raises:
        OSError: If the data link cannot be opened.
    """
    with BACnetStack(create_datalink(config), collector) as stack:
        return func(stack)
