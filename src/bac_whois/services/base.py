"""Unconfirmed service handler registration and dispatch per ASHRAE 135-2016."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeAlias

from bac_whois.services.errors import BACnetRejectError
from bac_whois.types.enums import RejectReason

if TYPE_CHECKING:
    from collections.abc import Callable

    from bac_whois.network.address import BACnetAddress

logger = logging.getLogger(__name__)

# Service handler type alias
UnconfirmedHandler: TypeAlias = (
    "Callable[[int, bytes, BACnetAddress], None]"  # service_choice, request_data, source
)


class ServiceRegistry:
    """Registry for BACnet service request handlers.

    Maps unconfirmed service choice numbers to handler callables.  A
    discovery client serves no confirmed services, so every confirmed
    request is answered with a rejection.
    """

    def __init__(self) -> None:
        self._unconfirmed: dict[int, UnconfirmedHandler] = {}

    def register_unconfirmed(
        self,
        service_choice: int,
        handler: UnconfirmedHandler,
    ) -> None:
        """Register a handler for an unconfirmed service.

        Args:
            service_choice: Unconfirmed service choice number.
            handler: Handler callable.
        """
        self._unconfirmed[service_choice] = handler

    def dispatch_confirmed(
        self,
        service_choice: int,
        request_data: bytes,
        source: BACnetAddress,
    ) -> None:
        """Dispatch an incoming confirmed request.

        Raises:
            BACnetRejectError: Always, with ``UNRECOGNIZED_SERVICE``.
        """
        logger.debug("No handler for confirmed service %d from %s", service_choice, source)
        raise BACnetRejectError(RejectReason.UNRECOGNIZED_SERVICE, source)

    def dispatch_unconfirmed(
        self,
        service_choice: int,
        request_data: bytes,
        source: BACnetAddress,
    ) -> bool:
        """Dispatch an incoming unconfirmed request to its handler.

        If no handler is registered for *service_choice*, the request
        is silently ignored (per Clause 5.4.2, no reject/abort is
        sent for unconfirmed services).

        Args:
            service_choice: Unconfirmed service choice number.
            request_data: Raw service request bytes.
            source: Source address of the request.

        Returns:
            True if a handler processed the request.

        Raises:
            ValueError: If the handler could not decode *request_data*.
        """
        handler = self._unconfirmed.get(service_choice)
        if handler is None:
            return False
        handler(service_choice, request_data, source)
        return True
