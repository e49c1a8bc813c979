"""BACnet protocol error types per ASHRAE 135-2016 Clause 18."""

from __future__ import annotations

from bac_whois.network.address import BACnetAddress
from bac_whois.types.enums import AbortReason, RejectReason, reason_name


class BACnetBaseError(Exception):
    """Base exception for BACnet protocol errors."""


class BACnetRejectError(BACnetBaseError):
    """BACnet Reject-PDU received (Clause 18.9).

    Indicates a syntax or protocol error in a request.
    """

    def __init__(self, reason: int, source: BACnetAddress | None = None) -> None:
        self.reason = reason
        self.source = source
        super().__init__(f"Reject: {reason_name(RejectReason, reason)}")


class BACnetAbortError(BACnetBaseError):
    """BACnet Abort-PDU received (Clause 18.10).

    Indicates the transaction was aborted.
    """

    def __init__(self, reason: int, source: BACnetAddress | None = None) -> None:
        self.reason = reason
        self.source = source
        super().__init__(f"Abort: {reason_name(AbortReason, reason)}")
