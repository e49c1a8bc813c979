"""Protocol services for the discovery loop over a network layer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bac_whois.app.collector import RecordOutcome
from bac_whois.app.loop import DispatchOutcome, DispatchResult
from bac_whois.encoding.apdu import (
    AbortPDU,
    ConfirmedRequestPDU,
    RejectPDU,
    UnconfirmedRequestPDU,
    UnhandledPDU,
    decode_apdu,
    encode_apdu,
)
from bac_whois.network.layer import NetworkLayer
from bac_whois.services.base import ServiceRegistry
from bac_whois.services.errors import BACnetAbortError, BACnetRejectError
from bac_whois.services.who_is import IAmRequest, WhoIsRequest
from bac_whois.types.enums import AbortReason, UnconfirmedServiceChoice

if TYPE_CHECKING:
    from bac_whois.app.collector import ResponseCollector
    from bac_whois.network.address import BACnetAddress
    from bac_whois.network.layer import ReceivedFrame
    from bac_whois.transport.port import Datalink
    from bac_whois.types.enums import Segmentation

logger = logging.getLogger(__name__)


class BACnetStack:
    """Who-Is / I-Am client services on top of a data link.

    When a :class:`ResponseCollector` is given, received I-Am requests
    are recorded in it.  Abort and Reject PDUs surface as
    :attr:`DispatchOutcome.PROTOCOL_ERROR`; confirmed requests are
    rejected since this client serves no confirmed services.
    """

    def __init__(self, datalink: Datalink, collector: ResponseCollector | None = None) -> None:
        self._datalink = datalink
        self._network = NetworkLayer(datalink)
        self._collector = collector
        self._registry = ServiceRegistry()
        if collector is not None:
            self._registry.register_unconfirmed(UnconfirmedServiceChoice.I_AM, self._on_i_am)

    def open(self) -> None:
        self._datalink.open()

    def close(self) -> None:
        self._datalink.close()

    def __enter__(self) -> BACnetStack:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # --- Sending ---

    def send_who_is(
        self,
        destination: BACnetAddress,
        low_limit: int | None,
        high_limit: int | None,
    ) -> None:
        """Send a Who-Is request, optionally limited to an instance range."""
        request = WhoIsRequest(low_limit=low_limit, high_limit=high_limit)
        pdu = UnconfirmedRequestPDU(
            service_choice=UnconfirmedServiceChoice.WHO_IS,
            service_request=request.encode(),
        )
        self._send(encode_apdu(pdu), destination, "Who-Is")

    def send_i_am(
        self,
        destination: BACnetAddress,
        device_id: int,
        max_apdu: int,
        segmentation: Segmentation,
        vendor_id: int,
    ) -> None:
        """Send an I-Am announcing *device_id*."""
        request = IAmRequest(
            device_instance=device_id,
            max_apdu_length=max_apdu,
            segmentation_supported=segmentation,
            vendor_id=vendor_id,
        )
        pdu = UnconfirmedRequestPDU(
            service_choice=UnconfirmedServiceChoice.I_AM,
            service_request=request.encode(),
        )
        self._send(encode_apdu(pdu), destination, "I-Am")

    def _send(self, apdu: bytes, destination: BACnetAddress, service: str) -> None:
        try:
            self._network.send(apdu, destination)
        except ValueError as exc:
            logger.error("Cannot send %s to %s: %s", service, destination, exc)
            return
        logger.debug("Sent %s to %s", service, str(destination) or "local broadcast")

    # --- Receiving ---

    def receive_frame(self, timeout_ms: int) -> ReceivedFrame | None:
        return self._network.receive(timeout_ms)

    def maintenance_tick(self, elapsed_seconds: int) -> None:
        self._network.maintenance(elapsed_seconds)

    def dispatch(self, frame: ReceivedFrame) -> DispatchResult:
        """Route a received APDU to its handler and report the outcome."""
        try:
            pdu = decode_apdu(frame.apdu)
        except ValueError as exc:
            logger.debug("Dropped malformed APDU from %s: %s", frame.source, exc)
            return DispatchResult(DispatchOutcome.MALFORMED)

        match pdu:
            case UnconfirmedRequestPDU():
                return self._dispatch_unconfirmed(pdu, frame.source)
            case ConfirmedRequestPDU():
                self._dispatch_confirmed(pdu, frame.source)
                return DispatchResult(DispatchOutcome.HANDLED)
            case RejectPDU():
                reject = BACnetRejectError(pdu.reject_reason, frame.source)
                logger.warning("BACnet %s from %s", reject, frame.source)
                return DispatchResult(DispatchOutcome.PROTOCOL_ERROR, reject)
            case AbortPDU():
                abort = BACnetAbortError(pdu.abort_reason, frame.source)
                logger.warning("BACnet %s from %s", abort, frame.source)
                return DispatchResult(DispatchOutcome.PROTOCOL_ERROR, abort)
            case UnhandledPDU():
                logger.debug("Ignoring %s PDU from %s", pdu.pdu_type.name, frame.source)
        return DispatchResult(DispatchOutcome.IGNORED)

    def _dispatch_unconfirmed(
        self, pdu: UnconfirmedRequestPDU, source: BACnetAddress
    ) -> DispatchResult:
        try:
            handled = self._registry.dispatch_unconfirmed(
                pdu.service_choice, pdu.service_request, source
            )
        except (ValueError, IndexError) as exc:
            logger.debug(
                "Dropped malformed service %d from %s: %s", pdu.service_choice, source, exc
            )
            return DispatchResult(DispatchOutcome.MALFORMED)
        if not handled:
            return DispatchResult(DispatchOutcome.IGNORED)
        return DispatchResult(DispatchOutcome.HANDLED)

    def _dispatch_confirmed(self, pdu: ConfirmedRequestPDU, source: BACnetAddress) -> None:
        if pdu.segmented:
            # Segmented requests cannot be reassembled.
            reply = AbortPDU(
                sent_by_server=True,
                invoke_id=pdu.invoke_id,
                abort_reason=AbortReason.SEGMENTATION_NOT_SUPPORTED,
            )
            self._send(encode_apdu(reply), source, "Abort")
            return
        try:
            self._registry.dispatch_confirmed(pdu.service_choice, pdu.service_request, source)
        except BACnetRejectError as exc:
            reply_pdu = RejectPDU(invoke_id=pdu.invoke_id, reject_reason=exc.reason)
            self._send(encode_apdu(reply_pdu), source, "Reject")

    def _on_i_am(self, service_choice: int, data: bytes, source: BACnetAddress) -> None:
        iam = IAmRequest.decode(data)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Received I-Am from %d at %s", iam.device_instance, source)
        if self._collector is None:
            return
        outcome = self._collector.record(
            iam.device_instance,
            iam.max_apdu_length,
            source,
            vendor_id=iam.vendor_id,
            segmentation=iam.segmentation_supported,
        )
        if outcome is RecordOutcome.ADDED:
            logger.info("Discovered device %d at %s", iam.device_instance, source)
