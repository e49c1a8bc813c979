"""Roster of devices discovered from I-Am responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

from bac_whois.network.address import BACnetAddress
from bac_whois.types.enums import Segmentation

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DiscoveredEntity:
    """One roster row: a device and the address it answered from."""

    device_id: int
    max_apdu: int
    address: BACnetAddress
    duplicate: bool = False
    vendor_id: int = 0
    segmentation: Segmentation = Segmentation.NONE


class RecordOutcome(Enum):
    """What :meth:`ResponseCollector.record` did with a response."""

    ADDED = "added"
    DUPLICATE = "duplicate"
    UNCHANGED = "unchanged"


class ResponseCollector:
    """Insertion-ordered roster keyed by device instance.

    Entries are never removed.  When a second, different address claims
    an instance already on the roster, every entry for that instance is
    flagged as a duplicate (the earlier ones included) and the new one is
    appended, so the operator sees all conflicting responders.
    """

    def __init__(self) -> None:
        self._entries: list[DiscoveredEntity] = []
        self._index: dict[int, list[int]] = {}

    def record(
        self,
        device_id: int,
        max_apdu: int,
        address: BACnetAddress,
        *,
        vendor_id: int = 0,
        segmentation: Segmentation = Segmentation.NONE,
    ) -> RecordOutcome:
        """Add a response to the roster.

        :param device_id: Device object instance from the I-Am.
        :param max_apdu: Max APDU length accepted by the responder.
        :param address: Full source address of the response.
        :returns: :attr:`RecordOutcome.UNCHANGED` if this device was already
            recorded at *address*, :attr:`RecordOutcome.DUPLICATE` if it was
            recorded at another address, otherwise
            :attr:`RecordOutcome.ADDED`.
        """
        positions = self._index.setdefault(device_id, [])
        if any(self._entries[pos].address == address for pos in positions):
            return RecordOutcome.UNCHANGED

        duplicate = bool(positions)
        if duplicate:
            for pos in positions:
                entry = self._entries[pos]
                if not entry.duplicate:
                    self._entries[pos] = replace(entry, duplicate=True)
            logger.warning(
                "Device %d answered from %s and %s",
                device_id,
                self._entries[positions[0]].address,
                address,
            )

        positions.append(len(self._entries))
        self._entries.append(
            DiscoveredEntity(
                device_id=device_id,
                max_apdu=max_apdu,
                address=address,
                duplicate=duplicate,
                vendor_id=vendor_id,
                segmentation=segmentation,
            )
        )
        return RecordOutcome.DUPLICATE if duplicate else RecordOutcome.ADDED

    def snapshot(self) -> tuple[DiscoveredEntity, ...]:
        """Return the roster in first-seen order."""
        return tuple(self._entries)

    def count(self) -> int:
        return len(self._entries)

    def duplicate_count(self) -> int:
        return sum(1 for entry in self._entries if entry.duplicate)
