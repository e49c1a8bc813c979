"""Output formatting for the discovery commands.

The roster layout is read back by other BACnet tools, so its columns
must not move.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence

from bac_whois.app.collector import DiscoveredEntity
from bac_whois.network.address import MAX_MAC_LEN

ROSTER_HEADER = f";{'Device':<7}  {'MAC (hex)':<20} {'SNET':<5} {'SADR (hex)':<20} {'APDU':<4}"
ROSTER_RULE = ";-------- -------------------- ----- -------------------- ----"

# SADR column value for devices on the local network
_LOCAL_SADR = b"\x00"


def mac_column(addr: bytes) -> str:
    """Colon-separated hex octets, padded to :data:`MAX_MAC_LEN` octets."""
    text = ":".join(f"{b:02X}" for b in addr)
    return text + "   " * max(0, MAX_MAC_LEN - len(addr))


def roster_lines(entries: Sequence[DiscoveredEntity]) -> list[str]:
    """Render the roster table with its trailing summary."""
    lines = [ROSTER_HEADER, ROSTER_RULE]
    duplicates = 0
    for entry in entries:
        address = entry.address
        if entry.duplicate:
            duplicates += 1
        prefix = ";" if entry.duplicate else " "
        sadr = address.remote_address if address.network else _LOCAL_SADR
        lines.append(
            f"{prefix} {entry.device_id:<7} {mac_column(address.mac_address)}"
            f" {address.network:<5} {mac_column(sadr)} {entry.max_apdu:<4} "
        )
    lines.append(";")
    lines.append(f"; Total Devices: {len(entries)}")
    if duplicates:
        lines.append(f"; * Duplicate Devices: {duplicates}")
    return lines


def print_roster(entries: Sequence[DiscoveredEntity]) -> None:
    """Print the roster table to stdout."""
    for line in roster_lines(entries):
        print(line)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    print(f"Error: {message}", file=sys.stderr)
