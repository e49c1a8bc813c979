"""Command-line parameter types for BACnet addresses and C-style integers."""

from __future__ import annotations

from typing import Any

import click

from bac_whois.network.address import DEFAULT_PORT, BIPAddress, parse_mac


def parse_c_integer(text: str) -> int:
    """Parse an integer the way C's ``strtol(text, NULL, 0)`` reads it.

    ``0x``/``0X`` selects hex and a leading ``0`` selects octal.

    Raises:
        ValueError: If the text is not an integer in any of those bases.
    """
    digits = text.strip()
    sign = -1 if digits.startswith("-") else 1
    digits = digits.lstrip("+-")
    if digits[:2].lower() == "0x":
        return sign * int(digits[2:], 16)
    if len(digits) > 1 and digits.startswith("0"):
        return sign * int(digits[1:], 8)
    return sign * int(digits, 10)


def parse_bip_address(text: str) -> BIPAddress:
    """Parse ``host`` or ``host:port`` into a :class:`BIPAddress`.

    Raises:
        ValueError: If the text is not a dotted IPv4 address with an
            optional port.
    """
    host, sep, port_text = text.strip().partition(":")
    parts = host.split(".")
    if len(parts) != 4 or not all(p.isdigit() and int(p) <= 255 for p in parts):
        msg = f"Not an IPv4 address: {text!r}"
        raise ValueError(msg)
    port = DEFAULT_PORT
    if sep:
        if not port_text.isdigit() or not 0 < int(port_text) <= 0xFFFF:
            msg = f"Invalid UDP port in {text!r}"
            raise ValueError(msg)
        port = int(port_text)
    return BIPAddress(host=host, port=port)


class MacAddressType(click.ParamType):
    """A MAC address hint (``10.1.2.3[:port]``, ``00:21:70:7e:32:bb`` or ``05``).

    Text that does not parse becomes ``None`` so the hint is simply
    ignored, matching how the destination resolver degrades.
    """

    name = "mac"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if value is None or isinstance(value, bytes):
            return value
        return parse_mac(str(value))


class BIPAddressType(click.ParamType):
    """A BACnet/IP address given as ``host[:port]``."""

    name = "host[:port]"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if value is None or isinstance(value, BIPAddress):
            return value
        try:
            return parse_bip_address(str(value))
        except ValueError as exc:
            self.fail(str(exc), param, ctx)


class CIntegerType(click.ParamType):
    """An integer in decimal, ``0x`` hex or leading-zero octal."""

    name = "integer"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if isinstance(value, int):
            return value
        try:
            return parse_c_integer(str(value))
        except ValueError:
            self.fail(f"{value!r} is not a valid integer", param, ctx)


MAC_ADDRESS = MacAddressType()
BIP_ADDRESS = BIPAddressType()
C_INTEGER = CIntegerType()
