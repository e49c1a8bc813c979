"""Click CLI group and global options for bac-whois."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence

import click

from bac_whois import __version__
from bac_whois.commands.iam import iam
from bac_whois.commands.whois import whois
from bac_whois.config import (
    DEFAULT_APDU_RETRIES,
    DEFAULT_APDU_TIMEOUT_MS,
    DEFAULT_BBMD_TTL,
    DatalinkConfig,
)
from bac_whois.network.address import DEFAULT_PORT, BIPAddress
from bac_whois.parsers import BIP_ADDRESS


@click.group()
@click.option(
    "--interface",
    default="0.0.0.0",
    show_default=True,
    envvar="BACNET_IFACE",
    help="Local bind address.",
)
@click.option(
    "--port",
    default=DEFAULT_PORT,
    type=click.IntRange(0, 0xFFFF),
    show_default=True,
    envvar="BACNET_IP_PORT",
    help="Local BACnet/IP port.",
)
@click.option(
    "--broadcast",
    "broadcast_address",
    default="255.255.255.255",
    show_default=True,
    envvar="BACNET_IP_BROADCAST",
    help="Directed broadcast address of the local subnet.",
)
@click.option(
    "--apdu-timeout",
    default=DEFAULT_APDU_TIMEOUT_MS,
    type=click.IntRange(min=0),
    show_default=True,
    envvar="BACNET_APDU_TIMEOUT",
    help="APDU timeout in milliseconds.",
)
@click.option(
    "--apdu-retries",
    default=DEFAULT_APDU_RETRIES,
    type=click.IntRange(min=0),
    show_default=True,
    envvar="BACNET_APDU_RETRIES",
    help="APDU retry count.",
)
@click.option(
    "--bbmd",
    "bbmd_address",
    type=BIP_ADDRESS,
    default=None,
    envvar="BACNET_BBMD_ADDRESS",
    help="Register as a foreign device with this BBMD.",
)
@click.option(
    "--bbmd-ttl",
    default=DEFAULT_BBMD_TTL,
    type=click.IntRange(min=1, max=0xFFFF),
    show_default=True,
    envvar="BACNET_BBMD_TIMETOLIVE",
    help="Foreign device registration time-to-live in seconds.",
)
@click.option(
    "--verbose",
    is_flag=True,
    default=lambda: "BACNET_DEBUG" in os.environ,
    help="Enable debug logging. Also on whenever BACNET_DEBUG is set.",
)
@click.version_option(__version__, prog_name="bac-whois")
@click.pass_context
def cli(
    ctx: click.Context,
    interface: str,
    port: int,
    broadcast_address: str,
    apdu_timeout: int,
    apdu_retries: int,
    bbmd_address: BIPAddress | None,
    bbmd_ttl: int,
    verbose: bool,
) -> None:
    """BACnet device discovery with Who-Is and I-Am."""
    ctx.ensure_object(dict)
    ctx.obj["datalink"] = DatalinkConfig(
        interface=interface,
        port=port,
        broadcast_address=broadcast_address,
        bbmd_address=bbmd_address,
        bbmd_ttl=bbmd_ttl,
    )
    ctx.obj["apdu_timeout"] = apdu_timeout
    ctx.obj["apdu_retries"] = apdu_retries

    # Configure logging
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


# Register commands
cli.add_command(whois)
cli.add_command(iam)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code.

    Usage errors exit with 1 rather than Click's default of 2.
    """
    try:
        rv = cli.main(args=argv, prog_name="bac-whois", standalone_mode=False)
    except click.UsageError as exc:
        exc.show()
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    return rv if isinstance(rv, int) else 0
