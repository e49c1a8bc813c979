"""whois command -- discover BACnet devices on the network."""

from __future__ import annotations

import logging
import sys

import click

from bac_whois import __version__
from bac_whois.app.collector import ResponseCollector
from bac_whois.app.loop import DiscoveryLoop, DiscoveryResult
from bac_whois.app.resolver import AddressHint, resolve_destination
from bac_whois.app.stack import BACnetStack
from bac_whois.commands.options import addressing_options, loop_config
from bac_whois.connection import run_command
from bac_whois.encoding.primitives import MAX_INSTANCE
from bac_whois.formatting import print_error, print_roster
from bac_whois.network.address import GLOBAL_BROADCAST
from bac_whois.parsers import C_INTEGER

logger = logging.getLogger(__name__)

_INSTANCE = click.IntRange(0, MAX_INSTANCE)


@click.command()
@click.argument("instance_min", type=_INSTANCE, required=False)
@click.argument("instance_max", type=_INSTANCE, required=False)
@addressing_options
@click.option(
    "--timeout",
    type=C_INTEGER,
    default=0,
    show_default=True,
    help="Milliseconds between resends. 0 uses APDU timeout x APDU retries.",
)
@click.version_option(__version__, prog_name="bac-whois")
@click.pass_context
def whois(
    ctx: click.Context,
    instance_min: int | None,
    instance_max: int | None,
    mac: bytes | None,
    dnet: int | None,
    dadr: bytes | None,
    repeat: bool,
    retry: int,
    delay: int,
    timeout: int,
) -> None:
    """Send Who-Is and list the devices that answer with I-Am.

    A single INSTANCE_MIN limits the query to that one device.  Without
    addressing options the query is a global broadcast.
    """
    if instance_min is not None and instance_max is None:
        instance_max = instance_min

    hint = AddressHint(mac=mac, network=dnet, remote_mac=dadr)
    resolution = resolve_destination(hint, default=GLOBAL_BROADCAST)
    config = loop_config(ctx, retry=retry, repeat=repeat, delay=delay, timeout=timeout)
    collector = ResponseCollector()

    def _run(stack: BACnetStack) -> DiscoveryResult | None:
        loop = DiscoveryLoop(stack, config)
        try:
            return loop.run_query(resolution.destination, instance_min, instance_max)
        except KeyboardInterrupt:
            logger.info("Interrupted, %d device(s) collected", collector.count())
            return None

    try:
        result = run_command(ctx.obj["datalink"], _run, collector)
    except OSError as e:
        print_error(str(e))
        sys.exit(1)

    if result is not None and result.error is not None:
        click.echo(f"BACnet {result.error}", err=True)
    print_roster(collector.snapshot())
