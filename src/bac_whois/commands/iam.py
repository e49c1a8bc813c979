"""iam command -- announce a BACnet device on the network."""

from __future__ import annotations

import logging
import sys

import click

from bac_whois import __version__
from bac_whois.app.loop import DiscoveryLoop, DiscoveryResult
from bac_whois.app.resolver import AddressHint, resolve_destination
from bac_whois.app.stack import BACnetStack
from bac_whois.commands.options import addressing_options, loop_config
from bac_whois.connection import run_command
from bac_whois.encoding.primitives import MAX_INSTANCE
from bac_whois.formatting import print_error
from bac_whois.network.address import LOCAL_BROADCAST
from bac_whois.types.enums import Segmentation

logger = logging.getLogger(__name__)


@click.command()
@click.argument(
    "device_instance", type=click.IntRange(0, MAX_INSTANCE), default=MAX_INSTANCE, required=False
)
@click.argument("vendor_id", type=click.IntRange(0, 0xFFFF), default=260, required=False)
@click.argument("max_apdu", type=click.IntRange(min=0), default=1476, required=False)
@click.argument(
    "segmentation",
    type=click.IntRange(Segmentation.BOTH.value, Segmentation.NONE.value),
    default=Segmentation.NONE.value,
    required=False,
)
@addressing_options
@click.version_option(__version__, prog_name="bac-whois")
@click.pass_context
def iam(
    ctx: click.Context,
    device_instance: int,
    vendor_id: int,
    max_apdu: int,
    segmentation: int,
    mac: bytes | None,
    dnet: int | None,
    dadr: bytes | None,
    repeat: bool,
    retry: int,
    delay: int,
) -> None:
    """Announce a device with I-Am.

    SEGMENTATION is 0 (both), 1 (transmit), 2 (receive) or 3 (none).
    Without addressing options the announcement is a local broadcast.
    """
    hint = AddressHint(mac=mac, network=dnet, remote_mac=dadr)
    resolution = resolve_destination(hint, default=LOCAL_BROADCAST)
    config = loop_config(ctx, retry=retry, repeat=repeat, delay=delay)

    def _run(stack: BACnetStack) -> DiscoveryResult | None:
        loop = DiscoveryLoop(stack, config)
        try:
            return loop.run_announce(
                resolution.destination,
                device_instance,
                max_apdu,
                Segmentation(segmentation),
                vendor_id,
            )
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return None

    try:
        result = run_command(ctx.obj["datalink"], _run)
    except OSError as e:
        print_error(str(e))
        sys.exit(1)

    if result is not None and result.error is not None:
        click.echo(f"BACnet {result.error}", err=True)
