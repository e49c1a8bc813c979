"""Options shared by the whois and iam commands."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import click

from bac_whois.config import DEFAULT_DELAY_MS, LoopConfig
from bac_whois.parsers import C_INTEGER, MAC_ADDRESS

F = TypeVar("F", bound=Callable[..., Any])


def addressing_options(func: F) -> F:
    """Attach the destination and retry options to a command."""
    options = [
        click.option(
            "--mac",
            type=MAC_ADDRESS,
            default=None,
            help="Destination MAC: an IP[:port] or hex octets such as 00:21:70:7e:32:bb. "
            "For a remote network this is the router.",
        ),
        click.option(
            "--dnet",
            type=C_INTEGER,
            default=None,
            help="Destination network number, 0-65535. 0 is the local network "
            "and 65535 is a global broadcast.",
        ),
        click.option(
            "--dadr",
            type=MAC_ADDRESS,
            default=None,
            help="MAC of the device on the destination network.",
        ),
        click.option(
            "--repeat",
            is_flag=True,
            default=False,
            help="Resend forever, until interrupted.",
        ),
        click.option(
            "--retry",
            type=C_INTEGER,
            default=0,
            show_default=True,
            help="Number of resends after the first request.",
        ),
        click.option(
            "--delay",
            type=C_INTEGER,
            default=DEFAULT_DELAY_MS,
            show_default=True,
            help="Milliseconds to wait for traffic on each poll.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def loop_config(
    ctx: click.Context,
    *,
    retry: int,
    repeat: bool,
    delay: int,
    timeout: int = 0,
) -> LoopConfig:
    """Combine command options with the group's APDU settings."""
    return LoopConfig(
        retries=retry,
        repeat_forever=repeat,
        delay_ms=delay,
        timeout_ms=timeout,
        apdu_timeout_ms=ctx.obj["apdu_timeout"],
        apdu_retries=ctx.obj["apdu_retries"],
    )
