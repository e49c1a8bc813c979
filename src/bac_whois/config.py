"""Run settings gathered from command-line options and the environment."""

from __future__ import annotations

from dataclasses import dataclass

from bac_whois.network.address import DEFAULT_PORT, BIPAddress

DEFAULT_APDU_TIMEOUT_MS = 3000
DEFAULT_APDU_RETRIES = 3
DEFAULT_DELAY_MS = 100
DEFAULT_BBMD_TTL = 60


@dataclass(frozen=True, slots=True)
class DatalinkConfig:
    """BACnet/IP port settings.

    Attributes:
        interface: Local IP address to bind (``0.0.0.0`` for all).
        port: UDP port, 47808 by default.
        broadcast_address: Directed broadcast address of the subnet.
        bbmd_address: BBMD to register with as a foreign device, if any.
        bbmd_ttl: Foreign device registration time-to-live in seconds.
    """

    interface: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    broadcast_address: str = "255.255.255.255"
    bbmd_address: BIPAddress | None = None
    bbmd_ttl: int = DEFAULT_BBMD_TTL


@dataclass(frozen=True, slots=True)
class LoopConfig:
    """Timing and retry settings for one discovery run.

    Attributes:
        retries: Resends after the first one; negative values clamp to 0.
        repeat_forever: Keep resending until interrupted or an error arrives.
        delay_ms: Upper bound on each receive wait, also the loop tick.
        timeout_ms: Time between query resends; 0 derives it from the
            APDU timeout and retry count.
        apdu_timeout_ms: Per-attempt APDU timeout of the device profile.
        apdu_retries: APDU retry count of the device profile.
    """

    retries: int = 0
    repeat_forever: bool = False
    delay_ms: int = DEFAULT_DELAY_MS
    timeout_ms: int = 0
    apdu_timeout_ms: int = DEFAULT_APDU_TIMEOUT_MS
    apdu_retries: int = DEFAULT_APDU_RETRIES

    def __post_init__(self) -> None:
        if self.retries < 0:
            object.__setattr__(self, "retries", 0)
        if self.delay_ms < 0:
            object.__setattr__(self, "delay_ms", 0)

    @property
    def request_timeout_ms(self) -> int:
        """Interval of the query resend timer in milliseconds."""
        if self.timeout_ms > 0:
            return self.timeout_ms
        return self.apdu_timeout_ms * self.apdu_retries
