"""Send, wait, dispatch and retry loop driving a discovery run.

The loop is single threaded.  Its only blocking call is the bounded
receive on the :class:`DiscoveryStack`, whose timeout doubles as the
loop tick.  Timers are explicit deadlines compared against an injectable
monotonic clock so runs can be replayed deterministically in tests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Callable

    from bac_whois.config import LoopConfig
    from bac_whois.network.address import BACnetAddress
    from bac_whois.network.layer import ReceivedFrame
    from bac_whois.services.errors import BACnetBaseError
    from bac_whois.types.enums import Segmentation

logger = logging.getLogger(__name__)

Clock: TypeAlias = "Callable[[], float]"

MAINTENANCE_INTERVAL_MS = 1000


class DispatchOutcome(Enum):
    """How the stack disposed of one received frame."""

    IGNORED = "ignored"
    HANDLED = "handled"
    MALFORMED = "malformed"
    PROTOCOL_ERROR = "protocol_error"


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of dispatching a frame, with the peer error if there was one."""

    outcome: DispatchOutcome
    error: BACnetBaseError | None = None


class DiscoveryStack(Protocol):
    """Protocol services the discovery loop drives."""

    def send_i_am(
        self,
        destination: BACnetAddress,
        device_id: int,
        max_apdu: int,
        segmentation: Segmentation,
        vendor_id: int,
    ) -> None: ...

    def send_who_is(
        self,
        destination: BACnetAddress,
        low_limit: int | None,
        high_limit: int | None,
    ) -> None: ...

    def receive_frame(self, timeout_ms: int) -> ReceivedFrame | None: ...

    def dispatch(self, frame: ReceivedFrame) -> DispatchResult: ...

    def maintenance_tick(self, elapsed_seconds: int) -> None: ...


class Deadline:
    """A restartable timer measured against *clock*."""

    def __init__(self, interval_ms: int, clock: Clock) -> None:
        self.interval_ms = interval_ms
        self._clock = clock
        self._expires_at = 0.0
        self.reset()

    def reset(self) -> None:
        self._expires_at = self._clock() + self.interval_ms / 1000

    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    @property
    def interval_seconds(self) -> int:
        return self.interval_ms // 1000


class LoopPhase(Enum):
    WAITING_FOR_FRAME = "waiting_for_frame"
    DISPATCH = "dispatch"
    RESEND = "resend"
    DONE = "done"


@dataclass
class LoopState:
    """Mutable state of one run, owned by :class:`DiscoveryLoop`."""

    remaining_retries: int
    repeat_forever: bool
    error_detected: bool = False
    error: BACnetBaseError | None = None
    sends: int = 0
    phase: LoopPhase = LoopPhase.WAITING_FOR_FRAME

    @property
    def may_resend(self) -> bool:
        return self.repeat_forever or self.remaining_retries > 0

    def consume_retry(self) -> None:
        if self.remaining_retries > 0:
            self.remaining_retries -= 1


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Summary of a finished run.  The roster lives in the collector."""

    sends: int
    error_detected: bool
    error: BACnetBaseError | None = None


class DiscoveryLoop:
    """Drive Who-Is queries and I-Am announcements through a stack.

    Args:
        stack: Protocol services used for sending, receiving and dispatch.
        config: Retry and timing settings.
        clock: Monotonic clock in seconds.
    """

    def __init__(
        self,
        stack: DiscoveryStack,
        config: LoopConfig,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self._stack = stack
        self._config = config
        self._clock = clock

    def run_query(
        self,
        destination: BACnetAddress,
        low_limit: int | None = None,
        high_limit: int | None = None,
    ) -> DiscoveryResult:
        """Send Who-Is and collect responses until the retries run out.

        With ``retries=N`` and no repeat, exactly ``1 + N`` requests go
        out, one every ``request_timeout_ms``.  An Abort or Reject from a
        peer ends the run at once.
        """
        state = self._new_state()
        request_timer = Deadline(self._config.request_timeout_ms, self._clock)
        maintenance_timer = Deadline(MAINTENANCE_INTERVAL_MS, self._clock)

        def send() -> None:
            self._stack.send_who_is(destination, low_limit, high_limit)

        self._send(state, send)
        while state.phase is not LoopPhase.DONE:
            self._poll(state)
            if state.phase is LoopPhase.DONE:
                break
            self._maintain(maintenance_timer)
            if request_timer.expired():
                if state.may_resend:
                    state.consume_retry()
                    self._send(state, send)
                    request_timer.reset()
                else:
                    state.phase = LoopPhase.DONE

        return self._finish(state)

    def run_announce(
        self,
        destination: BACnetAddress,
        device_id: int,
        max_apdu: int,
        segmentation: Segmentation,
        vendor_id: int,
    ) -> DiscoveryResult:
        """Send I-Am, then resend once per receive wait while retries remain.

        Between sends the loop listens for up to ``delay_ms`` so an Abort
        or Reject from a peer can end the run.
        """
        state = self._new_state()
        maintenance_timer = Deadline(MAINTENANCE_INTERVAL_MS, self._clock)

        def send() -> None:
            self._stack.send_i_am(destination, device_id, max_apdu, segmentation, vendor_id)

        self._send(state, send)
        while state.may_resend:
            self._poll(state)
            if state.phase is LoopPhase.DONE:
                break
            self._maintain(maintenance_timer)
            state.consume_retry()
            self._send(state, send)

        return self._finish(state)

    def _new_state(self) -> LoopState:
        return LoopState(
            remaining_retries=self._config.retries,
            repeat_forever=self._config.repeat_forever,
        )

    def _send(self, state: LoopState, send: Callable[[], None]) -> None:
        if state.sends:
            state.phase = LoopPhase.RESEND
        send()
        state.sends += 1
        state.phase = LoopPhase.WAITING_FOR_FRAME
        logger.debug("Request %d sent, %d retries left", state.sends, state.remaining_retries)

    def _poll(self, state: LoopState) -> None:
        """Wait for one frame and dispatch it."""
        frame = self._stack.receive_frame(self._config.delay_ms)
        if frame is None or not frame.apdu:
            return

        state.phase = LoopPhase.DISPATCH
        result = self._stack.dispatch(frame)
        if result.outcome is DispatchOutcome.PROTOCOL_ERROR:
            state.error_detected = True
            state.error = result.error
            state.phase = LoopPhase.DONE
            return
        state.phase = LoopPhase.WAITING_FOR_FRAME

    def _maintain(self, timer: Deadline) -> None:
        if timer.expired():
            self._stack.maintenance_tick(timer.interval_seconds)
            timer.reset()

    def _finish(self, state: LoopState) -> DiscoveryResult:
        state.phase = LoopPhase.DONE
        return DiscoveryResult(
            sends=state.sends,
            error_detected=state.error_detected,
            error=state.error,
        )
