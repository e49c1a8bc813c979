"""Tests for the discovery send/wait/retry loop."""

import pytest

from bac_whois.app.loop import (
    MAINTENANCE_INTERVAL_MS,
    Deadline,
    DiscoveryLoop,
    DispatchOutcome,
    DispatchResult,
    LoopPhase,
    LoopState,
)
from bac_whois.config import LoopConfig
from bac_whois.network.address import GLOBAL_BROADCAST, LOCAL_BROADCAST
from bac_whois.services.errors import BACnetAbortError, BACnetRejectError
from bac_whois.types.enums import AbortReason, RejectReason, Segmentation
from tests.helpers import FakeClock, FakeStack

ABORT = DispatchResult(
    DispatchOutcome.PROTOCOL_ERROR, BACnetAbortError(AbortReason.SEGMENTATION_NOT_SUPPORTED)
)
REJECT = DispatchResult(
    DispatchOutcome.PROTOCOL_ERROR, BACnetRejectError(RejectReason.UNRECOGNIZED_SERVICE)
)
HANDLED = DispatchResult(DispatchOutcome.HANDLED)
MALFORMED = DispatchResult(DispatchOutcome.MALFORMED)


def _loop(script=None, **config):
    clock = FakeClock()
    stack = FakeStack(clock, script)
    return DiscoveryLoop(stack, LoopConfig(**config), clock=clock), stack


def _announce(loop):
    return loop.run_announce(LOCAL_BROADCAST, 1234, 1476, Segmentation.NONE, 260)


class TestDeadline:
    def test_not_expired_before_interval(self):
        clock = FakeClock()
        deadline = Deadline(500, clock)
        clock.advance_ms(499)
        assert not deadline.expired()

    def test_expired_at_interval(self):
        clock = FakeClock(start=0.0)
        deadline = Deadline(500, clock)
        clock.advance_ms(500)
        assert deadline.expired()

    def test_reset_restarts_from_now(self):
        clock = FakeClock(start=0.0)
        deadline = Deadline(500, clock)
        clock.advance_ms(600)
        deadline.reset()
        assert not deadline.expired()
        clock.advance_ms(500)
        assert deadline.expired()

    def test_interval_seconds(self):
        assert Deadline(MAINTENANCE_INTERVAL_MS, FakeClock()).interval_seconds == 1


class TestLoopState:
    def test_may_resend_with_retries(self):
        assert LoopState(remaining_retries=1, repeat_forever=False).may_resend

    def test_may_resend_forever(self):
        assert LoopState(remaining_retries=0, repeat_forever=True).may_resend

    def test_consume_retry_stops_at_zero(self):
        state = LoopState(remaining_retries=1, repeat_forever=True)
        state.consume_retry()
        state.consume_retry()
        assert state.remaining_retries == 0


class TestQuery:
    def test_retries_give_one_plus_n_sends(self):
        loop, stack = _loop(retries=2, timeout_ms=300, delay_ms=100)
        result = loop.run_query(GLOBAL_BROADCAST)
        assert len(stack.sent) == 3
        assert result.sends == 3
        assert result.error_detected is False
        assert result.error is None

    def test_no_retries_single_send(self):
        loop, stack = _loop(retries=0, timeout_ms=300, delay_ms=100)
        result = loop.run_query(GLOBAL_BROADCAST)
        assert result.sends == 1
        assert stack.receives >= 3

    def test_resends_spaced_by_request_timeout(self):
        loop, stack = _loop(retries=2, timeout_ms=1000, delay_ms=100)
        loop.run_query(GLOBAL_BROADCAST)
        gaps = [b - a for a, b in zip(stack.send_times, stack.send_times[1:], strict=False)]
        assert all(gap == pytest.approx(1.0, abs=0.11) for gap in gaps)

    def test_who_is_arguments_forwarded(self):
        loop, stack = _loop(timeout_ms=100, delay_ms=100)
        loop.run_query(GLOBAL_BROADCAST, 10, 20)
        assert stack.sent[0] == ("who-is", GLOBAL_BROADCAST, 10, 20)

    def test_default_timeout_from_apdu_settings(self):
        loop, stack = _loop(retries=1, delay_ms=500, apdu_timeout_ms=1000, apdu_retries=2)
        loop.run_query(GLOBAL_BROADCAST)
        assert stack.send_times[1] - stack.send_times[0] == pytest.approx(2.0, abs=0.51)

    def test_abort_stops_immediately(self):
        loop, stack = _loop([None, ABORT], retries=5, timeout_ms=10_000, delay_ms=100)
        result = loop.run_query(GLOBAL_BROADCAST)
        assert result.error_detected is True
        assert result.error is ABORT.error
        assert result.sends == 1
        assert stack.receives == 2

    def test_reject_stops_immediately(self):
        loop, _ = _loop([REJECT], repeat_forever=True, timeout_ms=100, delay_ms=100)
        result = loop.run_query(GLOBAL_BROADCAST)
        assert isinstance(result.error, BACnetRejectError)

    def test_repeat_forever_keeps_sending_until_error(self):
        script = [None] * 20 + [ABORT]
        loop, stack = _loop(script, repeat_forever=True, timeout_ms=150, delay_ms=100)
        result = loop.run_query(GLOBAL_BROADCAST)
        assert result.sends == 11
        assert stack.receives == 21
        assert result.error_detected

    def test_malformed_frames_do_not_stop_the_loop(self):
        loop, stack = _loop([MALFORMED, MALFORMED], retries=1, timeout_ms=500, delay_ms=100)
        result = loop.run_query(GLOBAL_BROADCAST)
        assert result.sends == 2
        assert result.error_detected is False
        assert len(stack.dispatched) == 2

    def test_empty_receives_never_set_error(self):
        loop, stack = _loop([None] * 10, retries=1, timeout_ms=300, delay_ms=100)
        result = loop.run_query(GLOBAL_BROADCAST)
        assert result.error_detected is False
        assert stack.dispatched == []

    def test_maintenance_ticks_every_second(self):
        loop, stack = _loop(timeout_ms=3500, delay_ms=100)
        loop.run_query(GLOBAL_BROADCAST)
        assert len(stack.maintenance) == 3
        assert set(stack.maintenance) == {1}

    def test_maintenance_checked_before_request_timer(self):
        loop, stack = _loop(retries=1, timeout_ms=1000, delay_ms=1000)
        loop.run_query(GLOBAL_BROADCAST)
        assert stack.events[:3] == ["send", "maintenance", "send"]


class TestAnnounce:
    def test_single_send_without_retries(self):
        loop, stack = _loop()
        result = _announce(loop)
        assert result.sends == 1
        assert stack.receives == 0

    def test_retries_give_one_plus_n_sends(self):
        loop, stack = _loop(retries=2)
        result = _announce(loop)
        assert result.sends == 3
        assert stack.receives == 2

    def test_i_am_arguments_forwarded(self):
        loop, stack = _loop()
        _announce(loop)
        assert stack.sent[0] == ("i-am", LOCAL_BROADCAST, 1234, 1476, Segmentation.NONE, 260)

    def test_repeat_stops_within_one_poll_after_abort(self):
        loop, stack = _loop([None, None, ABORT], repeat_forever=True, delay_ms=100)
        result = _announce(loop)
        assert result.error_detected is True
        assert result.sends == 3
        assert stack.receives == 3
        assert stack.clock() == pytest.approx(100.0 + 0.3)

    def test_handled_frames_keep_repeating(self):
        loop, stack = _loop([HANDLED, HANDLED, REJECT], repeat_forever=True)
        result = _announce(loop)
        assert result.sends == 3
        assert isinstance(result.error, BACnetRejectError)


class TestLoopConfig:
    def test_negative_retries_clamped(self):
        assert LoopConfig(retries=-4).retries == 0

    def test_explicit_timeout(self):
        assert LoopConfig(timeout_ms=250).request_timeout_ms == 250

    def test_derived_timeout(self):
        assert LoopConfig().request_timeout_ms == 9000


class TestLoopPhase:
    def test_phases_cover_state_machine(self):
        assert {p.name for p in LoopPhase} == {"WAITING_FOR_FRAME", "DISPATCH", "RESEND", "DONE"}
