from datetime import timedelta

import pytest

from coupon_portal.core.client_state import ClientStateCookies
from coupon_portal.services.rate_limiter import RateLimiter
from tests.conftest import FakeClock


def _limiter(clock, cookies=None):
    return RateLimiter(ClientStateCookies(cookies or {}, now=clock.now), clock=clock)


def test_fresh_browser_may_claim():
    clock = FakeClock()
    limiter = _limiter(clock)

    assert limiter.is_claim_allowed() is True
    assert limiter.time_remaining() is None
    assert limiter.seconds_remaining() == 0
    assert limiter.next_claim_at() is None


@pytest.mark.parametrize("minutes", [0, 1, 30, 59, 59.99])
def test_blocked_within_the_hour(minutes):
    clock = FakeClock()
    limiter = _limiter(clock)
    limiter.record_claim()

    clock.advance(minutes=minutes)
    assert limiter.is_claim_allowed() is False


@pytest.mark.parametrize("minutes", [60, 61, 600])
def test_allowed_from_the_hour_boundary(minutes):
    clock = FakeClock()
    limiter = _limiter(clock)
    limiter.record_claim()

    clock.advance(minutes=minutes)
    assert limiter.is_claim_allowed() is True
    assert limiter.time_remaining() is None


@pytest.mark.parametrize(
    "elapsed, expected",
    [
        (timedelta(0), "60 minutes"),
        (timedelta(minutes=30, seconds=30), "30 minutes"),
        (timedelta(minutes=58), "2 minutes"),
        (timedelta(minutes=59), "1 minute"),
        (timedelta(minutes=59, seconds=59), "1 minute"),
    ],
)
def test_time_remaining_rounds_up(elapsed, expected):
    clock = FakeClock()
    limiter = _limiter(clock)
    limiter.record_claim()

    clock.advance(seconds=elapsed.total_seconds())
    assert limiter.time_remaining() == expected


def test_time_remaining_caps_at_one_hour():
    clock = FakeClock()
    # Last claim stamped ahead of the server clock
    limiter = _limiter(clock)
    limiter.record_claim(clock.now + timedelta(minutes=10))

    assert limiter.is_claim_allowed() is False
    assert limiter.time_remaining() == "1 hour"


def test_seconds_remaining_and_next_claim_at():
    clock = FakeClock()
    limiter = _limiter(clock)
    start = clock.now
    limiter.record_claim()

    clock.advance(minutes=59)
    assert limiter.seconds_remaining() == 60
    assert limiter.next_claim_at() == start + timedelta(hours=1)


def test_record_claim_queues_cookie():
    clock = FakeClock()
    limiter = _limiter(clock)
    limiter.record_claim()

    assert limiter.cookies.pending == {"last_claim_time": str(int(clock.now.timestamp() * 1000))}


def test_identifier_is_stable_within_retention():
    clock = FakeClock()
    limiter = _limiter(clock)

    first = limiter.get_or_create_identifier()
    second = limiter.get_or_create_identifier()
    assert first == second

    # Same browser on its next request, a few hours later
    persisted = limiter.cookies.pending
    clock.advance(hours=23)
    later = _limiter(clock, persisted)
    assert later.get_or_create_identifier() == first
    assert later.cookies.pending == {}


def test_identifier_is_replaced_after_retention():
    clock = FakeClock()
    limiter = _limiter(clock)
    first = limiter.get_or_create_identifier()

    persisted = limiter.cookies.pending
    clock.advance(hours=24)
    later = _limiter(clock, persisted)

    assert later.get_or_create_identifier() != first
    assert "coupon_session_id" in later.cookies.pending


def test_gate_reads_persisted_last_claim():
    clock = FakeClock()
    limiter = _limiter(clock)
    limiter.record_claim()
    persisted = limiter.cookies.pending

    clock.advance(minutes=59)
    assert _limiter(clock, persisted).is_claim_allowed() is False

    clock.advance(minutes=1)
    assert _limiter(clock, persisted).is_claim_allowed() is True
