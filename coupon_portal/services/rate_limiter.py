from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from coupon_portal.core.client_state import ClientStateCookies
from coupon_portal.core.config import settings


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """
    One claim per browser per cooldown window.

    Every check is computed from the last-claim timestamp held in the client
    state; nothing is cached between calls, so the countdown shown to the
    visitor and the gate applied at claim time come from the same predicate.
    """

    def __init__(
        self,
        cookies: ClientStateCookies,
        *,
        cooldown: timedelta | None = None,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self.cookies = cookies
        self.cooldown = cooldown or timedelta(minutes=settings.CLAIM_COOLDOWN_MINUTES)
        self.clock = clock

    def get_or_create_identifier(self) -> str:
        state = self.cookies.state
        if state.session_id:
            return state.session_id

        session_id = str(uuid4())
        self.cookies.set_session_id(session_id, now=self.clock())
        return session_id

    def next_claim_at(self) -> datetime | None:
        last = self.cookies.state.last_claim_at
        if last is None:
            return None
        return last + self.cooldown

    def is_claim_allowed(self, now: datetime | None = None) -> bool:
        next_at = self.next_claim_at()
        if next_at is None:
            return True
        return (now or self.clock()) >= next_at

    def seconds_remaining(self, now: datetime | None = None) -> int:
        next_at = self.next_claim_at()
        if next_at is None:
            return 0
        left = (next_at - (now or self.clock())).total_seconds()
        return max(0, math.ceil(left))

    def record_claim(self, now: datetime | None = None) -> None:
        self.cookies.set_last_claim(now or self.clock())

    def time_remaining(self, now: datetime | None = None) -> str | None:
        now = now or self.clock()
        if self.is_claim_allowed(now):
            return None

        left = (self.next_claim_at() - now).total_seconds()
        minutes = math.ceil(left / 60)
        if minutes > 60:
            return "1 hour"
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
