# coupon_portal/services/claims.py
from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from coupon_portal.services.coupon_store import CouponStore, StoreError
from coupon_portal.services.rate_limiter import RateLimiter


UNKNOWN_IP = "0.0.0.0"


class ClaimError(Exception):
    kind = "claim_failed"
    retryable = False


class RateLimited(ClaimError):
    kind = "rate_limited"

    def __init__(self, remaining: str | None, seconds_remaining: int):
        self.remaining = remaining
        self.seconds_remaining = seconds_remaining
        super().__init__(f"Please wait {remaining} before claiming another coupon")


class NoneAvailable(ClaimError):
    kind = "none_available"

    def __init__(self):
        super().__init__("No coupons available at the moment. Please try again later.")


class AlreadyClaimed(ClaimError):
    kind = "already_claimed"
    retryable = True

    def __init__(self):
        super().__init__("That coupon was just claimed by someone else. Please try again.")


class PersistenceError(ClaimError):
    kind = "persistence_error"

    def __init__(self):
        super().__init__("Failed to claim coupon. Please try again later.")


@dataclass(frozen=True)
class ClaimResult:
    code: str
    coupon_id: uuid.UUID
    claimed_at: datetime


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ClaimCoordinator:
    """
    Hands out at most one coupon per winning claimant.

    The coupon is taken with the store's conditional update, then the Claim row
    is written. If that write fails the coupon is released again, so a coupon is
    never left claimed without a Claim row unless the release itself fails.
    """

    def __init__(
        self,
        store: CouponStore,
        limiter: RateLimiter,
        *,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self.store = store
        self.limiter = limiter
        self.clock = clock

    async def claim_one(self, session_id: str, ip_address: str | None = None) -> ClaimResult:
        now = self.clock()

        if not self.limiter.is_claim_allowed(now):
            logger.debug("Claim rate limited", session_id=session_id)
            raise RateLimited(
                self.limiter.time_remaining(now),
                self.limiter.seconds_remaining(now),
            )

        try:
            coupon = await self.store.find_available(now)
        except StoreError as e:
            logger.error("Reading available coupons failed", session_id=session_id, error=str(e))
            raise PersistenceError() from e

        if coupon is None:
            logger.info("No coupons available", session_id=session_id)
            raise NoneAvailable()

        try:
            won = await self.store.mark_claimed(coupon.id, session_id=session_id, claimed_at=now)
        except StoreError as e:
            logger.error("Claiming coupon failed", coupon_id=str(coupon.id), error=str(e))
            raise PersistenceError() from e

        if not won:
            logger.info("Lost claim race", coupon_id=str(coupon.id), session_id=session_id)
            raise AlreadyClaimed()

        try:
            await self.store.insert_claim(
                coupon.id,
                session_id=session_id,
                ip_address=ip_address or UNKNOWN_IP,
            )
        except StoreError as e:
            logger.warning("Recording claim failed, releasing coupon", coupon_id=str(coupon.id))
            await self._release(coupon.id)
            raise PersistenceError() from e

        self.limiter.record_claim(now)
        logger.info("Coupon claimed", coupon_id=str(coupon.id), session_id=session_id)
        return ClaimResult(code=coupon.code, coupon_id=coupon.id, claimed_at=now)

    async def _release(self, coupon_id: uuid.UUID) -> None:
        try:
            await self.store.release(coupon_id)
        except StoreError:
            # Coupon stays claimed with no Claim row; not retried.
            logger.exception("Releasing coupon after failed claim insert failed", coupon_id=str(coupon_id))
