# coupon_portal/routers/claims.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from coupon_portal.core.client_state import ClientStateCookies
from coupon_portal.core.db import get_db
from coupon_portal.schemas.claims import ClaimOut, ClaimStatusOut
from coupon_portal.services.claims import (
    AlreadyClaimed,
    ClaimCoordinator,
    ClaimError,
    NoneAvailable,
    RateLimited,
)
from coupon_portal.services.coupon_store import SqlCouponStore
from coupon_portal.services.rate_limiter import RateLimiter

router = APIRouter(prefix="/claim", tags=["Claim"])


ERROR_STATUS = {
    RateLimited: 429,
    NoneAvailable: 404,
    AlreadyClaimed: 409,
}


def get_rate_limiter(request: Request) -> RateLimiter:
    return RateLimiter(ClientStateCookies.from_request(request))


def _client_ip(request: Request) -> str | None:
    # Best effort only; proxies may strip or forge it.
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def _error_response(err: ClaimError, limiter: RateLimiter) -> JSONResponse:
    body = {
        "error": err.kind,
        "message": str(err),
        "retryable": err.retryable,
        "time_remaining": getattr(err, "remaining", None),
    }
    resp = JSONResponse(status_code=ERROR_STATUS.get(type(err), 503), content={"detail": body})
    if isinstance(err, RateLimited):
        resp.headers["Retry-After"] = str(max(1, err.seconds_remaining))
    limiter.cookies.apply(resp)
    return resp


@router.get("/status", response_model=ClaimStatusOut)
async def claim_status(
    response: Response,
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    session_id = limiter.get_or_create_identifier()
    now = limiter.clock()
    can_claim = limiter.is_claim_allowed(now)

    limiter.cookies.apply(response)
    return ClaimStatusOut(
        session_id=session_id,
        can_claim=can_claim,
        time_remaining=limiter.time_remaining(now),
        seconds_remaining=limiter.seconds_remaining(now),
        next_claim_at=None if can_claim else limiter.next_claim_at(),
    )


@router.post("", response_model=ClaimOut)
async def claim_coupon(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    session_id = limiter.get_or_create_identifier()
    coordinator = ClaimCoordinator(SqlCouponStore(db), limiter)

    try:
        result = await coordinator.claim_one(session_id, ip_address=_client_ip(request))
    except ClaimError as err:
        return _error_response(err, limiter)

    limiter.cookies.apply(response)
    return ClaimOut(code=result.code, claimed_at=result.claimed_at)
