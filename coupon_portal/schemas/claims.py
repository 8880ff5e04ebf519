# coupon_portal/schemas/claims.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from coupon_portal.schemas.coupons import AdminCouponResponse


class ClaimStatusOut(BaseModel):
    session_id: str
    can_claim: bool
    time_remaining: str | None = None
    seconds_remaining: int = 0
    next_claim_at: datetime | None = None


class ClaimOut(BaseModel):
    code: str
    claimed_at: datetime


class AdminClaimOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ip_address: str
    session_id: str
    created_at: datetime
    coupon: AdminCouponResponse | None
