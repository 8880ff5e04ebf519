# coupon_portal/schemas/coupons.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from coupon_portal.core.config import settings


class AdminCouponIssueRequest(BaseModel):
    count: int = Field(1, ge=1, le=500)
    expiry_days: int = Field(default_factory=lambda: settings.COUPON_DEFAULT_EXPIRY_DAYS, ge=1, le=3650)


class AdminCouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    status: str
    claimed_by: str | None
    claimed_at: datetime | None
    expires_at: datetime
    created_at: datetime


class CouponStatsOut(BaseModel):
    available: int = 0
    claimed: int = 0
    disabled: int = 0
    total: int = 0
    claims: int = 0
