# coupon_portal/models/coupon.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from coupon_portal.core.db import Base


class CouponStatus(str, Enum):
    available = "available"
    claimed = "claimed"
    disabled = "disabled"


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint(
            "status IN ('available','claimed','disabled')",
            name="coupons_status_check",
        ),
        # claimed <=> claimed_by and claimed_at both set
        CheckConstraint(
            "(status = 'claimed' AND claimed_by IS NOT NULL AND claimed_at IS NOT NULL)"
            " OR (status <> 'claimed' AND claimed_by IS NULL AND claimed_at IS NULL)",
            name="coupons_claimed_fields_check",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    status: Mapped[str] = mapped_column(
        Text, nullable=False, default=CouponStatus.available.value, index=True
    )

    claimed_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
