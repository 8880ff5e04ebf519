# coupon_portal/models/claim.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from coupon_portal.core.db import Base


class Claim(Base):
    """Append-only record of one successful coupon hand-out."""

    __tablename__ = "claims"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    coupon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("coupons.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    ip_address: Mapped[str] = mapped_column(Text, nullable=False, default="0.0.0.0")
    session_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    coupon = relationship("Coupon", lazy="selectin")
