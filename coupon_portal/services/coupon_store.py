# coupon_portal/services/coupon_store.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from coupon_portal.models.claim import Claim
from coupon_portal.models.coupon import Coupon, CouponStatus


class StoreError(Exception):
    pass


@dataclass(frozen=True)
class AvailableCoupon:
    id: uuid.UUID
    code: str


class CouponStore(Protocol):
    """
    What the claim flow may do to the shared coupon inventory.

    `mark_claimed` is the only way a coupon leaves `available` during a claim:
    it applies only while the row is still available and reports whether it did.
    """

    async def find_available(self, now: datetime) -> AvailableCoupon | None: ...

    async def mark_claimed(
        self, coupon_id: uuid.UUID, *, session_id: str, claimed_at: datetime
    ) -> bool: ...

    async def insert_claim(
        self, coupon_id: uuid.UUID, *, session_id: str, ip_address: str
    ) -> None: ...

    async def release(self, coupon_id: uuid.UUID) -> None: ...


class SqlCouponStore:
    """CouponStore over an AsyncSession. Each write commits on its own."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, stmt, *, action: str, commit: bool):
        try:
            res = await self.db.execute(stmt)
            if commit:
                await self.db.commit()
            return res
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"{action} failed") from e

    async def find_available(self, now: datetime) -> AvailableCoupon | None:
        stmt = (
            select(Coupon.id, Coupon.code)
            .where(Coupon.status == CouponStatus.available.value)
            .where(Coupon.expires_at > now)
            .limit(1)
        )
        res = await self._execute(stmt, action="find_available", commit=False)
        row = res.first()
        if row is None:
            return None
        return AvailableCoupon(id=row[0], code=str(row[1]))

    async def mark_claimed(
        self, coupon_id: uuid.UUID, *, session_id: str, claimed_at: datetime
    ) -> bool:
        stmt = (
            update(Coupon)
            .where(Coupon.id == coupon_id)
            .where(Coupon.status == CouponStatus.available.value)
            .values(
                status=CouponStatus.claimed.value,
                claimed_by=session_id,
                claimed_at=claimed_at,
            )
            .execution_options(synchronize_session=False)
        )
        res = await self._execute(stmt, action="mark_claimed", commit=True)
        return res.rowcount == 1

    async def insert_claim(
        self, coupon_id: uuid.UUID, *, session_id: str, ip_address: str
    ) -> None:
        try:
            self.db.add(Claim(coupon_id=coupon_id, session_id=session_id, ip_address=ip_address))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError("insert_claim failed") from e

    async def release(self, coupon_id: uuid.UUID) -> None:
        stmt = (
            update(Coupon)
            .where(Coupon.id == coupon_id)
            .values(
                status=CouponStatus.available.value,
                claimed_by=None,
                claimed_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        await self._execute(stmt, action="release", commit=True)
