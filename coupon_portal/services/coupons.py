# coupon_portal/services/coupons.py
from __future__ import annotations

import secrets
import string
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coupon_portal.core.config import settings
from coupon_portal.models.claim import Claim
from coupon_portal.models.coupon import Coupon, CouponStatus


CODE_ALPHABET = string.ascii_uppercase + string.digits


def _generate_coupon_code(length: int | None = None) -> str:
    n = int(length or settings.COUPON_CODE_LENGTH)
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(n))


async def admin_issue_coupons(
    db: AsyncSession,
    *,
    count: int,
    expiry_days: int,
    actor_admin_id: int | None = None,
) -> list[Coupon]:
    expires_at = datetime.now(timezone.utc) + timedelta(days=int(expiry_days))

    codes: set[str] = set()
    while len(codes) < count:
        codes.add(_generate_coupon_code())

    created: list[Coupon] = []
    try:
        for code in codes:
            c = Coupon(
                code=code,
                status=CouponStatus.available.value,
                expires_at=expires_at,
            )
            db.add(c)
            created.append(c)

        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Coupon code collision, please retry")
    except Exception:
        await db.rollback()
        raise

    for c in created:
        await db.refresh(c)

    logger.info("Issued coupons", count=len(created), expiry_days=expiry_days, admin_id=actor_admin_id)
    return created


async def admin_list_coupons(
    db: AsyncSession,
    *,
    status: str | None,
    limit: int,
    offset: int,
) -> list[Coupon]:
    stmt = select(Coupon).order_by(Coupon.created_at.desc(), Coupon.code.asc())

    if status:
        stmt = stmt.where(Coupon.status == status)

    res = await db.execute(stmt.limit(int(limit)).offset(int(offset)))
    return list(res.scalars().all())


async def _get_coupon_for_update(db: AsyncSession, coupon_id: uuid.UUID) -> Coupon:
    stmt = select(Coupon).where(Coupon.id == coupon_id).with_for_update()
    res = await db.execute(stmt)
    coupon = res.scalar_one_or_none()

    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


async def admin_toggle_coupon(
    db: AsyncSession,
    *,
    coupon_id: uuid.UUID,
    actor_admin_id: int | None = None,
) -> Coupon:
    coupon = await _get_coupon_for_update(db, coupon_id)

    if coupon.status == CouponStatus.claimed.value:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Claimed coupons cannot be enabled or disabled")

    new_status = (
        CouponStatus.disabled.value
        if coupon.status == CouponStatus.available.value
        else CouponStatus.available.value
    )

    try:
        coupon.status = new_status
        await db.commit()
        await db.refresh(coupon)
    except Exception:
        await db.rollback()
        raise

    logger.info("Toggled coupon", coupon_id=str(coupon_id), status=new_status, admin_id=actor_admin_id)
    return coupon


async def admin_delete_coupon(
    db: AsyncSession,
    *,
    coupon_id: uuid.UUID,
    actor_admin_id: int | None = None,
) -> None:
    coupon = await _get_coupon_for_update(db, coupon_id)

    # claims are kept as the audit trail of hand-outs
    if coupon.status == CouponStatus.claimed.value:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Claimed coupons cannot be deleted")

    try:
        await db.delete(coupon)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Deleted coupon", coupon_id=str(coupon_id), admin_id=actor_admin_id)


async def admin_list_claims(
    db: AsyncSession,
    *,
    limit: int,
    offset: int,
) -> list[Claim]:
    """Claim history (newest first) with each claim's coupon loaded."""
    stmt = (
        select(Claim)
        .order_by(Claim.created_at.desc(), Claim.id.asc())
        .limit(int(limit))
        .offset(int(offset))
    )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def admin_coupon_stats(db: AsyncSession) -> dict[str, int]:
    res = await db.execute(select(Coupon.status, func.count()).group_by(Coupon.status))

    stats = {s.value: 0 for s in CouponStatus}
    for status, n in res.all():
        stats[str(status)] = int(n)
    stats["total"] = sum(stats[s.value] for s in CouponStatus)

    claims_res = await db.execute(select(func.count()).select_from(Claim))
    stats["claims"] = int(claims_res.scalar_one())
    return stats
