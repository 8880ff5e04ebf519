# coupon_portal/routers/admin_coupons.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from coupon_portal.core.db import get_db
from coupon_portal.core.deps import get_current_admin
from coupon_portal.models.admin_user import AdminUser
from coupon_portal.models.coupon import CouponStatus
from coupon_portal.schemas.coupons import (
    AdminCouponIssueRequest,
    AdminCouponResponse,
    CouponStatsOut,
)
from coupon_portal.services.coupons import (
    admin_coupon_stats,
    admin_delete_coupon,
    admin_issue_coupons,
    admin_list_coupons,
    admin_toggle_coupon,
)

router = APIRouter(prefix="/admin/coupons", tags=["Admin - Coupons"])


@router.post("", response_model=list[AdminCouponResponse], status_code=201)
async def issue_coupons(
    body: AdminCouponIssueRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    return await admin_issue_coupons(
        db,
        count=body.count,
        expiry_days=body.expiry_days,
        actor_admin_id=admin.id,
    )


@router.get("", response_model=list[AdminCouponResponse])
async def list_coupons(
    status: CouponStatus | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    return await admin_list_coupons(
        db,
        status=status.value if status else None,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=CouponStatsOut)
async def coupon_stats(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    return await admin_coupon_stats(db)


@router.post("/{coupon_id}/toggle", response_model=AdminCouponResponse)
async def toggle_coupon(
    coupon_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    return await admin_toggle_coupon(db, coupon_id=coupon_id, actor_admin_id=admin.id)


@router.delete("/{coupon_id}", status_code=204)
async def delete_coupon(
    coupon_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    await admin_delete_coupon(db, coupon_id=coupon_id, actor_admin_id=admin.id)
    return Response(status_code=204)
