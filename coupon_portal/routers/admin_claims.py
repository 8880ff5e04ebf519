from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coupon_portal.core.db import get_db
from coupon_portal.core.deps import get_current_admin
from coupon_portal.models.admin_user import AdminUser
from coupon_portal.schemas.claims import AdminClaimOut
from coupon_portal.services.coupons import admin_list_claims

router = APIRouter(prefix="/admin/claims", tags=["Admin - Claims"])


@router.get("", response_model=list[AdminClaimOut])
async def list_claims(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """
    Claim history across all coupons (newest first), each with its coupon.
    """
    return await admin_list_claims(db, limit=limit, offset=offset)
