from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from coupon_portal.core.db import get_db
from coupon_portal.core.deps import get_current_admin
from coupon_portal.core.security import (
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from coupon_portal.models.admin_user import AdminUser
from coupon_portal.schemas.auth import AdminOut, RefreshRequest, SignupRequest, TokenPair
from coupon_portal.services.admins import authenticate_admin, create_admin

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_pair(admin_id: int) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(admin_id=admin_id),
        refresh_token=create_refresh_token(admin_id=admin_id),
    )


@router.post("/signup", response_model=AdminOut, status_code=201)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db),
):
    return await create_admin(db, email=payload.email, password=payload.password)


@router.post("/login", response_model=TokenPair)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    # username field carries the admin email
    admin = await authenticate_admin(db, email=form_data.username, password=form_data.password)
    return _token_pair(int(admin.id))


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        claims = decode_token(payload.refresh_token, expected_type="refresh")
        admin_id = int(claims.get("sub"))
    except (TokenError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    admin = await db.get(AdminUser, admin_id)
    if not admin or not admin.is_active:
        raise HTTPException(status_code=401, detail="Admin not found or inactive")

    return _token_pair(int(admin.id))


@router.get("/me", response_model=AdminOut)
async def me(current_admin: AdminUser = Depends(get_current_admin)):
    return current_admin
