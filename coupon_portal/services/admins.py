from __future__ import annotations

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coupon_portal.core.config import settings
from coupon_portal.core.security import hash_password, verify_password
from coupon_portal.models.admin_user import AdminUser


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def signup_allowed(db: AsyncSession) -> bool:
    if settings.ALLOW_ADMIN_SIGNUP:
        return True
    res = await db.execute(select(func.count()).select_from(AdminUser))
    return int(res.scalar_one()) == 0


async def create_admin(db: AsyncSession, *, email: str, password: str) -> AdminUser:
    """
    First admin can always sign up; further sign-ups need ALLOW_ADMIN_SIGNUP.
    """
    if not await signup_allowed(db):
        raise HTTPException(status_code=403, detail="Admin sign-up is disabled")

    clean_email = _normalize_email(email)
    existing = await db.execute(select(AdminUser.id).where(AdminUser.email == clean_email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    admin = AdminUser(email=clean_email, password_hash=hash_password(password), is_active=True)
    try:
        db.add(admin)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    except Exception:
        await db.rollback()
        raise

    await db.refresh(admin)
    logger.info("Admin created", admin_id=admin.id)
    return admin


async def authenticate_admin(db: AsyncSession, *, email: str, password: str) -> AdminUser:
    res = await db.execute(select(AdminUser).where(AdminUser.email == _normalize_email(email)))
    admin = res.scalar_one_or_none()

    if not admin or not verify_password(password, admin.password_hash):
        logger.warning("Failed admin login")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not admin.is_active:
        raise HTTPException(status_code=401, detail="Admin is inactive")

    return admin
