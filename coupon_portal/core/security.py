from __future__ import annotations

import bcrypt
import jwt
from datetime import datetime, timedelta, timezone

from coupon_portal.core.config import settings


class TokenError(Exception):
    pass


BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes and newer releases refuse longer input
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash an admin password for the `admin_users.password_hash` column."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


# -------------------------
# JWT tokens
# -------------------------
def _encode(*, admin_id: int, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(admin_id),
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def create_access_token(*, admin_id: int) -> str:
    return _encode(
        admin_id=admin_id,
        token_type="access",
        lifetime=timedelta(minutes=settings.JWT_ACCESS_MINUTES),
    )


def create_refresh_token(*, admin_id: int) -> str:
    return _encode(
        admin_id=admin_id,
        token_type="refresh",
        lifetime=timedelta(days=settings.JWT_REFRESH_DAYS),
    )


def decode_token(token: str, *, expected_type: str | None = None) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e

    if expected_type is not None and payload.get("type") != expected_type:
        raise TokenError(f"Expected a {expected_type} token")
    return payload
