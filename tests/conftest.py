import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

import coupon_portal.models  # noqa: E402,F401
from coupon_portal.core.db import Base, get_db  # noqa: E402
from coupon_portal.main import app  # noqa: E402
from coupon_portal.models.coupon import Coupon, CouponStatus  # noqa: E402


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'coupons.db'}", poolclass=NullPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_headers(client):
    r = await client.post("/auth/signup", json={"email": "admin@example.com", "password": "secret123"})
    assert r.status_code == 201, r.text

    r = await client.post(
        "/auth/login",
        data={"username": "admin@example.com", "password": "secret123"},
    )
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


async def seed_coupons(db, n: int, *, status: str = CouponStatus.available.value, expires_in_days: int = 7, prefix: str = "CODE"):
    expires_at = datetime.now(timezone.utc) + timedelta(days=expires_in_days)
    coupons = []
    for i in range(n):
        c = Coupon(code=f"{prefix}{i:04d}", status=status, expires_at=expires_at)
        db.add(c)
        coupons.append(c)
    await db.commit()
    return coupons


async def reload_coupon(db, coupon_id) -> Coupon:
    res = await db.execute(
        select(Coupon).where(Coupon.id == coupon_id).execution_options(populate_existing=True)
    )
    return res.scalar_one()
