from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from coupon_portal.models.claim import Claim
from coupon_portal.models.coupon import CouponStatus
from coupon_portal.services.coupon_store import SqlCouponStore, StoreError
from tests.conftest import reload_coupon, seed_coupons


def _ms(dt: datetime) -> str:
    return str(int(dt.timestamp() * 1000))


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_status_creates_session_once(client):
    r = await client.get("/claim/status")
    assert r.status_code == 200
    body = r.json()
    assert body["can_claim"] is True
    assert body["time_remaining"] is None
    assert body["seconds_remaining"] == 0
    assert "coupon_session_id" in r.cookies

    r2 = await client.get("/claim/status")
    assert r2.json()["session_id"] == body["session_id"]
    assert "coupon_session_id" not in r2.cookies


async def test_claim_returns_code_then_rate_limits(client, db):
    (coupon,) = await seed_coupons(db, 1)
    await seed_coupons(db, 1, prefix="SPARE")

    r = await client.post("/claim", headers={"X-Forwarded-For": "198.51.100.4, 10.0.0.1"})
    assert r.status_code == 200, r.text
    code = r.json()["code"]
    assert code in {coupon.code, "SPARE0000"}
    assert "last_claim_time" in r.cookies

    claim = (await db.execute(select(Claim))).scalar_one()
    assert claim.ip_address == "198.51.100.4"

    status = (await client.get("/claim/status")).json()
    assert status["can_claim"] is False
    assert status["time_remaining"] == "60 minutes"
    assert claim.session_id == status["session_id"]

    r = await client.post("/claim")
    assert r.status_code == 429
    assert int(r.headers["Retry-After"]) > 0
    detail = r.json()["detail"]
    assert detail["error"] == "rate_limited"
    assert detail["retryable"] is False
    assert detail["time_remaining"] == "60 minutes"


async def test_claim_after_59_minutes_is_rate_limited(client, db):
    await seed_coupons(db, 1)
    client.cookies.set("last_claim_time", _ms(datetime.now(timezone.utc) - timedelta(minutes=59)))

    r = await client.post("/claim")
    assert r.status_code == 429
    assert r.json()["detail"]["time_remaining"] == "1 minute"


async def test_claim_after_an_hour_succeeds(client, db):
    (coupon,) = await seed_coupons(db, 1)
    client.cookies.set("last_claim_time", _ms(datetime.now(timezone.utc) - timedelta(minutes=61)))

    r = await client.post("/claim")
    assert r.status_code == 200, r.text
    assert r.json()["code"] == coupon.code

    fresh = await reload_coupon(db, coupon.id)
    assert fresh.status == CouponStatus.claimed.value


async def test_claim_without_inventory(client, db):
    await seed_coupons(db, 1, status=CouponStatus.disabled.value)

    r = await client.post("/claim")
    assert r.status_code == 404
    detail = r.json()["detail"]
    assert detail["error"] == "none_available"
    # The new session is still handed to the browser
    assert "coupon_session_id" in r.cookies
    assert "last_claim_time" not in r.cookies

    claims = (await db.execute(select(Claim))).scalars().all()
    assert claims == []


async def test_lost_race_is_conflict(client, db, monkeypatch):
    (coupon,) = await seed_coupons(db, 1)

    async def _lost(self, coupon_id, *, session_id, claimed_at):
        return False

    monkeypatch.setattr(SqlCouponStore, "mark_claimed", _lost)

    r = await client.post("/claim")
    assert r.status_code == 409
    detail = r.json()["detail"]
    assert detail["error"] == "already_claimed"
    assert detail["retryable"] is True
    assert "last_claim_time" not in r.cookies

    fresh = await reload_coupon(db, coupon.id)
    assert fresh.status == CouponStatus.available.value


async def test_failed_claim_insert_is_service_unavailable(client, db, monkeypatch):
    (coupon,) = await seed_coupons(db, 1)

    async def _broken(self, coupon_id, *, session_id, ip_address):
        raise StoreError("insert_claim failed")

    monkeypatch.setattr(SqlCouponStore, "insert_claim", _broken)

    r = await client.post("/claim")
    assert r.status_code == 503
    detail = r.json()["detail"]
    assert detail["error"] == "persistence_error"
    assert detail["retryable"] is False
    assert "coupon_session_id=" in r.headers["set-cookie"]
    assert "last_claim_time" not in r.cookies

    fresh = await reload_coupon(db, coupon.id)
    assert fresh.status == CouponStatus.available.value
    assert fresh.claimed_by is None
    assert fresh.claimed_at is None

    claims = (await db.execute(select(Claim))).scalars().all()
    assert claims == []
