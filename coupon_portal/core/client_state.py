"""
Browser-held claim state.

Two cookies back the anonymous claim flow: a random session identifier and the
time of the last successful claim. Both are written with the same retention
window and are read here into one typed record, so no other module parses
cookie strings.

Cookie formats:
  - session:    "<uuid4>.<issued epoch ms>"
  - last claim: "<epoch ms>"

Values that do not parse, or whose retention window has passed, read as absent.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from fastapi import Request, Response
from loguru import logger

from coupon_portal.core.config import settings


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _to_ms(when: datetime) -> int:
    return int(when.timestamp() * 1000)


def _from_ms(raw: str) -> datetime | None:
    try:
        return datetime.fromtimestamp(int(raw) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


@dataclass
class ClientState:
    session_id: str | None = None
    session_expires_at: datetime | None = None
    last_claim_at: datetime | None = None
    last_claim_expires_at: datetime | None = None


class ClientStateCookies:
    """Reads the claim cookies once and queues any writes until `apply()`."""

    def __init__(
        self,
        cookies: Mapping[str, str],
        *,
        secure: bool = False,
        now: datetime | None = None,
        max_age: int | None = None,
    ):
        self.session_cookie = settings.SESSION_COOKIE_NAME
        self.last_claim_cookie = settings.LAST_CLAIM_COOKIE_NAME
        self.max_age = int(max_age if max_age is not None else settings.CLIENT_STATE_MAX_AGE_SECONDS)
        self.retention = timedelta(seconds=self.max_age)
        self.secure = secure
        self._pending: dict[str, str] = {}
        self.state = self._load(cookies, now or _now_utc())

    @classmethod
    def from_request(cls, request: Request, *, now: datetime | None = None) -> "ClientStateCookies":
        proto = request.headers.get("x-forwarded-proto", request.url.scheme)
        return cls(request.cookies, secure=(proto == "https"), now=now)

    def _load(self, cookies: Mapping[str, str], now: datetime) -> ClientState:
        state = ClientState()

        raw_session = cookies.get(self.session_cookie)
        if raw_session:
            session_id, _, issued_raw = raw_session.partition(".")
            issued_at = _from_ms(issued_raw)
            if _is_uuid(session_id) and issued_at is not None:
                expires_at = issued_at + self.retention
                if now < expires_at:
                    state.session_id = session_id
                    state.session_expires_at = expires_at
            else:
                logger.debug("Ignoring malformed session cookie")

        raw_last = cookies.get(self.last_claim_cookie)
        if raw_last:
            last_claim_at = _from_ms(raw_last)
            if last_claim_at is not None:
                expires_at = last_claim_at + self.retention
                if now < expires_at:
                    state.last_claim_at = last_claim_at
                    state.last_claim_expires_at = expires_at
            else:
                logger.debug("Ignoring malformed last-claim cookie")

        return state

    def set_session_id(self, session_id: str, *, now: datetime) -> None:
        self.state.session_id = session_id
        self.state.session_expires_at = now + self.retention
        self._pending[self.session_cookie] = f"{session_id}.{_to_ms(now)}"

    def set_last_claim(self, when: datetime) -> None:
        self.state.last_claim_at = when
        self.state.last_claim_expires_at = when + self.retention
        self._pending[self.last_claim_cookie] = str(_to_ms(when))

    @property
    def pending(self) -> dict[str, str]:
        return dict(self._pending)

    def apply(self, response: Response) -> None:
        for key, value in self._pending.items():
            response.set_cookie(
                key=key,
                value=value,
                max_age=self.max_age,
                path="/",
                samesite="lax",
                secure=self.secure,
                httponly=True,
            )


def _is_uuid(value: str) -> bool:
    try:
        UUID(value)
    except (TypeError, ValueError):
        return False
    return True
