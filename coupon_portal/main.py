from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables + FKs correctly
import coupon_portal.models  # noqa: F401

from coupon_portal.core.config import settings
from coupon_portal.core.db import create_tables
from coupon_portal.core.logging import setup_logging

# Routers
from coupon_portal.routers.health import router as health_router
from coupon_portal.routers.auth import router as auth_router
from coupon_portal.routers.claims import router as claims_router
from coupon_portal.routers.admin_coupons import router as admin_coupons_router
from coupon_portal.routers.admin_claims import router as admin_claims_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
    logger.info("Coupon portal started")
    yield


app = FastAPI(title="Coupon Portal", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)

# Public claim flow
app.include_router(claims_router)

# Auth & admin
app.include_router(auth_router)
app.include_router(admin_coupons_router)
app.include_router(admin_claims_router)
