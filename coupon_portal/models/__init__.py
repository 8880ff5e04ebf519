# coupon_portal/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from coupon_portal.models.admin_user import AdminUser  # noqa: F401
from coupon_portal.models.coupon import Coupon, CouponStatus  # noqa: F401
from coupon_portal.models.claim import Claim  # noqa: F401
