"""
Coupons module - incentive coupon issuance, validation and redemption.

API Endpoints:
- GET /coupons/{code}/validate - Validate a coupon against an amount

Background Jobs (via APScheduler):
- coupons_deactivate_expired: Runs hourly, deactivates coupons past valid_until
"""

from .jobs import register_coupon_jobs
from .router import router

__all__ = ["router", "register_coupon_jobs"]
