"""
Incentives module - cashback claim ledger.

A claim is recorded at most once per user and incentive type. Admins verify
pending claims and mark verified ones processed once paid. The eligible
total (verified + processed) is attached to the applicant at enrollment.

Admin API Endpoints:
- POST /admin/claims/{id}/verify
- POST /admin/claims/{id}/process
"""

from .models import INCENTIVE_AMOUNTS, ClaimStatus, IncentiveClaim, IncentiveType
from .router import router

__all__ = ["INCENTIVE_AMOUNTS", "ClaimStatus", "IncentiveClaim", "IncentiveType", "router"]
