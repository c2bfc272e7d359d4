"""
Applicants module - admission lifecycle from submission to enrollment.

Public API Endpoints:
- POST /applications - Submit an application
- GET /applications/{id}/status - Applicant-facing status
- POST /applications/{id}/payment-confirmation - Confirm payment and enroll

Admin API Endpoints:
- /admin/applicants/... - Review, approve, reject, archive, fee preview,
  scholarship verification
"""

from .admin_router import router as admin_router
from .router import router

__all__ = ["router", "admin_router"]
