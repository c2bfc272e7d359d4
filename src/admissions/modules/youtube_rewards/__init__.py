"""
YouTube rewards module - subscribe via Google OAuth, get a coupon.

API Endpoints:
- GET /youtube/subscribe - Start the OAuth flow
- GET /youtube/oauth-callback - Finish it and redirect back with the coupon
"""

from .router import router

__all__ = ["router"]
