"""
YouTube Rewards Router

Endpoints:
- GET /youtube/subscribe?redirect= - Start the OAuth flow (redirects to Google)
- GET /youtube/oauth-callback - Google returns here; always redirects back

Security:
- 32-byte random state stored in an httpOnly cookie and compared on callback
- Both cookies expire after 10 minutes and are cleared by the callback
- Redirect targets are restricted to the marketing site
"""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.config import settings
from admissions.core.database import get_db
from admissions.modules.youtube_rewards import client, service

logger = logging.getLogger(__name__)

router = APIRouter()

STATE_COOKIE = "youtube_oauth_state"
REDIRECT_COOKIE = "youtube_redirect_url"


def _set_cookie(response: RedirectResponse, key: str, value: str) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=settings.oauth_state_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else None)


@router.get(
    "/subscribe",
    summary="Start YouTube Subscription Reward",
    description="""
Redirects to Google's consent screen asking for YouTube and profile access.

The state token and the `redirect` page are kept in httpOnly cookies for
10 minutes.
""",
    response_class=RedirectResponse,
    responses={
        307: {"description": "Redirect to Google consent screen"},
        503: {"description": "YouTube OAuth is not configured"},
    },
)
async def subscribe(
    redirect: str | None = Query(None, description="Page to return to afterwards"),
) -> RedirectResponse:
    if not settings.google_youtube_client_id:
        logger.error("YouTube OAuth requested but GOOGLE_YOUTUBE_CLIENT_ID is not set")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "YOUTUBE_OAUTH_NOT_CONFIGURED",
                "message": "YouTube OAuth not configured",
            },
        )

    state = secrets.token_hex(32)
    response = RedirectResponse(client.build_consent_url(state))

    _set_cookie(response, STATE_COOKIE, state)
    if redirect:
        _set_cookie(response, REDIRECT_COOKIE, service.safe_redirect_url(redirect))

    return response


@router.get(
    "/oauth-callback",
    summary="YouTube OAuth Callback",
    description="""
Completes the subscription reward and redirects back to the marketing site:
`/youtube-reward?coupon=...&name=...` on success, `?error=...` otherwise.
""",
    response_class=RedirectResponse,
    responses={307: {"description": "Redirect back to the marketing site"}},
)
async def oauth_callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    url = await service.handle_oauth_callback(
        db,
        code=code,
        state=state,
        error=error,
        stored_state=request.cookies.get(STATE_COOKIE),
        redirect_url=request.cookies.get(REDIRECT_COOKIE),
        client_ip=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    response = RedirectResponse(url)
    response.delete_cookie(STATE_COOKIE, path="/")
    response.delete_cookie(REDIRECT_COOKIE, path="/")
    return response
