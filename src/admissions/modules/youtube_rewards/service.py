"""
YouTube Subscription Reward Service

Turns a Google OAuth callback into a subscription, a coupon and a verified
cashback claim.

Flow:
1. Check the CSRF state against the cookie (before anything else)
2. Exchange the code, fetch the Google profile, subscribe to the channel
   (the Google email must be verified)
3. Upsert the user by email
4. Issue (or fetch) the YouTube coupon and record the verified claim,
   committed together

The callback is a browser redirect, so every failure becomes a redirect
back to the caller with an ``error`` query parameter. Repeating the callback
yields the same coupon and a single claim.
"""

import logging
from datetime import UTC, datetime
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.config import settings
from admissions.core.security import constant_time_equals
from admissions.modules.coupons import service as coupon_service
from admissions.modules.incentives import service as ledger
from admissions.modules.incentives.models import ClaimStatus, IncentiveType
from admissions.modules.shared import (
    ExternalServiceError,
    PreconditionError,
    SecurityError,
    ServiceError,
)
from admissions.modules.users import UserRepository
from admissions.modules.youtube_rewards import client

logger = logging.getLogger(__name__)

SUCCESS_PATH = "/youtube-reward"

MSG_CANCELLED = "YouTube authorization was cancelled or failed"
MSG_BAD_STATE = "Invalid authorization state. Please try again."
MSG_NO_CODE = "No authorization code received"
MSG_UNEXPECTED = "An unexpected error occurred"
MSG_UNVERIFIED_EMAIL = "Your Google email address is not verified"


def safe_redirect_url(redirect_url: str | None) -> str:
    """
    Redirect target restricted to the marketing site origin.

    Anything else (missing, relative, foreign host) falls back to the
    marketing URL.
    """
    if not redirect_url:
        return settings.marketing_url

    allowed = urlsplit(settings.marketing_url)
    target = urlsplit(redirect_url)
    if (target.scheme, target.netloc) != (allowed.scheme, allowed.netloc):
        logger.warning(f"Ignoring redirect to foreign origin: {target.netloc}")
        return settings.marketing_url

    return redirect_url


def error_redirect(redirect_url: str, message: str) -> str:
    """``redirect_url`` with ``error`` added to (or replacing it in) its query string."""
    parts = urlsplit(redirect_url)
    params = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "error"]
    params.append(("error", message))
    return urlunsplit(parts._replace(query=urlencode(params)))


def success_redirect(redirect_url: str, coupon_code: str, name: str) -> str:
    return f"{urljoin(redirect_url, SUCCESS_PATH)}?{urlencode({'coupon': coupon_code, 'name': name})}"


def _check_state(state: str | None, stored_state: str | None) -> None:
    if not state or not stored_state or not constant_time_equals(state, stored_state):
        raise SecurityError(MSG_BAD_STATE)


async def _reconcile(
    db: AsyncSession,
    code: str | None,
    state: str | None,
    stored_state: str | None,
    client_ip: str | None,
    user_agent: str | None,
) -> tuple[str, str]:
    """
    Run the callback steps.

    Returns:
        Tuple of (coupon code, display name)

    Raises:
        SecurityError: On state mismatch, before any side effect, or when
                       Google has not verified the email address
        PreconditionError: When no authorization code was received
        ExternalServiceError: When a Google call fails (nothing written yet)
    """
    _check_state(state, stored_state)

    if not code:
        raise PreconditionError(MSG_NO_CODE)

    access_token = await client.exchange_code_for_token(code)
    google_user = await client.get_user_info(access_token)
    if not google_user.verified_email:
        raise SecurityError(MSG_UNVERIFIED_EMAIL)

    subscription = await client.subscribe_to_channel(access_token, settings.youtube_channel_id)

    try:
        user = await UserRepository.find_or_create_by_email(
            db,
            google_user.email,
            name=google_user.name,
            google_id=google_user.id,
            avatar_url=google_user.picture,
            email_verified=True,
        )

        coupon = await coupon_service.issue_or_get(
            db, user.id, IncentiveType.YOUTUBE_SUBSCRIPTION
        )

        await ledger.record_claim(
            db,
            user.id,
            IncentiveType.YOUTUBE_SUBSCRIPTION,
            {
                "subscription_id": subscription.id,
                "channel_id": subscription.channel_id,
                "subscribed_at": subscription.subscribed_at or datetime.now(UTC).isoformat(),
                "already_subscribed": subscription.already_subscribed,
                "coupon_code": coupon.code,
                "ip_address": client_ip,
                "user_agent": user_agent,
            },
            status=ClaimStatus.VERIFIED,
            commit=False,
        )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"YouTube subscription rewarded for user {user.id} with coupon {coupon.code}")
    return coupon.code, google_user.name


async def handle_oauth_callback(
    db: AsyncSession,
    code: str | None,
    state: str | None,
    error: str | None,
    stored_state: str | None,
    redirect_url: str | None,
    client_ip: str | None = None,
    user_agent: str | None = None,
) -> str:
    """
    Handle the Google OAuth callback.

    Args:
        db: Database session
        code: Authorization code from Google
        state: State echoed back by Google
        error: Error reported by Google (user cancelled, etc.)
        stored_state: State stored in the cookie when the flow started
        redirect_url: Page to return to, from the cookie
        client_ip: Caller IP, recorded as claim evidence
        user_agent: Caller user agent, recorded as claim evidence

    Returns:
        The URL to redirect the browser to; never raises
    """
    redirect_url = safe_redirect_url(redirect_url)

    if error:
        logger.warning(f"YouTube OAuth error from provider: {error}")
        return error_redirect(redirect_url, MSG_CANCELLED)

    try:
        coupon_code, name = await _reconcile(
            db, code, state, stored_state, client_ip, user_agent
        )
    except SecurityError as e:
        logger.warning(f"YouTube OAuth callback refused: {e.message}")
        return error_redirect(redirect_url, e.message)
    except ExternalServiceError as e:
        logger.error(f"YouTube OAuth callback failed: {e.message}")
        return error_redirect(redirect_url, e.reason)
    except ServiceError as e:
        logger.warning(f"YouTube OAuth callback rejected: {e.message}")
        return error_redirect(redirect_url, e.message)
    except Exception as e:
        logger.exception(f"YouTube OAuth callback error: {e}")
        return error_redirect(redirect_url, MSG_UNEXPECTED)

    return success_redirect(redirect_url, coupon_code, name)
