"""
Google / YouTube API Client

Thin async wrappers over the Google OAuth token endpoint, the userinfo
endpoint and the YouTube Data API v3 subscriptions resource.

Every call uses a short timeout. Any failure (transport error, timeout,
non-2xx response, malformed body) raises ExternalServiceError so the caller
can abort before writing anything.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from admissions.core.config import settings
from admissions.modules.shared import ExternalServiceError

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"

OAUTH_SCOPES = [
    "https://www.googleapis.com/auth/youtube.force-ssl",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

SERVICE_NAME = "youtube"


@dataclass
class GoogleUser:
    """Profile returned by the Google userinfo endpoint."""

    id: str
    email: str
    name: str
    picture: str | None = None
    verified_email: bool = False


@dataclass
class ChannelSubscription:
    id: str | None
    channel_id: str
    subscribed_at: str | None
    already_subscribed: bool = False


def build_consent_url(state: str) -> str:
    """Google consent screen URL requesting YouTube and profile scopes."""
    params = {
        "client_id": settings.google_youtube_client_id,
        "redirect_uri": settings.youtube_oauth_redirect_uri,
        "response_type": "code",
        "scope": " ".join(OAUTH_SCOPES),
        "state": state,
        "access_type": "offline",
        "prompt": "consent",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.oauth_timeout_seconds)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or f"HTTP {response.status_code}"
    if isinstance(error, str):
        return body.get("error_description") or error
    return f"HTTP {response.status_code}"


def _json_body(response: httpx.Response, failure: str) -> dict:
    """Decoded JSON object of a response; anything else is an ExternalServiceError."""
    try:
        body = response.json()
    except ValueError as e:
        logger.error(f"Malformed response body from Google (HTTP {response.status_code})")
        raise ExternalServiceError(SERVICE_NAME, failure) from e
    if not isinstance(body, dict):
        logger.error(f"Unexpected response body from Google (HTTP {response.status_code})")
        raise ExternalServiceError(SERVICE_NAME, failure)
    return body


async def exchange_code_for_token(code: str) -> str:
    """
    Exchange an authorization code for an access token.

    Returns:
        The access token

    Raises:
        ExternalServiceError: On timeout, transport failure or rejection
    """
    data = {
        "code": code,
        "client_id": settings.google_youtube_client_id,
        "client_secret": settings.google_youtube_client_secret,
        "redirect_uri": settings.youtube_oauth_redirect_uri,
        "grant_type": "authorization_code",
    }
    try:
        async with _client() as client:
            response = await client.post(GOOGLE_TOKEN_URL, data=data)
    except httpx.HTTPError as e:
        logger.error(f"Token exchange request failed: {e}")
        raise ExternalServiceError(SERVICE_NAME, "Failed to exchange authorization code") from e

    if response.status_code != 200:
        logger.error(f"Token exchange rejected: {_error_message(response)}")
        raise ExternalServiceError(SERVICE_NAME, "Failed to exchange authorization code")

    access_token = _json_body(response, "Failed to exchange authorization code").get(
        "access_token"
    )
    if not access_token:
        raise ExternalServiceError(SERVICE_NAME, "Failed to exchange authorization code")
    return access_token


async def get_user_info(access_token: str) -> GoogleUser:
    """
    Fetch the Google profile of the token owner.

    Raises:
        ExternalServiceError: On failure or when no email is returned
    """
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        async with _client() as client:
            response = await client.get(GOOGLE_USERINFO_URL, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Userinfo request failed: {e}")
        raise ExternalServiceError(SERVICE_NAME, "Failed to get user information") from e

    if response.status_code != 200:
        logger.error(f"Userinfo rejected: {_error_message(response)}")
        raise ExternalServiceError(SERVICE_NAME, "Failed to get user information")

    body = _json_body(response, "Failed to get user information")
    if not body.get("email") or not body.get("id"):
        raise ExternalServiceError(SERVICE_NAME, "Failed to get user information")

    return GoogleUser(
        id=body["id"],
        email=body["email"],
        name=body.get("name") or body["email"].split("@")[0],
        picture=body.get("picture"),
        verified_email=bool(body.get("verified_email", False)),
    )


def _parse_subscription(item: dict, already_subscribed: bool) -> ChannelSubscription:
    snippet = item.get("snippet")
    if not isinstance(snippet, dict):
        snippet = {}
    resource = snippet.get("resourceId")
    if not isinstance(resource, dict):
        resource = {}
    return ChannelSubscription(
        id=item.get("id"),
        channel_id=resource.get("channelId", settings.youtube_channel_id),
        subscribed_at=snippet.get("publishedAt"),
        already_subscribed=already_subscribed,
    )


async def find_subscription(
    client: httpx.AsyncClient,
    access_token: str,
    channel_id: str,
) -> ChannelSubscription | None:
    """The token owner's subscription to ``channel_id``, if any."""
    response = await client.get(
        f"{YOUTUBE_API_BASE}/subscriptions",
        params={"part": "snippet", "mine": "true", "forChannelId": channel_id},
        headers={"Authorization": f"Bearer {access_token}"},
    )
    if response.status_code != 200:
        logger.warning(f"Subscription lookup failed: {_error_message(response)}")
        return None

    items = _json_body(response, "Failed to subscribe to channel").get("items") or []
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return None
    return _parse_subscription(items[0], already_subscribed=True)


def _is_duplicate(response: httpx.Response) -> bool:
    if response.status_code != 400:
        return False
    try:
        errors = response.json().get("error", {}).get("errors") or []
    except (ValueError, AttributeError):
        return False
    return bool(errors) and errors[0].get("reason") == "subscriptionDuplicate"


async def subscribe_to_channel(access_token: str, channel_id: str) -> ChannelSubscription:
    """
    Subscribe the token owner to ``channel_id``.

    An existing subscription, or a ``subscriptionDuplicate`` rejection,
    counts as success.

    Raises:
        ExternalServiceError: If the subscription could not be made
    """
    try:
        async with _client() as client:
            existing = await find_subscription(client, access_token, channel_id)
            if existing:
                logger.info("User already subscribed to channel")
                return existing

            response = await client.post(
                f"{YOUTUBE_API_BASE}/subscriptions",
                params={"part": "snippet"},
                headers={"Authorization": f"Bearer {access_token}"},
                json={
                    "snippet": {
                        "resourceId": {"kind": "youtube#channel", "channelId": channel_id},
                    },
                },
            )

            if _is_duplicate(response):
                recheck = await find_subscription(client, access_token, channel_id)
                return recheck or ChannelSubscription(
                    id=None,
                    channel_id=channel_id,
                    subscribed_at=None,
                    already_subscribed=True,
                )
    except httpx.HTTPError as e:
        logger.error(f"Subscription request failed: {e}")
        raise ExternalServiceError(SERVICE_NAME, "Failed to subscribe to channel") from e

    if response.status_code not in (200, 201):
        message = _error_message(response)
        logger.error(f"Subscription rejected: {message}")
        raise ExternalServiceError(SERVICE_NAME, message or "Failed to subscribe to channel")

    return _parse_subscription(
        _json_body(response, "Failed to subscribe to channel"), already_subscribed=False
    )
