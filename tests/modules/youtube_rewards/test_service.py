"""
Tests for the YouTube subscription reward callback.

Every outcome of the callback is a redirect URL; these tests check which
URL comes back and which side effects happened on the way.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlsplit
from uuid import uuid4

import pytest

from admissions.modules.incentives.models import ClaimStatus, IncentiveType
from admissions.modules.shared import ExternalServiceError
from admissions.modules.youtube_rewards.client import ChannelSubscription, GoogleUser
from admissions.modules.youtube_rewards.service import (
    MSG_BAD_STATE,
    MSG_CANCELLED,
    MSG_NO_CODE,
    MSG_UNEXPECTED,
    MSG_UNVERIFIED_EMAIL,
    error_redirect,
    handle_oauth_callback,
    safe_redirect_url,
)

SERVICE = "admissions.modules.youtube_rewards.service"
MARKETING_URL = "https://neramclasses.com"
REDIRECT = "https://neramclasses.com/free-resources"


def query(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


@pytest.fixture
def mock_settings():
    with patch(f"{SERVICE}.settings") as settings:
        settings.marketing_url = MARKETING_URL
        settings.youtube_channel_id = "UCneram"
        yield settings


@pytest.fixture
def google_client():
    """Google calls succeed: token, profile and a fresh subscription."""
    with patch(f"{SERVICE}.client") as client:
        client.exchange_code_for_token = AsyncMock(return_value="ya29.token")
        client.get_user_info = AsyncMock(
            return_value=GoogleUser(
                id="1098",
                email="priya.raman@example.com",
                name="Priya Raman",
                verified_email=True,
            )
        )
        client.subscribe_to_channel = AsyncMock(
            return_value=ChannelSubscription(
                id="sub-1",
                channel_id="UCneram",
                subscribed_at="2026-10-19T10:00:00Z",
            )
        )
        yield client


@pytest.fixture
def reward_stack():
    """User upsert, coupon issuance and claim recording."""
    user = MagicMock()
    user.id = uuid4()
    coupon = MagicMock()
    coupon.code = "YTSUB50-7KQ2ZD"

    with (
        patch(f"{SERVICE}.UserRepository") as users,
        patch(f"{SERVICE}.coupon_service") as coupons,
        patch(f"{SERVICE}.ledger") as ledger,
    ):
        users.find_or_create_by_email = AsyncMock(return_value=user)
        coupons.issue_or_get = AsyncMock(return_value=coupon)
        ledger.record_claim = AsyncMock()
        yield {"user": user, "users": users, "coupons": coupons, "ledger": ledger}


async def callback(db, **overrides):
    params = {
        "code": "4/0Ab-code",
        "state": "abc123",
        "error": None,
        "stored_state": "abc123",
        "redirect_url": REDIRECT,
        "client_ip": "203.0.113.9",
        "user_agent": "pytest",
    }
    params.update(overrides)
    return await handle_oauth_callback(db, **params)


# ============================================
# Test safe_redirect_url
# ============================================


def test_safe_redirect_url_same_origin(mock_settings):
    assert safe_redirect_url(REDIRECT) == REDIRECT


@pytest.mark.parametrize(
    "url",
    [None, "", "/relative", "https://evil.example.com/phish", "http://neramclasses.com/x"],
)
def test_safe_redirect_url_falls_back(mock_settings, url):
    assert safe_redirect_url(url) == MARKETING_URL


# ============================================
# Test handle_oauth_callback
# ============================================


@pytest.mark.asyncio
async def test_callback_success(mock_db, mock_settings, google_client, reward_stack):
    url = await callback(mock_db)

    assert url.startswith("https://neramclasses.com/youtube-reward?")
    assert query(url) == {"coupon": "YTSUB50-7KQ2ZD", "name": "Priya Raman"}

    reward_stack["users"].find_or_create_by_email.assert_awaited_once()
    assert reward_stack["users"].find_or_create_by_email.call_args.kwargs["email_verified"] is True

    claim_call = reward_stack["ledger"].record_claim.call_args
    assert claim_call.args[2] == IncentiveType.YOUTUBE_SUBSCRIPTION
    assert claim_call.kwargs["status"] == ClaimStatus.VERIFIED
    assert claim_call.kwargs["commit"] is False
    evidence = claim_call.args[3]
    assert evidence["subscription_id"] == "sub-1"
    assert evidence["coupon_code"] == "YTSUB50-7KQ2ZD"
    assert evidence["ip_address"] == "203.0.113.9"
    mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_callback_state_mismatch(mock_db, mock_settings, google_client, reward_stack):
    url = await callback(mock_db, state="forged")

    assert url.startswith(REDIRECT)
    assert query(url) == {"error": MSG_BAD_STATE}
    google_client.exchange_code_for_token.assert_not_called()
    reward_stack["coupons"].issue_or_get.assert_not_called()
    mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_callback_missing_stored_state(mock_db, mock_settings, google_client, reward_stack):
    url = await callback(mock_db, stored_state=None)

    assert query(url)["error"] == MSG_BAD_STATE
    google_client.exchange_code_for_token.assert_not_called()


@pytest.mark.asyncio
async def test_callback_provider_error(mock_db, mock_settings, google_client, reward_stack):
    url = await callback(mock_db, error="access_denied", code=None)

    assert query(url)["error"] == MSG_CANCELLED
    google_client.exchange_code_for_token.assert_not_called()


@pytest.mark.asyncio
async def test_callback_without_code(mock_db, mock_settings, google_client, reward_stack):
    url = await callback(mock_db, code=None)

    assert query(url)["error"] == MSG_NO_CODE
    google_client.exchange_code_for_token.assert_not_called()


@pytest.mark.asyncio
async def test_callback_token_exchange_fails(mock_db, mock_settings, google_client, reward_stack):
    google_client.exchange_code_for_token.side_effect = ExternalServiceError(
        "youtube", "Failed to exchange authorization code"
    )

    url = await callback(mock_db)

    assert query(url)["error"] == "Failed to exchange authorization code"
    google_client.subscribe_to_channel.assert_not_called()
    reward_stack["users"].find_or_create_by_email.assert_not_called()
    reward_stack["ledger"].record_claim.assert_not_called()
    mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_callback_subscription_fails(mock_db, mock_settings, google_client, reward_stack):
    google_client.subscribe_to_channel.side_effect = ExternalServiceError(
        "youtube", "The caller does not have permission"
    )

    url = await callback(mock_db)

    assert query(url)["error"] == "The caller does not have permission"
    reward_stack["coupons"].issue_or_get.assert_not_called()


@pytest.mark.asyncio
async def test_callback_write_failure_rolls_back(
    mock_db, mock_settings, google_client, reward_stack
):
    reward_stack["ledger"].record_claim.side_effect = RuntimeError("connection reset")

    url = await callback(mock_db)

    assert query(url)["error"] == MSG_UNEXPECTED
    mock_db.rollback.assert_awaited_once()
    mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_callback_foreign_redirect_is_replaced(
    mock_db, mock_settings, google_client, reward_stack
):
    url = await callback(mock_db, redirect_url="https://evil.example.com/", state="forged")

    assert url.startswith(f"{MARKETING_URL}?")


@pytest.mark.asyncio
async def test_callback_unverified_email(mock_db, mock_settings, google_client, reward_stack):
    google_client.get_user_info.return_value = GoogleUser(
        id="1098",
        email="priya.raman@example.com",
        name="Priya Raman",
        verified_email=False,
    )

    url = await callback(mock_db)

    assert query(url) == {"error": MSG_UNVERIFIED_EMAIL}
    google_client.subscribe_to_channel.assert_not_called()
    reward_stack["users"].find_or_create_by_email.assert_not_called()
    reward_stack["coupons"].issue_or_get.assert_not_called()
    mock_db.commit.assert_not_called()


# ============================================
# Test error_redirect
# ============================================


def test_error_redirect_merges_existing_query():
    url = error_redirect("https://neramclasses.com/page?ref=x", "Something failed")

    assert url.count("?") == 1
    assert url.startswith("https://neramclasses.com/page?")
    assert parse_qs(urlsplit(url).query) == {"ref": ["x"], "error": ["Something failed"]}


def test_error_redirect_replaces_previous_error():
    url = error_redirect("https://neramclasses.com/page?error=old&utm_source=yt", "new")

    assert parse_qs(urlsplit(url).query) == {"utm_source": ["yt"], "error": ["new"]}


def test_error_redirect_without_query():
    assert error_redirect(MARKETING_URL, "No authorization code received") == (
        "https://neramclasses.com?error=No+authorization+code+received"
    )


@pytest.mark.asyncio
async def test_callback_keeps_redirect_query(mock_db, mock_settings, google_client, reward_stack):
    url = await callback(mock_db, redirect_url=f"{REDIRECT}?ref=yt", state="forged")

    assert url.count("?") == 1
    assert query(url) == {"ref": "yt", "error": MSG_BAD_STATE}


# ============================================
# Repeated callbacks against the real coupon and claim services
# ============================================


class InMemoryCouponRepository:
    """Coupon rows keyed by (user, incentive type), as the unique index keys them."""

    def __init__(self):
        self.issued = {}
        self.inserts = 0

    async def get_issued(self, db, user_id, incentive_type):
        return self.issued.get((user_id, incentive_type))

    async def insert_if_absent(self, db, **values):
        key = (values["issued_to_user_id"], values["incentive_type"])
        if key in self.issued:
            return None
        self.inserts += 1
        self.issued[key] = SimpleNamespace(id=uuid4(), **values)
        return self.issued[key]


class InMemoryClaimRepository:
    """Live claims keyed by (user, incentive type), as the partial unique index keys them."""

    def __init__(self):
        self.claims = {}

    async def get_live_claim(self, db, user_id, incentive_type):
        return self.claims.get((user_id, incentive_type))

    async def insert_if_absent(self, db, **values):
        key = (values["user_id"], values["incentive_type"])
        if key in self.claims:
            return None
        self.claims[key] = SimpleNamespace(id=uuid4(), **values)
        return self.claims[key]


@pytest.fixture
def in_memory_ledger():
    user = MagicMock()
    user.id = uuid4()
    coupons = InMemoryCouponRepository()
    claims = InMemoryClaimRepository()

    with (
        patch(f"{SERVICE}.UserRepository") as users,
        patch("admissions.modules.coupons.service.repository", coupons),
        patch("admissions.modules.incentives.service.repository", claims),
    ):
        users.find_or_create_by_email = AsyncMock(return_value=user)
        yield {"user": user, "coupons": coupons, "claims": claims}


@pytest.mark.asyncio
async def test_callback_twice_yields_same_coupon(
    mock_db, mock_settings, google_client, in_memory_ledger
):
    """Second callback: already subscribed, existing coupon and claim returned."""
    first = await callback(mock_db)

    google_client.subscribe_to_channel.return_value = ChannelSubscription(
        id="sub-1",
        channel_id="UCneram",
        subscribed_at="2026-10-19T10:00:00Z",
        already_subscribed=True,
    )
    second = await callback(mock_db)

    code = query(first)["coupon"]
    assert code.startswith("YTSUB50-")
    assert query(second)["coupon"] == code
    assert in_memory_ledger["coupons"].inserts == 1

    claims = in_memory_ledger["claims"].claims
    assert len(claims) == 1
    claim = claims[(in_memory_ledger["user"].id, IncentiveType.YOUTUBE_SUBSCRIPTION)]
    assert claim.status == ClaimStatus.VERIFIED
    assert claim.evidence["coupon_code"] == code
    assert claim.evidence["already_subscribed"] is False
    assert mock_db.commit.await_count == 2


@pytest.mark.asyncio
async def test_callbacks_racing_share_one_coupon(
    mock_db, mock_settings, google_client, in_memory_ledger
):
    """Both callbacks pass the first lookup before either inserts."""
    coupons = in_memory_ledger["coupons"]
    lookup = coupons.get_issued

    async def stale_first_lookup(db, user_id, incentive_type):
        coupons.get_issued = lookup
        return None

    first = await callback(mock_db)
    coupons.get_issued = stale_first_lookup
    second = await callback(mock_db)

    assert query(first)["coupon"] == query(second)["coupon"]
    assert coupons.inserts == 1
    assert len(in_memory_ledger["claims"].claims) == 1
