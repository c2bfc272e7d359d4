"""
Tests for coupon issuance, validation and redemption.
"""

import re
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from admissions.modules.coupons.jobs import deactivate_expired_coupons
from admissions.modules.coupons.models import Coupon, CouponDiscountType
from admissions.modules.coupons.service import (
    MAX_ISSUE_ATTEMPTS,
    generate_code,
    issue_or_get,
    redeem_coupon,
    validate_coupon,
)
from admissions.modules.incentives.models import IncentiveType
from admissions.modules.shared import ConflictError, CouponNotFoundError

REPOSITORY = "admissions.modules.coupons.service.repository"


def make_coupon(**overrides):
    now = datetime.now(UTC)
    coupon = MagicMock(spec=Coupon)
    coupon.code = "YTSUB50-7KQ2ZD"
    coupon.discount_type = CouponDiscountType.FIXED
    coupon.discount_value = 50
    coupon.valid_from = now - timedelta(days=1)
    coupon.valid_until = now + timedelta(days=29)
    coupon.max_uses = 1
    coupon.used_count = 0
    coupon.min_amount = 0
    coupon.is_active = True
    for key, value in overrides.items():
        setattr(coupon, key, value)
    return coupon


# ============================================
# Test generate_code
# ============================================


def test_generate_code_format():
    for _ in range(20):
        assert re.fullmatch(r"YTSUB50-[A-Z0-9]{6}", generate_code(IncentiveType.YOUTUBE_SUBSCRIPTION))


def test_generate_code_prefix_per_incentive():
    assert generate_code(IncentiveType.INSTAGRAM_FOLLOW).startswith("IGFOL50-")
    assert generate_code(IncentiveType.DIRECT_PAYMENT_BONUS).startswith("DIRPAY100-")


# ============================================
# Test issue_or_get
# ============================================


@pytest.mark.asyncio
async def test_issue_or_get_issues_new_coupon(mock_db, user_id):
    coupon = make_coupon()

    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_issued = AsyncMock(return_value=None)
        mock_repo.insert_if_absent = AsyncMock(return_value=coupon)

        result = await issue_or_get(mock_db, user_id, IncentiveType.YOUTUBE_SUBSCRIPTION)

        assert result is coupon
        values = mock_repo.insert_if_absent.call_args.kwargs
        assert values["discount_value"] == 50
        assert values["max_uses"] == 1
        assert values["issued_to_user_id"] == user_id
        assert values["valid_until"] - values["valid_from"] == timedelta(days=30)
        mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_issue_or_get_returns_existing(mock_db, user_id):
    existing = make_coupon()

    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_issued = AsyncMock(return_value=existing)
        mock_repo.insert_if_absent = AsyncMock()

        result = await issue_or_get(mock_db, user_id, IncentiveType.YOUTUBE_SUBSCRIPTION)

        assert result is existing
        mock_repo.insert_if_absent.assert_not_called()


@pytest.mark.asyncio
async def test_issue_or_get_concurrent_issuance_returns_winner(mock_db, user_id):
    """Insert skipped because a parallel request issued first: return its coupon."""
    winner = make_coupon(code="YTSUB50-AAAAAA")

    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_issued = AsyncMock(side_effect=[None, winner])
        mock_repo.insert_if_absent = AsyncMock(return_value=None)

        result = await issue_or_get(mock_db, user_id, IncentiveType.YOUTUBE_SUBSCRIPTION)

        assert result is winner
        assert mock_repo.insert_if_absent.await_count == 1


@pytest.mark.asyncio
async def test_issue_or_get_retries_code_collision(mock_db, user_id):
    coupon = make_coupon()

    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_issued = AsyncMock(return_value=None)
        mock_repo.insert_if_absent = AsyncMock(side_effect=[None, None, coupon])

        result = await issue_or_get(mock_db, user_id, IncentiveType.YOUTUBE_SUBSCRIPTION)

        assert result is coupon
        codes = [c.kwargs["code"] for c in mock_repo.insert_if_absent.call_args_list]
        assert len(codes) == 3


@pytest.mark.asyncio
async def test_issue_or_get_gives_up(mock_db, user_id):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_issued = AsyncMock(return_value=None)
        mock_repo.insert_if_absent = AsyncMock(return_value=None)

        with pytest.raises(ConflictError):
            await issue_or_get(mock_db, user_id, IncentiveType.YOUTUBE_SUBSCRIPTION)

        assert mock_repo.insert_if_absent.await_count == MAX_ISSUE_ATTEMPTS


# ============================================
# Test validate_coupon
# ============================================


@pytest.mark.asyncio
async def test_validate_coupon_fixed(mock_db):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_by_code = AsyncMock(return_value=make_coupon())

        result = await validate_coupon(mock_db, "  ytsub50-7kq2zd ", 2250)

        assert result.valid is True
        assert result.discount_amount == 50
        assert result.final_amount == 2200
        mock_repo.get_by_code.assert_awaited_once_with(mock_db, "YTSUB50-7KQ2ZD")


@pytest.mark.asyncio
async def test_validate_coupon_percentage(mock_db):
    coupon = make_coupon(discount_type=CouponDiscountType.PERCENTAGE, discount_value=10)

    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_by_code = AsyncMock(return_value=coupon)

        result = await validate_coupon(mock_db, coupon.code, 45000)

        assert result.discount_amount == 4500
        assert result.final_amount == 40500


@pytest.mark.asyncio
async def test_validate_coupon_discount_capped_at_amount(mock_db):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_by_code = AsyncMock(return_value=make_coupon(discount_value=500))

        result = await validate_coupon(mock_db, "YTSUB50-7KQ2ZD", 200)

        assert result.discount_amount == 200
        assert result.final_amount == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,amount,message",
    [
        ({"is_active": False}, 1000, "This coupon is no longer active"),
        ({"valid_from": datetime.now(UTC) + timedelta(days=1)}, 1000, "This coupon is not yet valid"),
        ({"valid_until": datetime.now(UTC) - timedelta(seconds=1)}, 1000, "This coupon has expired"),
        ({"used_count": 1}, 1000, "This coupon has reached its usage limit"),
        ({"min_amount": 5000}, 1000, "Minimum order amount is 5000"),
    ],
)
async def test_validate_coupon_rejections(mock_db, overrides, amount, message):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_by_code = AsyncMock(return_value=make_coupon(**overrides))

        result = await validate_coupon(mock_db, "YTSUB50-7KQ2ZD", amount)

        assert result.valid is False
        assert result.message == message
        assert result.discount_amount == 0


@pytest.mark.asyncio
async def test_validate_coupon_unknown_code(mock_db):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.get_by_code = AsyncMock(return_value=None)

        result = await validate_coupon(mock_db, "NOPE", 1000)

        assert result.valid is False
        assert result.message == "Invalid coupon code"


# ============================================
# Test redeem_coupon
# ============================================


@pytest.mark.asyncio
async def test_redeem_coupon_success(mock_db):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.increment_usage = AsyncMock(return_value=make_coupon(used_count=1))

        result = await redeem_coupon(mock_db, "YTSUB50-7KQ2ZD")

        assert result.used_count == 1
        mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_redeem_coupon_without_commit(mock_db):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.increment_usage = AsyncMock(return_value=make_coupon(used_count=1))

        await redeem_coupon(mock_db, "YTSUB50-7KQ2ZD", commit=False)

        mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_redeem_coupon_exhausted(mock_db):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.increment_usage = AsyncMock(return_value=None)
        mock_repo.get_by_code = AsyncMock(return_value=make_coupon(used_count=1))

        with pytest.raises(ConflictError):
            await redeem_coupon(mock_db, "YTSUB50-7KQ2ZD")

        mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_redeem_coupon_expired(mock_db):
    expired = make_coupon(valid_until=datetime.now(UTC) - timedelta(minutes=1))

    with patch(REPOSITORY) as mock_repo:
        mock_repo.increment_usage = AsyncMock(return_value=None)
        mock_repo.get_by_code = AsyncMock(return_value=expired)

        with pytest.raises(ConflictError):
            await redeem_coupon(mock_db, "YTSUB50-7KQ2ZD")

        now = mock_repo.increment_usage.call_args.args[2]
        assert now > expired.valid_until
        mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_redeem_coupon_not_found(mock_db):
    with patch(REPOSITORY) as mock_repo:
        mock_repo.increment_usage = AsyncMock(return_value=None)
        mock_repo.get_by_code = AsyncMock(return_value=None)

        with pytest.raises(CouponNotFoundError):
            await redeem_coupon(mock_db, "ytsub50-zzzzzz")


# ============================================
# Test deactivate_expired_coupons job
# ============================================


@pytest.mark.asyncio
async def test_deactivate_expired_coupons(mock_db):
    session_maker = MagicMock()
    session_maker.return_value.__aenter__.return_value = mock_db

    with (
        patch("admissions.modules.coupons.jobs.async_session_maker", session_maker),
        patch("admissions.modules.coupons.jobs.repository") as mock_repo,
    ):
        mock_repo.deactivate_expired = AsyncMock(return_value=3)

        result = await deactivate_expired_coupons()

        assert result["deactivated"] == 3
        assert "executed_at" in result
        mock_db.commit.assert_awaited_once()


def test_coupon_table_constraints():
    constraint_names = {c.name for c in Coupon.__table__.constraints}
    assert "uq_coupons_issued_to_user_incentive" in constraint_names
    assert "ck_coupons_used_count_max_uses" in constraint_names
