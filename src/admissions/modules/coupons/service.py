"""
Coupon Service

Issues incentive coupons exactly once per user and incentive, and validates
and redeems coupon codes at checkout.
"""

import logging
import secrets
import string
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.config import settings
from admissions.modules.coupons import repository
from admissions.modules.coupons.models import COUPON_PREFIXES, Coupon, CouponDiscountType
from admissions.modules.coupons.schemas import CouponValidationResponse
from admissions.modules.incentives.models import INCENTIVE_AMOUNTS, IncentiveType
from admissions.modules.shared import ConflictError, CouponNotFoundError

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_SUFFIX_LENGTH = 6
MAX_ISSUE_ATTEMPTS = 5


def generate_code(incentive_type: IncentiveType) -> str:
    """Random code of the form <PREFIX>-<6 chars from A-Z0-9>."""
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f"{COUPON_PREFIXES[incentive_type]}-{suffix}"


async def issue_or_get(
    db: AsyncSession,
    user_id: UUID,
    incentive_type: IncentiveType,
) -> Coupon:
    """
    Return the user's coupon for an incentive, issuing it on first call.

    Does not commit; the caller commits the coupon together with its claim.

    Raises:
        ConflictError: If no unique code could be generated
    """
    existing = await repository.get_issued(db, user_id, incentive_type)
    if existing is not None:
        return existing

    now = datetime.now(UTC)
    amount = INCENTIVE_AMOUNTS[incentive_type]

    for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
        coupon = await repository.insert_if_absent(
            db,
            code=generate_code(incentive_type),
            discount_type=CouponDiscountType.FIXED,
            discount_value=amount,
            valid_from=now,
            valid_until=now + timedelta(days=settings.coupon_validity_days),
            max_uses=1,
            used_count=0,
            min_amount=0,
            is_active=True,
            issued_to_user_id=user_id,
            incentive_type=incentive_type,
        )
        if coupon is not None:
            logger.info(f"Issued coupon {coupon.code} to user {user_id} ({incentive_type.value})")
            return coupon

        # Either a concurrent issuance for this pair or a code collision
        existing = await repository.get_issued(db, user_id, incentive_type)
        if existing is not None:
            return existing

        logger.warning(f"Coupon code collision on attempt {attempt} for user {user_id}")

    raise ConflictError("Could not generate a unique coupon code, please retry.")


def _reject(code: str, message: str) -> CouponValidationResponse:
    return CouponValidationResponse(code=code, valid=False, message=message)


async def validate_coupon(
    db: AsyncSession,
    code: str,
    amount: int,
) -> CouponValidationResponse:
    """
    Check whether a coupon can be applied to an order amount.

    Checks, in order: existence, active flag, validity window, usage limit,
    minimum order amount. The discount never exceeds the amount.
    """
    normalized = code.strip().upper()
    coupon = await repository.get_by_code(db, normalized)

    if coupon is None:
        return _reject(normalized, "Invalid coupon code")
    if not coupon.is_active:
        return _reject(normalized, "This coupon is no longer active")

    now = datetime.now(UTC)
    if coupon.valid_from and now < coupon.valid_from:
        return _reject(normalized, "This coupon is not yet valid")
    if coupon.valid_until and now > coupon.valid_until:
        return _reject(normalized, "This coupon has expired")
    if coupon.used_count >= coupon.max_uses:
        return _reject(normalized, "This coupon has reached its usage limit")
    if amount < coupon.min_amount:
        return _reject(normalized, f"Minimum order amount is {coupon.min_amount}")

    if coupon.discount_type is CouponDiscountType.PERCENTAGE:
        discount = round(amount * coupon.discount_value / 100)
    else:
        discount = coupon.discount_value
    discount = max(0, min(discount, amount))

    return CouponValidationResponse(
        code=coupon.code,
        valid=True,
        message="Coupon applied",
        discount_type=coupon.discount_type,
        discount_value=coupon.discount_value,
        discount_amount=discount,
        final_amount=amount - discount,
    )


async def redeem_coupon(db: AsyncSession, code: str, *, commit: bool = True) -> Coupon:
    """
    Consume one use of a coupon.

    With commit=False the caller commits the redemption with its own writes.

    Raises:
        CouponNotFoundError: If the code doesn't exist
        ConflictError: If the coupon is inactive, outside its validity window
            or already used up
    """
    coupon = await repository.increment_usage(db, code, datetime.now(UTC))
    if coupon is not None:
        if commit:
            await db.commit()
        logger.info(f"Redeemed coupon {coupon.code} ({coupon.used_count}/{coupon.max_uses})")
        return coupon

    if await repository.get_by_code(db, code) is None:
        raise CouponNotFoundError(code.strip().upper())

    logger.warning(f"Coupon {code} could not be redeemed: inactive, expired or exhausted")
    raise ConflictError("This coupon is inactive, expired or has already been used.")
