"""
Fee Rules Calculator

Pure functions that turn a base fee, a discount choice, a scholarship record
and a payment scheme into a FeeBreakdown. Nothing here touches the database
and nothing here raises: malformed numbers are clamped into range.

Rules:
1. Scholarship percentage is derived once at intake (see
   derive_scholarship_percentage) and only counts once verified.
2. percentage / fixed / scholarship discounts are rounded half-up to whole
   rupees; a fixed discount is capped at the base fee.
3. The installment scheme forfeits every discount.
4. The first installment takes the odd rupee.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from admissions.modules.fees.schemas import DiscountType, FeeBreakdown, PaymentScheme

# Base fee (INR) by course_interest
COURSE_BASE_FEES: dict[str, int] = {
    "nata": 25000,
    "jee_paper2": 30000,
    "both": 45000,
}

FULL_SCHOLARSHIP_PERCENTAGE = 95
PARTIAL_SCHOLARSHIP_PERCENTAGE = 50
MIN_GOVERNMENT_SCHOOL_YEARS = 2

# Ceiling for any rupee amount or value; larger input is clamped to it
MAX_AMOUNT = Decimal(10**12)


def _to_decimal(value: object) -> Decimal:
    """Coerce to a finite Decimal in [0, MAX_AMOUNT]; anything else becomes 0."""
    if isinstance(value, bool) or value is None:
        return Decimal(0)
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not number.is_finite() or number < 0:
        return Decimal(0)
    return min(number, MAX_AMOUNT)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _clamp_percentage(value: object) -> Decimal:
    return min(_to_decimal(value), Decimal(100))


def _coerce_discount_type(value: object) -> DiscountType:
    try:
        return DiscountType(value)
    except ValueError:
        return DiscountType.NONE


def _coerce_payment_scheme(value: object) -> PaymentScheme:
    try:
        return PaymentScheme(value)
    except ValueError:
        return PaymentScheme.FULL


def derive_scholarship_percentage(
    is_government_school: bool,
    years_in_government_school: int | None,
    is_low_income: bool,
) -> int:
    """
    Scholarship percentage an applicant qualifies for at intake.

    95 for two or more years in a government school with low family income,
    50 for two or more years without the income criterion, otherwise 0.
    """
    if not is_government_school:
        return 0
    if (years_in_government_school or 0) < MIN_GOVERNMENT_SCHOOL_YEARS:
        return 0
    if is_low_income:
        return FULL_SCHOLARSHIP_PERCENTAGE
    return PARTIAL_SCHOLARSHIP_PERCENTAGE


def base_fee_for_course(course_interest: str | None) -> int:
    """Base fee for a course, 0 when the course is unknown."""
    if course_interest is None:
        return 0
    return COURSE_BASE_FEES.get(str(course_interest), 0)


def compute_discount_amount(
    base_fee: int,
    discount_type: DiscountType,
    discount_value: Decimal,
    scholarship_percentage: Decimal,
    scholarship_verified: bool,
) -> int:
    base = Decimal(base_fee)

    if discount_type is DiscountType.SCHOLARSHIP:
        if not scholarship_verified:
            return 0
        return _round_half_up(base * scholarship_percentage / 100)

    if discount_type is DiscountType.PERCENTAGE:
        return _round_half_up(base * min(discount_value, Decimal(100)) / 100)

    if discount_type is DiscountType.FIXED:
        return min(_round_half_up(discount_value), base_fee)

    return 0


def split_installments(final_fee: int) -> tuple[int, int]:
    """Split into two installments, the first rounded up."""
    first = math.ceil(final_fee / 2)
    return first, final_fee - first


def compute_fee(
    base_fee: object,
    discount_type: object = DiscountType.NONE,
    discount_value: object = 0,
    scholarship_percentage: object = 0,
    scholarship_verified: bool = False,
    payment_scheme: object = PaymentScheme.FULL,
    total_cashback: object = 0,
) -> FeeBreakdown:
    """
    Compute a fee breakdown.

    Args:
        base_fee: Course fee before discounts (INR)
        discount_type: none | percentage | fixed | scholarship
        discount_value: Percentage (0-100) or fixed rupee amount
        scholarship_percentage: Percentage derived at intake (0, 50 or 95)
        scholarship_verified: Whether an admin verified the scholarship
        payment_scheme: full | installment
        total_cashback: Eligible cashback, copied through unchanged

    Returns:
        FeeBreakdown; identical inputs always produce an identical result
    """
    base = _round_half_up(_to_decimal(base_fee))
    kind = _coerce_discount_type(discount_type)
    scheme = _coerce_payment_scheme(payment_scheme)
    value = _to_decimal(discount_value)
    if kind in (DiscountType.PERCENTAGE, DiscountType.SCHOLARSHIP):
        value = min(value, Decimal(100))

    if scheme is PaymentScheme.INSTALLMENT:
        discount_amount = 0
    else:
        discount_amount = compute_discount_amount(
            base,
            kind,
            value,
            _clamp_percentage(scholarship_percentage),
            bool(scholarship_verified),
        )

    final_fee = max(0, base - discount_amount)
    installment1, installment2 = split_installments(final_fee)

    return FeeBreakdown(
        base_fee=base,
        discount_type=kind,
        discount_value=float(value),
        discount_amount=discount_amount,
        final_fee=final_fee,
        payment_scheme=scheme,
        installment1=installment1,
        installment2=installment2,
        total_cashback=_round_half_up(_to_decimal(total_cashback)),
    )
