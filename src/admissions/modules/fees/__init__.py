"""
Fees module - pure fee computation shared by admin preview and approval.
"""

from admissions.modules.fees.calculator import (
    COURSE_BASE_FEES,
    base_fee_for_course,
    compute_fee,
    derive_scholarship_percentage,
)
from admissions.modules.fees.schemas import DiscountType, FeeBreakdown, PaymentScheme

__all__ = [
    "COURSE_BASE_FEES",
    "DiscountType",
    "FeeBreakdown",
    "PaymentScheme",
    "base_fee_for_course",
    "compute_fee",
    "derive_scholarship_percentage",
]
