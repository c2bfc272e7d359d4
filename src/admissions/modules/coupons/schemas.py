"""
Coupon Schemas
"""

from pydantic import BaseModel, Field

from .models import CouponDiscountType


class CouponValidationResponse(BaseModel):
    """Outcome of checking a coupon against an order amount."""

    code: str
    valid: bool
    message: str
    discount_type: CouponDiscountType | None = None
    discount_value: int | None = None
    discount_amount: int = Field(0, ge=0)
    final_amount: int | None = None
