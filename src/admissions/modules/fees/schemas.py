"""
Fee Schemas

Value types produced by the fee calculator and the request/response bodies
used by the admin fee preview endpoint.
"""

import enum

from pydantic import BaseModel, ConfigDict, Field


class DiscountType(str, enum.Enum):
    """Discount sources an admin can apply to a base fee."""

    NONE = "none"
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    SCHOLARSHIP = "scholarship"


class PaymentScheme(str, enum.Enum):
    """How the final fee is paid."""

    FULL = "full"
    INSTALLMENT = "installment"


class FeeBreakdown(BaseModel):
    """
    Result of a fee computation.

    Immutable. Persisted only as the snapshot frozen on an applicant at
    approval time.
    """

    model_config = ConfigDict(frozen=True)

    base_fee: int = Field(..., ge=0)
    discount_type: DiscountType
    discount_value: float = Field(..., ge=0)
    discount_amount: int = Field(..., ge=0)
    final_fee: int = Field(..., ge=0)
    payment_scheme: PaymentScheme
    installment1: int = Field(..., ge=0)
    installment2: int = Field(..., ge=0)
    total_cashback: int = Field(0, ge=0)


class FeePreviewRequest(BaseModel):
    """Admin request to preview a fee for an applicant."""

    discount_type: DiscountType = DiscountType.NONE
    discount_value: float = Field(0, ge=0)
    payment_scheme: PaymentScheme = PaymentScheme.FULL
    base_fee: int | None = Field(
        None,
        ge=0,
        description="Overrides the course base fee when set",
    )
