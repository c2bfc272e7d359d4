"""
Coupon Models

Discount coupons. Coupons issued as an incentive reward carry the issuance
key (issued_to_user_id, incentive_type), unique together, so a user gets at
most one coupon per incentive. Admin-made coupons leave both NULL.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from admissions.modules.incentives.models import IncentiveType
from admissions.modules.shared import BaseModel


class CouponDiscountType(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


# Code prefix per incentive; codes look like YTSUB50-7KQ2ZD
COUPON_PREFIXES: dict[IncentiveType, str] = {
    IncentiveType.YOUTUBE_SUBSCRIPTION: "YTSUB50",
    IncentiveType.INSTAGRAM_FOLLOW: "IGFOL50",
    IncentiveType.DIRECT_PAYMENT_BONUS: "DIRPAY100",
}


class Coupon(BaseModel):
    """A redeemable discount code."""

    __tablename__ = "coupons"

    # Stored upper-case; lookups normalize the same way
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

    discount_type: Mapped[CouponDiscountType] = mapped_column(
        Enum(CouponDiscountType, name="coupon_discount_type"),
        nullable=False,
        default=CouponDiscountType.FIXED,
    )
    discount_value: Mapped[int] = mapped_column(Integer, nullable=False)

    valid_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Issuance key for incentive coupons
    issued_to_user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    incentive_type: Mapped[IncentiveType | None] = mapped_column(
        Enum(IncentiveType, name="incentive_type"),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "issued_to_user_id",
            "incentive_type",
            name="uq_coupons_issued_to_user_incentive",
        ),
        CheckConstraint("used_count <= max_uses", name="ck_coupons_used_count_max_uses"),
    )

    def __repr__(self) -> str:
        return f"<Coupon(code={self.code}, used={self.used_count}/{self.max_uses})>"
