"""
Incentive Ledger Models

One row per cashback claim. A user holds at most one live (non-rejected)
claim per incentive type; the partial unique index below enforces it and the
repository relies on it for idempotent inserts.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from admissions.modules.shared import BaseModel


class IncentiveType(str, enum.Enum):
    """Kinds of cashback an applicant can earn."""

    YOUTUBE_SUBSCRIPTION = "youtube_subscription"
    INSTAGRAM_FOLLOW = "instagram_follow"
    DIRECT_PAYMENT_BONUS = "direct_payment_bonus"


class ClaimStatus(str, enum.Enum):
    """Lifecycle of a claim: pending -> verified|rejected, verified -> processed."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    PROCESSED = "processed"


# Cashback amount (INR) per incentive
INCENTIVE_AMOUNTS: dict[IncentiveType, int] = {
    IncentiveType.YOUTUBE_SUBSCRIPTION: 50,
    IncentiveType.INSTAGRAM_FOLLOW: 50,
    IncentiveType.DIRECT_PAYMENT_BONUS: 100,
}

# Statuses that count towards a user's cashback total
ELIGIBLE_STATUSES = (ClaimStatus.VERIFIED, ClaimStatus.PROCESSED)

# Enum columns store member names
LIVE_CLAIM_PREDICATE = text("status <> 'REJECTED'")


class IncentiveClaim(BaseModel):
    """A cashback claim recorded against a user."""

    __tablename__ = "incentive_claims"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Claims can precede an application (e.g. YouTube reward from marketing site)
    applicant_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applicants.id", ondelete="SET NULL"),
        nullable=True,
    )

    incentive_type: Mapped[IncentiveType] = mapped_column(
        Enum(IncentiveType, name="incentive_type"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus, name="claim_status"),
        nullable=False,
        default=ClaimStatus.PENDING,
    )

    # subscription id, instagram handle, UTR ...
    evidence: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    verified_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "ix_incentive_claims_user_type_live",
            "user_id",
            "incentive_type",
            unique=True,
            postgresql_where=LIVE_CLAIM_PREDICATE,
        ),
        Index("ix_incentive_claims_user_id", "user_id"),
        Index("ix_incentive_claims_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<IncentiveClaim(id={self.id}, user={self.user_id}, "
            f"type={self.incentive_type.value}, status={self.status.value})>"
        )
