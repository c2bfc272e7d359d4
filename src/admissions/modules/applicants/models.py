"""
Applicant Models

Database models for course applications and the scholarship record that
travels with them. Applicants are never deleted; admins archive them.
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from admissions.modules.fees.schemas import PaymentScheme
from admissions.modules.shared import BaseModel


class ApplicantStatus(str, enum.Enum):
    """Admission lifecycle of an application."""

    NEW = "new"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ENROLLED = "enrolled"


class CourseInterest(str, enum.Enum):
    NATA = "nata"
    JEE_PAPER2 = "jee_paper2"
    BOTH = "both"


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Board(str, enum.Enum):
    CBSE = "cbse"
    ICSE = "icse"
    STATE = "state"
    IB = "ib"
    OTHER = "other"


class CurrentClass(str, enum.Enum):
    TENTH = "10th"
    ELEVENTH = "11th"
    TWELFTH = "12th"
    PASSED = "passed"


class BatchPreference(str, enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    WEEKEND = "weekend"


class PaymentMethod(str, enum.Enum):
    """How an approved applicant paid."""

    RAZORPAY = "razorpay"
    DIRECT_TRANSFER = "direct_transfer"


class VerificationStatus(str, enum.Enum):
    """Admin verification of a scholarship record."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Applicant(BaseModel):
    """
    A course application.

    Fee fields stay empty until approval, when the computed FeeBreakdown is
    frozen into fee_snapshot. Payment fields are filled at enrollment.
    """

    __tablename__ = "applicants"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Contact
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender, name="gender"), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pincode: Mapped[str | None] = mapped_column(String(10), nullable=True)

    # Academic profile
    school_name: Mapped[str] = mapped_column(String(200), nullable=False)
    board: Mapped[Board] = mapped_column(Enum(Board, name="board"), nullable=False)
    current_class: Mapped[CurrentClass] = mapped_column(
        Enum(CurrentClass, name="current_class"), nullable=False
    )
    course_interest: Mapped[CourseInterest] = mapped_column(
        Enum(CourseInterest, name="course_interest"), nullable=False
    )
    batch_preference: Mapped[BatchPreference] = mapped_column(
        Enum(BatchPreference, name="batch_preference"), nullable=False
    )

    # Lead source
    source_category: Mapped[str] = mapped_column(String(50), nullable=False)
    source_detail: Mapped[str | None] = mapped_column(String(200), nullable=True)
    friend_referral_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    friend_referral_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Cashback payout number (UPI)
    cashback_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Status tracking
    status: Mapped[ApplicantStatus] = mapped_column(
        Enum(ApplicantStatus, name="applicant_status"),
        nullable=False,
        default=ApplicantStatus.NEW,
    )
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    decision_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Fee (set at approval)
    assigned_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payment_scheme: Mapped[PaymentScheme | None] = mapped_column(
        Enum(PaymentScheme, name="payment_scheme"), nullable=True
    )
    fee_snapshot: Mapped[dict | None] = mapped_column(
        JSON, nullable=True, comment="FeeBreakdown frozen at approval"
    )

    # Payment (set at enrollment)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        Enum(PaymentMethod, name="payment_method"), nullable=True
    )
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount_paid: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cashback_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    enrolled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    # Relationships
    scholarship: Mapped["ScholarshipRecord | None"] = relationship(
        "ScholarshipRecord",
        back_populates="applicant",
        uselist=False,
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_applicants_status", "status"),
        Index("ix_applicants_email", "email"),
        Index("ix_applicants_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Applicant(id={self.id}, email={self.email}, status={self.status.value})>"


class ScholarshipRecord(BaseModel):
    """
    Government-school scholarship claim attached to an applicant.

    scholarship_percentage is derived once at intake; it only reduces the fee
    after an admin verifies the supporting documents.
    """

    __tablename__ = "scholarship_records"

    applicant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applicants.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    is_government_school: Mapped[bool] = mapped_column(Boolean, nullable=False)
    years_in_government_school: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_low_income: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    scholarship_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Document URLs (files live in external storage)
    school_id_card_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    income_certificate_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus, name="scholarship_verification_status"),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    verified_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    applicant: Mapped["Applicant"] = relationship("Applicant", back_populates="scholarship")

    @property
    def is_verified(self) -> bool:
        return self.verification_status is VerificationStatus.VERIFIED
