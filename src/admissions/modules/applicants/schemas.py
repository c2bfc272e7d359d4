"""
Applicant Schemas

Pydantic schemas for request validation and response serialization.

The submission schema is deliberately lenient (strings default to empty) so
that the service can report every invalid field in one response instead of
failing on the first.
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from admissions.modules.applicants.models import (
    ApplicantStatus,
    BatchPreference,
    Board,
    CourseInterest,
    CurrentClass,
    Gender,
    PaymentMethod,
    VerificationStatus,
)
from admissions.modules.fees.schemas import FeeBreakdown, FeePreviewRequest, PaymentScheme

# ============================================
# Public Schemas
# ============================================


class ApplicationCreate(BaseModel):
    """Application form submission."""

    # Basic details
    full_name: str = ""
    email: str = ""
    phone: str = ""
    gender: str = ""
    date_of_birth: date | None = None
    address: str | None = Field(None, max_length=500)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    pincode: str | None = Field(None, max_length=10)

    # Education
    school_name: str = ""
    board: str = ""
    current_class: str = ""
    course_interest: str = ""
    batch_preference: str = ""

    # Scholarship
    is_government_school: bool = False
    years_in_government_school: int = 0
    is_low_income: bool = False
    school_id_card_url: str | None = None
    income_certificate_url: str | None = None

    # Cashback offers
    instagram_followed: bool = False
    instagram_username: str = ""
    cashback_phone: str = ""

    # Source
    source_category: str = ""
    source_detail: str | None = Field(None, max_length=200)
    friend_referral_name: str = ""
    friend_referral_phone: str | None = None

    terms_accepted: bool = False


class ApplicationSubmitResponse(BaseModel):
    id: UUID = Field(..., description="Applicant UUID")
    status: ApplicantStatus = Field(..., description="Initial status (new)")
    scholarship_percentage: int = Field(0, description="Scholarship tier derived at intake")
    message: str = Field(
        default="Application submitted. We will review it shortly.",
        description="Success message",
    )


class ApplicationStatusResponse(BaseModel):
    """Applicant-facing status view."""

    id: UUID
    full_name: str
    course_interest: CourseInterest
    status: ApplicantStatus
    status_label: str
    status_description: str
    submitted_at: datetime
    final_fee: int | None = None
    payment_scheme: PaymentScheme | None = None
    installment1: int | None = None
    installment2: int | None = None
    cashback_total: int | None = None


class PaymentConfirmation(BaseModel):
    """
    Proof of payment for an approved application.

    Gateway payments carry the Razorpay order/payment ids and signature;
    direct bank transfers carry the UTR number.
    """

    method: PaymentMethod
    amount: int = Field(..., ge=0, description="Amount paid in INR")
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None
    utr_number: str | None = Field(None, max_length=50)
    coupon_code: str | None = Field(None, max_length=32)

    @model_validator(mode="after")
    def check_method_reference(self) -> "PaymentConfirmation":
        if self.method == PaymentMethod.RAZORPAY:
            if not (
                self.razorpay_order_id and self.razorpay_payment_id and self.razorpay_signature
            ):
                raise ValueError(
                    "razorpay_order_id, razorpay_payment_id and razorpay_signature are required"
                )
        elif not (self.utr_number and self.utr_number.strip()):
            raise ValueError("utr_number is required for direct transfers")
        return self


class EnrollmentResponse(BaseModel):
    id: UUID
    status: ApplicantStatus
    payment_method: PaymentMethod
    amount_paid: int
    cashback_total: int = Field(..., description="Verified + processed cashback owed (INR)")
    enrolled_at: datetime
    message: str = Field(default="Payment confirmed. Welcome aboard!")


# ============================================
# Admin Schemas
# ============================================


class ScholarshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_government_school: bool
    years_in_government_school: int
    is_low_income: bool
    scholarship_percentage: int
    school_id_card_url: str | None = None
    income_certificate_url: str | None = None
    verification_status: VerificationStatus
    verified_by: UUID | None = None
    verified_at: datetime | None = None
    notes: str | None = None


class ApplicantListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: EmailStr
    phone: str
    course_interest: CourseInterest
    status: ApplicantStatus
    final_fee: int | None = None
    created_at: datetime
    reviewed_at: datetime | None = None
    archived_at: datetime | None = None


class ApplicantListResponse(BaseModel):
    applicants: list[ApplicantListItem]
    total: int = Field(..., description="Total matching filters")
    skip: int
    limit: int


class DashboardStats(BaseModel):
    new: int = Field(..., description="Awaiting first admin action")
    under_review: int
    approved: int = Field(..., description="Approved, awaiting payment")
    rejected: int
    enrolled: int
    enrolled_this_month: int
    pending_scholarships: int = Field(..., description="Scholarship records awaiting verification")
    pending_claims: int = Field(..., description="Cashback claims awaiting verification")


class ApplicantDetailResponse(BaseModel):
    """Complete applicant view for admins."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    full_name: str
    email: EmailStr
    phone: str
    gender: Gender
    date_of_birth: date | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None

    school_name: str
    board: Board
    current_class: CurrentClass
    course_interest: CourseInterest
    batch_preference: BatchPreference

    source_category: str
    source_detail: str | None = None
    friend_referral_name: str | None = None
    friend_referral_phone: str | None = None
    cashback_phone: str | None = None

    status: ApplicantStatus
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    decision_reason: str | None = None

    assigned_fee: int | None = None
    final_fee: int | None = None
    payment_scheme: PaymentScheme | None = None
    fee_snapshot: FeeBreakdown | None = None

    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    amount_paid: int | None = None
    cashback_total: int | None = None
    enrolled_at: datetime | None = None
    archived_at: datetime | None = None

    scholarship: ScholarshipResponse | None = None
    created_at: datetime
    updated_at: datetime


class ApproveRequest(BaseModel):
    """
    Approve with the fee terms the admin chose.

    The server recomputes the breakdown from these terms; the client never
    supplies fee numbers directly.
    """

    fee: FeePreviewRequest | None = Field(
        None, description="Discount and payment scheme to approve with"
    )


class RejectRequest(BaseModel):
    reason: str = Field(
        ...,
        min_length=5,
        max_length=1000,
        description="Reason for rejection, shared with the applicant",
    )


class ScholarshipVerifyRequest(BaseModel):
    outcome: Literal["verified", "rejected"]
    notes: str | None = Field(None, max_length=1000)


class TransitionResponse(BaseModel):
    """Response after an admin state change."""

    id: UUID
    status: ApplicantStatus
    message: str


class ApproveResponse(TransitionResponse):
    fee: FeeBreakdown


class ArchiveResponse(BaseModel):
    id: UUID
    archived_at: datetime
    message: str = Field(default="Applicant archived")


class FeePreviewResponse(BaseModel):
    applicant_id: UUID
    scholarship_percentage: int
    scholarship_verified: bool
    fee: FeeBreakdown
