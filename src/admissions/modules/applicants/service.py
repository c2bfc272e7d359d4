"""
Applicant Service Layer

Business logic for the admission lifecycle:

1. Submission:
   - Validate every field and report all problems at once
   - Find-or-create the user by email
   - Create the applicant (NEW) and, for government-school students, the
     scholarship record with the percentage derived at intake
   - Record a pending instagram_follow claim when a handle is given
   - Send the "application received" email (best effort)

2. Admin decisions:
   - NEW -> UNDER_REVIEW -> APPROVED | REJECTED (NEW may be decided directly)
   - Approval freezes the computed FeeBreakdown on the applicant
   - Scholarship verification, archiving, fee preview

3. Enrollment:
   - APPROVED -> ENROLLED on payment confirmation (gateway signature checked)
   - Direct transfers earn the direct_payment_bonus claim
   - The eligible cashback total is stored on the applicant

Every status change is a compare-and-set update; a rejected change raises
InvalidTransitionError, a lost race raises ConflictError.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.config import settings
from admissions.core.email import (
    send_application_received,
    send_application_rejected,
    send_enrollment_confirmed,
    send_payment_link_required,
)
from admissions.core.security import compute_hmac_sha256, constant_time_equals
from admissions.modules.applicants import repository
from admissions.modules.applicants.helpers import (
    COURSE_LABELS,
    STATUS_DESCRIPTIONS,
    STATUS_LABELS,
    mask_email,
    validate_application,
)
from admissions.modules.applicants.models import (
    Applicant,
    ApplicantStatus,
    PaymentMethod,
    ScholarshipRecord,
    VerificationStatus,
)
from admissions.modules.applicants.repository import VALID_STATUS_TRANSITIONS
from admissions.modules.applicants.schemas import (
    ApplicationCreate,
    ApplicationStatusResponse,
    ApplicationSubmitResponse,
    EnrollmentResponse,
    FeePreviewResponse,
    PaymentConfirmation,
)
from admissions.modules.coupons import service as coupon_service
from admissions.modules.fees.calculator import (
    base_fee_for_course,
    compute_fee,
    derive_scholarship_percentage,
)
from admissions.modules.fees.schemas import FeeBreakdown, FeePreviewRequest
from admissions.modules.incentives import service as ledger
from admissions.modules.incentives.models import ClaimStatus, IncentiveClaim, IncentiveType
from admissions.modules.shared import (
    ApplicantNotFoundError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    SecurityError,
    ValidationError,
)
from admissions.modules.users import UserRepository, normalize_email

logger = logging.getLogger(__name__)


# ============================================
# Internal helpers
# ============================================


async def _get_applicant_or_raise(
    db: AsyncSession, applicant_id: UUID, *, refresh: bool = False
) -> Applicant:
    applicant = await repository.get_by_id(db, applicant_id, refresh=refresh)
    if not applicant:
        logger.warning(f"Applicant not found: {applicant_id}")
        raise ApplicantNotFoundError(applicant_id)
    return applicant


async def _transition(
    db: AsyncSession,
    applicant_id: UUID,
    target: ApplicantStatus,
    **values,
) -> Applicant:
    """
    Apply a status change or explain why it could not be applied.

    Does not commit.

    Raises:
        ApplicantNotFoundError: If the applicant doesn't exist
        PreconditionError: If the applicant is archived
        InvalidTransitionError: If target is not reachable from the current status
        ConflictError: If another request changed the applicant first
    """
    updated = await repository.transition(db, applicant_id, target, **values)
    if updated is not None:
        return updated

    applicant = await _get_applicant_or_raise(db, applicant_id, refresh=True)

    if applicant.archived_at is not None:
        raise PreconditionError(f"Applicant {applicant_id} is archived.")

    if target not in VALID_STATUS_TRANSITIONS[applicant.status]:
        logger.warning(
            f"Invalid transition for applicant {applicant_id}: "
            f"{applicant.status.value} -> {target.value}"
        )
        raise InvalidTransitionError(applicant.status.value, target.value)

    raise ConflictError(f"Applicant {applicant_id} was modified concurrently, please retry.")


def _verify_gateway_signature(confirmation: PaymentConfirmation) -> None:
    """Razorpay signs ``order_id|payment_id`` with the key secret."""
    expected = compute_hmac_sha256(
        settings.razorpay_key_secret,
        f"{confirmation.razorpay_order_id}|{confirmation.razorpay_payment_id}",
    )
    if not settings.razorpay_key_secret or not constant_time_equals(
        expected, confirmation.razorpay_signature
    ):
        raise SecurityError("Invalid payment signature")


# ============================================
# Public Service Functions
# ============================================


async def submit_application(
    db: AsyncSession,
    data: ApplicationCreate,
) -> ApplicationSubmitResponse:
    """
    Submit a new application.

    Args:
        db: Database session
        data: Form submission

    Returns:
        ApplicationSubmitResponse with the new applicant id and NEW status

    Raises:
        ValidationError: Carrying every invalid field and its message
    """
    errors = validate_application(data)
    if errors:
        logger.warning(f"Application rejected with {len(errors)} invalid field(s)")
        raise ValidationError(errors)

    email = normalize_email(data.email)
    logger.info(f"Processing application submission for {mask_email(email)}")

    user = await UserRepository.find_or_create_by_email(db, email, name=data.full_name.strip())
    applicant = await repository.create(db, data, user.id, email)

    scholarship_percentage = 0
    if data.is_government_school:
        scholarship_percentage = derive_scholarship_percentage(
            data.is_government_school,
            data.years_in_government_school,
            data.is_low_income,
        )
        await repository.create_scholarship(db, applicant.id, data, scholarship_percentage)

    if data.instagram_followed:
        await ledger.record_claim(
            db,
            user.id,
            IncentiveType.INSTAGRAM_FOLLOW,
            {"instagram_username": data.instagram_username.strip().lstrip("@")},
            applicant_id=applicant.id,
            commit=False,
        )

    await db.commit()
    logger.info(
        f"Created applicant {applicant.id} (scholarship {scholarship_percentage}%) "
        f"for user {user.id}"
    )

    try:
        sent = await send_application_received(
            to_email=email,
            applicant_name=applicant.full_name,
            course_label=COURSE_LABELS[applicant.course_interest],
            application_id=str(applicant.id),
        )
        if not sent:
            logger.error(f"Failed to send application received email for {applicant.id}")
    except Exception as e:
        logger.error(f"Exception sending application received email for {applicant.id}: {e}")

    return ApplicationSubmitResponse(
        id=applicant.id,
        status=applicant.status,
        scholarship_percentage=scholarship_percentage,
    )


async def get_application_status(
    db: AsyncSession,
    applicant_id: UUID,
    email: str,
) -> ApplicationStatusResponse:
    """
    Applicant-facing status. The email must match the application.

    Raises:
        ApplicantNotFoundError: If missing, or if the email doesn't match
            (both raise the same error)
    """
    applicant = await repository.get_by_id(db, applicant_id)

    if not applicant or normalize_email(email) != applicant.email:
        logger.warning(f"Status lookup failed for applicant {applicant_id}")
        raise ApplicantNotFoundError(applicant_id)

    snapshot = FeeBreakdown.model_validate(applicant.fee_snapshot) if applicant.fee_snapshot else None

    return ApplicationStatusResponse(
        id=applicant.id,
        full_name=applicant.full_name,
        course_interest=applicant.course_interest,
        status=applicant.status,
        status_label=STATUS_LABELS[applicant.status],
        status_description=STATUS_DESCRIPTIONS[applicant.status],
        submitted_at=applicant.created_at,
        final_fee=applicant.final_fee,
        payment_scheme=applicant.payment_scheme,
        installment1=snapshot.installment1 if snapshot else None,
        installment2=snapshot.installment2 if snapshot else None,
        cashback_total=applicant.cashback_total,
    )


async def confirm_enrollment(
    db: AsyncSession,
    applicant_id: UUID,
    confirmation: PaymentConfirmation,
) -> EnrollmentResponse:
    """
    Record payment for an approved applicant and enroll them.

    The status change, the direct payment bonus claim and any coupon
    redemption commit together.

    Raises:
        ApplicantNotFoundError: If the applicant doesn't exist
        SecurityError: If the gateway signature doesn't verify
        InvalidTransitionError: If the applicant is not APPROVED
        ConflictError: If the coupon is exhausted or a concurrent change won
    """
    applicant = await _get_applicant_or_raise(db, applicant_id)

    if confirmation.method is PaymentMethod.RAZORPAY:
        try:
            _verify_gateway_signature(confirmation)
        except SecurityError:
            logger.warning(f"Payment signature mismatch for applicant {applicant_id}")
            raise
        reference = confirmation.razorpay_payment_id
    else:
        reference = confirmation.utr_number.strip()

    now = datetime.now(UTC)

    try:
        enrolled = await _transition(
            db,
            applicant_id,
            ApplicantStatus.ENROLLED,
            payment_method=confirmation.method,
            payment_reference=reference,
            amount_paid=confirmation.amount,
            enrolled_at=now,
        )

        if confirmation.method is PaymentMethod.DIRECT_TRANSFER:
            await ledger.record_claim(
                db,
                applicant.user_id,
                IncentiveType.DIRECT_PAYMENT_BONUS,
                {"utr_number": reference},
                applicant_id=applicant_id,
                status=ClaimStatus.VERIFIED,
                commit=False,
            )

        if confirmation.coupon_code:
            await coupon_service.redeem_coupon(db, confirmation.coupon_code, commit=False)

        await UserRepository.mark_student(db, applicant.user_id)

        cashback_total = await ledger.total_eligible(db, applicant.user_id)
        enrolled.cashback_total = cashback_total

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Applicant {applicant_id} enrolled via {confirmation.method.value}, "
        f"cashback eligible: {cashback_total}"
    )

    try:
        await send_enrollment_confirmed(
            to_email=enrolled.email,
            applicant_name=enrolled.full_name,
            amount_paid=confirmation.amount,
            cashback_total=cashback_total,
        )
    except Exception as e:
        logger.error(f"Failed to send enrollment email: {e}", exc_info=True)

    return EnrollmentResponse(
        id=enrolled.id,
        status=enrolled.status,
        payment_method=confirmation.method,
        amount_paid=confirmation.amount,
        cashback_total=cashback_total,
        enrolled_at=now,
    )


# ============================================
# Admin Service Functions
# ============================================


async def admin_get_applicants_list(
    db: AsyncSession,
    *,
    status: ApplicantStatus | None = None,
    course_interest=None,
    search: str | None = None,
    include_archived: bool = False,
    sort_by: str = "created_at",
    sort_order: str = "asc",
    skip: int = 0,
    limit: int = 20,
) -> dict:
    """
    Paginated applicant list for the admin console.

    Returns:
        Dict with applicants, total, skip and limit
    """
    limit = min(max(1, limit), 100)
    skip = max(0, skip)

    applicants, total = await repository.get_applicants_for_admin(
        db,
        status=status,
        course_interest=course_interest,
        search=search,
        include_archived=include_archived,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=skip,
        limit=limit,
    )

    logger.info(f"Found {total} applicants, returning {len(applicants)}")

    return {
        "applicants": applicants,
        "total": total,
        "skip": skip,
        "limit": limit,
    }


async def admin_get_dashboard_stats(db: AsyncSession) -> dict:
    stats = await repository.get_dashboard_stats(db)
    logger.info(f"Dashboard stats: {stats}")
    return stats


async def admin_get_applicant_detail(db: AsyncSession, applicant_id: UUID) -> Applicant:
    return await _get_applicant_or_raise(db, applicant_id)


async def start_review(
    db: AsyncSession,
    applicant_id: UUID,
    admin_id: UUID,
) -> Applicant:
    """
    Move NEW -> UNDER_REVIEW and record the reviewer.

    Raises:
        ApplicantNotFoundError, InvalidTransitionError, ConflictError
    """
    logger.info(f"Admin {admin_id} starting review of applicant {applicant_id}")

    updated = await _transition(
        db,
        applicant_id,
        ApplicantStatus.UNDER_REVIEW,
        reviewed_by=admin_id,
        reviewed_at=datetime.now(UTC),
    )
    await db.commit()

    logger.info(f"Applicant {applicant_id} now under review by {admin_id}")
    return updated


async def approve(
    db: AsyncSession,
    applicant_id: UUID,
    admin_id: UUID,
    fee_breakdown: FeeBreakdown | None,
) -> Applicant:
    """
    Approve an applicant with a computed fee.

    Persists assigned_fee (base), final_fee, payment_scheme and the full
    breakdown as fee_snapshot, then emails the payment link.

    Raises:
        PreconditionError: If no fee breakdown is supplied
        ApplicantNotFoundError, InvalidTransitionError, ConflictError
    """
    if fee_breakdown is None:
        logger.warning(f"Approval of {applicant_id} attempted without a fee breakdown")
        raise PreconditionError("A fee breakdown is required to approve an applicant.")

    logger.info(f"Admin {admin_id} approving applicant {applicant_id}")

    updated = await _transition(
        db,
        applicant_id,
        ApplicantStatus.APPROVED,
        assigned_fee=fee_breakdown.base_fee,
        final_fee=fee_breakdown.final_fee,
        payment_scheme=fee_breakdown.payment_scheme,
        fee_snapshot=fee_breakdown.model_dump(mode="json"),
        reviewed_by=admin_id,
        reviewed_at=datetime.now(UTC),
    )
    await db.commit()

    logger.info(
        f"Applicant {applicant_id} approved: final fee {fee_breakdown.final_fee} "
        f"({fee_breakdown.payment_scheme.value})"
    )

    # Payment link email (non-blocking)
    try:
        await send_payment_link_required(
            to_email=updated.email,
            applicant_name=updated.full_name,
            application_id=str(updated.id),
            final_fee=fee_breakdown.final_fee,
            payment_scheme=fee_breakdown.payment_scheme.value,
            installment1=fee_breakdown.installment1,
            installment2=fee_breakdown.installment2,
        )
    except Exception as e:
        logger.error(f"Failed to send payment link email: {e}", exc_info=True)

    return updated


async def reject(
    db: AsyncSession,
    applicant_id: UUID,
    admin_id: UUID,
    reason: str,
) -> Applicant:
    """
    Reject an applicant. Fee fields are left untouched.

    Raises:
        ApplicantNotFoundError, InvalidTransitionError, ConflictError
    """
    logger.info(f"Admin {admin_id} rejecting applicant {applicant_id}")

    updated = await _transition(
        db,
        applicant_id,
        ApplicantStatus.REJECTED,
        decision_reason=reason,
        reviewed_by=admin_id,
        reviewed_at=datetime.now(UTC),
    )
    await db.commit()

    logger.info(f"Applicant {applicant_id} rejected")

    try:
        await send_application_rejected(
            to_email=updated.email,
            applicant_name=updated.full_name,
            reason=reason,
        )
    except Exception as e:
        logger.error(f"Failed to send rejection email: {e}", exc_info=True)

    return updated


async def verify_scholarship(
    db: AsyncSession,
    applicant_id: UUID,
    admin_id: UUID,
    outcome: VerificationStatus,
    notes: str | None = None,
) -> ScholarshipRecord:
    """
    Resolve a pending scholarship record.

    Raises:
        ApplicantNotFoundError: If the applicant doesn't exist
        NotFoundError: If the applicant has no scholarship record
        InvalidTransitionError: If the record is not pending or outcome is pending
    """
    if outcome is VerificationStatus.PENDING:
        raise InvalidTransitionError(VerificationStatus.PENDING.value, outcome.value)

    await _get_applicant_or_raise(db, applicant_id)

    record = await repository.verify_scholarship(
        db,
        applicant_id,
        outcome,
        verified_by=admin_id,
        verified_at=datetime.now(UTC),
        notes=notes,
    )
    if record is not None:
        await db.commit()
        logger.info(f"Admin {admin_id} marked scholarship of {applicant_id} {outcome.value}")
        return record

    existing = await repository.get_scholarship(db, applicant_id)
    if existing is None:
        raise NotFoundError(
            f"Applicant {applicant_id} has no scholarship record", "SCHOLARSHIP_NOT_FOUND"
        )
    raise InvalidTransitionError(existing.verification_status.value, outcome.value)


async def archive(
    db: AsyncSession,
    applicant_id: UUID,
    admin_id: UUID,
) -> Applicant:
    """
    Archive an applicant. Archiving twice is a no-op returning the record.

    Raises:
        ApplicantNotFoundError: If the applicant doesn't exist
    """
    archived = await repository.archive(db, applicant_id, admin_id)
    if archived is not None:
        await db.commit()
        logger.info(f"Admin {admin_id} archived applicant {applicant_id}")
        return archived

    return await _get_applicant_or_raise(db, applicant_id)


async def preview_fee(
    db: AsyncSession,
    applicant_id: UUID,
    request: FeePreviewRequest,
) -> FeePreviewResponse:
    """
    Compute the fee an approval with these terms would freeze.

    Uses the course base fee unless overridden, the applicant's scholarship
    record and their current eligible cashback.
    """
    applicant = await _get_applicant_or_raise(db, applicant_id)
    scholarship = await repository.get_scholarship(db, applicant_id)

    percentage = scholarship.scholarship_percentage if scholarship else 0
    verified = bool(scholarship and scholarship.is_verified)

    base_fee = request.base_fee
    if base_fee is None:
        base_fee = base_fee_for_course(applicant.course_interest.value)

    cashback = await ledger.total_eligible(db, applicant.user_id)

    breakdown = compute_fee(
        base_fee=base_fee,
        discount_type=request.discount_type,
        discount_value=request.discount_value,
        scholarship_percentage=percentage,
        scholarship_verified=verified,
        payment_scheme=request.payment_scheme,
        total_cashback=cashback,
    )

    return FeePreviewResponse(
        applicant_id=applicant.id,
        scholarship_percentage=percentage,
        scholarship_verified=verified,
        fee=breakdown,
    )


async def approve_with_terms(
    db: AsyncSession,
    applicant_id: UUID,
    admin_id: UUID,
    terms: FeePreviewRequest | None,
) -> tuple[Applicant, FeeBreakdown]:
    """Compute the fee from admin-chosen terms, then approve with it."""
    breakdown = None
    if terms is not None:
        breakdown = (await preview_fee(db, applicant_id, terms)).fee

    applicant = await approve(db, applicant_id, admin_id, breakdown)
    return applicant, breakdown


async def list_applicant_claims(
    db: AsyncSession,
    applicant_id: UUID,
) -> tuple[list[IncentiveClaim], int]:
    """Claims of the applicant's user, with their eligible total."""
    applicant = await _get_applicant_or_raise(db, applicant_id)
    claims = await ledger.list_claims(db, applicant.user_id)
    total = await ledger.total_eligible(db, applicant.user_id)
    return claims, total
