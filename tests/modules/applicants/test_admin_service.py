"""
Tests for admin service functions.

These tests verify the admission state machine and admin operations:
- Listing and dashboard statistics
- start_review / approve / reject transitions and their failure modes
- Scholarship verification, archiving and fee preview
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

from admissions.modules.applicants.models import ApplicantStatus, VerificationStatus
from admissions.modules.applicants.service import (
    admin_get_applicants_list,
    admin_get_dashboard_stats,
    approve,
    approve_with_terms,
    archive,
    preview_fee,
    reject,
    start_review,
    verify_scholarship,
)
from admissions.modules.fees import DiscountType, PaymentScheme, compute_fee
from admissions.modules.fees.schemas import FeePreviewRequest
from admissions.modules.shared import (
    ApplicantNotFoundError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
)

SERVICE = "admissions.modules.applicants.service"


@pytest.fixture
def fee_breakdown():
    return compute_fee(
        base_fee=45000,
        discount_type=DiscountType.SCHOLARSHIP,
        scholarship_percentage=95,
        scholarship_verified=True,
        payment_scheme=PaymentScheme.FULL,
    )


# ============================================
# Test list and stats
# ============================================


@pytest.mark.asyncio
async def test_admin_get_applicants_list_limit_cap(mock_db):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_applicants_for_admin = AsyncMock(return_value=([], 0))

        result = await admin_get_applicants_list(mock_db, skip=-5, limit=500)

        assert result == {"applicants": [], "total": 0, "skip": 0, "limit": 100}
        kwargs = mock_repo.get_applicants_for_admin.call_args.kwargs
        assert kwargs["limit"] == 100
        assert kwargs["include_archived"] is False


@pytest.mark.asyncio
async def test_admin_get_dashboard_stats(mock_db):
    stats = {
        "new": 4,
        "under_review": 2,
        "approved": 3,
        "rejected": 1,
        "enrolled": 7,
        "enrolled_this_month": 2,
        "pending_scholarships": 1,
        "pending_claims": 5,
    }
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_dashboard_stats = AsyncMock(return_value=stats)

        assert await admin_get_dashboard_stats(mock_db) == stats


# ============================================
# Test start_review
# ============================================


@pytest.mark.asyncio
async def test_start_review_success(mock_db, applicant_id, admin_id, make_applicant):
    updated = make_applicant(ApplicantStatus.UNDER_REVIEW)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock(return_value=updated)

        result = await start_review(mock_db, applicant_id, admin_id)

        assert result.status == ApplicantStatus.UNDER_REVIEW
        args = mock_repo.transition.call_args
        assert args.args[2] == ApplicantStatus.UNDER_REVIEW
        assert args.kwargs["reviewed_by"] == admin_id
        mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_start_review_from_approved_is_invalid(
    mock_db, applicant_id, admin_id, make_applicant
):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock(return_value=None)
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant(ApplicantStatus.APPROVED))

        with pytest.raises(InvalidTransitionError) as exc_info:
            await start_review(mock_db, applicant_id, admin_id)

        assert exc_info.value.current == "approved"
        assert exc_info.value.attempted == "under_review"
        mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_start_review_not_found(mock_db, applicant_id, admin_id):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock(return_value=None)
        mock_repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(ApplicantNotFoundError):
            await start_review(mock_db, applicant_id, admin_id)


@pytest.mark.asyncio
async def test_start_review_lost_race_is_conflict(mock_db, applicant_id, admin_id, make_applicant):
    """Row matched nothing although NEW -> UNDER_REVIEW is legal: someone else won."""
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock(return_value=None)
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant(ApplicantStatus.NEW))

        with pytest.raises(ConflictError):
            await start_review(mock_db, applicant_id, admin_id)

        mock_repo.get_by_id.assert_awaited_once_with(mock_db, applicant_id, refresh=True)


@pytest.mark.asyncio
async def test_transition_on_archived_applicant(mock_db, applicant_id, admin_id, make_applicant):
    archived = make_applicant(ApplicantStatus.NEW, archived_at=datetime.now(UTC))

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock(return_value=None)
        mock_repo.get_by_id = AsyncMock(return_value=archived)

        with pytest.raises(PreconditionError):
            await start_review(mock_db, applicant_id, admin_id)


# ============================================
# Test approve
# ============================================


@pytest.mark.asyncio
async def test_approve_success(mock_db, applicant_id, admin_id, make_applicant, fee_breakdown):
    updated = make_applicant(ApplicantStatus.APPROVED)

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.send_payment_link_required", new_callable=AsyncMock) as mock_email,
    ):
        mock_repo.transition = AsyncMock(return_value=updated)

        result = await approve(mock_db, applicant_id, admin_id, fee_breakdown)

        assert result is updated
        kwargs = mock_repo.transition.call_args.kwargs
        assert kwargs["assigned_fee"] == 45000
        assert kwargs["final_fee"] == 2250
        assert kwargs["payment_scheme"] == PaymentScheme.FULL
        assert kwargs["fee_snapshot"]["installment1"] == 1125
        assert kwargs["fee_snapshot"]["discount_type"] == "scholarship"
        mock_db.commit.assert_awaited_once()
        mock_email.assert_awaited_once()


@pytest.mark.asyncio
async def test_approve_without_fee_breakdown(mock_db, applicant_id, admin_id):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock()

        with pytest.raises(PreconditionError):
            await approve(mock_db, applicant_id, admin_id, None)

        mock_repo.transition.assert_not_called()


@pytest.mark.asyncio
async def test_approve_enrolled_applicant_is_invalid(
    mock_db, applicant_id, admin_id, make_applicant, fee_breakdown
):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock(return_value=None)
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant(ApplicantStatus.ENROLLED))

        with pytest.raises(InvalidTransitionError):
            await approve(mock_db, applicant_id, admin_id, fee_breakdown)

        mock_db.commit.assert_not_called()


@pytest.mark.asyncio
async def test_approve_email_failure_does_not_fail(
    mock_db, applicant_id, admin_id, make_applicant, fee_breakdown
):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(
            f"{SERVICE}.send_payment_link_required",
            new_callable=AsyncMock,
            side_effect=RuntimeError("resend down"),
        ),
    ):
        mock_repo.transition = AsyncMock(return_value=make_applicant(ApplicantStatus.APPROVED))

        result = await approve(mock_db, applicant_id, admin_id, fee_breakdown)

        assert result.status == ApplicantStatus.APPROVED


@pytest.mark.asyncio
async def test_approve_with_terms_recomputes_fee(
    mock_db, applicant_id, admin_id, make_applicant, make_scholarship
):
    applicant = make_applicant(ApplicantStatus.UNDER_REVIEW)
    terms = FeePreviewRequest(discount_type=DiscountType.SCHOLARSHIP)

    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.ledger") as mock_ledger,
        patch(f"{SERVICE}.send_payment_link_required", new_callable=AsyncMock),
    ):
        mock_repo.get_by_id = AsyncMock(return_value=applicant)
        mock_repo.get_scholarship = AsyncMock(
            return_value=make_scholarship(95, VerificationStatus.VERIFIED)
        )
        mock_repo.transition = AsyncMock(return_value=make_applicant(ApplicantStatus.APPROVED))
        mock_ledger.total_eligible = AsyncMock(return_value=50)

        _, fee = await approve_with_terms(mock_db, applicant_id, admin_id, terms)

        assert fee.base_fee == 45000
        assert fee.final_fee == 2250
        assert fee.total_cashback == 50


# ============================================
# Test reject
# ============================================


@pytest.mark.asyncio
async def test_reject_success(mock_db, applicant_id, admin_id, make_applicant):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.send_application_rejected", new_callable=AsyncMock) as mock_email,
    ):
        mock_repo.transition = AsyncMock(return_value=make_applicant(ApplicantStatus.REJECTED))

        result = await reject(mock_db, applicant_id, admin_id, "Seats are full this year")

        assert result.status == ApplicantStatus.REJECTED
        kwargs = mock_repo.transition.call_args.kwargs
        assert kwargs["decision_reason"] == "Seats are full this year"
        assert "final_fee" not in kwargs
        mock_email.assert_awaited_once()


@pytest.mark.asyncio
async def test_reject_enrolled_is_invalid(mock_db, applicant_id, admin_id, make_applicant):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.transition = AsyncMock(return_value=None)
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant(ApplicantStatus.ENROLLED))

        with pytest.raises(InvalidTransitionError):
            await reject(mock_db, applicant_id, admin_id, "Duplicate application")


# ============================================
# Test verify_scholarship
# ============================================


@pytest.mark.asyncio
async def test_verify_scholarship_success(
    mock_db, applicant_id, admin_id, make_applicant, make_scholarship
):
    record = make_scholarship(95, VerificationStatus.VERIFIED)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant())
        mock_repo.verify_scholarship = AsyncMock(return_value=record)

        result = await verify_scholarship(
            mock_db, applicant_id, admin_id, VerificationStatus.VERIFIED, "Documents checked"
        )

        assert result is record
        kwargs = mock_repo.verify_scholarship.call_args.kwargs
        assert kwargs["verified_by"] == admin_id
        assert kwargs["notes"] == "Documents checked"
        mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_verify_scholarship_already_resolved(
    mock_db, applicant_id, admin_id, make_applicant, make_scholarship
):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant())
        mock_repo.verify_scholarship = AsyncMock(return_value=None)
        mock_repo.get_scholarship = AsyncMock(
            return_value=make_scholarship(50, VerificationStatus.REJECTED)
        )

        with pytest.raises(InvalidTransitionError):
            await verify_scholarship(mock_db, applicant_id, admin_id, VerificationStatus.VERIFIED)


@pytest.mark.asyncio
async def test_verify_scholarship_without_record(mock_db, applicant_id, admin_id, make_applicant):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant())
        mock_repo.verify_scholarship = AsyncMock(return_value=None)
        mock_repo.get_scholarship = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError) as exc_info:
            await verify_scholarship(mock_db, applicant_id, admin_id, VerificationStatus.VERIFIED)

        assert exc_info.value.error_code == "SCHOLARSHIP_NOT_FOUND"


# ============================================
# Test archive
# ============================================


@pytest.mark.asyncio
async def test_archive_twice_returns_existing(mock_db, applicant_id, admin_id, make_applicant):
    already = make_applicant(archived_at=datetime.now(UTC))

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.archive = AsyncMock(return_value=None)
        mock_repo.get_by_id = AsyncMock(return_value=already)

        result = await archive(mock_db, applicant_id, admin_id)

        assert result is already
        mock_db.commit.assert_not_called()


# ============================================
# Test preview_fee
# ============================================


@pytest.mark.asyncio
async def test_preview_fee_unverified_scholarship(
    mock_db, applicant_id, make_applicant, make_scholarship
):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.ledger") as mock_ledger,
    ):
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant())
        mock_repo.get_scholarship = AsyncMock(return_value=make_scholarship(95))
        mock_ledger.total_eligible = AsyncMock(return_value=0)

        result = await preview_fee(
            mock_db,
            applicant_id,
            FeePreviewRequest(discount_type=DiscountType.SCHOLARSHIP),
        )

        assert result.scholarship_percentage == 95
        assert result.scholarship_verified is False
        assert result.fee.discount_amount == 0
        assert result.fee.final_fee == 45000


@pytest.mark.asyncio
async def test_preview_fee_base_override(mock_db, applicant_id, make_applicant):
    with (
        patch(f"{SERVICE}.repository") as mock_repo,
        patch(f"{SERVICE}.ledger") as mock_ledger,
    ):
        mock_repo.get_by_id = AsyncMock(return_value=make_applicant())
        mock_repo.get_scholarship = AsyncMock(return_value=None)
        mock_ledger.total_eligible = AsyncMock(return_value=100)

        result = await preview_fee(
            mock_db,
            applicant_id,
            FeePreviewRequest(
                discount_type=DiscountType.FIXED,
                discount_value=5000,
                payment_scheme=PaymentScheme.INSTALLMENT,
                base_fee=40000,
            ),
        )

        assert result.fee.base_fee == 40000
        assert result.fee.discount_amount == 0
        assert (result.fee.installment1, result.fee.installment2) == (20000, 20000)
        assert result.fee.total_cashback == 100
