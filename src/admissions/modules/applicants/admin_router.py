"""
Applicants Admin Router

API endpoints for admission staff to review applicants and settle fees.
All endpoints require authentication and the super_admin role.

Endpoints:
- GET /admin/applicants - List applicants with filters and pagination
- GET /admin/applicants/stats - Dashboard statistics
- GET /admin/applicants/{id} - Applicant details
- GET /admin/applicants/{id}/claims - Cashback claims of the applicant
- POST /admin/applicants/{id}/start-review - Start reviewing
- POST /admin/applicants/{id}/fee-preview - Compute a fee without saving it
- POST /admin/applicants/{id}/approve - Approve with computed fee
- POST /admin/applicants/{id}/reject - Reject with reason
- POST /admin/applicants/{id}/archive - Archive applicant
- POST /admin/applicants/{id}/scholarship/verify - Verify scholarship documents

Security:
- All endpoints require valid JWT token with super_admin role
- Rate limiting on action endpoints, per admin
- Audit logging for all admin actions
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.auth import AdminUser, get_current_admin_user
from admissions.core.database import get_db
from admissions.core.rate_limit import RateLimitExceeded, check_rate_limit
from admissions.modules.applicants import service
from admissions.modules.applicants.models import (
    ApplicantStatus,
    CourseInterest,
    VerificationStatus,
)
from admissions.modules.applicants.schemas import (
    ApplicantDetailResponse,
    ApplicantListItem,
    ApplicantListResponse,
    ApproveRequest,
    ApproveResponse,
    ArchiveResponse,
    DashboardStats,
    FeePreviewResponse,
    RejectRequest,
    ScholarshipResponse,
    ScholarshipVerifyRequest,
    TransitionResponse,
)
from admissions.modules.fees.schemas import FeePreviewRequest
from admissions.modules.incentives.schemas import ClaimListResponse, ClaimResponse
from admissions.modules.shared import ServiceError, internal_error, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Rate Limiting Configuration
# ============================================

RATE_LIMIT_START_REVIEW = (30, 60)  # 30 review starts per minute
RATE_LIMIT_APPROVE = (10, 60)  # 10 approvals per minute
RATE_LIMIT_REJECT = (10, 60)  # 10 rejections per minute
RATE_LIMIT_ARCHIVE = (20, 60)
RATE_LIMIT_SCHOLARSHIP = (20, 60)
RATE_LIMIT_FEE_PREVIEW = (60, 60)


async def _check_admin_rate_limit(
    admin: AdminUser,
    action: str,
    limit: int,
    window_seconds: int,
) -> None:
    """
    Check rate limit for an admin action.

    Raises:
        RateLimitExceeded: If rate limit is exceeded
    """
    key = f"admin:{action}:{admin.id}"
    allowed = await check_rate_limit(key, limit, window_seconds)

    if not allowed:
        logger.warning(
            f"Rate limit exceeded for admin {admin.id} on action '{action}': "
            f"{limit}/{window_seconds}s"
        )
        raise RateLimitExceeded(limit, window_seconds)


# ============================================
# List & Stats Endpoints
# ============================================


@router.get(
    "",
    response_model=ApplicantListResponse,
    summary="List Applicants",
    description="""
Get paginated list of applicants with optional filters.

**Filters:**
- `status`: Filter by applicant status
- `course_interest`: Filter by course
- `search`: Search in name, email and phone
- `include_archived`: Include archived applicants (default false)

**Sorting:**
- `sort_by`: created_at or full_name. Default: created_at
- `sort_order`: asc or desc. Default: asc (oldest first)

**Access:** Super admin only
""",
    responses={
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not a super admin"},
    },
)
async def list_applicants(
    status: ApplicantStatus | None = Query(None, description="Filter by status"),
    course_interest: CourseInterest | None = Query(None, description="Filter by course"),
    search: str | None = Query(
        None,
        min_length=1,
        max_length=100,
        description="Search term for name/email/phone",
    ),
    include_archived: bool = Query(False, description="Include archived applicants"),
    sort_by: str = Query("created_at", description="Column to sort by"),
    sort_order: str = Query("asc", description="Sort direction (asc/desc)"),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Maximum records to return"),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicantListResponse:
    try:
        result = await service.admin_get_applicants_list(
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

        logger.info(
            f"Admin {admin.id} listed applicants: "
            f"total={result['total']}, returned={len(result['applicants'])}"
        )

        return ApplicantListResponse(
            applicants=[ApplicantListItem.model_validate(a) for a in result["applicants"]],
            total=result["total"],
            skip=result["skip"],
            limit=result["limit"],
        )

    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error listing applicants: {e}")
        raise internal_error() from e


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Get Dashboard Statistics",
    description="""
Aggregated counts for the admin dashboard.

Counts applicants per status (archived excluded), enrollments this month,
scholarship records awaiting verification and cashback claims awaiting review.

**Access:** Super admin only
""",
)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> DashboardStats:
    try:
        stats = await service.admin_get_dashboard_stats(db)

        logger.info(f"Admin {admin.id} fetched dashboard stats")

        return DashboardStats(**stats)

    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error getting dashboard stats: {e}")
        raise internal_error() from e


# ============================================
# Detail Endpoints
# ============================================


@router.get(
    "/{applicant_id}",
    response_model=ApplicantDetailResponse,
    summary="Get Applicant Details",
    responses={404: {"description": "Applicant not found"}},
)
async def get_applicant_detail(
    applicant_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApplicantDetailResponse:
    try:
        applicant = await service.admin_get_applicant_detail(db, applicant_id)

        logger.info(f"Admin {admin.id} viewed applicant {applicant_id}")

        return ApplicantDetailResponse.model_validate(applicant)

    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error getting applicant detail: {e}")
        raise internal_error() from e


@router.get(
    "/{applicant_id}/claims",
    response_model=ClaimListResponse,
    summary="List Applicant Cashback Claims",
    description="""
All cashback claims of the applicant's user, including rejected ones, with the
eligible total (verified + processed).
""",
    responses={404: {"description": "Applicant not found"}},
)
async def list_applicant_claims(
    applicant_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ClaimListResponse:
    try:
        claims, total = await service.list_applicant_claims(db, applicant_id)

        logger.info(f"Admin {admin.id} listed claims of applicant {applicant_id}")

        return ClaimListResponse(
            claims=[ClaimResponse.model_validate(c) for c in claims],
            total_eligible=total,
        )

    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error listing applicant claims: {e}")
        raise internal_error() from e


# ============================================
# Review & Decision Endpoints
# ============================================


@router.post(
    "/{applicant_id}/start-review",
    response_model=TransitionResponse,
    summary="Start Reviewing Applicant",
    description="""
Move an applicant from `new` to `under_review` and record the reviewer.

**Access:** Super admin only
""",
    responses={
        404: {"description": "Applicant not found"},
        409: {"description": "Applicant not in `new` status, or changed concurrently"},
    },
)
async def start_review(
    applicant_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> TransitionResponse:
    await _check_admin_rate_limit(admin, "start_review", *RATE_LIMIT_START_REVIEW)

    try:
        applicant = await service.start_review(db, applicant_id, admin.id)

        return TransitionResponse(
            id=applicant.id,
            status=applicant.status,
            message="Applicant is now under review",
        )

    except ServiceError as e:
        logger.warning(f"Cannot start review of {applicant_id}: {e.message}")
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error starting review: {e}")
        raise internal_error() from e


@router.post(
    "/{applicant_id}/fee-preview",
    response_model=FeePreviewResponse,
    summary="Preview Fee",
    description="""
Compute the fee breakdown for the given terms without saving anything.

Uses the course base fee unless `base_fee` is given, the applicant's
scholarship (counted only once verified) and their eligible cashback.
The `installment` scheme discards any discount.
""",
    responses={404: {"description": "Applicant not found"}},
)
async def preview_fee(
    applicant_id: UUID,
    data: FeePreviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> FeePreviewResponse:
    await _check_admin_rate_limit(admin, "fee_preview", *RATE_LIMIT_FEE_PREVIEW)

    try:
        return await service.preview_fee(db, applicant_id, data)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error previewing fee: {e}")
        raise internal_error() from e


@router.post(
    "/{applicant_id}/approve",
    response_model=ApproveResponse,
    summary="Approve Applicant",
    description="""
Approve an applicant with the chosen fee terms.

The fee breakdown is recomputed server-side from the terms and frozen on the
applicant. An email with payment instructions is sent.

**Requirements:**
- Applicant must be in `new` or `under_review` status
- Fee terms are required

**Access:** Super admin only
""",
    responses={
        400: {"description": "Fee terms missing"},
        404: {"description": "Applicant not found"},
        409: {"description": "Applicant not in a status that can be approved"},
    },
)
async def approve_applicant(
    applicant_id: UUID,
    data: ApproveRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ApproveResponse:
    await _check_admin_rate_limit(admin, "approve", *RATE_LIMIT_APPROVE)

    try:
        applicant, fee = await service.approve_with_terms(db, applicant_id, admin.id, data.fee)

        logger.info(
            f"Admin {admin.id} approved applicant {applicant_id} at {fee.final_fee}"
        )

        return ApproveResponse(
            id=applicant.id,
            status=applicant.status,
            fee=fee,
            message="Applicant approved, payment instructions sent",
        )

    except ServiceError as e:
        logger.warning(f"Cannot approve applicant {applicant_id}: {e.message}")
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error approving applicant: {e}")
        raise internal_error() from e


@router.post(
    "/{applicant_id}/reject",
    response_model=TransitionResponse,
    summary="Reject Applicant",
    description="""
Reject an applicant and email them the reason.

**Requirements:**
- Applicant must be in `new` or `under_review` status
- Reason must be at least 5 characters

**Access:** Super admin only
""",
    responses={
        404: {"description": "Applicant not found"},
        409: {"description": "Applicant not in a status that can be rejected"},
    },
)
async def reject_applicant(
    applicant_id: UUID,
    data: RejectRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> TransitionResponse:
    await _check_admin_rate_limit(admin, "reject", *RATE_LIMIT_REJECT)

    try:
        applicant = await service.reject(db, applicant_id, admin.id, data.reason)

        logger.info(f"Admin {admin.id} rejected applicant {applicant_id}")

        return TransitionResponse(
            id=applicant.id,
            status=applicant.status,
            message="Applicant rejected and notified",
        )

    except ServiceError as e:
        logger.warning(f"Cannot reject applicant {applicant_id}: {e.message}")
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error rejecting applicant: {e}")
        raise internal_error() from e


@router.post(
    "/{applicant_id}/archive",
    response_model=ArchiveResponse,
    summary="Archive Applicant",
    description="""
Hide an applicant from the default list and block further status changes.
Archiving an archived applicant returns it unchanged.
""",
    responses={404: {"description": "Applicant not found"}},
)
async def archive_applicant(
    applicant_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ArchiveResponse:
    await _check_admin_rate_limit(admin, "archive", *RATE_LIMIT_ARCHIVE)

    try:
        applicant = await service.archive(db, applicant_id, admin.id)
        return ArchiveResponse(id=applicant.id, archived_at=applicant.archived_at)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error archiving applicant: {e}")
        raise internal_error() from e


@router.post(
    "/{applicant_id}/scholarship/verify",
    response_model=ScholarshipResponse,
    summary="Verify Scholarship",
    description="""
Resolve the applicant's pending scholarship record after checking the school
ID card and, for the 95% tier, the income certificate.

Only a `verified` scholarship reduces the fee.
""",
    responses={
        404: {"description": "Applicant or scholarship record not found"},
        409: {"description": "Scholarship already resolved"},
    },
)
async def verify_scholarship(
    applicant_id: UUID,
    data: ScholarshipVerifyRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ScholarshipResponse:
    await _check_admin_rate_limit(admin, "scholarship_verify", *RATE_LIMIT_SCHOLARSHIP)

    try:
        record = await service.verify_scholarship(
            db,
            applicant_id,
            admin.id,
            VerificationStatus(data.outcome),
            data.notes,
        )
        return ScholarshipResponse.model_validate(record)
    except ServiceError as e:
        logger.warning(f"Cannot verify scholarship of {applicant_id}: {e.message}")
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error verifying scholarship: {e}")
        raise internal_error() from e
