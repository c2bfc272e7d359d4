"""
Cashback Claims Admin Router

Endpoints:
- POST /admin/claims/{id}/verify - Verify or reject a pending claim
- POST /admin/claims/{id}/process - Mark a verified claim as paid out

All endpoints require a super_admin token and are rate limited per admin.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.auth import AdminUser, get_current_admin_user
from admissions.core.database import get_db
from admissions.core.rate_limit import RateLimitExceeded, check_rate_limit
from admissions.modules.incentives import service
from admissions.modules.incentives.models import ClaimStatus
from admissions.modules.incentives.schemas import ClaimResponse, VerifyClaimRequest
from admissions.modules.shared import ServiceError, internal_error, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_CLAIM_ACTION = (30, 60)  # 30 claim decisions per minute


async def _check_admin_rate_limit(admin: AdminUser, action: str) -> None:
    limit, window_seconds = RATE_LIMIT_CLAIM_ACTION
    if not await check_rate_limit(f"admin:{action}:{admin.id}", limit, window_seconds):
        logger.warning(f"Rate limit exceeded for admin {admin.id} on action '{action}'")
        raise RateLimitExceeded(limit, window_seconds)


@router.post(
    "/{claim_id}/verify",
    response_model=ClaimResponse,
    summary="Review Cashback Claim",
    description="""
Verify or reject a pending claim. Rejected claims stay on record but never
count toward the cashback total.
""",
    responses={
        404: {"description": "Claim not found"},
        409: {"description": "Claim is not pending"},
    },
)
async def verify_claim(
    claim_id: UUID,
    data: VerifyClaimRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ClaimResponse:
    await _check_admin_rate_limit(admin, "claim_verify")

    try:
        claim = await service.verify_claim(db, claim_id, admin.id, ClaimStatus(data.outcome))
        return ClaimResponse.model_validate(claim)
    except ServiceError as e:
        logger.warning(f"Cannot review claim {claim_id}: {e.message}")
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error reviewing claim: {e}")
        raise internal_error() from e


@router.post(
    "/{claim_id}/process",
    response_model=ClaimResponse,
    summary="Mark Claim Paid",
    responses={
        404: {"description": "Claim not found"},
        409: {"description": "Claim is not verified"},
    },
)
async def process_claim(
    claim_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> ClaimResponse:
    await _check_admin_rate_limit(admin, "claim_process")

    try:
        claim = await service.mark_processed(db, claim_id, admin.id)
        return ClaimResponse.model_validate(claim)
    except ServiceError as e:
        logger.warning(f"Cannot process claim {claim_id}: {e.message}")
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error processing claim: {e}")
        raise internal_error() from e
