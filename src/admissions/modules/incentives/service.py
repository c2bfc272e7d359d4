"""
Incentive Ledger Service

Records, verifies and settles cashback claims.

Guarantees:
- At most one live claim per (user, incentive type); recording the same
  claim twice returns the first one and never adds to the total
- Rejected claims stay on record but never count
- Only verified claims can be marked processed (paid out)
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from admissions.modules.incentives import repository
from admissions.modules.incentives.models import (
    INCENTIVE_AMOUNTS,
    ClaimStatus,
    IncentiveClaim,
    IncentiveType,
)
from admissions.modules.shared import (
    ClaimNotFoundError,
    ConflictError,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)

# Valid claim transitions
CLAIM_TRANSITIONS: dict[ClaimStatus, set[ClaimStatus]] = {
    ClaimStatus.PENDING: {ClaimStatus.VERIFIED, ClaimStatus.REJECTED},
    ClaimStatus.VERIFIED: {ClaimStatus.PROCESSED},
    ClaimStatus.REJECTED: set(),
    ClaimStatus.PROCESSED: set(),
}


def _sources_for(target: ClaimStatus) -> set[ClaimStatus]:
    return {source for source, targets in CLAIM_TRANSITIONS.items() if target in targets}


async def record_claim(
    db: AsyncSession,
    user_id: UUID,
    incentive_type: IncentiveType,
    evidence: dict[str, Any] | None = None,
    *,
    applicant_id: UUID | None = None,
    status: ClaimStatus = ClaimStatus.PENDING,
    commit: bool = True,
) -> IncentiveClaim:
    """
    Record a claim, or return the live claim already recorded for the pair.

    Args:
        db: Database session
        user_id: Owner of the claim
        incentive_type: Which incentive is claimed
        evidence: Proof attached to the claim (subscription id, handle, UTR)
        applicant_id: Application to link, when one exists
        status: PENDING for claims needing review, VERIFIED for claims the
                system proved itself (OAuth subscription, direct payment)
        commit: Commit before returning; pass False to join a larger unit of work

    Returns:
        The new claim, or the existing live claim unchanged
    """
    values: dict[str, Any] = {
        "user_id": user_id,
        "applicant_id": applicant_id,
        "incentive_type": incentive_type,
        "amount": INCENTIVE_AMOUNTS[incentive_type],
        "status": status,
        "evidence": evidence,
    }
    if status is ClaimStatus.VERIFIED:
        values["verified_at"] = datetime.now(UTC)

    claim = await repository.insert_if_absent(db, **values)

    if claim is None:
        claim = await repository.get_live_claim(db, user_id, incentive_type)
        if claim is None:
            # Live claim was rejected between our insert and read
            raise ConflictError(
                f"Claim for {incentive_type.value} changed concurrently, please retry."
            )
        logger.info(
            f"Claim {incentive_type.value} already recorded for user {user_id}: {claim.id}"
        )
    else:
        logger.info(
            f"Recorded {claim.status.value} claim {claim.id}: "
            f"{incentive_type.value} for user {user_id}"
        )

    if commit:
        await db.commit()

    return claim


async def _apply_transition(
    db: AsyncSession,
    claim_id: UUID,
    target: ClaimStatus,
    **values,
) -> IncentiveClaim:
    updated = await repository.transition(db, claim_id, _sources_for(target), target, **values)
    if updated is not None:
        await db.commit()
        return updated

    claim = await repository.get_by_id(db, claim_id)
    if claim is None:
        raise ClaimNotFoundError(claim_id)
    if target not in CLAIM_TRANSITIONS[claim.status]:
        logger.warning(
            f"Rejected claim transition {claim_id}: {claim.status.value} -> {target.value}"
        )
        raise InvalidTransitionError(claim.status.value, target.value)
    raise ConflictError(f"Claim {claim_id} was modified concurrently, please retry.")


async def verify_claim(
    db: AsyncSession,
    claim_id: UUID,
    admin_id: UUID,
    outcome: ClaimStatus,
) -> IncentiveClaim:
    """
    Review a pending claim.

    Raises:
        ClaimNotFoundError: If the claim doesn't exist
        InvalidTransitionError: If the claim is not pending or the outcome
            is neither verified nor rejected
    """
    if outcome not in (ClaimStatus.VERIFIED, ClaimStatus.REJECTED):
        raise InvalidTransitionError(ClaimStatus.PENDING.value, outcome.value)

    logger.info(f"Admin {admin_id} marking claim {claim_id} as {outcome.value}")
    return await _apply_transition(
        db,
        claim_id,
        outcome,
        verified_by=admin_id,
        verified_at=datetime.now(UTC),
    )


async def mark_processed(
    db: AsyncSession,
    claim_id: UUID,
    admin_id: UUID,
) -> IncentiveClaim:
    """
    Mark a verified claim as paid out.

    Raises:
        ClaimNotFoundError: If the claim doesn't exist
        InvalidTransitionError: If the claim is not verified
    """
    logger.info(f"Admin {admin_id} processing claim {claim_id}")
    return await _apply_transition(
        db,
        claim_id,
        ClaimStatus.PROCESSED,
        processed_by=admin_id,
        processed_at=datetime.now(UTC),
    )


async def total_eligible(db: AsyncSession, user_id: UUID) -> int:
    """Cashback owed to a user: verified plus processed claims."""
    return await repository.sum_eligible(db, user_id)


async def list_claims(db: AsyncSession, user_id: UUID) -> list[IncentiveClaim]:
    return await repository.list_for_user(db, user_id)
