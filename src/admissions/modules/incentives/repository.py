"""
Incentive Ledger Repository

Database operations for cashback claims. Inserts are idempotent through the
live-claim partial unique index; status changes are compare-and-set updates
so two admins acting at once cannot both win.
"""

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    ELIGIBLE_STATUSES,
    LIVE_CLAIM_PREDICATE,
    ClaimStatus,
    IncentiveClaim,
    IncentiveType,
)


async def get_by_id(db: AsyncSession, id: UUID) -> IncentiveClaim | None:
    """Get claim by ID."""
    return await db.get(IncentiveClaim, id)


async def get_live_claim(
    db: AsyncSession,
    user_id: UUID,
    incentive_type: IncentiveType,
) -> IncentiveClaim | None:
    """Get the user's non-rejected claim of a type, if any."""
    result = await db.execute(
        select(IncentiveClaim).where(
            IncentiveClaim.user_id == user_id,
            IncentiveClaim.incentive_type == incentive_type,
            IncentiveClaim.status != ClaimStatus.REJECTED,
        )
    )
    return result.scalar_one_or_none()


async def insert_if_absent(db: AsyncSession, **values) -> IncentiveClaim | None:
    """
    Insert a claim unless a live claim exists for (user_id, incentive_type).

    Returns:
        The new claim, or None when the insert was skipped
    """
    stmt = (
        pg_insert(IncentiveClaim)
        .values(**values)
        .on_conflict_do_nothing(
            index_elements=["user_id", "incentive_type"],
            index_where=LIVE_CLAIM_PREDICATE,
        )
        .returning(IncentiveClaim)
    )
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


async def transition(
    db: AsyncSession,
    id: UUID,
    from_statuses: set[ClaimStatus],
    to_status: ClaimStatus,
    **values,
) -> IncentiveClaim | None:
    """
    Move a claim to ``to_status`` only if it is currently in ``from_statuses``.

    Returns:
        The updated claim, or None when no row matched
    """
    stmt = (
        update(IncentiveClaim)
        .where(IncentiveClaim.id == id, IncentiveClaim.status.in_(from_statuses))
        .values(status=to_status, **values)
        .returning(IncentiveClaim)
    )
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


async def sum_eligible(db: AsyncSession, user_id: UUID) -> int:
    """Sum of amounts over verified and processed claims."""
    result = await db.execute(
        select(func.coalesce(func.sum(IncentiveClaim.amount), 0)).where(
            IncentiveClaim.user_id == user_id,
            IncentiveClaim.status.in_(ELIGIBLE_STATUSES),
        )
    )
    return int(result.scalar() or 0)


async def list_for_user(db: AsyncSession, user_id: UUID) -> list[IncentiveClaim]:
    result = await db.execute(
        select(IncentiveClaim)
        .where(IncentiveClaim.user_id == user_id)
        .order_by(IncentiveClaim.created_at)
    )
    return list(result.scalars().all())
