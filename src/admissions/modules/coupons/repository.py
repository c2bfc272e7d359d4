"""
Coupon Repository

Database operations for coupons. Issuance uses INSERT ... ON CONFLICT DO
NOTHING without a conflict target, so both a concurrent issuance for the same
user/incentive and a random code collision surface as "no row inserted".
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.modules.incentives.models import IncentiveType

from .models import Coupon


async def get_by_code(db: AsyncSession, code: str) -> Coupon | None:
    """Get coupon by code (case-insensitive)."""
    result = await db.execute(select(Coupon).where(Coupon.code == code.strip().upper()))
    return result.scalar_one_or_none()


async def get_issued(
    db: AsyncSession,
    user_id: UUID,
    incentive_type: IncentiveType,
) -> Coupon | None:
    """Get the coupon issued to a user for an incentive, if any."""
    result = await db.execute(
        select(Coupon).where(
            Coupon.issued_to_user_id == user_id,
            Coupon.incentive_type == incentive_type,
        )
    )
    return result.scalar_one_or_none()


async def insert_if_absent(db: AsyncSession, **values) -> Coupon | None:
    """
    Insert a coupon, skipping on any unique conflict.

    Returns:
        The new coupon, or None when the insert was skipped
    """
    stmt = pg_insert(Coupon).values(**values).on_conflict_do_nothing().returning(Coupon)
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


async def increment_usage(db: AsyncSession, code: str, now: datetime) -> Coupon | None:
    """
    Atomically consume one use of an active coupon inside its validity window.

    Returns:
        The updated coupon, or None if it is inactive, out of window or exhausted
    """
    stmt = (
        update(Coupon)
        .where(
            Coupon.code == code.strip().upper(),
            Coupon.is_active.is_(True),
            Coupon.valid_from <= now,
            or_(Coupon.valid_until.is_(None), Coupon.valid_until >= now),
            Coupon.used_count < Coupon.max_uses,
        )
        .values(used_count=Coupon.used_count + 1)
        .returning(Coupon)
    )
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


async def deactivate_expired(db: AsyncSession, now: datetime) -> int:
    """
    Deactivate active coupons whose validity window has ended.

    Returns:
        Number of coupons deactivated
    """
    result = await db.execute(
        update(Coupon)
        .where(
            Coupon.is_active.is_(True),
            Coupon.valid_until.is_not(None),
            Coupon.valid_until < now,
        )
        .values(is_active=False)
    )
    return result.rowcount or 0
