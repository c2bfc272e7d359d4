"""
Coupon Background Jobs

Hourly housekeeping: deactivate coupons whose validity window has ended so
they stop showing as usable in admin views. Validation also checks the
window, so a missed run never lets an expired coupon through.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from admissions.core.database import async_session_maker
from admissions.core.scheduler import register_job
from admissions.modules.coupons import repository

logger = logging.getLogger(__name__)

JOB_ID_DEACTIVATE_EXPIRED = "coupons_deactivate_expired"


async def deactivate_expired_coupons() -> dict[str, Any]:
    """
    Deactivate every active coupon past its valid_until.

    Idempotent: a second run finds nothing left to deactivate.
    """
    now = datetime.now(UTC)
    logger.info(f"Starting expired coupon sweep at {now.isoformat()}")

    async with async_session_maker() as db:
        deactivated = await repository.deactivate_expired(db, now)
        await db.commit()

    logger.info(f"Expired coupon sweep completed. Deactivated: {deactivated}")
    return {"deactivated": deactivated, "executed_at": now.isoformat()}


def register_coupon_jobs() -> None:
    """Register coupon jobs; call during startup before the scheduler starts."""
    register_job(
        job_id=JOB_ID_DEACTIVATE_EXPIRED,
        func=deactivate_expired_coupons,
        trigger=IntervalTrigger(hours=1),
    )
    logger.info(f"Registered job: {JOB_ID_DEACTIVATE_EXPIRED} (interval: 1 hour)")
