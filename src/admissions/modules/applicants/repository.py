"""
Applicant Repository

Database operations for applicants and their scholarship records.

Status changes go through ``transition``: a single
UPDATE ... WHERE status IN (allowed sources) RETURNING, so the state machine
is enforced by the database row itself and concurrent admins cannot both
move the same applicant.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import and_, asc, case, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.modules.incentives.models import ClaimStatus, IncentiveClaim

from .models import (
    Applicant,
    ApplicantStatus,
    BatchPreference,
    Board,
    CourseInterest,
    CurrentClass,
    Gender,
    ScholarshipRecord,
    VerificationStatus,
)
from .schemas import ApplicationCreate

# Valid status transitions. NEW may be decided directly (fast-track).
VALID_STATUS_TRANSITIONS: dict[ApplicantStatus, set[ApplicantStatus]] = {
    ApplicantStatus.NEW: {
        ApplicantStatus.UNDER_REVIEW,
        ApplicantStatus.APPROVED,
        ApplicantStatus.REJECTED,
    },
    ApplicantStatus.UNDER_REVIEW: {
        ApplicantStatus.APPROVED,
        ApplicantStatus.REJECTED,
    },
    ApplicantStatus.APPROVED: {
        ApplicantStatus.ENROLLED,
    },
    # Terminal states
    ApplicantStatus.REJECTED: set(),
    ApplicantStatus.ENROLLED: set(),
}


def allowed_sources(target: ApplicantStatus) -> set[ApplicantStatus]:
    """Statuses from which ``target`` can be reached."""
    return {
        source for source, targets in VALID_STATUS_TRANSITIONS.items() if target in targets
    }


async def create(
    db: AsyncSession,
    data: ApplicationCreate,
    user_id: UUID,
    email: str,
) -> Applicant:
    """Create a new applicant in NEW status (flushed, not committed)."""
    applicant = Applicant(
        user_id=user_id,
        # Contact
        full_name=data.full_name.strip(),
        email=email,
        phone=data.phone.strip(),
        gender=Gender(data.gender),
        date_of_birth=data.date_of_birth,
        address=data.address,
        city=data.city,
        state=data.state,
        pincode=data.pincode,
        # Education
        school_name=data.school_name.strip(),
        board=Board(data.board),
        current_class=CurrentClass(data.current_class),
        course_interest=CourseInterest(data.course_interest),
        batch_preference=BatchPreference(data.batch_preference),
        # Source
        source_category=data.source_category,
        source_detail=data.source_detail,
        friend_referral_name=data.friend_referral_name.strip() or None,
        friend_referral_phone=data.friend_referral_phone,
        cashback_phone=data.cashback_phone.strip() or None,
        status=ApplicantStatus.NEW,
    )

    db.add(applicant)
    await db.flush()

    return applicant


async def create_scholarship(
    db: AsyncSession,
    applicant_id: UUID,
    data: ApplicationCreate,
    scholarship_percentage: int,
) -> ScholarshipRecord:
    """Create the applicant's scholarship record (flushed, not committed)."""
    record = ScholarshipRecord(
        applicant_id=applicant_id,
        is_government_school=data.is_government_school,
        years_in_government_school=data.years_in_government_school,
        is_low_income=data.is_low_income,
        scholarship_percentage=scholarship_percentage,
        school_id_card_url=data.school_id_card_url,
        income_certificate_url=data.income_certificate_url,
        verification_status=VerificationStatus.PENDING,
    )

    db.add(record)
    await db.flush()

    return record


async def get_by_id(db: AsyncSession, id: UUID, *, refresh: bool = False) -> Applicant | None:
    """Get applicant by ID. ``refresh`` bypasses the identity map."""
    return await db.get(Applicant, id, populate_existing=refresh)


async def get_scholarship(db: AsyncSession, applicant_id: UUID) -> ScholarshipRecord | None:
    result = await db.execute(
        select(ScholarshipRecord).where(ScholarshipRecord.applicant_id == applicant_id)
    )
    return result.scalar_one_or_none()


async def transition(
    db: AsyncSession,
    id: UUID,
    to_status: ApplicantStatus,
    **values,
) -> Applicant | None:
    """
    Compare-and-set a status change.

    Matches only a non-archived applicant whose current status may move to
    ``to_status``. Does not commit.

    Returns:
        The updated applicant, or None when no row matched
    """
    stmt = (
        update(Applicant)
        .where(
            Applicant.id == id,
            Applicant.status.in_(allowed_sources(to_status)),
            Applicant.archived_at.is_(None),
        )
        .values(status=to_status, **values)
        .returning(Applicant)
    )
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


async def verify_scholarship(
    db: AsyncSession,
    applicant_id: UUID,
    outcome: VerificationStatus,
    **values,
) -> ScholarshipRecord | None:
    """Compare-and-set PENDING -> outcome on the scholarship record."""
    stmt = (
        update(ScholarshipRecord)
        .where(
            ScholarshipRecord.applicant_id == applicant_id,
            ScholarshipRecord.verification_status == VerificationStatus.PENDING,
        )
        .values(verification_status=outcome, **values)
        .returning(ScholarshipRecord)
    )
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


async def archive(
    db: AsyncSession,
    id: UUID,
    archived_by: UUID,
) -> Applicant | None:
    """Set archived_at once; returns None if missing or already archived."""
    stmt = (
        update(Applicant)
        .where(Applicant.id == id, Applicant.archived_at.is_(None))
        .values(archived_at=datetime.now(UTC), archived_by=archived_by)
        .returning(Applicant)
    )
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


# ============================================
# Admin Queries
# ============================================


async def get_applicants_for_admin(
    db: AsyncSession,
    *,
    status: ApplicantStatus | None = None,
    course_interest: CourseInterest | None = None,
    search: str | None = None,
    include_archived: bool = False,
    sort_by: str = "created_at",
    sort_order: str = "asc",
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Applicant], int]:
    """
    Get applicants with filters, sorting and pagination for the admin console.

    Args:
        db: Database session
        status: Filter by status
        course_interest: Filter by course
        search: Case-insensitive match on name, email or phone
        include_archived: Include archived applicants
        sort_by: created_at | full_name
        sort_order: asc | desc
        skip: Records to skip
        limit: Maximum records to return

    Returns:
        Tuple of (applicants, total count matching filters)
    """
    query = select(Applicant)

    if status:
        query = query.where(Applicant.status == status)

    if course_interest:
        query = query.where(Applicant.course_interest == course_interest)

    if not include_archived:
        query = query.where(Applicant.archived_at.is_(None))

    if search:
        search_pattern = f"%{search}%"
        query = query.where(
            or_(
                Applicant.full_name.ilike(search_pattern),
                Applicant.email.ilike(search_pattern),
                Applicant.phone.ilike(search_pattern),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    if sort_by not in {"created_at", "full_name"}:
        sort_by = "created_at"

    sort_column = getattr(Applicant, sort_by)
    if sort_order.lower() == "desc":
        query = query.order_by(desc(sort_column))
    else:
        query = query.order_by(asc(sort_column))

    result = await db.execute(query.offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def get_dashboard_stats(db: AsyncSession) -> dict:
    """
    Aggregated counts for the admin dashboard (archived applicants excluded).

    Returns:
        Dict with per-status counts, enrolled_this_month, pending_scholarships
        and pending_claims
    """
    now = datetime.now(UTC)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    def count_status(s: ApplicantStatus):
        return func.count(case((Applicant.status == s, 1))).label(s.value)

    status_query = select(
        *(count_status(s) for s in ApplicantStatus),
        func.count(
            case(
                (
                    and_(
                        Applicant.status == ApplicantStatus.ENROLLED,
                        Applicant.enrolled_at >= month_start,
                    ),
                    1,
                ),
            )
        ).label("enrolled_this_month"),
    ).where(Applicant.archived_at.is_(None))

    row = (await db.execute(status_query)).one()

    pending_scholarships = (
        await db.execute(
            select(func.count())
            .select_from(ScholarshipRecord)
            .where(ScholarshipRecord.verification_status == VerificationStatus.PENDING)
        )
    ).scalar() or 0

    pending_claims = (
        await db.execute(
            select(func.count())
            .select_from(IncentiveClaim)
            .where(IncentiveClaim.status == ClaimStatus.PENDING)
        )
    ).scalar() or 0

    stats = {s.value: getattr(row, s.value) for s in ApplicantStatus}
    stats["enrolled_this_month"] = row.enrolled_this_month
    stats["pending_scholarships"] = pending_scholarships
    stats["pending_claims"] = pending_claims
    return stats

