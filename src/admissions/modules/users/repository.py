"""
User Repository

Database operations for user identity records.
"""

import logging
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.modules.users.models import User, UserType

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def find_or_create_by_email(
        db: AsyncSession,
        email: str,
        *,
        name: str | None = None,
        google_id: str | None = None,
        avatar_url: str | None = None,
        email_verified: bool = False,
    ) -> User:
        """
        Upsert a user by email.

        A single INSERT ... ON CONFLICT (email) DO UPDATE, so concurrent
        callers for the same email converge on one row. Known profile fields
        are never overwritten with NULL, and email_verified only ever turns on.

        Args:
            db: Database session
            email: Email address (normalized to lower-case)
            name: Display name, kept if already set
            google_id: Google account id from OAuth
            avatar_url: Profile picture URL
            email_verified: Whether the provider verified the email

        Returns:
            The existing or newly created User (flushed, not committed)
        """
        stmt = pg_insert(User).values(
            email=normalize_email(email),
            name=name,
            google_id=google_id,
            avatar_url=avatar_url,
            email_verified=email_verified,
            user_type=UserType.LEAD,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[User.email],
            set_={
                "name": func.coalesce(User.name, stmt.excluded.name),
                "google_id": func.coalesce(stmt.excluded.google_id, User.google_id),
                "avatar_url": func.coalesce(stmt.excluded.avatar_url, User.avatar_url),
                "email_verified": or_(User.email_verified, stmt.excluded.email_verified),
                "updated_at": func.now(),
            },
        )

        result = await db.scalars(
            stmt.returning(User),
            execution_options={"populate_existing": True},
        )
        user = result.one()

        logger.info(f"Resolved user {user.id} for email upsert")
        return user

    @staticmethod
    async def mark_student(db: AsyncSession, user_id: UUID) -> None:
        """Promote a lead to student once they enroll."""
        await db.execute(
            update(User)
            .where(User.id == user_id, User.user_type != UserType.STUDENT)
            .values(user_type=UserType.STUDENT)
        )
