"""
User Models

Identity records for prospective and enrolled students, keyed by email.
Admin identities are not stored here.
"""

from enum import Enum

from sqlalchemy import Boolean, String
from sqlalchemy.dialects.postgresql import ENUM
from sqlalchemy.orm import Mapped, mapped_column

from admissions.modules.shared import BaseModel


class UserType(str, Enum):
    """Lifecycle stage of a user."""

    LEAD = "lead"
    STUDENT = "student"


class User(BaseModel):
    """
    A person known to the admissions system.

    Created the first time an email shows up, either from an application
    submission or from a Google OAuth callback, and reused afterwards.
    """

    __tablename__ = "users"

    # Always stored lower-case
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    google_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    user_type: Mapped[UserType] = mapped_column(
        ENUM(UserType, name="user_type", create_type=True),
        nullable=False,
        default=UserType.LEAD,
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, type={self.user_type.value})>"
