"""create admissions tables

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration:
1. Creates the enum types (labels are the Python enum member names, which is
   what SQLAlchemy's Enum type persists)
2. Creates users, applicants, scholarship_records, incentive_claims, coupons
3. Adds the partial unique index that allows one live (non-rejected) claim
   per user and incentive type
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a7c1e2d3f4b5"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS: dict[str, tuple[str, ...]] = {
    "user_type": ("LEAD", "STUDENT"),
    "gender": ("MALE", "FEMALE", "OTHER"),
    "board": ("CBSE", "ICSE", "STATE", "IB", "OTHER"),
    "current_class": ("TENTH", "ELEVENTH", "TWELFTH", "PASSED"),
    "course_interest": ("NATA", "JEE_PAPER2", "BOTH"),
    "batch_preference": ("MORNING", "AFTERNOON", "EVENING", "WEEKEND"),
    "applicant_status": ("NEW", "UNDER_REVIEW", "APPROVED", "REJECTED", "ENROLLED"),
    "payment_scheme": ("FULL", "INSTALLMENT"),
    "payment_method": ("RAZORPAY", "DIRECT_TRANSFER"),
    "scholarship_verification_status": ("PENDING", "VERIFIED", "REJECTED"),
    "incentive_type": ("YOUTUBE_SUBSCRIPTION", "INSTAGRAM_FOLLOW", "DIRECT_PAYMENT_BONUS"),
    "claim_status": ("PENDING", "VERIFIED", "REJECTED", "PROCESSED"),
    "coupon_discount_type": ("FIXED", "PERCENTAGE"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create admissions tables."""
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("google_id", sa.String(length=100), nullable=True),
        sa.Column("user_type", _enum("user_type"), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "applicants",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        # Contact
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("gender", _enum("gender"), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("pincode", sa.String(length=10), nullable=True),
        # Academic profile
        sa.Column("school_name", sa.String(length=200), nullable=False),
        sa.Column("board", _enum("board"), nullable=False),
        sa.Column("current_class", _enum("current_class"), nullable=False),
        sa.Column("course_interest", _enum("course_interest"), nullable=False),
        sa.Column("batch_preference", _enum("batch_preference"), nullable=False),
        # Lead source
        sa.Column("source_category", sa.String(length=50), nullable=False),
        sa.Column("source_detail", sa.String(length=200), nullable=True),
        sa.Column("friend_referral_name", sa.String(length=200), nullable=True),
        sa.Column("friend_referral_phone", sa.String(length=20), nullable=True),
        sa.Column("cashback_phone", sa.String(length=20), nullable=True),
        # Status tracking
        sa.Column("status", _enum("applicant_status"), nullable=False, server_default="NEW"),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decision_reason", sa.Text(), nullable=True),
        # Fee
        sa.Column("assigned_fee", sa.Integer(), nullable=True),
        sa.Column("final_fee", sa.Integer(), nullable=True),
        sa.Column("payment_scheme", _enum("payment_scheme"), nullable=True),
        sa.Column(
            "fee_snapshot",
            postgresql.JSON(astext_type=sa.Text()),
            nullable=True,
            comment="FeeBreakdown frozen at approval",
        ),
        # Payment
        sa.Column("payment_method", _enum("payment_method"), nullable=True),
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.Column("amount_paid", sa.Integer(), nullable=True),
        sa.Column("cashback_total", sa.Integer(), nullable=True),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_applicants_user_id",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_applicants_status", "applicants", ["status"], unique=False)
    op.create_index("ix_applicants_email", "applicants", ["email"], unique=False)
    op.create_index("ix_applicants_user_id", "applicants", ["user_id"], unique=False)

    op.create_table(
        "scholarship_records",
        *_base_columns(),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("is_government_school", sa.Boolean(), nullable=False),
        sa.Column("years_in_government_school", sa.Integer(), nullable=False),
        sa.Column("is_low_income", sa.Boolean(), nullable=False),
        sa.Column("scholarship_percentage", sa.Integer(), nullable=False),
        sa.Column("school_id_card_url", sa.String(length=500), nullable=True),
        sa.Column("income_certificate_url", sa.String(length=500), nullable=True),
        sa.Column(
            "verification_status",
            _enum("scholarship_verification_status"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("verified_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["applicant_id"],
            ["applicants.id"],
            name="fk_scholarship_records_applicant_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("applicant_id", name="uq_scholarship_records_applicant_id"),
    )

    op.create_table(
        "incentive_claims",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("applicant_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("incentive_type", _enum("incentive_type"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", _enum("claim_status"), nullable=False, server_default="PENDING"),
        sa.Column("evidence", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("verified_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_incentive_claims_user_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["applicant_id"],
            ["applicants.id"],
            name="fk_incentive_claims_applicant_id",
            ondelete="SET NULL",
        ),
    )
    # One live claim per (user, incentive type); rejected claims stay on record
    op.create_index(
        "ix_incentive_claims_user_type_live",
        "incentive_claims",
        ["user_id", "incentive_type"],
        unique=True,
        postgresql_where=sa.text("status <> 'REJECTED'"),
    )
    op.create_index("ix_incentive_claims_user_id", "incentive_claims", ["user_id"], unique=False)
    op.create_index("ix_incentive_claims_status", "incentive_claims", ["status"], unique=False)

    op.create_table(
        "coupons",
        *_base_columns(),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("discount_type", _enum("coupon_discount_type"), nullable=False),
        sa.Column("discount_value", sa.Integer(), nullable=False),
        sa.Column(
            "valid_from",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("issued_to_user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("incentive_type", _enum("incentive_type"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["issued_to_user_id"],
            ["users.id"],
            name="fk_coupons_issued_to_user_id",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint(
            "issued_to_user_id",
            "incentive_type",
            name="uq_coupons_issued_to_user_incentive",
        ),
        sa.CheckConstraint("used_count <= max_uses", name="ck_coupons_used_count_max_uses"),
    )
    op.create_index(op.f("ix_coupons_code"), "coupons", ["code"], unique=True)


def downgrade() -> None:
    """Drop admissions tables and enum types."""
    op.drop_index(op.f("ix_coupons_code"), table_name="coupons")
    op.drop_table("coupons")

    op.drop_index("ix_incentive_claims_status", table_name="incentive_claims")
    op.drop_index("ix_incentive_claims_user_id", table_name="incentive_claims")
    op.drop_index("ix_incentive_claims_user_type_live", table_name="incentive_claims")
    op.drop_table("incentive_claims")

    op.drop_table("scholarship_records")

    op.drop_index("ix_applicants_user_id", table_name="applicants")
    op.drop_index("ix_applicants_email", table_name="applicants")
    op.drop_index("ix_applicants_status", table_name="applicants")
    op.drop_table("applicants")

    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        _enum(name).drop(bind, checkfirst=True)
