"""
Fixtures for applicant tests.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from admissions.modules.applicants.models import (
    Applicant,
    ApplicantStatus,
    CourseInterest,
    ScholarshipRecord,
    VerificationStatus,
)
from admissions.modules.applicants.schemas import ApplicationCreate


@pytest.fixture
def applicant_id():
    return uuid4()


@pytest.fixture
def valid_application():
    """A complete, valid submission (no scholarship, no cashback)."""
    return ApplicationCreate(
        full_name="Priya Raman",
        email="Priya.Raman@Example.com",
        phone="9876543210",
        gender="female",
        city="Chennai",
        state="Tamil Nadu",
        school_name="Government Higher Secondary School",
        board="state",
        current_class="12th",
        course_interest="both",
        batch_preference="weekend",
        source_category="youtube",
        terms_accepted=True,
    )


@pytest.fixture
def make_applicant(applicant_id, user_id):
    """Factory for applicant mocks in a given status."""

    def _make(status: ApplicantStatus = ApplicantStatus.NEW, **overrides):
        applicant = MagicMock(spec=Applicant)
        applicant.id = applicant_id
        applicant.user_id = user_id
        applicant.full_name = "Priya Raman"
        applicant.email = "priya.raman@example.com"
        applicant.phone = "9876543210"
        applicant.course_interest = CourseInterest.BOTH
        applicant.status = status
        applicant.archived_at = None
        applicant.created_at = datetime.now(UTC)
        applicant.final_fee = None
        applicant.payment_scheme = None
        applicant.fee_snapshot = None
        applicant.cashback_total = None
        for key, value in overrides.items():
            setattr(applicant, key, value)
        return applicant

    return _make


@pytest.fixture
def make_scholarship(applicant_id):
    def _make(
        percentage: int = 95,
        status: VerificationStatus = VerificationStatus.PENDING,
    ):
        record = MagicMock(spec=ScholarshipRecord)
        record.applicant_id = applicant_id
        record.scholarship_percentage = percentage
        record.verification_status = status
        record.is_verified = status is VerificationStatus.VERIFIED
        return record

    return _make
