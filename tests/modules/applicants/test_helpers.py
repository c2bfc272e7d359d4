"""
Tests for application form validation.
"""

from admissions.modules.applicants.helpers import mask_email, validate_application
from admissions.modules.applicants.schemas import ApplicationCreate


def test_valid_application_has_no_errors(valid_application):
    assert validate_application(valid_application) == {}


def test_empty_submission_reports_every_required_field():
    errors = validate_application(ApplicationCreate())

    assert errors == {
        "full_name": "Full name is required",
        "email": "Email is required",
        "phone": "Phone is required",
        "gender": "Gender is required",
        "school_name": "School name is required",
        "board": "Board is required",
        "current_class": "Current class is required",
        "course_interest": "Course interest is required",
        "batch_preference": "Batch preference is required",
        "source_category": "Please tell us how you heard about us",
        "terms_accepted": "You must accept the terms and conditions",
    }


def test_format_errors(valid_application):
    data = valid_application.model_copy(
        update={"email": "not-an-email", "phone": "12345", "board": "gcse"}
    )

    errors = validate_application(data)

    assert errors == {
        "email": "Invalid email format",
        "phone": "Enter valid 10-digit mobile number",
        "board": "Invalid board",
    }


def test_phone_must_start_with_six_to_nine(valid_application):
    data = valid_application.model_copy(update={"phone": "5876543210"})

    assert "phone" in validate_application(data)


def test_scholarship_requires_documents(valid_application):
    data = valid_application.model_copy(
        update={
            "is_government_school": True,
            "years_in_government_school": 0,
            "is_low_income": True,
        }
    )

    errors = validate_application(data)

    assert errors == {
        "years_in_government_school": "Enter years in government school",
        "school_id_card_url": "School ID card is required for scholarship",
        "income_certificate_url": "Income certificate is required for 95% scholarship",
    }


def test_instagram_follow_requires_handle_and_payout_phone(valid_application):
    data = valid_application.model_copy(update={"instagram_followed": True})

    errors = validate_application(data)

    assert set(errors) == {"instagram_username", "cashback_phone"}


def test_friend_referral_requires_name(valid_application):
    data = valid_application.model_copy(update={"source_category": "friend_referral"})

    assert validate_application(data) == {"friend_referral_name": "Friend's name is required"}


def test_mask_email():
    assert mask_email("priya@example.com") == "pr***@example.com"
    assert mask_email("broken") == "***"
