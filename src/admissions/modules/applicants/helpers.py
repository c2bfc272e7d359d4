"""
Applicant Helpers

Form validation and display helpers shared by the service and routers.
"""

import re

from admissions.modules.applicants.models import (
    ApplicantStatus,
    BatchPreference,
    Board,
    CourseInterest,
    CurrentClass,
    Gender,
)
from admissions.modules.applicants.schemas import ApplicationCreate

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Indian mobile numbers: 10 digits starting 6-9
PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")

FRIEND_REFERRAL = "friend_referral"

COURSE_LABELS = {
    CourseInterest.NATA: "NATA",
    CourseInterest.JEE_PAPER2: "JEE Paper 2",
    CourseInterest.BOTH: "NATA + JEE Paper 2",
}

STATUS_LABELS = {
    ApplicantStatus.NEW: "Submitted",
    ApplicantStatus.UNDER_REVIEW: "Under Review",
    ApplicantStatus.APPROVED: "Approved - Payment Pending",
    ApplicantStatus.REJECTED: "Not Accepted",
    ApplicantStatus.ENROLLED: "Enrolled",
}

STATUS_DESCRIPTIONS = {
    ApplicantStatus.NEW: "Your application has been received and is waiting for review.",
    ApplicantStatus.UNDER_REVIEW: "Our admissions team is reviewing your application.",
    ApplicantStatus.APPROVED: "Your application is approved. Complete your payment to enroll.",
    ApplicantStatus.REJECTED: "Unfortunately we could not accept your application.",
    ApplicantStatus.ENROLLED: "Your payment is confirmed and you are enrolled.",
}


def _is_blank(value: str | None) -> bool:
    return not value or not value.strip()


def _check_choice(
    errors: dict[str, str],
    field: str,
    value: str,
    choices: type,
    required_message: str,
) -> None:
    if _is_blank(value):
        errors[field] = required_message
    elif value not in {c.value for c in choices}:
        errors[field] = f"Invalid {field.replace('_', ' ')}"


def validate_application(data: ApplicationCreate) -> dict[str, str]:
    """
    Validate a submission and return every problem found.

    Returns:
        Mapping of field name to message; empty when the submission is valid
    """
    errors: dict[str, str] = {}

    # Basic details
    if _is_blank(data.full_name):
        errors["full_name"] = "Full name is required"
    if _is_blank(data.email):
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.match(data.email.strip()):
        errors["email"] = "Invalid email format"
    if _is_blank(data.phone):
        errors["phone"] = "Phone is required"
    elif not PHONE_PATTERN.match(data.phone.strip()):
        errors["phone"] = "Enter valid 10-digit mobile number"
    _check_choice(errors, "gender", data.gender, Gender, "Gender is required")

    # Education
    if _is_blank(data.school_name):
        errors["school_name"] = "School name is required"
    _check_choice(errors, "board", data.board, Board, "Board is required")
    _check_choice(
        errors, "current_class", data.current_class, CurrentClass, "Current class is required"
    )
    _check_choice(
        errors,
        "course_interest",
        data.course_interest,
        CourseInterest,
        "Course interest is required",
    )
    _check_choice(
        errors,
        "batch_preference",
        data.batch_preference,
        BatchPreference,
        "Batch preference is required",
    )

    # Scholarship
    if data.is_government_school:
        if data.years_in_government_school < 1:
            errors["years_in_government_school"] = "Enter years in government school"
        if _is_blank(data.school_id_card_url):
            errors["school_id_card_url"] = "School ID card is required for scholarship"
        if data.is_low_income and _is_blank(data.income_certificate_url):
            errors["income_certificate_url"] = (
                "Income certificate is required for 95% scholarship"
            )

    # Cashback
    if data.instagram_followed and _is_blank(data.instagram_username):
        errors["instagram_username"] = "Instagram username is required"
    if data.instagram_followed and _is_blank(data.cashback_phone):
        errors["cashback_phone"] = "Phone number for cashback transfer is required"

    # Source
    if _is_blank(data.source_category):
        errors["source_category"] = "Please tell us how you heard about us"
    elif data.source_category == FRIEND_REFERRAL and _is_blank(data.friend_referral_name):
        errors["friend_referral_name"] = "Friend's name is required"

    if not data.terms_accepted:
        errors["terms_accepted"] = "You must accept the terms and conditions"

    return errors


def mask_email(email: str) -> str:
    """Mask an email for logs: jo***@example.com."""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:2]}***@{domain}"
