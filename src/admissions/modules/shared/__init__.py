"""
Shared module - ORM base model and service errors.
"""

from admissions.modules.shared.errors import (
    ApplicantNotFoundError,
    ClaimNotFoundError,
    ConflictError,
    CouponNotFoundError,
    ExternalServiceError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    SecurityError,
    ServiceError,
    ValidationError,
    internal_error,
    to_http_exception,
)
from admissions.modules.shared.models import BaseModel

__all__ = [
    "BaseModel",
    "ServiceError",
    "ValidationError",
    "InvalidTransitionError",
    "PreconditionError",
    "SecurityError",
    "ExternalServiceError",
    "ConflictError",
    "NotFoundError",
    "ApplicantNotFoundError",
    "ClaimNotFoundError",
    "CouponNotFoundError",
    "internal_error",
    "to_http_exception",
]
