"""
Service Errors

Every business failure raised by a service is a ServiceError carrying a
stable error code and the HTTP status the routers should answer with.
"""

from uuid import UUID

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised with the complete field -> message mapping of a rejected payload."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__(
            message=f"Validation failed for {len(errors)} field(s): {', '.join(sorted(errors))}",
            error_code="VALIDATION_ERROR",
            status_code=422,
        )


class InvalidTransitionError(ServiceError):
    """Raised when a state change is not allowed from the current state."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(
            message=f"Invalid transition: {current} -> {attempted}",
            error_code="INVALID_TRANSITION",
            status_code=409,
        )


class PreconditionError(ServiceError):
    """Raised when an operation is missing required input or prior state."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="PRECONDITION_FAILED",
            status_code=400,
        )


class SecurityError(ServiceError):
    """Raised on state mismatches, bad signatures and similar checks."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="SECURITY_ERROR",
            status_code=403,
        )


class ExternalServiceError(ServiceError):
    """Raised when a third-party call fails or times out."""

    def __init__(self, service: str, message: str):
        self.service = service
        self.reason = message
        super().__init__(
            message=f"{service}: {message}",
            error_code="EXTERNAL_SERVICE_ERROR",
            status_code=502,
        )


class ConflictError(ServiceError):
    """Raised when a concurrent writer changed the row first."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="CONFLICT",
            status_code=409,
        )


class NotFoundError(ServiceError):
    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message=message, error_code=error_code, status_code=404)


class ApplicantNotFoundError(NotFoundError):
    def __init__(self, applicant_id: UUID | None = None):
        message = f"Applicant {applicant_id} not found" if applicant_id else "Applicant not found"
        super().__init__(message, "APPLICANT_NOT_FOUND")


class ClaimNotFoundError(NotFoundError):
    def __init__(self, claim_id: UUID | None = None):
        message = f"Claim {claim_id} not found" if claim_id else "Claim not found"
        super().__init__(message, "CLAIM_NOT_FOUND")


class CouponNotFoundError(NotFoundError):
    def __init__(self, code: str | None = None):
        message = f"Coupon {code} not found" if code else "Coupon not found"
        super().__init__(message, "COUPON_NOT_FOUND")


def to_http_exception(e: ServiceError) -> HTTPException:
    """Convert a service error into the structured HTTP error body routers return."""
    detail: dict = {
        "error": e.error_code,
        "message": e.message,
    }
    if isinstance(e, ValidationError):
        detail["fields"] = e.errors
    return HTTPException(status_code=e.status_code, detail=detail)


def internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )
