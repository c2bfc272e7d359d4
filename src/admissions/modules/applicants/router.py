"""
Applications Router

Public endpoints for the admission flow. No authentication: applicants
identify themselves by application id plus email.

Endpoints:
- POST /applications - Submit a new application
- GET /applications/{id}/status - Applicant-facing status
- POST /applications/{id}/payment-confirmation - Confirm payment and enroll

Security:
- Email must match to read an application's status
- Gateway payments are accepted only with a valid Razorpay signature
- Input validation collects every invalid field in one 422 response
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.database import get_db
from admissions.modules.applicants import service
from admissions.modules.applicants.schemas import (
    ApplicationCreate,
    ApplicationStatusResponse,
    ApplicationSubmitResponse,
    EnrollmentResponse,
    PaymentConfirmation,
)
from admissions.modules.shared import (
    SecurityError,
    ServiceError,
    ValidationError,
    internal_error,
    to_http_exception,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=ApplicationSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Application",
    description="""
Submit a new course application.

After submission:
1. The applicant is created in `new` status
2. Government-school students get a scholarship record (pending verification)
3. An Instagram follow, if declared, is recorded as a pending cashback claim
4. A confirmation email is sent

**Validation:**
All fields are checked together; a 422 response lists every invalid field.
""",
    responses={
        201: {
            "description": "Application created",
            "model": ApplicationSubmitResponse,
        },
        422: {
            "description": "One or more fields are invalid",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "VALIDATION_ERROR",
                            "message": "Validation failed for 2 field(s): board, phone",
                            "fields": {
                                "phone": "Enter valid 10-digit mobile number",
                                "board": "Board is required",
                            },
                        }
                    }
                }
            },
        },
    },
)
async def submit_application(
    data: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
) -> ApplicationSubmitResponse:
    """
    Submit a new application.

    Raises:
        HTTPException 422: If any field is invalid
    """
    try:
        response = await service.submit_application(db, data)

        logger.info(f"Application submitted successfully: id={response.id}")

        return response

    except ValidationError as e:
        logger.warning(f"Application validation failed: {sorted(e.errors)}")
        raise to_http_exception(e) from e
    except ServiceError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error submitting application: {e}")
        raise internal_error() from e


@router.get(
    "/{applicant_id}/status",
    response_model=ApplicationStatusResponse,
    summary="Get Application Status",
    description="""
Check the status of an application.

The email used when applying must be supplied. A wrong email yields the
same 404 as an unknown id.

Once approved, the response carries the final fee and installment split.
""",
    responses={
        200: {
            "description": "Application status",
            "model": ApplicationStatusResponse,
        },
        404: {
            "description": "Application not found or email mismatch",
        },
    },
)
async def get_application_status(
    applicant_id: UUID,
    email: EmailStr = Query(..., description="Email used when applying"),
    db: AsyncSession = Depends(get_db),
) -> ApplicationStatusResponse:
    try:
        return await service.get_application_status(db, applicant_id, email)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error getting application status: {e}")
        raise internal_error() from e


@router.post(
    "/{applicant_id}/payment-confirmation",
    response_model=EnrollmentResponse,
    summary="Confirm Payment",
    description="""
Confirm payment for an approved application and enroll the applicant.

**Methods:**
- `razorpay`: requires `razorpay_order_id`, `razorpay_payment_id` and
  `razorpay_signature`; the signature is verified before anything changes
- `direct_transfer`: requires the bank `utr_number`; earns the direct payment
  cashback bonus

An optional `coupon_code` is redeemed as part of the same enrollment.
""",
    responses={
        200: {
            "description": "Applicant enrolled",
            "model": EnrollmentResponse,
        },
        403: {
            "description": "Payment signature invalid",
        },
        404: {
            "description": "Application or coupon not found",
        },
        409: {
            "description": "Application not approved, or coupon already used",
        },
    },
)
async def confirm_payment(
    applicant_id: UUID,
    confirmation: PaymentConfirmation,
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResponse:
    try:
        result = await service.confirm_enrollment(db, applicant_id, confirmation)

        logger.info(f"Payment confirmed for applicant {applicant_id}")

        return result

    except SecurityError as e:
        logger.warning(f"Payment confirmation refused for {applicant_id}: {e.message}")
        raise to_http_exception(e) from e
    except ServiceError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error confirming payment: {e}")
        raise internal_error() from e
