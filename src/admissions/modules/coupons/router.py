"""
Coupons Router

Public coupon lookup used by the checkout page.

Endpoints:
- GET /coupons/{code}/validate?amount= - Check a coupon against an order amount
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from admissions.core.database import get_db
from admissions.modules.coupons import service
from admissions.modules.coupons.schemas import CouponValidationResponse
from admissions.modules.shared import ServiceError, internal_error, to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{code}/validate",
    response_model=CouponValidationResponse,
    summary="Validate Coupon",
    description="""
Check whether a coupon code can be applied to an order amount.

Codes are case-insensitive. An invalid, inactive, expired or exhausted coupon
returns `valid: false` with a human-readable message rather than an error.
""",
)
async def validate_coupon(
    code: str,
    amount: int = Query(..., ge=0, description="Order amount in INR"),
    db: AsyncSession = Depends(get_db),
) -> CouponValidationResponse:
    try:
        result = await service.validate_coupon(db, code, amount)
        logger.info(f"Coupon validation for {result.code}: valid={result.valid}")
        return result
    except ServiceError as e:
        raise to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error validating coupon: {e}")
        raise internal_error() from e
