"""
Incentive Ledger Schemas
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import ClaimStatus, IncentiveType


class ClaimResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    applicant_id: UUID | None = None
    incentive_type: IncentiveType
    amount: int
    status: ClaimStatus
    evidence: dict[str, Any] | None = None
    verified_by: UUID | None = None
    verified_at: datetime | None = None
    processed_at: datetime | None = None
    created_at: datetime


class ClaimListResponse(BaseModel):
    claims: list[ClaimResponse]
    total_eligible: int = Field(..., description="Verified plus processed cashback (INR)")


class VerifyClaimRequest(BaseModel):
    """Admin review outcome for a pending claim."""

    outcome: Literal["verified", "rejected"]
