"""
Permit Schemas
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from fop_system.models.enums import PermitStatus, PermitType


class PermitSuspend(BaseModel):
    reason: str = Field(..., max_length=2000)
    suspended_until: Optional[date] = Field(None, description="Omit for indefinite suspension")


class PermitReinstate(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class PermitRevoke(BaseModel):
    reason: str = Field(..., max_length=2000)


class PermitExtend(BaseModel):
    new_end_date: date
    reason: str = Field(..., max_length=2000)


class PermitResponse(BaseModel):
    id: UUID
    permit_number: str
    application_id: UUID
    operator_id: UUID
    aircraft_id: UUID
    permit_type: PermitType
    status: PermitStatus
    current_status: Optional[PermitStatus] = Field(None, description="Status with expiry applied")
    valid_from: date
    valid_until: date
    conditions: Optional[List[str]] = None
    fees_paid: Decimal
    currency: str
    issued_at: datetime
    suspended_until: Optional[date] = None
    suspension_reason: Optional[str] = None
    revocation_reason: Optional[str] = None
    days_remaining: Optional[int] = None
    version: int

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_permit(cls, permit, today: date = None) -> "PermitResponse":
        response = cls.model_validate(permit)
        response.conditions = list(permit.conditions or [])
        response.current_status = permit.effective_status(today)
        response.days_remaining = permit.days_until_expiry(today)
        return response


class PermitVerificationResponse(BaseModel):
    """Public verification result for a permit number"""
    permit_number: str
    is_valid: bool
    status: Optional[PermitStatus] = None
    message: str
    permit: Optional[PermitResponse] = None


class PermitStatusHistoryResponse(BaseModel):
    previous_status: Optional[PermitStatus] = None
    new_status: PermitStatus
    changed_by: Optional[UUID] = None
    changed_at: datetime
    change_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
