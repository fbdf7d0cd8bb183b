"""
Fee Schemas
Fee estimates, breakdowns and fee configuration versions
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fop_system.models.enums import PermitType


class FeeEstimateRequest(BaseModel):
    """Fee quote for an aircraft without creating an application"""
    permit_type: PermitType
    seat_capacity: int = Field(..., description="Passenger seat capacity (>= 0)")
    mtow_kg: Decimal = Field(..., description="Maximum takeoff weight in kg (> 0)")


class FeeBreakdownResponse(BaseModel):
    permit_type: PermitType
    seat_capacity: int
    mtow_kg: Decimal
    base_fee: Decimal
    seat_fee: Decimal
    weight_fee: Decimal
    subtotal: Decimal
    multiplier: Decimal
    total: Decimal
    currency: str
    config_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class FeeConfigurationCreate(BaseModel):
    """New fee configuration version"""
    permit_type: Optional[PermitType] = Field(None, description="Permit type, omit for all types")
    base_fee: Decimal = Field(..., ge=0)
    per_seat_fee: Decimal = Field(..., ge=0)
    per_kg_fee: Decimal = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    effective_from: date
    effective_until: Optional[date] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.effective_until is not None and self.effective_until <= self.effective_from:
            raise ValueError("effective_until must be after effective_from")
        self.currency = self.currency.upper()
        return self


class FeeConfigurationResponse(BaseModel):
    id: UUID
    permit_type: Optional[PermitType] = None
    base_fee: Decimal
    per_seat_fee: Decimal
    per_kg_fee: Decimal
    currency: str
    effective_from: date
    effective_until: Optional[date] = None
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
