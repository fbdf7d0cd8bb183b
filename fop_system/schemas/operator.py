"""
Operator and Aircraft Schemas
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class AddressSchema(BaseModel):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)


class ContactSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(..., min_length=3, max_length=50)
    title: Optional[str] = Field(None, max_length=100)


class OperatorCreate(BaseModel):
    """Schema for registering a foreign operator"""
    name: str = Field(..., min_length=1, max_length=200, description="Registered operator name")
    country: str = Field(..., min_length=1, max_length=100, description="Country of registration")
    aoc_number: str = Field(..., min_length=1, max_length=50, description="Air Operator Certificate number")
    aoc_expiry_date: Optional[date] = Field(None, description="AOC expiry date")
    address: AddressSchema
    contact: ContactSchema


class OperatorResponse(BaseModel):
    id: UUID
    name: str
    country: str
    aoc_number: str
    aoc_expiry_date: Optional[date] = None
    address_city: str
    address_country: str
    contact_name: str
    contact_email: str
    contact_phone: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AircraftCreate(BaseModel):
    """Schema for registering an aircraft"""
    operator_id: UUID
    registration_mark: str = Field(..., min_length=2, max_length=20)
    manufacturer: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    aircraft_type: Optional[str] = Field(None, max_length=50)
    serial_number: Optional[str] = Field(None, max_length=50)
    seat_capacity: int = Field(..., ge=0, description="Passenger seat capacity")
    mtow_kg: Decimal = Field(..., gt=0, description="Maximum takeoff weight (kg)")
    year_manufactured: Optional[int] = Field(None, ge=1900, le=2100)

    @field_validator("registration_mark")
    @classmethod
    def normalize_registration(cls, v):
        return v.strip().upper()


class AircraftResponse(BaseModel):
    id: UUID
    operator_id: UUID
    registration_mark: str
    manufacturer: str
    model: str
    aircraft_type: Optional[str] = None
    seat_capacity: int
    mtow_kg: Decimal

    model_config = ConfigDict(from_attributes=True)
