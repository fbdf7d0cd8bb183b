"""
Application Schemas
Pydantic models for application, document, payment and waiver requests and responses
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fop_system.models.enums import (
    ApplicationStatus, PermitType, DocumentType, VerificationStatus, PaymentMethod,
    PaymentStatus, WaiverType, WaiverStatus, FlightPurpose
)


class FlightDetailsSchema(BaseModel):
    purpose: FlightPurpose
    arrival_airport: str = Field(..., min_length=3, max_length=4, description="ICAO or IATA code")
    departure_airport: Optional[str] = Field(None, min_length=3, max_length=4)
    estimated_date: Optional[date] = None
    passengers: int = Field(0, ge=0)
    cargo_description: Optional[str] = None

    @field_validator("arrival_airport", "departure_airport")
    @classmethod
    def upper_airport(cls, v):
        return v.strip().upper() if v else v


class ApplicationCreate(BaseModel):
    """Schema for creating a draft application"""
    permit_type: PermitType
    operator_id: UUID
    aircraft_id: UUID
    flight_details: FlightDetailsSchema
    requested_start_date: date
    requested_end_date: date


class ApplicationUpdate(BaseModel):
    """Draft edits; omitted fields stay unchanged"""
    aircraft_id: Optional[UUID] = None
    flight_details: Optional[FlightDetailsSchema] = None
    requested_start_date: Optional[date] = None
    requested_end_date: Optional[date] = None


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class ApproveRequest(BaseModel):
    conditions: List[str] = Field(default_factory=list, description="Free-text permit conditions")


class PaymentRequest(BaseModel):
    method: PaymentMethod


class PaymentCallback(BaseModel):
    """Gateway callback resolving a payment"""
    success: bool
    transaction_reference: Optional[str] = Field(None, max_length=100)
    receipt_number: Optional[str] = Field(None, max_length=50)
    failure_reason: Optional[str] = None


class PaymentVerification(BaseModel):
    """Finance officer decision for bank and wire transfers"""
    verified: bool
    notes: Optional[str] = None


class DocumentVerification(BaseModel):
    verified: bool
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None


class WaiverCreate(BaseModel):
    waiver_type: WaiverType
    reason: str = Field(..., max_length=2000)


class WaiverApproval(BaseModel):
    percentage: int = Field(..., description="Percentage of the current fee to waive (1-100)")
    notes: Optional[str] = None


class DocumentResponse(BaseModel):
    id: UUID
    application_id: UUID
    document_type: DocumentType
    file_reference: str
    original_filename: Optional[str] = None
    content_type: Optional[str] = None
    file_size: Optional[int] = None
    expiry_date: Optional[date] = None
    verification_status: VerificationStatus
    verified_by: Optional[UUID] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    id: UUID
    application_id: UUID
    attempt_number: int
    amount: Decimal
    currency: str
    method: PaymentMethod
    status: PaymentStatus
    gateway_reference: Optional[str] = None
    transaction_reference: Optional[str] = None
    receipt_number: Optional[str] = None
    paid_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    refund_reason: Optional[str] = None
    verified_by: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class WaiverResponse(BaseModel):
    id: UUID
    application_id: UUID
    waiver_type: WaiverType
    reason: str
    status: WaiverStatus
    requested_by: Optional[UUID] = None
    percentage: Optional[int] = None
    original_fee: Optional[Decimal] = None
    waived_amount: Optional[Decimal] = None
    new_fee: Optional[Decimal] = None
    decided_by: Optional[UUID] = None
    rejection_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryResponse(BaseModel):
    previous_status: Optional[ApplicationStatus] = None
    new_status: ApplicationStatus
    changed_by: Optional[UUID] = None
    changed_at: datetime
    change_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ApplicationResponse(BaseModel):
    id: UUID
    application_number: str
    permit_type: PermitType
    status: ApplicationStatus
    operator_id: UUID
    aircraft_id: UUID
    flight_purpose: FlightPurpose
    arrival_airport: str
    departure_airport: Optional[str] = None
    estimated_flight_date: Optional[date] = None
    passenger_count: int
    requested_start_date: date
    requested_end_date: date
    calculated_fee: Decimal
    currency: str
    fee_breakdown: Optional[Dict[str, Any]] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    version: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationDetailResponse(ApplicationResponse):
    documents: List[DocumentResponse] = Field(default_factory=list, validation_alias="active_documents")
    payment: Optional[PaymentResponse] = None
    waivers: List[WaiverResponse] = Field(default_factory=list)
    missing_documents: List[DocumentType] = Field(default_factory=list)
    permit_number: Optional[str] = None


class ApplicationListResponse(BaseModel):
    items: List[ApplicationResponse]
    total: int
    skip: int
    limit: int
