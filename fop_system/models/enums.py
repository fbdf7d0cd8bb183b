"""
Enums for the Foreign Operator Permit System
Closed status and type vocabularies; wire representation is the string value
"""

from enum import Enum


class PermitType(str, Enum):
    """Permit types with their fee multipliers and application number codes"""
    ONE_TIME = "ONE_TIME"      # Single flight or short series
    BLANKET = "BLANKET"        # Multiple flights over an extended period
    EMERGENCY = "EMERGENCY"    # Medevac, disaster relief

    @property
    def code(self) -> str:
        return PERMIT_TYPE_CODES[self]


PERMIT_TYPE_CODES = {
    PermitType.ONE_TIME: "OT",
    PermitType.BLANKET: "BL",
    PermitType.EMERGENCY: "EM",
}


class ApplicationStatus(str, Enum):
    """Application workflow status"""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    PENDING_DOCUMENTS = "PENDING_DOCUMENTS"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


TERMINAL_APPLICATION_STATUSES = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.EXPIRED,
    ApplicationStatus.CANCELLED,
})


class DocumentType(str, Enum):
    """Certificate kinds an operator can upload"""
    CERTIFICATE_OF_AIRWORTHINESS = "CERTIFICATE_OF_AIRWORTHINESS"
    CERTIFICATE_OF_REGISTRATION = "CERTIFICATE_OF_REGISTRATION"
    AIR_OPERATOR_CERTIFICATE = "AIR_OPERATOR_CERTIFICATE"
    INSURANCE_CERTIFICATE = "INSURANCE_CERTIFICATE"
    NOISE_CERTIFICATE = "NOISE_CERTIFICATE"
    CREW_LICENSES = "CREW_LICENSES"
    FLIGHT_PLAN = "FLIGHT_PLAN"
    OTHER = "OTHER"


_CORE_DOCUMENTS = (
    DocumentType.AIR_OPERATOR_CERTIFICATE,
    DocumentType.CERTIFICATE_OF_AIRWORTHINESS,
    DocumentType.CERTIFICATE_OF_REGISTRATION,
    DocumentType.INSURANCE_CERTIFICATE,
)

REQUIRED_DOCUMENTS = {
    PermitType.ONE_TIME: frozenset(_CORE_DOCUMENTS),
    PermitType.BLANKET: frozenset(_CORE_DOCUMENTS + (DocumentType.NOISE_CERTIFICATE,)),
    # Emergency flights can follow up with registration after arrival
    PermitType.EMERGENCY: frozenset({
        DocumentType.AIR_OPERATOR_CERTIFICATE,
        DocumentType.CERTIFICATE_OF_AIRWORTHINESS,
        DocumentType.INSURANCE_CERTIFICATE,
    }),
}


class VerificationStatus(str, Enum):
    """Document verification status"""
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class PaymentMethod(str, Enum):
    """Payment methods; bank and wire transfers are verified manually by finance"""
    CREDIT_CARD = "CREDIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    WIRE_TRANSFER = "WIRE_TRANSFER"

    @property
    def requires_manual_verification(self) -> bool:
        return self in (PaymentMethod.BANK_TRANSFER, PaymentMethod.WIRE_TRANSFER)


class PaymentStatus(str, Enum):
    """Payment processing status"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class WaiverType(str, Enum):
    """Grounds for a fee waiver"""
    EMERGENCY = "EMERGENCY"
    HUMANITARIAN = "HUMANITARIAN"
    GOVERNMENT = "GOVERNMENT"
    DIPLOMATIC = "DIPLOMATIC"
    MILITARY = "MILITARY"
    OTHER = "OTHER"


class WaiverStatus(str, Enum):
    """Waiver approval status"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PermitStatus(str, Enum):
    """Permit status; REVOKED is terminal"""
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"


class FlightPurpose(str, Enum):
    """Declared purpose of the flight"""
    CHARTER = "CHARTER"
    CARGO = "CARGO"
    TECHNICAL_LANDING = "TECHNICAL_LANDING"
    MEDEVAC = "MEDEVAC"
    PRIVATE = "PRIVATE"
    OTHER = "OTHER"
