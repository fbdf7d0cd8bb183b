"""
Domain Exception Classes for the Foreign Operator Permit System

Every guard failure is raised as a DomainError subclass carrying a stable
machine-readable code plus a human message. The API layer maps the error
kind to an HTTP status code.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for all domain errors"""

    kind = "DOMAIN_ERROR"
    status_code = 400
    default_code = "DomainError"
    default_message = "A domain rule was violated."

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self):
        return f"<{self.__class__.__name__}(code='{self.code}', message='{self.message}')>"


# =============================================================================
# ERROR KINDS
# =============================================================================

class ValidationError(DomainError):
    """Malformed input"""
    kind = "VALIDATION_ERROR"
    status_code = 422
    default_code = "ValidationError"
    default_message = "Invalid input."


class InvariantViolation(DomainError):
    """A business rule or state-machine guard rejected the operation"""
    kind = "INVARIANT_VIOLATION"
    status_code = 409
    default_code = "InvariantViolation"
    default_message = "Operation not allowed in the current state."


class NotFoundError(DomainError):
    """Unknown identifier"""
    kind = "NOT_FOUND"
    status_code = 404
    default_code = "NotFound"
    default_message = "Resource not found."


class ConcurrencyConflict(DomainError):
    """Another transaction modified the aggregate first"""
    kind = "CONCURRENCY_CONFLICT"
    status_code = 409
    default_code = "ConcurrencyConflict"
    default_message = "The record was modified by another user. Reload and try again."


class ExternalDependencyFailure(DomainError):
    """Storage, gateway or notification collaborator unavailable"""
    kind = "EXTERNAL_DEPENDENCY_FAILURE"
    status_code = 502
    default_code = "ExternalDependencyFailure"
    default_message = "An external service is unavailable."


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class InvalidAircraftSpec(ValidationError):
    default_code = "InvalidAircraftSpec"
    default_message = "Seat capacity must be >= 0 and MTOW must be > 0."


class InvalidPercentage(ValidationError):
    default_code = "InvalidPercentage"
    default_message = "Waiver percentage must be between 1 and 100."


class ReasonRequired(ValidationError):
    default_code = "ReasonRequired"
    default_message = "A reason is required for this action."


class InvalidMoney(ValidationError):
    default_code = "InvalidMoney"
    default_message = "Money amount must be non-negative in a supported currency."


class CurrencyMismatch(ValidationError):
    default_code = "CurrencyMismatch"
    default_message = "Cannot combine amounts in different currencies."


class InvalidDateRange(ValidationError):
    default_code = "InvalidDateRange"
    default_message = "End date must not be before start date."


# =============================================================================
# INVARIANT VIOLATIONS
# =============================================================================

class MissingRequiredDocuments(InvariantViolation):
    default_code = "MissingRequiredDocuments"
    default_message = "One or more required documents have not been uploaded."


class PaymentNotCompleted(InvariantViolation):
    default_code = "PaymentNotCompleted"
    default_message = "Payment must be completed before the application can be approved."


class InvalidStatusTransition(InvariantViolation):
    default_code = "InvalidStatusTransition"
    default_message = "The requested status transition is not allowed."


class PermitRevoked(InvariantViolation):
    default_code = "PermitRevoked"
    default_message = "The permit has been revoked and cannot be modified."


class InvalidExtension(InvariantViolation):
    default_code = "InvalidExtension"
    default_message = "New end date must be after the current validity end date."


class AlreadyDecided(InvariantViolation):
    default_code = "AlreadyDecided"
    default_message = "This request has already been decided."


class DocumentsRejected(InvariantViolation):
    default_code = "DocumentsRejected"
    default_message = "One or more required documents are rejected."


class DocumentExpired(InvariantViolation):
    default_code = "DocumentExpired"
    default_message = "The document has expired and cannot be verified."


class FeeAlreadyCharged(InvariantViolation):
    default_code = "FeeAlreadyCharged"
    default_message = "The fee is already being charged and cannot be changed."


class WaiverAlreadyPending(InvariantViolation):
    default_code = "WaiverAlreadyPending"
    default_message = "A waiver request is already pending for this application."


# =============================================================================
# NOT FOUND
# =============================================================================

class ApplicationNotFound(NotFoundError):
    default_code = "ApplicationNotFound"
    default_message = "Application not found."


class PermitNotFound(NotFoundError):
    default_code = "PermitNotFound"
    default_message = "Permit not found."


class DocumentNotFound(NotFoundError):
    default_code = "DocumentNotFound"
    default_message = "Document not found."


class WaiverNotFound(NotFoundError):
    default_code = "WaiverNotFound"
    default_message = "Waiver not found."


class PaymentNotFound(NotFoundError):
    default_code = "PaymentNotFound"
    default_message = "No payment has been requested for this application."


class OperatorNotFound(NotFoundError):
    default_code = "OperatorNotFound"
    default_message = "Operator not found."


class AircraftNotFound(NotFoundError):
    default_code = "AircraftNotFound"
    default_message = "Aircraft not found."
