"""
Foreign Operator Permit Application Models

The FopApplication aggregate owns its documents, payments, waivers and status
history, and is the unit of optimistic concurrency (version column).

Features:
- Application workflow: DRAFT → SUBMITTED → UNDER_REVIEW → PENDING_PAYMENT → APPROVED
- Document completeness gate on submit, rejected-document gate on payment
- Payment-completion gate on approval
- Fee waivers applied sequentially to the current fee
- Status history for every transition
"""

from datetime import datetime, date, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Column, String, Integer, Numeric, Date, DateTime, Text, JSON, ForeignKey, Uuid,
    Enum as SQLEnum, CheckConstraint
)
from sqlalchemy.orm import relationship

from fop_system.core.events import EventRecorder, EventTypes
from fop_system.core.exceptions import (
    InvalidStatusTransition, MissingRequiredDocuments, PaymentNotCompleted, DocumentsRejected,
    DocumentExpired, ReasonRequired, InvalidPercentage, AlreadyDecided, FeeAlreadyCharged,
    WaiverAlreadyPending, PaymentNotFound, InvalidDateRange
)
from fop_system.models.base import BaseModel, utcnow, ensure_aware
from fop_system.models.enums import (
    ApplicationStatus, PermitType, DocumentType, VerificationStatus, PaymentMethod,
    PaymentStatus, WaiverType, WaiverStatus, FlightPurpose, REQUIRED_DOCUMENTS,
    TERMINAL_APPLICATION_STATUSES
)
from fop_system.models.value_objects import Money, FlightDetails, round_money


# Allowed application transitions; terminal states have none
APPLICATION_TRANSITIONS = {
    ApplicationStatus.DRAFT: {
        ApplicationStatus.SUBMITTED, ApplicationStatus.CANCELLED, ApplicationStatus.EXPIRED,
    },
    ApplicationStatus.SUBMITTED: {
        ApplicationStatus.UNDER_REVIEW, ApplicationStatus.PENDING_DOCUMENTS,
        ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.UNDER_REVIEW: {
        ApplicationStatus.PENDING_DOCUMENTS, ApplicationStatus.PENDING_PAYMENT,
        ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.PENDING_DOCUMENTS: {
        ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW, ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.PENDING_PAYMENT: {
        ApplicationStatus.APPROVED, ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED,
    },
    ApplicationStatus.APPROVED: set(),
    ApplicationStatus.REJECTED: set(),
    ApplicationStatus.EXPIRED: set(),
    ApplicationStatus.CANCELLED: set(),
}

DOCUMENT_REVIEW_STATUSES = (
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.PENDING_DOCUMENTS,
)

DOCUMENT_UPLOAD_STATUSES = (
    ApplicationStatus.DRAFT,
    ApplicationStatus.PENDING_DOCUMENTS,
)

# A new payment may replace the current one only after it ended unpaid
REPLACEABLE_PAYMENT_STATUSES = (
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
    PaymentStatus.REFUNDED,
)


def _require_reason(reason: Optional[str], action: str) -> str:
    if reason is None or not reason.strip():
        raise ReasonRequired(f"A reason is required to {action}", details={"action": action})
    return reason.strip()


class FopApplication(EventRecorder, BaseModel):
    """Foreign Operator Permit application aggregate"""
    __tablename__ = "fop_applications"
    __table_args__ = (
        CheckConstraint("calculated_fee >= 0", name="ck_application_fee_non_negative"),
    )

    # Identity
    application_number = Column(String(20), nullable=False, unique=True, index=True, comment="FOP-{TYPE}-{SEQUENCE}")
    permit_type = Column(SQLEnum(PermitType, native_enum=False), nullable=False, index=True)
    status = Column(SQLEnum(ApplicationStatus, native_enum=False), nullable=False, default=ApplicationStatus.DRAFT, index=True)

    operator_id = Column(Uuid, ForeignKey("operators.id"), nullable=False, index=True)
    aircraft_id = Column(Uuid, ForeignKey("aircraft.id"), nullable=False, index=True)

    # Flight details
    flight_purpose = Column(SQLEnum(FlightPurpose, native_enum=False), nullable=False)
    arrival_airport = Column(String(4), nullable=False)
    departure_airport = Column(String(4), nullable=True)
    estimated_flight_date = Column(Date, nullable=True)
    passenger_count = Column(Integer, nullable=False, default=0)
    cargo_description = Column(Text, nullable=True)

    # Requested validity window
    requested_start_date = Column(Date, nullable=False)
    requested_end_date = Column(Date, nullable=False)

    # Fee
    calculated_fee = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="Payable fee after waivers")
    currency = Column(String(3), nullable=False, default="USD")
    fee_breakdown = Column(JSON, nullable=True, comment="Line items of the calculated fee before waivers")
    fee_configuration_id = Column(Uuid, nullable=True, comment="Fee configuration version used for the calculation")

    # Workflow timestamps
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Uuid, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Uuid, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(Uuid, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    draft_expires_at = Column(DateTime(timezone=True), nullable=True, comment="Draft applications expire after this timestamp")

    # Optimistic concurrency
    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    operator = relationship("Operator")
    aircraft = relationship("Aircraft")
    documents = relationship("ApplicationDocument", back_populates="application", order_by="ApplicationDocument.created_at")
    payments = relationship("ApplicationPayment", back_populates="application", order_by="ApplicationPayment.attempt_number")
    waivers = relationship("FeeWaiver", back_populates="application", order_by="FeeWaiver.sequence_number")
    status_history = relationship("ApplicationStatusHistory", back_populates="application", order_by="ApplicationStatusHistory.sequence_number")
    permit = relationship("Permit", back_populates="application", uselist=False)

    def __repr__(self):
        return f"<FopApplication(id={self.id}, number='{self.application_number}', status='{self.status}')>"

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def fee(self) -> Money:
        return Money(self.calculated_fee or Decimal("0"), self.currency)

    @property
    def flight_details(self) -> FlightDetails:
        return FlightDetails(
            purpose=self.flight_purpose,
            arrival_airport=self.arrival_airport,
            departure_airport=self.departure_airport,
            estimated_date=self.estimated_flight_date,
            passengers=self.passenger_count or 0,
            cargo_description=self.cargo_description,
        )

    @flight_details.setter
    def flight_details(self, value: FlightDetails):
        self.flight_purpose = value.purpose
        self.arrival_airport = value.arrival_airport
        self.departure_airport = value.departure_airport
        self.estimated_flight_date = value.estimated_date
        self.passenger_count = value.passengers
        self.cargo_description = value.cargo_description

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPLICATION_STATUSES

    @property
    def required_document_types(self) -> frozenset:
        return REQUIRED_DOCUMENTS[self.permit_type]

    @property
    def active_documents(self) -> List["ApplicationDocument"]:
        return [doc for doc in self.documents if doc.is_active]

    def document_for(self, document_type: DocumentType) -> Optional["ApplicationDocument"]:
        for doc in self.active_documents:
            if doc.document_type == document_type:
                return doc
        return None

    def missing_document_types(self) -> List[DocumentType]:
        present = {doc.document_type for doc in self.active_documents}
        return sorted(self.required_document_types - present, key=lambda t: t.value)

    def rejected_required_documents(self) -> List["ApplicationDocument"]:
        return [
            doc for doc in self.active_documents
            if doc.document_type in self.required_document_types
            and doc.verification_status == VerificationStatus.REJECTED
        ]

    @property
    def payment(self) -> Optional["ApplicationPayment"]:
        """Current payment: the latest attempt"""
        return self.payments[-1] if self.payments else None

    @property
    def pending_waiver(self) -> Optional["FeeWaiver"]:
        for waiver in self.waivers:
            if waiver.status == WaiverStatus.PENDING:
                return waiver
        return None

    @property
    def approved_waivers(self) -> List["FeeWaiver"]:
        return [w for w in self.waivers if w.status == WaiverStatus.APPROVED]

    def is_draft_expired(self, now: datetime = None) -> bool:
        now = now or utcnow()
        if self.status != ApplicationStatus.DRAFT or self.draft_expires_at is None:
            return False
        return ensure_aware(self.draft_expires_at) < now

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def touch(self, actor_id=None):
        """Mark the aggregate modified so its version is checked and bumped"""
        self.updated_at = utcnow()
        if actor_id:
            self.updated_by = actor_id

    def _transition(self, new_status: ApplicationStatus, actor_id, reason: str = None, notes: str = None):
        current = self.status
        if new_status not in APPLICATION_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition(
                f"Cannot change application from {current.value} to {new_status.value}",
                details={"from": current.value, "to": new_status.value},
            )
        self.status = new_status
        self.status_history.append(ApplicationStatusHistory(
            previous_status=current,
            new_status=new_status,
            changed_by=actor_id,
            changed_at=utcnow(),
            change_reason=reason,
            change_notes=notes,
            sequence_number=len(self.status_history) + 1,
        ))
        self.touch(actor_id)

    def _require_status(self, allowed, action: str):
        if self.status not in allowed:
            raise InvalidStatusTransition(
                f"Cannot {action} while application is {self.status.value}",
                details={"status": self.status.value, "action": action},
            )

    def _event(self, event_type: str, actor_id, **payload):
        return self.record_event(
            event_type,
            actor_id=actor_id,
            application_number=self.application_number,
            status=self.status.value,
            **payload,
        )

    # ------------------------------------------------------------------
    # Creation and draft editing
    # ------------------------------------------------------------------

    def initialize(self, actor_id, draft_expiry_days: int, now: datetime = None):
        """Put a freshly constructed application into DRAFT with its first history row"""
        now = now or utcnow()
        self.status = ApplicationStatus.DRAFT
        self.draft_expires_at = now + timedelta(days=draft_expiry_days)
        self.created_by = actor_id
        self.updated_by = actor_id
        self.status_history.append(ApplicationStatusHistory(
            previous_status=None,
            new_status=ApplicationStatus.DRAFT,
            changed_by=actor_id,
            changed_at=now,
            change_reason="Application created",
            sequence_number=1,
        ))
        self._event(EventTypes.APPLICATION_CREATED, actor_id, permit_type=self.permit_type.value)

    def set_requested_period(self, start_date: date, end_date: date):
        if end_date < start_date:
            raise InvalidDateRange(
                "Requested end date must not be before start date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        self.requested_start_date = start_date
        self.requested_end_date = end_date

    def ensure_draft(self, action: str = "edit the application"):
        self._require_status((ApplicationStatus.DRAFT,), action)

    def ensure_accepts_documents(self):
        self._require_status(DOCUMENT_UPLOAD_STATUSES, "upload documents")

    def apply_fee(self, breakdown, actor_id=None):
        """
        Store a freshly calculated fee breakdown and re-apply approved waivers
        in the order they were approved.
        """
        fee = breakdown.total
        for waiver in self.approved_waivers:
            fee = waiver.reduce(fee)
        self.fee_breakdown = breakdown.to_dict()
        self.fee_configuration_id = breakdown.config_id
        self.currency = breakdown.currency
        self._set_fee(fee)
        self.touch(actor_id)

    def _set_fee(self, amount: Decimal):
        self.calculated_fee = Money(amount, self.currency or "USD").amount
        payment = self.payment
        if payment is not None and payment.status == PaymentStatus.PENDING:
            payment.amount = self.calculated_fee

    # ------------------------------------------------------------------
    # Workflow transitions
    # ------------------------------------------------------------------

    def submit(self, actor_id, now: datetime = None):
        """DRAFT → SUBMITTED once every required document type is uploaded"""
        self._require_status((ApplicationStatus.DRAFT,), "submit")
        missing = self.missing_document_types()
        if missing:
            raise MissingRequiredDocuments(
                "Missing required documents: " + ", ".join(t.value for t in missing),
                details={"missing": [t.value for t in missing]},
            )
        self._transition(ApplicationStatus.SUBMITTED, actor_id, reason="Submitted by applicant")
        self.submitted_at = now or utcnow()
        self._event(EventTypes.APPLICATION_SUBMITTED, actor_id, operator_id=str(self.operator_id))

    def start_review(self, actor_id, now: datetime = None):
        self._require_status((ApplicationStatus.SUBMITTED,), "start review")
        self._transition(ApplicationStatus.UNDER_REVIEW, actor_id, reason="Review started")
        self.reviewed_at = now or utcnow()
        self.reviewed_by = actor_id
        self._event(EventTypes.APPLICATION_UNDER_REVIEW, actor_id)

    def request_payment(self, method: PaymentMethod, actor_id) -> "ApplicationPayment":
        """
        Create the payment for the current fee.

        Allowed from UNDER_REVIEW, or from PENDING_PAYMENT when the previous
        payment ended without being paid.
        """
        if self.status == ApplicationStatus.PENDING_PAYMENT:
            current = self.payment
            if current is not None and current.status not in REPLACEABLE_PAYMENT_STATUSES:
                raise InvalidStatusTransition(
                    f"Payment already requested and is {current.status.value}",
                    details={"payment_status": current.status.value},
                )
        else:
            self._require_status((ApplicationStatus.UNDER_REVIEW,), "request payment")

        rejected = self.rejected_required_documents()
        if rejected:
            raise DocumentsRejected(
                "Required documents are rejected: " + ", ".join(d.document_type.value for d in rejected),
                details={"rejected": [d.document_type.value for d in rejected]},
            )

        payment = ApplicationPayment(
            attempt_number=len(self.payments) + 1,
            amount=self.fee.amount,
            currency=self.currency,
            method=PaymentMethod(method),
            status=PaymentStatus.PENDING,
            created_by=actor_id,
            updated_by=actor_id,
        )
        self.payments.append(payment)

        if self.status == ApplicationStatus.UNDER_REVIEW:
            self._transition(ApplicationStatus.PENDING_PAYMENT, actor_id, reason="Documents accepted, payment requested")
        else:
            self.touch(actor_id)
        self._event(
            EventTypes.PAYMENT_REQUESTED, actor_id,
            amount=str(payment.amount), currency=payment.currency, method=payment.method.value,
        )
        return payment

    def approve(self, actor_id, now: datetime = None):
        """PENDING_PAYMENT → APPROVED; the permit is issued by the caller in the same transaction"""
        payment = self.payment
        if payment is None or payment.status != PaymentStatus.COMPLETED:
            raise PaymentNotCompleted(
                details={"payment_status": payment.status.value if payment else None},
            )
        self._transition(ApplicationStatus.APPROVED, actor_id, reason="Application approved")
        self.approved_at = now or utcnow()
        self.approved_by = actor_id
        self._event(EventTypes.APPLICATION_APPROVED, actor_id, fees_paid=str(payment.amount))

    def reject(self, reason: str, actor_id, now: datetime = None):
        reason = _require_reason(reason, "reject the application")
        self._transition(ApplicationStatus.REJECTED, actor_id, reason=reason)
        self.rejected_at = now or utcnow()
        self.rejected_by = actor_id
        self.rejection_reason = reason
        self._cancel_open_payment(actor_id, now)
        self._event(EventTypes.APPLICATION_REJECTED, actor_id, reason=reason)

    def cancel(self, actor_id, reason: str = None, now: datetime = None):
        if self.is_terminal:
            raise InvalidStatusTransition(
                f"Cannot cancel an application that is {self.status.value}",
                details={"from": self.status.value, "to": ApplicationStatus.CANCELLED.value},
            )
        self._transition(ApplicationStatus.CANCELLED, actor_id, reason=reason or "Withdrawn by applicant")
        self.cancelled_at = now or utcnow()
        self.cancellation_reason = reason
        self._cancel_open_payment(actor_id, now)
        self._event(EventTypes.APPLICATION_CANCELLED, actor_id, reason=reason)

    def expire_draft(self, actor_id=None, now: datetime = None):
        self._transition(ApplicationStatus.EXPIRED, actor_id, reason="Draft expired")
        self._event(EventTypes.APPLICATION_EXPIRED, actor_id)

    def _cancel_open_payment(self, actor_id, now: datetime = None):
        payment = self.payment
        if payment is not None and payment.status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            payment.cancel(actor_id, now)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def add_document(self, document: "ApplicationDocument", actor_id) -> "ApplicationDocument":
        """Attach an uploaded document, replacing any earlier upload of the same type"""
        self.ensure_accepts_documents()
        previous = self.document_for(document.document_type)
        if previous is not None:
            previous.soft_delete(actor_id)
        # column defaults only apply at flush; the gate below reads is_active now
        document.is_active = True
        document.verification_status = VerificationStatus.PENDING
        document.uploaded_by = actor_id
        document.created_by = actor_id
        self.documents.append(document)
        self.touch(actor_id)
        self._event(
            EventTypes.DOCUMENT_UPLOADED, actor_id,
            document_type=document.document_type.value,
            replaced=previous is not None,
        )
        self._resume_after_documents(actor_id)
        return document

    def verify_document(self, document: "ApplicationDocument", actor_id, notes: str = None,
                        now: datetime = None):
        self._require_status(DOCUMENT_REVIEW_STATUSES, "verify documents")
        document.verify(actor_id, notes=notes, now=now)
        self.touch(actor_id)
        self._event(EventTypes.DOCUMENT_VERIFIED, actor_id,
                    document_id=str(document.id), document_type=document.document_type.value)
        self._resume_after_documents(actor_id)

    def reject_document(self, document: "ApplicationDocument", reason: str, actor_id,
                        now: datetime = None):
        self._require_status(DOCUMENT_REVIEW_STATUSES, "reject documents")
        document.reject(reason, actor_id, now=now)
        self.touch(actor_id)
        if (document.document_type in self.required_document_types
                and self.status in (ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW)):
            self._transition(
                ApplicationStatus.PENDING_DOCUMENTS, actor_id,
                reason=f"{document.document_type.value} rejected",
                notes=document.rejection_reason,
            )
            self._event(EventTypes.APPLICATION_PENDING_DOCUMENTS, actor_id,
                        document_type=document.document_type.value)
        self._event(EventTypes.DOCUMENT_REJECTED, actor_id,
                    document_id=str(document.id), document_type=document.document_type.value,
                    reason=document.rejection_reason)

    def _resume_after_documents(self, actor_id):
        """Leave PENDING_DOCUMENTS once every required document is present and none is rejected"""
        if self.status != ApplicationStatus.PENDING_DOCUMENTS:
            return
        if self.missing_document_types() or self.rejected_required_documents():
            return
        target = ApplicationStatus.UNDER_REVIEW if self.reviewed_by else ApplicationStatus.SUBMITTED
        self._transition(target, actor_id, reason="Required documents replaced")
        if target == ApplicationStatus.UNDER_REVIEW:
            self._event(EventTypes.APPLICATION_UNDER_REVIEW, actor_id)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def _require_payment(self) -> "ApplicationPayment":
        if self.payment is None:
            raise PaymentNotFound(details={"application_id": str(self.id)})
        return self.payment

    def attach_payment_intent(self, gateway_reference: str, actor_id=None):
        self._require_payment().attach_intent(gateway_reference, actor_id)
        self.touch(actor_id)

    def mark_payment_processing(self, gateway_reference: str, actor_id=None):
        self._require_payment().mark_processing(gateway_reference, actor_id)
        self.touch(actor_id)

    def complete_payment(self, transaction_reference: str, actor_id=None,
                         receipt_number: str = None, now: datetime = None):
        payment = self._require_payment()
        payment.complete(transaction_reference, actor_id, receipt_number=receipt_number, now=now)
        self.touch(actor_id)
        self._event(EventTypes.PAYMENT_COMPLETED, actor_id,
                    amount=str(payment.amount), transaction_reference=transaction_reference)

    def fail_payment(self, reason: str, actor_id=None, now: datetime = None):
        payment = self._require_payment()
        payment.fail(reason, actor_id, now=now)
        self.touch(actor_id)
        self._event(EventTypes.PAYMENT_FAILED, actor_id, reason=payment.failure_reason)

    def verify_payment(self, verified: bool, actor_id, notes: str = None, now: datetime = None):
        """Finance officer decision on a bank or wire transfer"""
        payment = self._require_payment()
        payment.verify(verified, actor_id, notes=notes, now=now)
        self.touch(actor_id)
        if verified:
            self._event(EventTypes.PAYMENT_COMPLETED, actor_id,
                        amount=str(payment.amount), transaction_reference=payment.transaction_reference)
        else:
            self._event(EventTypes.PAYMENT_FAILED, actor_id, reason=payment.failure_reason)

    def refund_payment(self, reason: str, actor_id, now: datetime = None):
        if self.status == ApplicationStatus.APPROVED:
            raise InvalidStatusTransition(
                "Cannot refund the payment of an approved application",
                details={"status": self.status.value, "action": "refund"},
            )
        payment = self._require_payment()
        payment.refund(reason, actor_id, now=now)
        self.touch(actor_id)
        self._event(EventTypes.PAYMENT_REFUNDED, actor_id,
                    amount=str(payment.amount), reason=payment.refund_reason)

    # ------------------------------------------------------------------
    # Waivers
    # ------------------------------------------------------------------

    def request_waiver(self, waiver_type: WaiverType, reason: str, actor_id,
                       now: datetime = None) -> "FeeWaiver":
        if self.is_terminal:
            raise InvalidStatusTransition(
                f"Cannot request a waiver while application is {self.status.value}",
                details={"status": self.status.value, "action": "request waiver"},
            )
        reason = _require_reason(reason, "request a waiver")
        if self.pending_waiver is not None:
            raise WaiverAlreadyPending(details={"waiver_id": str(self.pending_waiver.id)})
        waiver = FeeWaiver(
            sequence_number=len(self.waivers) + 1,
            waiver_type=WaiverType(waiver_type),
            reason=reason,
            status=WaiverStatus.PENDING,
            requested_by=actor_id,
            requested_at=now or utcnow(),
            created_by=actor_id,
        )
        self.waivers.append(waiver)
        self.touch(actor_id)
        self._event(EventTypes.WAIVER_REQUESTED, actor_id, waiver_type=waiver.waiver_type.value)
        return waiver

    def approve_waiver(self, waiver: "FeeWaiver", percentage: int, actor_id,
                       notes: str = None, now: datetime = None) -> "FeeWaiver":
        """Reduce the current fee by a percentage, once"""
        if isinstance(percentage, bool) or not isinstance(percentage, int) or not 1 <= percentage <= 100:
            raise InvalidPercentage(details={"percentage": percentage})
        if waiver.status != WaiverStatus.PENDING:
            raise AlreadyDecided(
                f"Waiver is already {waiver.status.value}",
                details={"waiver_id": str(waiver.id), "status": waiver.status.value},
            )
        if self.is_terminal:
            raise InvalidStatusTransition(
                f"Cannot approve a waiver while application is {self.status.value}",
                details={"status": self.status.value, "action": "approve waiver"},
            )
        payment = self.payment
        if payment is not None and payment.status in (PaymentStatus.PROCESSING, PaymentStatus.COMPLETED):
            raise FeeAlreadyCharged(details={"payment_status": payment.status.value})

        original = self.fee.amount
        waiver.approve(percentage, original, actor_id, notes=notes, now=now)
        self._set_fee(waiver.new_fee)
        self.touch(actor_id)
        self._event(
            EventTypes.WAIVER_APPROVED, actor_id,
            waiver_id=str(waiver.id), percentage=percentage,
            original_fee=str(waiver.original_fee), waived_amount=str(waiver.waived_amount),
            new_fee=str(waiver.new_fee),
        )
        return waiver

    def reject_waiver(self, waiver: "FeeWaiver", reason: str, actor_id, now: datetime = None):
        reason = _require_reason(reason, "reject the waiver")
        if waiver.status != WaiverStatus.PENDING:
            raise AlreadyDecided(
                f"Waiver is already {waiver.status.value}",
                details={"waiver_id": str(waiver.id), "status": waiver.status.value},
            )
        waiver.reject(reason, actor_id, now=now)
        self.touch(actor_id)
        self._event(EventTypes.WAIVER_REJECTED, actor_id, waiver_id=str(waiver.id), reason=reason)


class ApplicationDocument(BaseModel):
    """Uploaded certificate attached to an application"""
    __tablename__ = "application_documents"

    application_id = Column(Uuid, ForeignKey("fop_applications.id"), nullable=False, index=True)
    document_type = Column(SQLEnum(DocumentType, native_enum=False), nullable=False)
    file_reference = Column(String(500), nullable=False, comment="Opaque reference returned by document storage")
    original_filename = Column(String(255), nullable=True)
    content_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    expiry_date = Column(Date, nullable=True, comment="Certificate expiry date")

    verification_status = Column(SQLEnum(VerificationStatus, native_enum=False), nullable=False, default=VerificationStatus.PENDING)
    uploaded_by = Column(Uuid, nullable=True)
    verified_by = Column(Uuid, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    application = relationship("FopApplication", back_populates="documents")

    def is_expired(self, today: date = None) -> bool:
        today = today or date.today()
        return self.expiry_date is not None and self.expiry_date < today

    def is_expiring_soon(self, days: int = 30, today: date = None) -> bool:
        today = today or date.today()
        return (
            self.expiry_date is not None
            and not self.is_expired(today)
            and self.expiry_date <= today + timedelta(days=days)
        )

    def _require_pending(self, action: str):
        if self.verification_status != VerificationStatus.PENDING:
            raise InvalidStatusTransition(
                f"Cannot {action} a document that is {self.verification_status.value}",
                details={"document_id": str(self.id), "status": self.verification_status.value},
            )

    def verify(self, actor_id, notes: str = None, now: datetime = None):
        self._require_pending("verify")
        now = now or utcnow()
        if self.is_expired(now.date()):
            raise DocumentExpired(
                f"{self.document_type.value} expired on {self.expiry_date.isoformat()}",
                details={"document_id": str(self.id), "expiry_date": self.expiry_date.isoformat()},
            )
        self.verification_status = VerificationStatus.VERIFIED
        self.verified_by = actor_id
        self.verified_at = now
        self.verification_notes = notes
        self.updated_by = actor_id

    def reject(self, reason: str, actor_id, now: datetime = None):
        reason = _require_reason(reason, "reject the document")
        self._require_pending("reject")
        self.verification_status = VerificationStatus.REJECTED
        self.rejection_reason = reason
        self.verified_by = actor_id
        self.verified_at = now or utcnow()
        self.updated_by = actor_id

    def __repr__(self):
        return f"<ApplicationDocument(id={self.id}, type='{self.document_type}', status='{self.verification_status}')>"


class ApplicationPayment(BaseModel):
    """Payment attempt for an application fee"""
    __tablename__ = "application_payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payment_amount_non_negative"),
    )

    application_id = Column(Uuid, ForeignKey("fop_applications.id"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False, default=1, comment="1 for the first payment request")
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    method = Column(SQLEnum(PaymentMethod, native_enum=False), nullable=False)
    status = Column(SQLEnum(PaymentStatus, native_enum=False), nullable=False, default=PaymentStatus.PENDING, index=True)

    gateway_reference = Column(String(100), nullable=True, comment="Payment intent reference from the gateway")
    transaction_reference = Column(String(100), nullable=True)
    receipt_number = Column(String(50), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    failure_reason = Column(Text, nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refunded_by = Column(Uuid, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Manual verification (bank / wire transfer)
    verified_by = Column(Uuid, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)

    application = relationship("FopApplication", back_populates="payments")

    @property
    def money(self) -> Money:
        return Money(self.amount, self.currency)

    def _require_status(self, allowed, action: str):
        if self.status not in allowed:
            raise InvalidStatusTransition(
                f"Cannot {action} a payment that is {self.status.value}",
                details={"payment_status": self.status.value, "action": action},
            )

    @property
    def awaiting_charge(self) -> bool:
        """Pending, payable and not yet opened with the gateway"""
        return self.status == PaymentStatus.PENDING and self.amount > 0 and not self.gateway_reference

    def attach_intent(self, gateway_reference: str, actor_id=None):
        """Record the gateway's intent; the payment stays PENDING until the gateway reports back"""
        if not self.awaiting_charge:
            raise InvalidStatusTransition(
                "Payment is not awaiting a gateway charge",
                details={"payment_status": self.status.value, "gateway_reference": self.gateway_reference},
            )
        self.gateway_reference = gateway_reference
        self.updated_by = actor_id

    def mark_processing(self, gateway_reference: str, actor_id=None):
        self._require_status((PaymentStatus.PENDING,), "start processing")
        self.status = PaymentStatus.PROCESSING
        self.gateway_reference = gateway_reference
        self.updated_by = actor_id

    def complete(self, transaction_reference: str, actor_id=None, receipt_number: str = None,
                 now: datetime = None):
        self._require_status((PaymentStatus.PENDING, PaymentStatus.PROCESSING), "complete")
        self.status = PaymentStatus.COMPLETED
        self.transaction_reference = transaction_reference
        self.receipt_number = receipt_number
        self.paid_at = now or utcnow()
        self.updated_by = actor_id

    def fail(self, reason: str, actor_id=None, now: datetime = None):
        reason = _require_reason(reason, "fail the payment")
        self._require_status((PaymentStatus.PENDING, PaymentStatus.PROCESSING), "fail")
        self.status = PaymentStatus.FAILED
        self.failure_reason = reason
        self.failed_at = now or utcnow()
        self.updated_by = actor_id

    def verify(self, verified: bool, actor_id, notes: str = None, now: datetime = None):
        """Finance verification; only manual methods, or a fully waived zero amount"""
        if not (self.method.requires_manual_verification or self.amount == 0):
            raise InvalidStatusTransition(
                f"{self.method.value} payments are confirmed by the payment gateway",
                details={"method": self.method.value, "action": "verify"},
            )
        self._require_status((PaymentStatus.PENDING, PaymentStatus.PROCESSING), "verify")
        now = now or utcnow()
        self.verified_by = actor_id
        self.verified_at = now
        self.verification_notes = notes
        if verified:
            self.complete(self.transaction_reference or f"MANUAL-{self.id}", actor_id, now=now)
        else:
            self.fail(notes or "Payment could not be verified", actor_id, now=now)

    def refund(self, reason: str, actor_id, now: datetime = None):
        reason = _require_reason(reason, "refund the payment")
        self._require_status((PaymentStatus.COMPLETED,), "refund")
        self.status = PaymentStatus.REFUNDED
        self.refund_reason = reason
        self.refunded_at = now or utcnow()
        self.refunded_by = actor_id
        self.updated_by = actor_id

    def cancel(self, actor_id=None, now: datetime = None):
        self._require_status((PaymentStatus.PENDING, PaymentStatus.PROCESSING), "cancel")
        self.status = PaymentStatus.CANCELLED
        self.cancelled_at = now or utcnow()
        self.updated_by = actor_id

    def __repr__(self):
        return f"<ApplicationPayment(id={self.id}, amount={self.amount}, status='{self.status}')>"


class FeeWaiver(BaseModel):
    """Discretionary fee reduction request"""
    __tablename__ = "fee_waivers"
    __table_args__ = (
        CheckConstraint("percentage IS NULL OR (percentage >= 1 AND percentage <= 100)", name="ck_waiver_percentage"),
    )

    application_id = Column(Uuid, ForeignKey("fop_applications.id"), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False, default=1)
    waiver_type = Column(SQLEnum(WaiverType, native_enum=False), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(SQLEnum(WaiverStatus, native_enum=False), nullable=False, default=WaiverStatus.PENDING)

    requested_by = Column(Uuid, nullable=True)
    requested_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Decision
    percentage = Column(Integer, nullable=True, comment="Percentage waived, set on approval")
    original_fee = Column(Numeric(12, 2), nullable=True)
    waived_amount = Column(Numeric(12, 2), nullable=True)
    new_fee = Column(Numeric(12, 2), nullable=True)
    decided_by = Column(Uuid, nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    decision_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    application = relationship("FopApplication", back_populates="waivers")

    def reduce(self, fee: Decimal) -> Decimal:
        """Apply this waiver's percentage to a fee"""
        return round_money(Decimal(fee) * (Decimal(100) - Decimal(self.percentage)) / Decimal(100))

    def approve(self, percentage: int, current_fee: Decimal, actor_id, notes: str = None,
                now: datetime = None):
        self.percentage = percentage
        self.original_fee = round_money(current_fee)
        self.new_fee = self.reduce(current_fee)
        self.waived_amount = self.original_fee - self.new_fee
        self.status = WaiverStatus.APPROVED
        self.decided_by = actor_id
        self.decided_at = now or utcnow()
        self.decision_notes = notes
        self.updated_by = actor_id

    def reject(self, reason: str, actor_id, now: datetime = None):
        self.status = WaiverStatus.REJECTED
        self.rejection_reason = reason
        self.decided_by = actor_id
        self.decided_at = now or utcnow()
        self.updated_by = actor_id

    def __repr__(self):
        return f"<FeeWaiver(id={self.id}, type='{self.waiver_type}', status='{self.status}')>"


class ApplicationStatusHistory(BaseModel):
    """Status change history for applications"""
    __tablename__ = "application_status_history"

    application_id = Column(Uuid, ForeignKey("fop_applications.id"), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False, default=1)
    previous_status = Column(SQLEnum(ApplicationStatus, native_enum=False), nullable=True)
    new_status = Column(SQLEnum(ApplicationStatus, native_enum=False), nullable=False)
    changed_by = Column(Uuid, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    change_reason = Column(String(500), nullable=True)
    change_notes = Column(Text, nullable=True)

    application = relationship("FopApplication", back_populates="status_history")

    def __repr__(self):
        return f"<ApplicationStatusHistory(application_id={self.application_id}, {self.previous_status} -> {self.new_status})>"


class ApplicationSequenceCounter(BaseModel):
    """Per-type sequence counter for application numbers"""
    __tablename__ = "application_sequence_counters"

    permit_type = Column(SQLEnum(PermitType, native_enum=False), nullable=False, unique=True, index=True)
    current_sequence = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<ApplicationSequenceCounter(type={self.permit_type}, sequence={self.current_sequence})>"
