"""
Application Workflow Tests
Submission guard, document gate, payment gate and terminal decisions
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from fop_system.core.exceptions import (
    AircraftNotFound, DocumentExpired, DocumentsRejected, InvalidDateRange, InvalidStatusTransition,
    MissingRequiredDocuments, PaymentNotCompleted, ReasonRequired, ValidationError
)
from fop_system.models.application import ApplicationDocument, ApplicationSequenceCounter
from fop_system.models.base import utcnow
from fop_system.models.enums import (
    ApplicationStatus, DocumentType, PaymentMethod, PaymentStatus, PermitStatus, PermitType,
    VerificationStatus, REQUIRED_DOCUMENTS
)
from fop_system.models.permit import Permit, PermitNumberGenerator
from fop_system.schemas.application import ApplicationCreate, ApplicationUpdate, FlightDetailsSchema


class TestCreateApplication:

    def test_creates_priced_draft(self, workflow):
        application = workflow.create(PermitType.BLANKET)

        assert application.status == ApplicationStatus.DRAFT
        assert application.application_number == "FOP-BL-000001"
        assert application.calculated_fee == Decimal("2500.00")
        assert application.fee_breakdown["total"] == "2500.00"
        assert application.arrival_airport == "TBPB"
        assert application.draft_expires_at is not None
        assert [h.new_status for h in application.status_history] == [ApplicationStatus.DRAFT]

    def test_numbering_continues_past_six_digits(self, workflow, db):
        db.add(ApplicationSequenceCounter(permit_type=PermitType.ONE_TIME, current_sequence=999998))
        db.commit()

        numbers = [workflow.create(PermitType.ONE_TIME).application_number for _ in range(3)]

        assert numbers == ["FOP-OT-999999", "FOP-OT-1000000", "FOP-OT-1000001"]
        assert workflow.applications.get_by_number("FOP-OT-1000001").application_number == numbers[-1]

    def test_numbers_are_sequential_per_type(self, workflow):
        first = workflow.create(PermitType.ONE_TIME)
        second = workflow.create(PermitType.ONE_TIME)
        emergency = workflow.create(PermitType.EMERGENCY)

        assert first.application_number == "FOP-OT-000001"
        assert second.application_number == "FOP-OT-000002"
        assert emergency.application_number == "FOP-EM-000001"

    def test_lookup_by_number_is_case_insensitive(self, workflow):
        application = workflow.create()
        assert workflow.applications.get_by_number(" fop-ot-000001 ").id == application.id

    def test_rejects_inverted_period(self, workflow):
        with pytest.raises(InvalidDateRange):
            workflow.create(start=date.today(), end=date.today() - timedelta(days=1))

    def test_aircraft_must_exist(self, workflow, operator, actor_id):
        with pytest.raises(AircraftNotFound):
            workflow.applications.create_application(ApplicationCreate(
                permit_type=PermitType.ONE_TIME,
                operator_id=operator.id,
                aircraft_id=uuid.uuid4(),
                flight_details=FlightDetailsSchema(purpose="CHARTER", arrival_airport="TBPB"),
                requested_start_date=date.today(),
                requested_end_date=date.today(),
            ), actor_id)


class TestUpdateDraft:

    def test_updates_flight_details(self, workflow):
        application = workflow.create()
        updated = workflow.applications.update_draft(application.id, ApplicationUpdate(
            flight_details=FlightDetailsSchema(purpose="CARGO", arrival_airport="TBPB", passengers=0),
            requested_end_date=date.today() + timedelta(days=5),
        ), workflow.actor_id)

        assert updated.flight_purpose.value == "CARGO"
        assert updated.requested_end_date == date.today() + timedelta(days=5)
        assert updated.calculated_fee == Decimal("1000.00")

    def test_only_drafts_can_be_edited(self, workflow):
        application = workflow.submitted()
        with pytest.raises(InvalidStatusTransition):
            workflow.applications.update_draft(application.id, ApplicationUpdate(), workflow.actor_id)


class TestSubmit:

    @pytest.mark.parametrize("permit_type", list(PermitType))
    def test_requires_every_required_document(self, workflow, permit_type):
        application = workflow.create(permit_type)
        required = sorted(REQUIRED_DOCUMENTS[permit_type], key=lambda t: t.value)
        for document_type in required[:-1]:
            workflow.upload(application, document_type)

        with pytest.raises(MissingRequiredDocuments) as exc_info:
            workflow.applications.submit(application.id, workflow.actor_id)

        assert exc_info.value.details["missing"] == [required[-1].value]
        assert workflow.applications.get_application(application.id).status == ApplicationStatus.DRAFT

    @pytest.mark.parametrize("permit_type", list(PermitType))
    def test_submits_with_required_documents(self, workflow, permit_type):
        application = workflow.submitted(permit_type)

        assert application.status == ApplicationStatus.SUBMITTED
        assert application.submitted_at is not None

    def test_emergency_does_not_need_registration(self, workflow):
        application = workflow.submitted(PermitType.EMERGENCY)
        assert DocumentType.CERTIFICATE_OF_REGISTRATION not in {d.document_type for d in application.active_documents}

    def test_optional_documents_are_not_required(self, workflow):
        application = workflow.create()
        workflow.upload(application, DocumentType.FLIGHT_PLAN)

        with pytest.raises(MissingRequiredDocuments):
            workflow.applications.submit(application.id, workflow.actor_id)


class TestDocumentGate:

    def _document(self, workflow, application, document_type):
        return next(d for d in application.active_documents if d.document_type == document_type)

    def test_reupload_replaces_previous(self, workflow):
        application = workflow.create()
        first = workflow.upload(application, DocumentType.AIR_OPERATOR_CERTIFICATE)
        second = workflow.upload(application, DocumentType.AIR_OPERATOR_CERTIFICATE)

        active = workflow.documents.list_documents(application.id)
        assert [d.id for d in active] == [second.id]
        assert first.is_active is False

    def test_new_upload_counts_before_flush(self, workflow):
        application = workflow.create()
        document = ApplicationDocument(document_type=DocumentType.INSURANCE_CERTIFICATE, file_reference="mem://policy")

        application.add_document(document, workflow.actor_id)

        assert document.is_active is True
        assert document in application.active_documents
        assert DocumentType.INSURANCE_CERTIFICATE not in application.missing_document_types()

    def test_rejection_requires_reason(self, workflow):
        application = workflow.under_review()
        document = self._document(workflow, application, DocumentType.INSURANCE_CERTIFICATE)

        with pytest.raises(ReasonRequired):
            workflow.documents.verify(application.id, document.id, False, workflow.actor_id)

    def test_rejected_required_document_moves_to_pending_documents(self, workflow, notifier):
        application = workflow.under_review()
        document = self._document(workflow, application, DocumentType.INSURANCE_CERTIFICATE)

        workflow.documents.verify(application.id, document.id, False, workflow.actor_id,
                                  rejection_reason="Policy expired")

        application = workflow.applications.get_application(application.id)
        assert application.status == ApplicationStatus.PENDING_DOCUMENTS
        assert document.verification_status == VerificationStatus.REJECTED
        assert "ApplicationPendingDocuments" in notifier.types()

        with pytest.raises(InvalidStatusTransition):
            workflow.applications.request_payment(application.id, PaymentMethod.CREDIT_CARD, workflow.actor_id)

    def test_replacement_returns_to_review(self, workflow):
        application = workflow.under_review()
        document = self._document(workflow, application, DocumentType.INSURANCE_CERTIFICATE)
        workflow.documents.verify(application.id, document.id, False, workflow.actor_id,
                                  rejection_reason="Policy expired")

        replacement = workflow.upload(application, DocumentType.INSURANCE_CERTIFICATE)

        application = workflow.applications.get_application(application.id)
        assert replacement.verification_status == VerificationStatus.PENDING
        assert application.status == ApplicationStatus.UNDER_REVIEW
        workflow.applications.request_payment(application.id, PaymentMethod.CREDIT_CARD, workflow.actor_id)
        assert application.status == ApplicationStatus.PENDING_PAYMENT

    def test_rejected_optional_document_does_not_block(self, workflow):
        application = workflow.create()
        workflow.upload_required(application)
        plan = workflow.upload(application, DocumentType.FLIGHT_PLAN)
        workflow.applications.submit(application.id, workflow.actor_id)
        workflow.applications.start_review(application.id, workflow.actor_id)

        workflow.documents.verify(application.id, plan.id, False, workflow.actor_id, rejection_reason="Illegible")

        assert application.status == ApplicationStatus.UNDER_REVIEW
        workflow.applications.request_payment(application.id, PaymentMethod.CREDIT_CARD, workflow.actor_id)
        assert application.status == ApplicationStatus.PENDING_PAYMENT

    def test_request_payment_blocked_by_rejected_document(self, workflow, db):
        application = workflow.under_review()
        document = self._document(workflow, application, DocumentType.AIR_OPERATOR_CERTIFICATE)
        # Reject without the workflow transition to exercise the payment guard directly
        document.verification_status = VerificationStatus.REJECTED
        db.commit()

        with pytest.raises(DocumentsRejected):
            workflow.applications.request_payment(application.id, PaymentMethod.CREDIT_CARD, workflow.actor_id)

    def test_expired_document_cannot_be_verified(self, workflow):
        application = workflow.create()
        workflow.upload_required(application)
        expired = workflow.upload(application, DocumentType.INSURANCE_CERTIFICATE,
                                  expiry_date=date.today() - timedelta(days=1))
        workflow.applications.submit(application.id, workflow.actor_id)

        with pytest.raises(DocumentExpired):
            workflow.documents.verify(application.id, expired.id, True, workflow.actor_id)

    def test_verified_document_cannot_be_decided_again(self, workflow):
        application = workflow.under_review()
        document = self._document(workflow, application, DocumentType.AIR_OPERATOR_CERTIFICATE)
        workflow.documents.verify(application.id, document.id, True, workflow.actor_id)

        with pytest.raises(InvalidStatusTransition):
            workflow.documents.verify(application.id, document.id, False, workflow.actor_id, rejection_reason="x")

    def test_upload_too_large(self, workflow):
        application = workflow.create()
        with pytest.raises(ValidationError):
            workflow.documents.upload(application.id, DocumentType.OTHER, "big.bin", b"0" * (1024 * 1024 + 1),
                                      workflow.actor_id)

    def test_upload_not_allowed_after_submission(self, workflow):
        application = workflow.submitted()
        with pytest.raises(InvalidStatusTransition):
            workflow.upload(application, DocumentType.OTHER)

    def test_download_returns_stored_bytes(self, workflow):
        application = workflow.create()
        document = workflow.upload(application, DocumentType.OTHER)
        assert workflow.documents.download(application.id, document.id) == b"%PDF-1.4 test"


class TestPaymentGate:

    def test_request_payment_charges_current_fee(self, workflow, gateway):
        application = workflow.pending_payment()

        assert application.status == ApplicationStatus.PENDING_PAYMENT
        payment = application.payment
        assert payment.amount == Decimal("1000.00")
        assert payment.status == PaymentStatus.PENDING
        assert payment.gateway_reference == "PI-1"
        assert gateway.charges[0][0].amount == Decimal("1000.00")

    def test_approve_requires_completed_payment(self, workflow, db):
        application = workflow.pending_payment()

        with pytest.raises(PaymentNotCompleted):
            workflow.applications.approve(application.id, workflow.actor_id)

        application = workflow.applications.get_application(application.id)
        assert application.status == ApplicationStatus.PENDING_PAYMENT
        assert db.query(Permit).count() == 0

    def test_approve_after_failed_payment_is_blocked(self, workflow):
        application = workflow.pending_payment()
        workflow.payments.handle_callback(application.id, False, failure_reason="Card declined")

        with pytest.raises(PaymentNotCompleted):
            workflow.applications.approve(application.id, workflow.actor_id)

    def test_failed_payment_can_be_requested_again(self, workflow):
        application = workflow.pending_payment()
        workflow.payments.handle_callback(application.id, False, failure_reason="Card declined")

        payment = workflow.applications.request_payment(application.id, PaymentMethod.BANK_TRANSFER, workflow.actor_id)

        assert payment.attempt_number == 2
        assert len(workflow.payments.list_payments(application.id)) == 2

    def test_cannot_request_second_payment_while_pending(self, workflow):
        application = workflow.pending_payment()
        with pytest.raises(InvalidStatusTransition):
            workflow.applications.request_payment(application.id, PaymentMethod.CREDIT_CARD, workflow.actor_id)

    def test_approval_issues_exactly_one_permit(self, workflow, db):
        application = workflow.paid()

        approved, permit = workflow.applications.approve(
            application.id, workflow.actor_id, conditions=["Daylight operations only", " "]
        )

        assert approved.status == ApplicationStatus.APPROVED
        assert approved.approved_at is not None
        assert permit.status == PermitStatus.ACTIVE
        assert permit.application_id == application.id
        assert permit.valid_from == application.requested_start_date
        assert permit.valid_until == application.requested_end_date
        assert permit.fees_paid == Decimal("1000.00")
        assert permit.conditions == ["Daylight operations only"]
        assert PermitNumberGenerator.validate_permit_number(permit.permit_number)
        assert db.query(Permit).count() == 1

        with pytest.raises(InvalidStatusTransition):
            workflow.applications.approve(application.id, workflow.actor_id)
        assert db.query(Permit).count() == 1

    def test_finance_verifies_bank_transfer(self, workflow):
        application = workflow.pending_payment(method=PaymentMethod.BANK_TRANSFER)

        payment = workflow.payments.verify(application.id, True, workflow.actor_id, notes="Funds received")

        assert payment.status == PaymentStatus.COMPLETED
        assert payment.verified_by == workflow.actor_id
        assert payment.paid_at is not None

    def test_card_payment_cannot_be_verified_manually(self, workflow):
        application = workflow.pending_payment(method=PaymentMethod.CREDIT_CARD)
        with pytest.raises(InvalidStatusTransition):
            workflow.payments.verify(application.id, True, workflow.actor_id)

    def test_refund_only_before_approval(self, workflow):
        application = workflow.paid()
        workflow.applications.approve(application.id, workflow.actor_id)

        with pytest.raises(InvalidStatusTransition):
            workflow.payments.refund(application.id, "Duplicate charge", workflow.actor_id)

    def test_refund_of_completed_payment(self, workflow):
        application = workflow.paid()
        payment = workflow.payments.refund(application.id, "Operator withdrew", workflow.actor_id)

        assert payment.status == PaymentStatus.REFUNDED
        with pytest.raises(PaymentNotCompleted):
            workflow.applications.approve(application.id, workflow.actor_id)

    def test_mark_processing(self, workflow):
        application = workflow.pending_payment()
        payment = workflow.payments.mark_processing(application.id, "GW-42")

        assert payment.status == PaymentStatus.PROCESSING
        assert payment.gateway_reference == "GW-42"


class TestTerminalDecisions:

    def test_reject_requires_reason(self, workflow):
        application = workflow.under_review()
        with pytest.raises(ReasonRequired):
            workflow.applications.reject(application.id, "  ", workflow.actor_id)

    def test_reject_cancels_open_payment(self, workflow):
        application = workflow.pending_payment()

        rejected = workflow.applications.reject(application.id, "Incomplete AOC scope", workflow.actor_id)

        assert rejected.status == ApplicationStatus.REJECTED
        assert rejected.rejection_reason == "Incomplete AOC scope"
        assert rejected.payment.status == PaymentStatus.CANCELLED

    def test_draft_cannot_be_rejected(self, workflow):
        application = workflow.create()
        with pytest.raises(InvalidStatusTransition):
            workflow.applications.reject(application.id, "No", workflow.actor_id)

    @pytest.mark.parametrize("stage", ["create", "submitted", "under_review", "pending_payment"])
    def test_cancel_from_any_open_state(self, workflow, stage):
        application = getattr(workflow, stage)()

        cancelled = workflow.applications.cancel(application.id, workflow.actor_id, reason="Flight cancelled")

        assert cancelled.status == ApplicationStatus.CANCELLED
        assert cancelled.cancellation_reason == "Flight cancelled"

    def test_terminal_states_are_final(self, workflow):
        application = workflow.create()
        workflow.applications.cancel(application.id, workflow.actor_id)

        with pytest.raises(InvalidStatusTransition):
            workflow.applications.cancel(application.id, workflow.actor_id)
        with pytest.raises(InvalidStatusTransition):
            workflow.applications.submit(application.id, workflow.actor_id)

    def test_status_history_records_every_transition(self, workflow):
        application = workflow.paid()
        workflow.applications.approve(application.id, workflow.actor_id)

        history = workflow.applications.get_application(application.id).status_history
        assert [h.new_status for h in history] == [
            ApplicationStatus.DRAFT,
            ApplicationStatus.SUBMITTED,
            ApplicationStatus.UNDER_REVIEW,
            ApplicationStatus.PENDING_PAYMENT,
            ApplicationStatus.APPROVED,
        ]
        assert all(h.changed_by == workflow.actor_id for h in history)


class TestDraftExpiry:

    def test_expires_stale_drafts_once(self, workflow):
        stale = workflow.create()
        fresh = workflow.create()
        submitted = workflow.submitted()
        later = utcnow() + timedelta(days=31)
        fresh.draft_expires_at = later + timedelta(days=1)
        workflow.db.commit()

        assert workflow.applications.expire_stale_drafts(now=later) == 1
        assert workflow.applications.expire_stale_drafts(now=later) == 0

        assert workflow.applications.get_application(stale.id).status == ApplicationStatus.EXPIRED
        assert workflow.applications.get_application(fresh.id).status == ApplicationStatus.DRAFT
        assert workflow.applications.get_application(submitted.id).status == ApplicationStatus.SUBMITTED

    def test_expired_draft_cannot_be_submitted(self, workflow):
        application = workflow.upload_required(workflow.create())
        workflow.applications.expire_stale_drafts(now=utcnow() + timedelta(days=31))

        with pytest.raises(InvalidStatusTransition):
            workflow.applications.submit(application.id, workflow.actor_id)
