"""
Fee Waiver Tests
"""

import uuid
from decimal import Decimal

import pytest

from fop_system.core.exceptions import (
    AlreadyDecided, FeeAlreadyCharged, InvalidPercentage, InvalidStatusTransition, ReasonRequired,
    WaiverAlreadyPending, WaiverNotFound
)
from fop_system.models.enums import PaymentStatus, WaiverStatus, WaiverType
from fop_system.schemas.application import ApplicationUpdate


def request(workflow, application, waiver_type=WaiverType.HUMANITARIAN, reason="Hurricane relief flight"):
    return workflow.waivers.request_waiver(application.id, waiver_type, reason, workflow.actor_id)


class TestWaiverRequests:

    def test_request_creates_pending_waiver(self, workflow):
        application = workflow.submitted()
        waiver = request(workflow, application)

        assert waiver.status == WaiverStatus.PENDING
        assert waiver.sequence_number == 1
        assert waiver.requested_by == workflow.actor_id
        assert application.calculated_fee == Decimal("1000.00")

    def test_reason_required(self, workflow):
        application = workflow.create()
        with pytest.raises(ReasonRequired):
            request(workflow, application, reason=" ")

    def test_only_one_pending_waiver(self, workflow):
        application = workflow.create()
        request(workflow, application)

        with pytest.raises(WaiverAlreadyPending):
            request(workflow, application, WaiverType.GOVERNMENT, "State flight")

    def test_not_on_terminal_application(self, workflow):
        application = workflow.create()
        workflow.applications.cancel(application.id, workflow.actor_id)

        with pytest.raises(InvalidStatusTransition):
            request(workflow, application)

    def test_unknown_waiver(self, workflow):
        application = workflow.create()
        with pytest.raises(WaiverNotFound):
            workflow.waivers.approve_waiver(application.id, uuid.uuid4(), 50, workflow.actor_id)


class TestWaiverDecisions:

    def test_approval_reduces_current_fee(self, workflow, notifier):
        application = workflow.under_review()
        waiver = request(workflow, application)

        waiver = workflow.waivers.approve_waiver(application.id, waiver.id, 50, workflow.actor_id, notes="Relief")

        assert waiver.status == WaiverStatus.APPROVED
        assert waiver.percentage == 50
        assert waiver.original_fee == Decimal("1000.00")
        assert waiver.waived_amount == Decimal("500.00")
        assert waiver.new_fee == Decimal("500.00")
        assert workflow.applications.get_application(application.id).calculated_fee == Decimal("500.00")
        assert "WaiverApproved" in notifier.types()

    def test_waivers_stack_on_reduced_fee(self, workflow):
        application = workflow.under_review()
        first = request(workflow, application)
        workflow.waivers.approve_waiver(application.id, first.id, 50, workflow.actor_id)
        second = request(workflow, application, WaiverType.GOVERNMENT, "State visit")

        second = workflow.waivers.approve_waiver(application.id, second.id, 10, workflow.actor_id)

        assert second.sequence_number == 2
        assert second.original_fee == Decimal("500.00")
        assert second.new_fee == Decimal("450.00")
        assert application.calculated_fee == Decimal("450.00")

    def test_decision_is_final(self, workflow):
        application = workflow.under_review()
        waiver = request(workflow, application)
        workflow.waivers.approve_waiver(application.id, waiver.id, 25, workflow.actor_id)

        with pytest.raises(AlreadyDecided):
            workflow.waivers.approve_waiver(application.id, waiver.id, 25, workflow.actor_id)
        with pytest.raises(AlreadyDecided):
            workflow.waivers.reject_waiver(application.id, waiver.id, "Changed mind", workflow.actor_id)

        # The fee is reduced exactly once
        assert application.calculated_fee == Decimal("750.00")

    @pytest.mark.parametrize("percentage", [0, 101, -10, True])
    def test_percentage_bounds(self, workflow, percentage):
        application = workflow.under_review()
        waiver = request(workflow, application)

        with pytest.raises(InvalidPercentage):
            workflow.waivers.approve_waiver(application.id, waiver.id, percentage, workflow.actor_id)

        assert workflow.waivers.get_waiver(application.id, waiver.id).status == WaiverStatus.PENDING

    def test_rejection_keeps_fee(self, workflow):
        application = workflow.under_review()
        waiver = request(workflow, application)

        waiver = workflow.waivers.reject_waiver(application.id, waiver.id, "Not eligible", workflow.actor_id)

        assert waiver.status == WaiverStatus.REJECTED
        assert waiver.rejection_reason == "Not eligible"
        assert application.calculated_fee == Decimal("1000.00")

    def test_rejection_requires_reason(self, workflow):
        application = workflow.under_review()
        waiver = request(workflow, application)

        with pytest.raises(ReasonRequired):
            workflow.waivers.reject_waiver(application.id, waiver.id, "", workflow.actor_id)

    def test_waivers_survive_draft_repricing(self, workflow):
        application = workflow.create()
        waiver = request(workflow, application)
        workflow.waivers.approve_waiver(application.id, waiver.id, 20, workflow.actor_id)

        workflow.applications.update_draft(application.id, ApplicationUpdate(), workflow.actor_id)

        assert application.calculated_fee == Decimal("800.00")
        assert application.fee_breakdown["total"] == "1000.00"


class TestWaiversAndPayment:

    def test_pending_payment_follows_fee(self, workflow):
        application = workflow.pending_payment()
        waiver = request(workflow, application)

        workflow.waivers.approve_waiver(application.id, waiver.id, 40, workflow.actor_id)

        assert application.payment.status == PaymentStatus.PENDING
        assert application.payment.amount == Decimal("600.00")

    def test_full_waiver_can_be_confirmed_without_gateway(self, workflow):
        application = workflow.pending_payment()
        waiver = request(workflow, application, WaiverType.MILITARY, "Military flight")
        workflow.waivers.approve_waiver(application.id, waiver.id, 100, workflow.actor_id)

        payment = workflow.payments.verify(application.id, True, workflow.actor_id, notes="Fully waived")
        _, permit = workflow.applications.approve(application.id, workflow.actor_id)

        assert payment.status == PaymentStatus.COMPLETED
        assert permit.fees_paid == Decimal("0.00")

    @pytest.mark.parametrize("stage", ["processing", "completed"])
    def test_fee_locked_once_charged(self, workflow, stage):
        application = workflow.pending_payment()
        if stage == "processing":
            workflow.payments.mark_processing(application.id, "GW-7")
        else:
            workflow.payments.handle_callback(application.id, True, transaction_reference="TXN-9")
        waiver = request(workflow, application)

        with pytest.raises(FeeAlreadyCharged):
            workflow.waivers.approve_waiver(application.id, waiver.id, 50, workflow.actor_id)

        assert application.calculated_fee == Decimal("1000.00")
        assert workflow.waivers.get_waiver(application.id, waiver.id).status == WaiverStatus.PENDING
