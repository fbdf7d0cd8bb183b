"""
Optimistic Concurrency Tests
Two sessions on the same database stand in for two officers working at once
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from fop_system.core.exceptions import ConcurrencyConflict
from fop_system.models.base import utcnow
from fop_system.models.enums import ApplicationStatus, PermitStatus, WaiverStatus, WaiverType
from fop_system.services import ApplicationService, PermitService, WaiverService, retry_on_conflict


@pytest.fixture
def second_db(session_factory):
    session = session_factory()
    yield session
    session.close()


class TestStaleWrites:

    def test_stale_application_write_is_rejected(self, workflow, second_db, context, notifier):
        application = workflow.create()
        other = ApplicationService(second_db, context)
        stale = other.get_application(application.id)

        workflow.applications.cancel(application.id, workflow.actor_id, reason="Withdrawn")

        with pytest.raises(ConcurrencyConflict):
            other.cancel(stale.id, workflow.actor_id, reason="Duplicate")

        fresh = other.get_application(application.id)
        assert fresh.status == ApplicationStatus.CANCELLED
        assert fresh.cancellation_reason == "Withdrawn"

    def test_one_of_two_waiver_approvals_wins(self, workflow, second_db, context):
        application = workflow.under_review()
        waiver = workflow.waivers.request_waiver(
            application.id, WaiverType.HUMANITARIAN, "Relief flight", workflow.actor_id
        )
        other = WaiverService(second_db, context)
        stale_application = other.get_application(application.id)
        stale_waiver = other.get_waiver(application.id, waiver.id)

        workflow.waivers.approve_waiver(application.id, waiver.id, 50, workflow.actor_id)

        assert stale_waiver.status == WaiverStatus.PENDING
        with pytest.raises(ConcurrencyConflict):
            other.approve_waiver(application.id, waiver.id, 50, workflow.actor_id)

        assert workflow.waivers.get_waiver(application.id, waiver.id).status == WaiverStatus.APPROVED
        refreshed = other.get_application(application.id)
        assert refreshed.calculated_fee == Decimal("500.00")

    def test_stale_permit_write_is_rejected(self, workflow, second_db, context):
        permit = workflow.issued()
        other = PermitService(second_db, context)
        stale = other.get_permit(permit.id)

        workflow.permits.revoke(permit.id, "Unsafe operations", workflow.actor_id)

        assert stale.status == PermitStatus.ACTIVE
        with pytest.raises(ConcurrencyConflict):
            other.suspend(permit.id, "Audit", workflow.actor_id)

        assert other.get_permit(permit.id).status == PermitStatus.REVOKED

    def test_conflict_publishes_nothing(self, workflow, second_db, context, notifier):
        application = workflow.upload_required(workflow.create())
        other = ApplicationService(second_db, context)
        stale = other.get_application(application.id)

        workflow.applications.submit(application.id, workflow.actor_id)
        with pytest.raises(ConcurrencyConflict):
            other.submit(application.id, workflow.actor_id)
        assert stale.status == ApplicationStatus.SUBMITTED

        assert notifier.types().count("ApplicationSubmitted") == 1


class TestRetryOnConflict:

    def test_retries_once(self):
        db = MagicMock()
        outcomes = [ConcurrencyConflict(), 3]

        def operation():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert retry_on_conflict(operation, db) == 3
        db.expire_all.assert_called_once()

    def test_gives_up_after_second_conflict(self):
        db = MagicMock()

        def operation():
            raise ConcurrencyConflict()

        with pytest.raises(ConcurrencyConflict):
            retry_on_conflict(operation, db)
        assert db.expire_all.call_count == 1

    def test_sweep_is_idempotent_after_concurrent_run(self, workflow, second_db, context):
        workflow.create()
        later = utcnow() + timedelta(days=31)

        assert ApplicationService(second_db, context).expire_stale_drafts(now=later) == 1
        assert workflow.applications.expire_stale_drafts(now=later) == 0
