"""
Service Context and Unit of Work

The ServiceContext bundles the collaborators and the event bus the services
need. A UnitOfWork wraps one business transaction: it tracks the aggregates
touched, commits, translates optimistic-locking failures, then hands the
audit snapshots and domain events to their consumers.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fop_system.core.config import Settings, get_settings
from fop_system.core.events import DomainEvent, EventBus
from fop_system.core.exceptions import ConcurrencyConflict
from fop_system.services.collaborators import (
    AuditSink, DocumentStorage, FeeConfigurationProvider, NotificationService, PaymentGateway
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    event_bus: EventBus
    document_storage: DocumentStorage
    payment_gateway: PaymentGateway
    notification_service: NotificationService
    fee_provider: FeeConfigurationProvider
    audit_sink: AuditSink


@dataclass
class _AuditEntry:
    action: str
    resource_type: str
    aggregate: Any
    actor_id: Any
    old_values: Optional[Dict[str, Any]]
    new_values: Optional[Dict[str, Any]] = None


class UnitOfWork:
    """
    One business transaction.

        with UnitOfWork(db, context) as uow:
            uow.track("SUBMIT", "APPLICATION", application, actor_id)
            application.submit(actor_id)

    Leaving the block normally commits; an exception rolls back and is
    re-raised. Events and audit entries are only released after a
    successful commit.
    """

    def __init__(self, db: Session, context: ServiceContext):
        self.db = db
        self.context = context
        self._entries: List[_AuditEntry] = []
        self._aggregates: List[Any] = []
        self.events: List[DomainEvent] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commit()
            return False
        self.db.rollback()
        self._discard_events()
        if isinstance(exc, (StaleDataError, IntegrityError)):
            # Raised by an intermediate flush inside the block
            raise self._conflict(exc) from exc
        return False

    @staticmethod
    def _conflict(exc) -> ConcurrencyConflict:
        if isinstance(exc, StaleDataError):
            logger.warning(f"Optimistic lock failure: {exc}")
            return ConcurrencyConflict(details={"reason": "stale version"})
        logger.warning(f"Integrity conflict: {exc.orig}")
        return ConcurrencyConflict(
            "A conflicting record was written concurrently. Try again.",
            details={"reason": "integrity"},
        )

    def track(self, action: str, resource_type: str, aggregate, actor_id) -> None:
        """Register an aggregate and take its before-snapshot"""
        old_values = aggregate.to_dict() if inspect(aggregate).has_identity else None
        self._entries.append(_AuditEntry(action, resource_type, aggregate, actor_id, old_values))
        self.add(aggregate)

    def add(self, aggregate) -> None:
        """Register an aggregate whose events should be published"""
        if aggregate not in self._aggregates:
            self._aggregates.append(aggregate)
        self.db.add(aggregate)

    def commit(self) -> None:
        try:
            self.db.flush()
            for entry in self._entries:
                entry.new_values = entry.aggregate.to_dict()
            events = [
                event for aggregate in self._aggregates
                if hasattr(aggregate, "pop_events")
                for event in aggregate.pop_events()
            ]
            self.db.commit()
        except (StaleDataError, IntegrityError) as e:
            self.db.rollback()
            self._discard_events()
            raise self._conflict(e) from e

        self.events = events
        self._write_audit()
        self.context.event_bus.publish_all(events)

    def _discard_events(self) -> None:
        for aggregate in self._aggregates:
            if hasattr(aggregate, "pop_events"):
                aggregate.pop_events()

    def _write_audit(self) -> None:
        transaction_id = str(uuid.uuid4())
        for entry in self._entries:
            try:
                self.context.audit_sink.record(
                    action=entry.action,
                    resource_type=entry.resource_type,
                    resource_id=(entry.new_values or {}).get("id"),
                    actor_id=entry.actor_id,
                    old_values=entry.old_values,
                    new_values=entry.new_values,
                    transaction_id=transaction_id,
                )
            except Exception as e:
                logger.error(f"Audit sink failed for {entry.action} {entry.resource_type}: {e}")


def retry_on_conflict(operation: Callable[[], Any], db: Session, attempts: int = 2):
    """
    Run an idempotent operation, retrying once after a ConcurrencyConflict.
    Only for operations that re-read their state on each attempt.
    """
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConcurrencyConflict:
            if attempt == attempts:
                raise
            logger.info(f"Concurrency conflict, retrying (attempt {attempt + 1} of {attempts})")
            db.expire_all()


def build_default_context(session_factory, settings: Settings = None) -> ServiceContext:
    """Wire the default collaborators and event handlers"""
    from fop_system.services.audit_service import DatabaseAuditSink
    from fop_system.services.collaborators import (
        LocalDocumentStorage, ManualPaymentGateway, LoggingNotificationService
    )
    from fop_system.services.fee_service import DatabaseFeeConfigurationProvider
    from fop_system.services.notification_handlers import register_default_handlers

    settings = settings or get_settings()
    context = ServiceContext(
        settings=settings,
        event_bus=EventBus(dedup_window=settings.EVENT_DEDUP_WINDOW),
        document_storage=LocalDocumentStorage(settings.get_file_storage_path()),
        payment_gateway=ManualPaymentGateway(),
        notification_service=LoggingNotificationService(),
        fee_provider=DatabaseFeeConfigurationProvider(session_factory, settings),
        audit_sink=DatabaseAuditSink(session_factory),
    )
    register_default_handlers(context.event_bus, context.notification_service)
    return context
