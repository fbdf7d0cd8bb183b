"""
Domain Event Handlers
Notification and logging subscribers for workflow events
"""

import structlog

from fop_system.core.events import DomainEvent, EventBus, EventTypes
from fop_system.core.exceptions import ExternalDependencyFailure
from fop_system.services.collaborators import NotificationService

logger = structlog.get_logger(__name__)

# Events that result in a message to the operator or to officers
NOTIFIED_EVENTS = (
    EventTypes.APPLICATION_SUBMITTED,
    EventTypes.APPLICATION_PENDING_DOCUMENTS,
    EventTypes.DOCUMENT_REJECTED,
    EventTypes.PAYMENT_REQUESTED,
    EventTypes.PAYMENT_COMPLETED,
    EventTypes.PAYMENT_FAILED,
    EventTypes.APPLICATION_APPROVED,
    EventTypes.APPLICATION_REJECTED,
    EventTypes.WAIVER_APPROVED,
    EventTypes.WAIVER_REJECTED,
    EventTypes.PERMIT_ISSUED,
    EventTypes.PERMIT_SUSPENDED,
    EventTypes.PERMIT_REINSTATED,
    EventTypes.PERMIT_REVOKED,
    EventTypes.PERMIT_EXTENDED,
    EventTypes.PERMIT_EXPIRED,
)


class NotificationHandler:
    """Forwards selected events to the notification service"""

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    def __call__(self, event: DomainEvent) -> None:
        payload = dict(event.payload)
        payload.update({
            "event_id": event.event_id,
            "aggregate_id": event.aggregate_id,
            "occurred_at": event.occurred_at,
        })
        try:
            self.notification_service.notify(event.event_type, payload)
        except ExternalDependencyFailure:
            raise
        except Exception as e:
            raise ExternalDependencyFailure(
                f"Notification delivery failed: {e}",
                code="NotificationUnavailable",
            )


def log_event(event: DomainEvent) -> None:
    logger.info(
        "Domain event",
        event_type=event.event_type,
        event_id=event.event_id,
        aggregate_id=event.aggregate_id,
        actor_id=event.actor_id,
    )


def register_default_handlers(event_bus: EventBus, notification_service: NotificationService) -> None:
    event_bus.subscribe(EventBus.WILDCARD, log_event)
    handler = NotificationHandler(notification_service)
    for event_type in NOTIFIED_EVENTS:
        event_bus.subscribe(event_type, handler)
