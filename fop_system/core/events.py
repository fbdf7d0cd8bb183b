"""
Domain Events and in-process Event Bus

Aggregates record events while they transition; the unit of work publishes
them only after the transaction commits. Handler failures are logged and
never propagated back into the triggering operation.
"""

import uuid
from collections import defaultdict, deque
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional, Set

import structlog

logger = structlog.get_logger(__name__)


class EventTypes:
    """Event type constants"""

    # Application lifecycle
    APPLICATION_CREATED = "ApplicationCreated"
    APPLICATION_SUBMITTED = "ApplicationSubmitted"
    APPLICATION_UNDER_REVIEW = "ApplicationUnderReview"
    APPLICATION_PENDING_DOCUMENTS = "ApplicationPendingDocuments"
    APPLICATION_APPROVED = "ApplicationApproved"
    APPLICATION_REJECTED = "ApplicationRejected"
    APPLICATION_CANCELLED = "ApplicationCancelled"
    APPLICATION_EXPIRED = "ApplicationExpired"

    # Documents
    DOCUMENT_UPLOADED = "DocumentUploaded"
    DOCUMENT_VERIFIED = "DocumentVerified"
    DOCUMENT_REJECTED = "DocumentRejected"

    # Payments
    PAYMENT_REQUESTED = "PaymentRequested"
    PAYMENT_COMPLETED = "PaymentCompleted"
    PAYMENT_FAILED = "PaymentFailed"
    PAYMENT_REFUNDED = "PaymentRefunded"

    # Waivers
    WAIVER_REQUESTED = "WaiverRequested"
    WAIVER_APPROVED = "WaiverApproved"
    WAIVER_REJECTED = "WaiverRejected"

    # Permits
    PERMIT_ISSUED = "PermitIssued"
    PERMIT_SUSPENDED = "PermitSuspended"
    PERMIT_REINSTATED = "PermitReinstated"
    PERMIT_REVOKED = "PermitRevoked"
    PERMIT_EXTENDED = "PermitExtended"
    PERMIT_EXPIRED = "PermitExpired"


@dataclass
class DomainEvent:
    """Something that happened to an aggregate"""
    event_type: str
    aggregate_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    actor_id: Optional[str] = None
    event_id: str = None
    occurred_at: str = None

    def __post_init__(self):
        if not self.event_id:
            self.event_id = str(uuid.uuid4())
        if not self.occurred_at:
            self.occurred_at = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EventRecorder:
    """
    Mixin for aggregates that raise domain events.

    Events are kept on the instance dict so they survive SQLAlchemy
    attribute expiry and are drained by the unit of work before commit.
    """

    def record_event(self, event_type: str, actor_id=None, **payload) -> DomainEvent:
        if getattr(self, "id", None) is None:
            # Assign the primary key early so events raised before flush carry it
            self.id = uuid.uuid4()
        event = DomainEvent(
            event_type=event_type,
            aggregate_id=str(self.id),
            payload=payload,
            actor_id=str(actor_id) if actor_id else None,
        )
        self.__dict__.setdefault("_pending_events", []).append(event)
        return event

    def pop_events(self) -> List[DomainEvent]:
        return self.__dict__.pop("_pending_events", [])


EventHandler = Callable[[DomainEvent], None]


class RecentIds:
    """Fixed-size window of recently seen ids; the oldest id is forgotten first"""

    def __init__(self, maxlen: int):
        self.maxlen = maxlen
        self._order: Deque[str] = deque()
        self._ids: Set[str] = set()

    def __contains__(self, item: str) -> bool:
        return item in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, item: str) -> None:
        if item in self._ids:
            return
        self._order.append(item)
        self._ids.add(item)
        if len(self._order) > self.maxlen:
            self._ids.discard(self._order.popleft())


class EventBus:
    """
    Synchronous in-process publisher.

    Subscribers register per event type, or for every event with "*".
    Each handler keeps the ids it has recently processed so an event that is
    delivered twice is acknowledged and skipped. Only the last
    `dedup_window` ids per handler are remembered.
    """

    WILDCARD = "*"
    DEFAULT_DEDUP_WINDOW = 10000

    def __init__(self, dedup_window: int = DEFAULT_DEDUP_WINDOW):
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._processed: Dict[EventHandler, RecentIds] = defaultdict(lambda: RecentIds(dedup_window))

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: str) -> List[EventHandler]:
        return self._handlers.get(event_type, []) + self._handlers.get(self.WILDCARD, [])

    def publish(self, event: DomainEvent) -> None:
        for handler in self.handlers_for(event.event_type):
            seen = self._processed[handler]
            if event.event_id in seen:
                logger.info(
                    "Duplicate event delivery skipped",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    handler=getattr(handler, "__name__", repr(handler)),
                )
                continue
            try:
                handler(event)
                seen.add(event.event_id)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    aggregate_id=event.aggregate_id,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )

    def publish_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)
