"""
External Collaborator Interfaces

Narrow contracts for the services the permit workflow depends on but does
not own, plus the default implementations wired in by the application.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import logging

from fop_system.core.exceptions import ExternalDependencyFailure
from fop_system.models.enums import PaymentMethod, PermitType
from fop_system.models.value_objects import Money

logger = logging.getLogger(__name__)


class DocumentStorage(ABC):
    """Blob storage for uploaded certificates; the workflow keeps only the reference"""

    @abstractmethod
    def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Store a file and return its reference"""

    @abstractmethod
    def download(self, file_reference: str) -> bytes:
        """Return the bytes stored under a reference"""


@dataclass(frozen=True)
class PaymentIntent:
    reference: str
    requires_redirect: bool = False


class PaymentGateway(ABC):
    """Charges are initiated here; the outcome arrives later through a callback"""

    @abstractmethod
    def initiate_charge(self, amount: Money, method: PaymentMethod, reference: str) -> PaymentIntent:
        """Start a charge and return the gateway's reference"""


class NotificationService(ABC):
    """Fire-and-forget notifications, invoked only by event handlers"""

    @abstractmethod
    def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Deliver a notification for an event"""


class FeeConfigurationProvider(ABC):
    """Versioned fee rates"""

    @abstractmethod
    def get_active_config(self, permit_type: PermitType, as_of: date):
        """Return the FeeConfigSnapshot in force for a type on a date"""


class AuditSink(ABC):
    """Receives before/after snapshots of state transitions"""

    @abstractmethod
    def record(
        self,
        action: str,
        resource_type: str,
        resource_id: str,
        actor_id: Optional[uuid.UUID],
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
        transaction_id: Optional[str] = None,
    ) -> None:
        """Persist one audit entry"""


# =============================================================================
# DEFAULT IMPLEMENTATIONS
# =============================================================================

class LocalDocumentStorage(DocumentStorage):
    """Stores files on the local filesystem under a base directory"""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)

    def upload(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        suffix = Path(filename or "").suffix.lower()
        reference = f"{uuid.uuid4().hex}{suffix}"
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            (self.base_path / reference).write_bytes(content)
        except OSError as e:
            raise ExternalDependencyFailure(
                f"Document storage unavailable: {e}",
                code="DocumentStorageUnavailable",
            )
        logger.info(f"Stored document {reference} ({len(content)} bytes)")
        return reference

    def download(self, file_reference: str) -> bytes:
        path = (self.base_path / file_reference).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ExternalDependencyFailure("Invalid file reference", code="DocumentStorageUnavailable")
        try:
            return path.read_bytes()
        except OSError as e:
            raise ExternalDependencyFailure(
                f"Document storage unavailable: {e}",
                code="DocumentStorageUnavailable",
            )


class ManualPaymentGateway(PaymentGateway):
    """
    Gateway stand-in for offline collection: hands out intent references and
    leaves resolution to the callback or finance verification endpoints.
    """

    def initiate_charge(self, amount: Money, method: PaymentMethod, reference: str) -> PaymentIntent:
        intent_reference = f"PI-{uuid.uuid4().hex[:16].upper()}"
        logger.info(f"Payment intent {intent_reference} for {amount} via {method.value} ({reference})")
        return PaymentIntent(reference=intent_reference, requires_redirect=method == PaymentMethod.CREDIT_CARD)


class LoggingNotificationService(NotificationService):
    """Writes notifications to the log instead of sending email"""

    def notify(self, event_type: str, payload: Dict[str, Any]) -> None:
        logger.info(f"Notification [{event_type}]: {payload}")
