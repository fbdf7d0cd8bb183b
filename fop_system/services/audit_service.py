"""
Audit Service for the Foreign Operator Permit System
Records before/after snapshots of every state transition for compliance review
"""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
import uuid

import structlog
from sqlalchemy.orm import Session

from fop_system.models.audit import AuditLog
from fop_system.services.collaborators import AuditSink

logger = structlog.get_logger()


@dataclass
class AuditLogData:
    """Data structure for audit log entries"""
    action: str  # SUBMIT, APPROVE, SUSPEND_PERMIT, ...
    resource_type: str  # APPLICATION, PERMIT, ...
    resource_id: Optional[str] = None
    actor_id: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changed_fields: Optional[List[str]] = None
    success: bool = True
    error_message: Optional[str] = None

    def dict(self):
        return asdict(self)


def identify_changed_fields(old_data: Optional[Dict[str, Any]],
                            new_data: Optional[Dict[str, Any]]) -> List[str]:
    """Identify which fields changed between old and new data"""
    old_data = old_data or {}
    new_data = new_data or {}
    changed_fields = []

    for key, new_value in new_data.items():
        if old_data.get(key) != new_value:
            changed_fields.append(key)

    for key in old_data.keys():
        if key not in new_data:
            changed_fields.append(f"removed_{key}")

    return changed_fields


class DatabaseAuditSink(AuditSink):
    """
    Audit sink writing AuditLog rows in a session of its own.

    Runs after the business transaction commits, so a failure here is logged
    and the transition it describes still stands.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

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
        self.log_action(AuditLogData(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            actor_id=str(actor_id) if actor_id else None,
            old_values=old_values,
            new_values=new_values,
            changed_fields=identify_changed_fields(old_values, new_values),
        ), transaction_id=transaction_id)

    def log_action(self, action_data: AuditLogData, transaction_id: Optional[str] = None) -> str:
        """
        Log a system action
        Returns: transaction_id for correlation
        """
        if transaction_id is None:
            transaction_id = str(uuid.uuid4())

        db: Session = self.session_factory()
        try:
            audit_log = AuditLog(
                actor_id=uuid.UUID(action_data.actor_id) if action_data.actor_id else None,
                action=action_data.action,
                resource_type=action_data.resource_type,
                resource_id=action_data.resource_id,
                success=action_data.success,
                error_message=action_data.error_message,
                old_values=action_data.old_values,
                new_values=action_data.new_values,
                changed_fields=action_data.changed_fields,
                transaction_id=transaction_id,
            )
            db.add(audit_log)
            db.commit()

            logger.info(
                "Audit log created",
                transaction_id=transaction_id,
                action=f"{action_data.action}:{action_data.resource_type}",
                resource_id=action_data.resource_id,
                actor=action_data.actor_id,
            )
        except Exception as e:
            db.rollback()
            logger.error(
                "Failed to create audit log",
                action=action_data.action,
                resource_id=action_data.resource_id,
                error=str(e),
            )
        finally:
            db.close()

        return transaction_id


def get_audit_trail(db: Session, resource_type: str, resource_id: str) -> List[AuditLog]:
    """Audit entries for one resource, oldest first"""
    return (
        db.query(AuditLog)
        .filter(AuditLog.resource_type == resource_type, AuditLog.resource_id == str(resource_id))
        .order_by(AuditLog.created_at)
        .all()
    )
