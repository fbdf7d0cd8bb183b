"""
Audit Log Model
Before/after snapshots of every state transition for compliance review
"""

from sqlalchemy import Column, String, Text, Boolean, JSON, Uuid

from fop_system.models.base import BaseModel


class AuditLog(BaseModel):
    """
    Audit log entry
    One row per state transition, written after the transition commits
    """
    __tablename__ = "audit_logs"

    actor_id = Column(Uuid, nullable=True, index=True, comment="Actor who performed the action")

    # Action details
    action = Column(String(100), nullable=False, index=True, comment="Action performed")
    resource_type = Column(String(50), nullable=False, index=True, comment="Resource affected")
    resource_id = Column(String(100), nullable=True, index=True, comment="ID of affected resource")

    # Result details
    success = Column(Boolean, nullable=False, default=True)
    error_message = Column(Text, nullable=True)

    old_values = Column(JSON, nullable=True, comment="Snapshot before the change")
    new_values = Column(JSON, nullable=True, comment="Snapshot after the change")
    changed_fields = Column(JSON, nullable=True)

    transaction_id = Column(String(36), nullable=True, index=True, comment="Correlates entries written together")

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', resource='{self.resource_type}:{self.resource_id}')>"
