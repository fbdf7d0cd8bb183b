"""
Base Database Model for the Foreign Operator Permit System
Common identity, audit and soft-delete columns shared by every table
"""

from sqlalchemy import Column, DateTime, Boolean, Uuid
from sqlalchemy.orm import declared_attr, declarative_base
from datetime import datetime, date, timezone
from decimal import Decimal
import enum
import re
import uuid

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """Base model with common fields and functionality"""
    __abstract__ = True

    @declared_attr
    def __tablename__(cls):
        """Generate table name from class name"""
        name = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', cls.__name__)
        return re.sub('([a-z0-9])([A-Z])', r'\1_\2', name).lower()

    # Primary key - using UUID for all records
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, unique=True, nullable=False)

    # Audit fields - who and when
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="Record creation timestamp")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False, comment="Last update timestamp")
    created_by = Column(Uuid, nullable=True, comment="Actor ID who created the record")
    updated_by = Column(Uuid, nullable=True, comment="Actor ID who last updated the record")

    # Soft delete support for data retention
    is_active = Column(Boolean, default=True, nullable=False, comment="Active status - false for soft deleted")
    deleted_at = Column(DateTime(timezone=True), nullable=True, comment="Soft deletion timestamp")
    deleted_by = Column(Uuid, nullable=True, comment="Actor ID who soft deleted the record")

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self):
        """Convert model to dictionary for JSON serialization"""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif isinstance(value, uuid.UUID):
                value = str(value)
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, enum.Enum):
                value = value.value
            result[column.key] = value
        return result

    def soft_delete(self, deleted_by_user_id: uuid.UUID = None):
        """
        Soft delete the record - maintains data for audit trail
        """
        self.is_active = False
        self.deleted_at = utcnow()
        self.deleted_by = deleted_by_user_id

    @classmethod
    def get_active_query(cls, session):
        """Get query for only active (non-soft-deleted) records"""
        return session.query(cls).filter(cls.is_active == True)  # noqa: E712


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from databases without tz support"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
