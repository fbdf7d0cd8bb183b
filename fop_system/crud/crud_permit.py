"""
CRUD operations for Foreign Operator Permits
"""

from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from fop_system.crud.base import CRUDBase
from fop_system.models.enums import PermitStatus
from fop_system.models.permit import Permit, PermitNumberGenerator
from fop_system.schemas.permit import PermitResponse


class CRUDPermit(CRUDBase[Permit, PermitResponse, PermitResponse]):
    """CRUD operations for Permits"""

    def get_by_number(self, db: Session, permit_number: str) -> Optional[Permit]:
        """Case-insensitive lookup by permit number"""
        normalized = PermitNumberGenerator.normalize(permit_number)
        if not normalized:
            return None
        return db.query(Permit).filter(func.upper(Permit.permit_number) == normalized).first()

    def get_by_application(self, db: Session, application_id: UUID) -> Optional[Permit]:
        return db.query(Permit).filter(Permit.application_id == application_id).first()

    def get_by_operator(self, db: Session, operator_id: UUID, skip: int = 0, limit: int = 100) -> List[Permit]:
        return db.query(Permit).filter(
            Permit.operator_id == operator_id
        ).order_by(Permit.valid_until.desc()).offset(skip).limit(limit).all()

    def get_due_for_expiry(self, db: Session, today: date) -> List[Permit]:
        """Active or suspended permits whose validity ended before today"""
        return db.query(Permit).filter(
            Permit.status.in_([PermitStatus.ACTIVE, PermitStatus.SUSPENDED]),
            Permit.valid_until < today
        ).all()

    def get_expiring_soon(self, db: Session, today: date, days: int) -> List[Permit]:
        """Active permits whose validity ends within the window"""
        return db.query(Permit).filter(
            Permit.status == PermitStatus.ACTIVE,
            Permit.valid_until >= today,
            Permit.valid_until <= today + timedelta(days=days)
        ).order_by(Permit.valid_until).all()


crud_permit = CRUDPermit(Permit)
