"""
CRUD operations for Foreign Operator Permit Applications
Lookups, number generation and search; state changes live on the aggregate
"""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from fop_system.crud.base import CRUDBase
from fop_system.models.application import (
    FopApplication, ApplicationDocument, FeeWaiver, ApplicationStatusHistory, ApplicationSequenceCounter
)
from fop_system.models.enums import ApplicationStatus, PermitType
from fop_system.schemas.application import ApplicationCreate, ApplicationUpdate


class CRUDApplication(CRUDBase[FopApplication, ApplicationCreate, ApplicationUpdate]):
    """CRUD operations for Applications"""

    def generate_application_number(self, db: Session, permit_type: PermitType) -> str:
        """
        Generate unique application number: FOP-{TYPE_CODE}-{SEQUENCE}
        Increments the per-type counter and flushes; a concurrent increment
        fails the counter's version check.
        """
        counter = db.query(ApplicationSequenceCounter).filter(
            ApplicationSequenceCounter.permit_type == permit_type
        ).first()

        if not counter:
            counter = ApplicationSequenceCounter(permit_type=permit_type, current_sequence=0)
            db.add(counter)

        counter.current_sequence += 1
        db.flush()

        return f"FOP-{permit_type.code}-{counter.current_sequence:06d}"

    def get_by_number(self, db: Session, application_number: str) -> Optional[FopApplication]:
        return db.query(FopApplication).filter(
            func.upper(FopApplication.application_number) == application_number.strip().upper()
        ).first()

    def search(
        self,
        db: Session,
        *,
        status: Optional[ApplicationStatus] = None,
        permit_type: Optional[PermitType] = None,
        operator_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[FopApplication], int]:
        """Filter applications, newest first; returns (page, total)"""
        query = FopApplication.get_active_query(db)
        if status:
            query = query.filter(FopApplication.status == status)
        if permit_type:
            query = query.filter(FopApplication.permit_type == permit_type)
        if operator_id:
            query = query.filter(FopApplication.operator_id == operator_id)

        total = query.count()
        items = query.order_by(desc(FopApplication.created_at)).offset(skip).limit(limit).all()
        return items, total

    def get_expired_drafts(self, db: Session, now: datetime) -> List[FopApplication]:
        """Draft applications past their expiry timestamp"""
        return db.query(FopApplication).filter(
            FopApplication.status == ApplicationStatus.DRAFT,
            FopApplication.draft_expires_at < now
        ).all()

    def get_document(self, db: Session, application_id: UUID, document_id: UUID) -> Optional[ApplicationDocument]:
        return db.query(ApplicationDocument).filter(
            ApplicationDocument.id == document_id,
            ApplicationDocument.application_id == application_id,
            ApplicationDocument.is_active == True  # noqa: E712
        ).first()

    def get_waiver(self, db: Session, application_id: UUID, waiver_id: UUID) -> Optional[FeeWaiver]:
        return db.query(FeeWaiver).filter(
            FeeWaiver.id == waiver_id,
            FeeWaiver.application_id == application_id
        ).first()

    def get_status_history(self, db: Session, application_id: UUID) -> List[ApplicationStatusHistory]:
        return db.query(ApplicationStatusHistory).filter(
            ApplicationStatusHistory.application_id == application_id
        ).order_by(ApplicationStatusHistory.sequence_number).all()


crud_application = CRUDApplication(FopApplication)
