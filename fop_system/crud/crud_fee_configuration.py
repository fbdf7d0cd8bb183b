"""
CRUD operations for versioned Fee Configurations
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from fop_system.crud.base import CRUDBase
from fop_system.models.enums import PermitType
from fop_system.models.fee_configuration import FeeConfiguration
from fop_system.schemas.fee import FeeConfigurationCreate


class CRUDFeeConfiguration(CRUDBase[FeeConfiguration, FeeConfigurationCreate, FeeConfigurationCreate]):
    """CRUD operations for Fee Configurations"""

    def _effective_query(self, db: Session, as_of: date):
        return db.query(FeeConfiguration).filter(
            FeeConfiguration.is_active == True,  # noqa: E712
            FeeConfiguration.effective_from <= as_of,
            or_(FeeConfiguration.effective_until.is_(None), FeeConfiguration.effective_until > as_of),
        )

    def get_effective(self, db: Session, permit_type: PermitType, as_of: date) -> Optional[FeeConfiguration]:
        """Most recent configuration for the type, falling back to one covering all types"""
        query = self._effective_query(db, as_of).order_by(FeeConfiguration.effective_from.desc())
        specific = query.filter(FeeConfiguration.permit_type == permit_type).first()
        if specific:
            return specific
        return query.filter(FeeConfiguration.permit_type.is_(None)).first()

    def get_history(self, db: Session, permit_type: Optional[PermitType] = None) -> List[FeeConfiguration]:
        query = db.query(FeeConfiguration)
        if permit_type is None:
            query = query.filter(FeeConfiguration.permit_type.is_(None))
        else:
            query = query.filter(FeeConfiguration.permit_type == permit_type)
        return query.order_by(FeeConfiguration.effective_from.desc()).all()

    def create_version(self, db: Session, *, obj_in: FeeConfigurationCreate, created_by: Optional[UUID] = None) -> FeeConfiguration:
        """Add a configuration version, closing the open-ended one for the same scope"""
        scope = FeeConfiguration.permit_type.is_(None) if obj_in.permit_type is None \
            else FeeConfiguration.permit_type == obj_in.permit_type
        open_versions = db.query(FeeConfiguration).filter(
            scope,
            FeeConfiguration.is_active == True,  # noqa: E712
            FeeConfiguration.effective_until.is_(None),
            FeeConfiguration.effective_from < obj_in.effective_from,
        ).all()
        for version in open_versions:
            version.effective_until = obj_in.effective_from
            version.updated_by = created_by

        return self.create(db, obj_in=obj_in.model_dump(), created_by=created_by)


crud_fee_configuration = CRUDFeeConfiguration(FeeConfiguration)
