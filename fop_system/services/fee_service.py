"""
Fee Service
Active fee configuration lookup, fee estimates and configuration versioning
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from fop_system.core.config import Settings
from fop_system.crud.crud_fee_configuration import crud_fee_configuration
from fop_system.models.enums import PermitType
from fop_system.models.fee_configuration import FeeConfiguration
from fop_system.schemas.fee import FeeConfigurationCreate
from fop_system.services.collaborators import FeeConfigurationProvider
from fop_system.services.fee_calculator import FeeBreakdown, FeeConfigSnapshot, calculate_fee

logger = logging.getLogger(__name__)


def snapshot_from_row(row: FeeConfiguration) -> FeeConfigSnapshot:
    return FeeConfigSnapshot(
        base_fee=Decimal(row.base_fee),
        per_seat_rate=Decimal(row.per_seat_fee),
        per_kg_rate=Decimal(row.per_kg_fee),
        currency=row.currency,
        config_id=row.id,
    )


def default_snapshot(settings: Settings) -> FeeConfigSnapshot:
    """Rates from settings, used when no configuration row is effective"""
    return FeeConfigSnapshot(
        base_fee=Decimal(str(settings.DEFAULT_BASE_FEE)),
        per_seat_rate=Decimal(str(settings.DEFAULT_PER_SEAT_FEE)),
        per_kg_rate=Decimal(str(settings.DEFAULT_PER_KG_FEE)),
        currency=settings.CURRENCY,
        config_id=None,
    )


class DatabaseFeeConfigurationProvider(FeeConfigurationProvider):
    """Reads the effective FeeConfiguration row, falling back to settings defaults"""

    def __init__(self, session_factory, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    def get_active_config(self, permit_type: PermitType, as_of: date) -> FeeConfigSnapshot:
        db = self.session_factory()
        try:
            row = crud_fee_configuration.get_effective(db, PermitType(permit_type), as_of)
            if row is None:
                logger.info(f"No fee configuration effective for {permit_type} on {as_of}, using defaults")
                return default_snapshot(self.settings)
            return snapshot_from_row(row)
        finally:
            db.close()


class FeeService:
    """Fee estimates and configuration management"""

    def __init__(self, db: Session, context):
        self.db = db
        self.context = context

    def calculate(self, permit_type: PermitType, seat_capacity: int, mtow_kg,
                  as_of: date = None) -> FeeBreakdown:
        """Quote a fee with the configuration in force on a date (today by default)"""
        config = self.context.fee_provider.get_active_config(permit_type, as_of or date.today())
        return calculate_fee(permit_type, seat_capacity, mtow_kg, config)

    def create_configuration(self, obj_in: FeeConfigurationCreate, actor_id: Optional[UUID]) -> FeeConfiguration:
        try:
            config = crud_fee_configuration.create_version(self.db, obj_in=obj_in, created_by=actor_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(config)
        logger.info(
            f"Fee configuration {config.id} created for "
            f"{obj_in.permit_type.value if obj_in.permit_type else 'ALL'} from {obj_in.effective_from}"
        )
        return config

    def list_configurations(self, permit_type: Optional[PermitType] = None) -> List[FeeConfiguration]:
        return crud_fee_configuration.get_history(self.db, permit_type)
