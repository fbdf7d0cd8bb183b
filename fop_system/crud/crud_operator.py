"""
CRUD operations for Operators and Aircraft
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from fop_system.crud.base import CRUDBase
from fop_system.models.operator import Operator, Aircraft
from fop_system.models.value_objects import Address, ContactInfo
from fop_system.schemas.operator import OperatorCreate, AircraftCreate


class CRUDOperator(CRUDBase[Operator, OperatorCreate, OperatorCreate]):
    """CRUD operations for Operators"""

    def create_with_details(self, db: Session, *, obj_in: OperatorCreate, created_by: Optional[UUID] = None) -> Operator:
        operator = Operator(
            name=obj_in.name.strip(),
            country=obj_in.country.strip(),
            aoc_number=obj_in.aoc_number.strip().upper(),
            aoc_expiry_date=obj_in.aoc_expiry_date,
            created_by=created_by,
            updated_by=created_by,
        )
        operator.address = Address(**obj_in.address.model_dump())
        operator.contact = ContactInfo(**obj_in.contact.model_dump())
        db.add(operator)
        db.flush()
        return operator

    def get_by_aoc_number(self, db: Session, aoc_number: str) -> Optional[Operator]:
        return db.query(Operator).filter(Operator.aoc_number == aoc_number.strip().upper()).first()


class CRUDAircraft(CRUDBase[Aircraft, AircraftCreate, AircraftCreate]):
    """CRUD operations for Aircraft"""

    def create_for_operator(self, db: Session, *, obj_in: AircraftCreate, created_by: Optional[UUID] = None) -> Aircraft:
        data = obj_in.model_dump()
        data["registration_mark"] = data["registration_mark"].strip().upper()
        return self.create(db, obj_in=data, created_by=created_by)

    def get_by_registration(self, db: Session, registration_mark: str) -> Optional[Aircraft]:
        return db.query(Aircraft).filter(
            Aircraft.registration_mark == registration_mark.strip().upper()
        ).first()

    def get_by_operator(self, db: Session, operator_id: UUID) -> List[Aircraft]:
        return Aircraft.get_active_query(db).filter(
            Aircraft.operator_id == operator_id
        ).order_by(Aircraft.registration_mark).all()


crud_operator = CRUDOperator(Operator)
crud_aircraft = CRUDAircraft(Aircraft)
