"""
Operator Service
Registration and lookup of foreign operators and their aircraft
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from fop_system.core.exceptions import InvariantViolation, OperatorNotFound, AircraftNotFound
from fop_system.crud.crud_operator import crud_operator, crud_aircraft
from fop_system.models.operator import Operator, Aircraft
from fop_system.schemas.operator import OperatorCreate, AircraftCreate
from fop_system.services.base import DomainService

logger = logging.getLogger(__name__)


class OperatorService(DomainService):
    """Reference data for applications: operators and aircraft"""

    def _commit(self, resource_type: str, record, actor_id: Optional[UUID]):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise InvariantViolation(
                f"{resource_type.title()} already registered",
                code="DuplicateRegistration",
                details={"resource_type": resource_type},
            ) from e
        self.db.refresh(record)
        self.context.audit_sink.record(
            action="CREATE",
            resource_type=resource_type,
            resource_id=str(record.id),
            actor_id=actor_id,
            old_values=None,
            new_values=record.to_dict(),
        )

    def get_operator(self, operator_id: UUID) -> Operator:
        operator = crud_operator.get(self.db, operator_id)
        if operator is None:
            raise OperatorNotFound(f"Operator {operator_id} not found", details={"operator_id": str(operator_id)})
        return operator

    def list_operators(self, skip: int = 0, limit: int = 100) -> List[Operator]:
        return crud_operator.get_multi(self.db, skip=skip, limit=limit)

    def create_operator(self, obj_in: OperatorCreate, actor_id: Optional[UUID]) -> Operator:
        if crud_operator.get_by_aoc_number(self.db, obj_in.aoc_number) is not None:
            raise InvariantViolation(
                f"An operator with AOC {obj_in.aoc_number} is already registered",
                code="DuplicateRegistration",
                details={"aoc_number": obj_in.aoc_number},
            )
        operator = crud_operator.create_with_details(self.db, obj_in=obj_in, created_by=actor_id)
        self._commit("OPERATOR", operator, actor_id)
        logger.info(f"Operator {operator.name} ({operator.aoc_number}) registered")
        return operator

    def get_aircraft(self, aircraft_id: UUID) -> Aircraft:
        aircraft = crud_aircraft.get(self.db, aircraft_id)
        if aircraft is None:
            raise AircraftNotFound(f"Aircraft {aircraft_id} not found", details={"aircraft_id": str(aircraft_id)})
        return aircraft

    def list_aircraft(self, operator_id: UUID) -> List[Aircraft]:
        self.get_operator(operator_id)
        return crud_aircraft.get_by_operator(self.db, operator_id)

    def create_aircraft(self, obj_in: AircraftCreate, actor_id: Optional[UUID]) -> Aircraft:
        self.get_operator(obj_in.operator_id)
        if crud_aircraft.get_by_registration(self.db, obj_in.registration_mark) is not None:
            raise InvariantViolation(
                f"Aircraft {obj_in.registration_mark} is already registered",
                code="DuplicateRegistration",
                details={"registration_mark": obj_in.registration_mark},
            )
        aircraft = crud_aircraft.create_for_operator(self.db, obj_in=obj_in, created_by=actor_id)
        self._commit("AIRCRAFT", aircraft, actor_id)
        logger.info(f"Aircraft {aircraft.registration_mark} registered")
        return aircraft
