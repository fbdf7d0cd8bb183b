"""
Operator and Aircraft Registration Tests
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest

from fop_system.core.exceptions import InvariantViolation, OperatorNotFound, ValidationError
from fop_system.models.audit import AuditLog
from fop_system.models.enums import PermitType
from fop_system.schemas.application import ApplicationCreate, FlightDetailsSchema
from fop_system.schemas.operator import AircraftCreate, OperatorCreate
from fop_system.services import ApplicationService, OperatorService


def operator_payload(aoc_number):
    return OperatorCreate(
        name="Second Operator",
        country="Guyana",
        aoc_number=aoc_number,
        address={"street": "Ogle", "city": "Georgetown", "country": "Guyana"},
        contact={"name": "Ops", "email": "ops@second.example", "phone": "+592 555 0100"},
    )


def aircraft_payload(operator_id, registration_mark="8R-XYZ"):
    return AircraftCreate(
        operator_id=operator_id,
        registration_mark=registration_mark,
        manufacturer="Cessna",
        model="208B",
        seat_capacity=9,
        mtow_kg=Decimal("3985"),
    )


class TestOperators:

    def test_identifiers_normalised(self, operator, aircraft):
        assert operator.aoc_number == "AOC-8P-001"
        assert operator.contact_email == "ops@example.com"
        assert aircraft.registration_mark == "8P-ABC"

    def test_duplicate_aoc_rejected(self, db, context, operator, actor_id):
        with pytest.raises(InvariantViolation) as exc_info:
            OperatorService(db, context).create_operator(operator_payload(" aoc-8p-001 "), actor_id)

        assert exc_info.value.code == "DuplicateRegistration"

    def test_registration_is_audited(self, db, operator):
        entry = db.query(AuditLog).filter(
            AuditLog.action == "CREATE", AuditLog.resource_type == "OPERATOR"
        ).one()

        assert entry.resource_id == str(operator.id)
        assert entry.new_values["aoc_number"] == "AOC-8P-001"

    def test_unknown_operator(self, db, context):
        with pytest.raises(OperatorNotFound):
            OperatorService(db, context).get_operator(uuid.uuid4())


class TestAircraft:

    def test_duplicate_registration_rejected(self, db, context, operator, aircraft, actor_id):
        with pytest.raises(InvariantViolation):
            OperatorService(db, context).create_aircraft(aircraft_payload(operator.id, " 8p-abc"), actor_id)

    def test_aircraft_requires_operator(self, db, context, actor_id):
        with pytest.raises(OperatorNotFound):
            OperatorService(db, context).create_aircraft(aircraft_payload(uuid.uuid4()), actor_id)

    def test_list_by_operator(self, db, context, operator, aircraft, actor_id):
        service = OperatorService(db, context)
        second = service.create_aircraft(aircraft_payload(operator.id, "8P-AAA"), actor_id)

        assert [a.id for a in service.list_aircraft(operator.id)] == [second.id, aircraft.id]

    def test_application_aircraft_must_belong_to_operator(self, db, context, operator, fee_config, actor_id):
        service = OperatorService(db, context)
        other_operator = service.create_operator(operator_payload("GY-AOC-1"), actor_id)
        foreign_aircraft = service.create_aircraft(aircraft_payload(other_operator.id), actor_id)

        with pytest.raises(ValidationError) as exc_info:
            ApplicationService(db, context).create_application(ApplicationCreate(
                permit_type=PermitType.ONE_TIME,
                operator_id=operator.id,
                aircraft_id=foreign_aircraft.id,
                flight_details=FlightDetailsSchema(purpose="CARGO", arrival_airport="TBPB"),
                requested_start_date=date.today(),
                requested_end_date=date.today() + timedelta(days=1),
            ), actor_id)

        assert exc_info.value.code == "AircraftOperatorMismatch"
