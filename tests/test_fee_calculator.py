"""
Fee Calculation Tests
"""

from datetime import date
from decimal import Decimal

import pytest

from fop_system.core.exceptions import InvalidAircraftSpec
from fop_system.models.enums import PermitType
from fop_system.schemas.fee import FeeConfigurationCreate
from fop_system.services.fee_calculator import FeeConfigSnapshot, calculate_fee
from fop_system.services.fee_service import FeeService

CONFIG = FeeConfigSnapshot(
    base_fee=Decimal("500"),
    per_seat_rate=Decimal("5"),
    per_kg_rate=Decimal("0.01"),
)


class TestCalculateFee:

    @pytest.mark.parametrize("permit_type,expected", [
        (PermitType.ONE_TIME, Decimal("1000.00")),
        (PermitType.BLANKET, Decimal("2500.00")),
        (PermitType.EMERGENCY, Decimal("500.00")),
    ])
    def test_type_multiplier(self, permit_type, expected):
        breakdown = calculate_fee(permit_type, 50, 25000, CONFIG)

        assert breakdown.base_fee == Decimal("500.00")
        assert breakdown.seat_fee == Decimal("250.00")
        assert breakdown.weight_fee == Decimal("250.00")
        assert breakdown.subtotal == Decimal("1000.00")
        assert breakdown.total == expected

    def test_line_items_round_half_up(self):
        config = FeeConfigSnapshot(
            base_fee=Decimal("100.005"), per_seat_rate=Decimal("0.125"), per_kg_rate=Decimal("0.0005")
        )
        breakdown = calculate_fee(PermitType.ONE_TIME, 1, 1, config)

        assert breakdown.base_fee == Decimal("100.01")
        assert breakdown.seat_fee == Decimal("0.13")
        assert breakdown.weight_fee == Decimal("0.00")
        assert breakdown.total == Decimal("100.14")

    def test_total_rounded_after_multiplier(self):
        config = FeeConfigSnapshot(base_fee=Decimal("0.01"), per_seat_rate=Decimal("0"), per_kg_rate=Decimal("0"))
        breakdown = calculate_fee(PermitType.EMERGENCY, 0, 1, config)

        # 0.01 * 0.5 = 0.005 rounds half-up
        assert breakdown.total == Decimal("0.01")

    def test_zero_seats_allowed(self):
        breakdown = calculate_fee(PermitType.ONE_TIME, 0, 25000, CONFIG)
        assert breakdown.total == Decimal("750.00")

    @pytest.mark.parametrize("seats", [-1, 1.5, "10", True])
    def test_invalid_seat_capacity(self, seats):
        with pytest.raises(InvalidAircraftSpec):
            calculate_fee(PermitType.ONE_TIME, seats, 25000, CONFIG)

    @pytest.mark.parametrize("mtow", [0, -5, "heavy", "NaN"])
    def test_invalid_mtow(self, mtow):
        with pytest.raises(InvalidAircraftSpec):
            calculate_fee(PermitType.ONE_TIME, 10, mtow, CONFIG)

    def test_breakdown_serializes(self):
        data = calculate_fee(PermitType.BLANKET, 50, 25000, CONFIG).to_dict()

        assert data["permit_type"] == "BLANKET"
        assert data["total"] == "2500.00"
        assert data["multiplier"] == "2.5"
        assert data["config_id"] is None


class TestFeeService:

    def test_uses_settings_defaults_without_configuration(self, db, context):
        breakdown = FeeService(db, context).calculate(PermitType.ONE_TIME, 10, 1000)

        # 150 + 10 * 10 + 1000 * 0.02
        assert breakdown.total == Decimal("270.00")
        assert breakdown.config_id is None

    def test_uses_effective_configuration(self, db, context, fee_config):
        breakdown = FeeService(db, context).calculate(PermitType.ONE_TIME, 50, 25000)

        assert breakdown.total == Decimal("1000.00")
        assert breakdown.config_id == fee_config.id

    def test_type_specific_configuration_wins(self, db, context, fee_config, actor_id):
        service = FeeService(db, context)
        service.create_configuration(FeeConfigurationCreate(
            permit_type=PermitType.BLANKET,
            base_fee=Decimal("1000"),
            per_seat_fee=Decimal("5"),
            per_kg_fee=Decimal("0.01"),
            effective_from=date(2001, 1, 1),
        ), actor_id)

        assert service.calculate(PermitType.BLANKET, 50, 25000).total == Decimal("3750.00")
        assert service.calculate(PermitType.ONE_TIME, 50, 25000).total == Decimal("1000.00")

    def test_new_version_closes_previous(self, db, context, fee_config, actor_id):
        service = FeeService(db, context)
        service.create_configuration(FeeConfigurationCreate(
            base_fee=Decimal("600"),
            per_seat_fee=Decimal("5"),
            per_kg_fee=Decimal("0.01"),
            effective_from=date(2020, 1, 1),
        ), actor_id)

        db.refresh(fee_config)
        assert fee_config.effective_until == date(2020, 1, 1)
        assert service.calculate(PermitType.ONE_TIME, 50, 25000).total == Decimal("1100.00")
        assert service.calculate(PermitType.ONE_TIME, 50, 25000, as_of=date(2019, 6, 1)).total == Decimal("1000.00")
