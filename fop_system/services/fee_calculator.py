"""
Permit Fee Calculation

    total = (base + seats * per_seat + mtow_kg * per_kg) * type_multiplier

Pure functions only: the result depends on the arguments and nothing else, so
a stored fee can be reproduced from the configuration version it was priced
with.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union
import uuid

from fop_system.core.exceptions import InvalidAircraftSpec
from fop_system.models.enums import PermitType
from fop_system.models.value_objects import round_money

TYPE_MULTIPLIERS = {
    PermitType.ONE_TIME: Decimal("1.0"),
    PermitType.BLANKET: Decimal("2.5"),
    PermitType.EMERGENCY: Decimal("0.5"),
}


@dataclass(frozen=True)
class FeeConfigSnapshot:
    """Immutable copy of the fee rates in force for a calculation"""
    base_fee: Decimal
    per_seat_rate: Decimal
    per_kg_rate: Decimal
    currency: str = "USD"
    config_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class FeeBreakdown:
    permit_type: PermitType
    seat_capacity: int
    mtow_kg: Decimal
    base_fee: Decimal
    seat_fee: Decimal
    weight_fee: Decimal
    subtotal: Decimal
    multiplier: Decimal
    total: Decimal
    currency: str
    config_id: Optional[uuid.UUID] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "permit_type": self.permit_type.value,
            "seat_capacity": self.seat_capacity,
            "mtow_kg": str(self.mtow_kg),
            "base_fee": str(self.base_fee),
            "seat_fee": str(self.seat_fee),
            "weight_fee": str(self.weight_fee),
            "subtotal": str(self.subtotal),
            "multiplier": str(self.multiplier),
            "total": str(self.total),
            "currency": self.currency,
            "config_id": str(self.config_id) if self.config_id else None,
        }


def calculate_fee(
    permit_type: PermitType,
    seat_capacity: int,
    mtow_kg: Union[Decimal, int, float, str],
    config: FeeConfigSnapshot,
) -> FeeBreakdown:
    """Calculate a permit fee with each line item rounded half-up to cents"""
    try:
        mtow = Decimal(str(mtow_kg))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAircraftSpec(f"Invalid MTOW: {mtow_kg!r}", details={"mtow_kg": str(mtow_kg)})

    if isinstance(seat_capacity, bool) or not isinstance(seat_capacity, int) or seat_capacity < 0:
        raise InvalidAircraftSpec(
            f"Seat capacity must be a non-negative integer, got {seat_capacity!r}",
            details={"seat_capacity": seat_capacity},
        )
    if not mtow.is_finite() or mtow <= 0:
        raise InvalidAircraftSpec(
            f"MTOW must be greater than zero, got {mtow_kg!r}",
            details={"mtow_kg": str(mtow_kg)},
        )

    permit_type = PermitType(permit_type)
    multiplier = TYPE_MULTIPLIERS[permit_type]

    base_fee = round_money(config.base_fee)
    seat_fee = round_money(Decimal(seat_capacity) * Decimal(str(config.per_seat_rate)))
    weight_fee = round_money(mtow * Decimal(str(config.per_kg_rate)))
    subtotal = base_fee + seat_fee + weight_fee
    total = round_money(subtotal * multiplier)

    return FeeBreakdown(
        permit_type=permit_type,
        seat_capacity=seat_capacity,
        mtow_kg=mtow,
        base_fee=base_fee,
        seat_fee=seat_fee,
        weight_fee=weight_fee,
        subtotal=subtotal,
        multiplier=multiplier,
        total=total,
        currency=config.currency,
        config_id=config.config_id,
    )
