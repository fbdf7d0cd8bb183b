"""
Value Objects for the Foreign Operator Permit System
Immutable types compared by value: Money, Address, ContactInfo, FlightDetails
"""

import re
from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

from fop_system.core.config import settings
from fop_system.core.exceptions import (
    ValidationError, InvalidMoney, CurrencyMismatch
)
from fop_system.models.enums import FlightPurpose

CENT = Decimal("0.01")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
AIRPORT_CODE_PATTERN = re.compile(r"^[A-Z]{3,4}$")


def round_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Round to the currency minor unit using half-up rounding"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    """Non-negative amount in a supported currency"""
    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        try:
            amount = round_money(self.amount)
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidMoney(f"Invalid amount: {self.amount!r}")
        if amount < 0:
            raise InvalidMoney(f"Amount cannot be negative: {amount}")
        currency = (self.currency or "").upper()
        if currency not in settings.SUPPORTED_CURRENCIES:
            raise InvalidMoney(f"Unsupported currency: {self.currency}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls(Decimal("0"), currency)

    def _check_currency(self, other: "Money"):
        if self.currency != other.currency:
            raise CurrencyMismatch(
                f"Cannot combine {self.currency} and {other.currency}",
                details={"left": self.currency, "right": other.currency},
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Union[Decimal, int, float]) -> "Money":
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self):
        return f"{self.currency} {self.amount:,.2f}"


def _require(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required", details={"field": field_name})
    return str(value).strip()


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    country: str
    state: Optional[str] = None
    postal_code: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "street", _require(self.street, "street"))
        object.__setattr__(self, "city", _require(self.city, "city"))
        object.__setattr__(self, "country", _require(self.country, "country"))

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ContactInfo:
    name: str
    email: str
    phone: str
    title: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "name", _require(self.name, "name"))
        object.__setattr__(self, "phone", _require(self.phone, "phone"))
        email = _require(self.email, "email").lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationError(f"Invalid email address: {self.email}", details={"field": "email"})
        object.__setattr__(self, "email", email)

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class FlightDetails:
    """Declared flight information; airport codes are normalised to upper case"""
    purpose: FlightPurpose
    arrival_airport: str
    departure_airport: Optional[str] = None
    estimated_date: Optional[date] = None
    passengers: int = 0
    cargo_description: Optional[str] = None

    def __post_init__(self):
        try:
            object.__setattr__(self, "purpose", FlightPurpose(self.purpose))
        except ValueError:
            raise ValidationError(f"Invalid flight purpose: {self.purpose}", details={"field": "purpose"})
        object.__setattr__(self, "arrival_airport", self._airport(self.arrival_airport, "arrival_airport"))
        if self.departure_airport:
            object.__setattr__(self, "departure_airport", self._airport(self.departure_airport, "departure_airport"))
        if self.passengers is None or self.passengers < 0:
            raise ValidationError("Passenger count cannot be negative", details={"field": "passengers"})

    @staticmethod
    def _airport(code: str, field_name: str) -> str:
        code = _require(code, field_name).upper()
        if not AIRPORT_CODE_PATTERN.match(code):
            raise ValidationError(f"Invalid airport code: {code}", details={"field": field_name})
        return code

    def to_dict(self):
        return {
            "purpose": self.purpose.value,
            "arrival_airport": self.arrival_airport,
            "departure_airport": self.departure_airport,
            "estimated_date": self.estimated_date.isoformat() if self.estimated_date else None,
            "passengers": self.passengers,
            "cargo_description": self.cargo_description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FlightDetails":
        estimated = data.get("estimated_date")
        if isinstance(estimated, str):
            estimated = date.fromisoformat(estimated)
        return cls(
            purpose=data["purpose"],
            arrival_airport=data["arrival_airport"],
            departure_airport=data.get("departure_airport"),
            estimated_date=estimated,
            passengers=data.get("passengers", 0),
            cargo_description=data.get("cargo_description"),
        )
