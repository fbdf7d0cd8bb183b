"""
Fee Configuration Model
Versioned fee rates with effective date windows
"""

from sqlalchemy import Column, String, Numeric, Date, Text, Enum as SQLEnum
from datetime import date

from fop_system.models.base import BaseModel
from fop_system.models.enums import PermitType


class FeeConfiguration(BaseModel):
    """
    Fee rates for permit applications.

    A row with permit_type NULL applies to every type that has no specific
    configuration. Rows are never edited once used; a new version closes the
    previous one by setting its effective_until.
    """
    __tablename__ = "fee_configurations"

    permit_type = Column(SQLEnum(PermitType, native_enum=False), nullable=True, index=True, comment="Permit type, NULL for all types")
    base_fee = Column(Numeric(12, 2), nullable=False, comment="Flat base fee")
    per_seat_fee = Column(Numeric(10, 4), nullable=False, comment="Fee per passenger seat")
    per_kg_fee = Column(Numeric(10, 4), nullable=False, comment="Fee per kilogram MTOW")
    currency = Column(String(3), nullable=False, default="USD")

    effective_from = Column(Date, nullable=False, default=date.today, comment="First day this version applies")
    effective_until = Column(Date, nullable=True, comment="Day this version stops applying (exclusive)")
    notes = Column(Text, nullable=True)

    def is_effective(self, check_date: date = None) -> bool:
        """Check if this configuration applies on the given date"""
        if check_date is None:
            check_date = date.today()

        if not self.is_active:
            return False
        if check_date < self.effective_from:
            return False
        if self.effective_until and check_date >= self.effective_until:
            return False
        return True

    def __repr__(self):
        scope = self.permit_type.value if self.permit_type else "ALL"
        return f"<FeeConfiguration(type={scope}, base={self.base_fee}, from={self.effective_from})>"
