"""
Foreign Operator Permit Models

Permits are issued from approved applications and are never deleted; they
remain available for verification and audit.

Features:
- Permit lifecycle: ACTIVE ⇄ SUSPENDED, ACTIVE/SUSPENDED → REVOKED (terminal)
- Validity extension without a status change
- Expiry derived at read time from valid_until, optionally persisted by a sweep
- Permit numbers with a Luhn check digit
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Column, String, Integer, Numeric, Date, DateTime, Text, JSON, ForeignKey, Uuid,
    Enum as SQLEnum, CheckConstraint
)
from sqlalchemy.orm import relationship, Session

from fop_system.core.events import EventRecorder, EventTypes
from fop_system.core.exceptions import (
    InvalidStatusTransition, PermitRevoked, InvalidExtension, ReasonRequired, InvalidDateRange
)
from fop_system.models.base import BaseModel, utcnow
from fop_system.models.enums import PermitStatus, PermitType
from fop_system.models.value_objects import Money


class PermitNumberGenerator:
    """Permit number generation and validation utilities"""

    PREFIX = "FOP-"

    @staticmethod
    def calculate_check_digit(base_number: str) -> int:
        """
        Luhn (modulo 10) check digit for a digit string
        """
        digits = [int(d) for d in base_number if d.isdigit()]
        total = 0

        # Double every second digit, starting with the rightmost one
        for i, digit in enumerate(reversed(digits)):
            if i % 2 == 0:
                digit *= 2
                if digit > 9:
                    digit -= 9
            total += digit

        return (10 - (total % 10)) % 10

    @staticmethod
    def format_number(year: int, sequence: int) -> str:
        base = f"{year}{sequence:06d}"
        return f"{PermitNumberGenerator.PREFIX}{base}{PermitNumberGenerator.calculate_check_digit(base)}"

    @staticmethod
    def normalize(permit_number: str) -> str:
        """Upper-case and strip a permit number for lookup"""
        return (permit_number or "").strip().upper()

    @staticmethod
    def validate_permit_number(permit_number: str) -> bool:
        number = PermitNumberGenerator.normalize(permit_number)
        if not number.startswith(PermitNumberGenerator.PREFIX):
            return False
        digits = number[len(PermitNumberGenerator.PREFIX):]
        if not digits.isdigit() or len(digits) < 2:
            return False
        return PermitNumberGenerator.calculate_check_digit(digits[:-1]) == int(digits[-1])

    @staticmethod
    def get_next_sequence_number(db: Session, year: int) -> int:
        """Increment and return the permit sequence for a year (flushes, does not commit)"""
        counter = db.query(PermitSequenceCounter).filter(
            PermitSequenceCounter.year == year
        ).first()

        if not counter:
            counter = PermitSequenceCounter(year=year, current_sequence=0)
            db.add(counter)

        counter.current_sequence += 1
        db.flush()

        return counter.current_sequence


class PermitSequenceCounter(BaseModel):
    """Yearly sequence counter for permit numbers"""
    __tablename__ = "permit_sequence_counters"

    year = Column(Integer, nullable=False, unique=True, index=True)
    current_sequence = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<PermitSequenceCounter(year={self.year}, sequence={self.current_sequence})>"


class Permit(EventRecorder, BaseModel):
    """Foreign Operator Permit aggregate"""
    __tablename__ = "permits"
    __table_args__ = (
        CheckConstraint("valid_until >= valid_from", name="ck_permit_validity_window"),
    )

    permit_number = Column(String(20), nullable=False, unique=True, index=True, comment="FOP-{YEAR}{SEQUENCE}{CHECK}")
    application_id = Column(Uuid, ForeignKey("fop_applications.id"), nullable=False, unique=True, index=True)
    operator_id = Column(Uuid, ForeignKey("operators.id"), nullable=False, index=True)
    aircraft_id = Column(Uuid, ForeignKey("aircraft.id"), nullable=False, index=True)
    permit_type = Column(SQLEnum(PermitType, native_enum=False), nullable=False)

    status = Column(SQLEnum(PermitStatus, native_enum=False), nullable=False, default=PermitStatus.ACTIVE, index=True)
    valid_from = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=False, index=True)
    conditions = Column(JSON, nullable=True, comment="Free-text permit conditions")

    fees_paid = Column(Numeric(12, 2), nullable=False, comment="Fee paid at issuance")
    currency = Column(String(3), nullable=False, default="USD")

    issued_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    issued_by = Column(Uuid, nullable=True)

    # Suspension
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    suspended_by = Column(Uuid, nullable=True)
    suspended_until = Column(Date, nullable=True, comment="Planned end of suspension, NULL for indefinite")
    suspension_reason = Column(Text, nullable=True)

    # Revocation
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    revoked_by = Column(Uuid, nullable=True)
    revocation_reason = Column(Text, nullable=True)

    expired_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency
    version = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    application = relationship("FopApplication", back_populates="permit")
    operator = relationship("Operator")
    aircraft = relationship("Aircraft")
    status_history = relationship("PermitStatusHistory", back_populates="permit", order_by="PermitStatusHistory.sequence_number")
    extensions = relationship("PermitExtension", back_populates="permit", order_by="PermitExtension.created_at")

    def __repr__(self):
        return f"<Permit(id={self.id}, number='{self.permit_number}', status='{self.status}')>"

    @classmethod
    def issue(cls, application, permit_number: str, actor_id, conditions: Optional[List[str]] = None,
              now: datetime = None) -> "Permit":
        """Create an ACTIVE permit from an approved application"""
        if application.requested_end_date < application.requested_start_date:
            raise InvalidDateRange(details={"application_id": str(application.id)})
        now = now or utcnow()
        payment = application.payment
        permit = cls(
            permit_number=permit_number,
            application=application,
            operator_id=application.operator_id,
            aircraft_id=application.aircraft_id,
            permit_type=application.permit_type,
            status=PermitStatus.ACTIVE,
            valid_from=application.requested_start_date,
            valid_until=application.requested_end_date,
            conditions=[c.strip() for c in (conditions or []) if c and c.strip()],
            fees_paid=payment.amount if payment else Decimal("0.00"),
            currency=payment.currency if payment else application.currency,
            issued_at=now,
            issued_by=actor_id,
            created_by=actor_id,
            updated_by=actor_id,
        )
        permit.status_history.append(PermitStatusHistory(
            previous_status=None,
            new_status=PermitStatus.ACTIVE,
            changed_by=actor_id,
            changed_at=now,
            change_reason=f"Issued from application {application.application_number}",
            sequence_number=1,
        ))
        permit._event(
            EventTypes.PERMIT_ISSUED, actor_id,
            application_id=str(application.id),
            application_number=application.application_number,
            operator_id=str(application.operator_id),
            valid_from=permit.valid_from.isoformat(),
            valid_until=permit.valid_until.isoformat(),
        )
        return permit

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def fees(self) -> Money:
        return Money(self.fees_paid, self.currency)

    def effective_status(self, today: date = None) -> PermitStatus:
        """Stored status with expiry applied: ACTIVE or SUSPENDED past valid_until reads as EXPIRED"""
        today = today or date.today()
        if self.status in (PermitStatus.ACTIVE, PermitStatus.SUSPENDED) and today > self.valid_until:
            return PermitStatus.EXPIRED
        return self.status

    def is_valid(self, today: date = None) -> bool:
        return self.effective_status(today) == PermitStatus.ACTIVE

    def is_expired(self, today: date = None) -> bool:
        return self.effective_status(today) == PermitStatus.EXPIRED

    def days_until_expiry(self, today: date = None) -> int:
        today = today or date.today()
        return (self.valid_until - today).days

    def is_expiring_soon(self, days: int = 30, today: date = None) -> bool:
        return self.is_valid(today) and 0 <= self.days_until_expiry(today) <= days

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _event(self, event_type: str, actor_id, **payload):
        return self.record_event(
            event_type,
            actor_id=actor_id,
            permit_number=self.permit_number,
            status=self.status.value,
            **payload,
        )

    def _transition(self, new_status: PermitStatus, actor_id, reason: str = None, now: datetime = None):
        previous = self.status
        self.status = new_status
        self.status_history.append(PermitStatusHistory(
            previous_status=previous,
            new_status=new_status,
            changed_by=actor_id,
            changed_at=now or utcnow(),
            change_reason=reason,
            sequence_number=len(self.status_history) + 1,
        ))
        self.updated_at = utcnow()
        if actor_id:
            self.updated_by = actor_id

    def _invalid(self, action: str, today: date):
        current = self.effective_status(today)
        raise InvalidStatusTransition(
            f"Cannot {action} a permit that is {current.value}",
            details={"status": current.value, "action": action},
        )

    @staticmethod
    def _require_reason(reason: Optional[str], action: str) -> str:
        if reason is None or not reason.strip():
            raise ReasonRequired(f"A reason is required to {action}", details={"action": action})
        return reason.strip()

    def suspend(self, reason: str, actor_id, until: date = None, now: datetime = None):
        """ACTIVE → SUSPENDED; an absent until date means indefinite suspension"""
        now = now or utcnow()
        today = now.date()
        reason = self._require_reason(reason, "suspend the permit")
        if self.status == PermitStatus.REVOKED:
            raise PermitRevoked(details={"permit_number": self.permit_number})
        if self.effective_status(today) != PermitStatus.ACTIVE:
            self._invalid("suspend", today)
        if until is not None and until < today:
            raise InvalidDateRange(
                "Suspension end date cannot be in the past",
                details={"suspended_until": until.isoformat()},
            )
        self._transition(PermitStatus.SUSPENDED, actor_id, reason=reason, now=now)
        self.suspended_at = now
        self.suspended_by = actor_id
        self.suspended_until = until
        self.suspension_reason = reason
        self._event(
            EventTypes.PERMIT_SUSPENDED, actor_id,
            reason=reason, suspended_until=until.isoformat() if until else None,
        )

    def reinstate(self, actor_id, notes: str = None, now: datetime = None):
        """SUSPENDED → ACTIVE; a revoked permit can never be reinstated"""
        now = now or utcnow()
        if self.status == PermitStatus.REVOKED:
            raise PermitRevoked(
                "A revoked permit cannot be reinstated",
                details={"permit_number": self.permit_number},
            )
        if self.effective_status(now.date()) != PermitStatus.SUSPENDED:
            self._invalid("reinstate", now.date())
        self._transition(PermitStatus.ACTIVE, actor_id, reason=notes or "Reinstated", now=now)
        self.suspended_at = None
        self.suspended_by = None
        self.suspended_until = None
        self.suspension_reason = None
        self._event(EventTypes.PERMIT_REINSTATED, actor_id, notes=notes)

    def revoke(self, reason: str, actor_id, now: datetime = None):
        """ACTIVE/SUSPENDED → REVOKED (terminal)"""
        now = now or utcnow()
        reason = self._require_reason(reason, "revoke the permit")
        if self.status == PermitStatus.REVOKED:
            raise PermitRevoked(
                "The permit is already revoked",
                details={"permit_number": self.permit_number},
            )
        if self.effective_status(now.date()) not in (PermitStatus.ACTIVE, PermitStatus.SUSPENDED):
            self._invalid("revoke", now.date())
        self._transition(PermitStatus.REVOKED, actor_id, reason=reason, now=now)
        self.revoked_at = now
        self.revoked_by = actor_id
        self.revocation_reason = reason
        self._event(EventTypes.PERMIT_REVOKED, actor_id, reason=reason)

    def extend(self, new_end_date: date, reason: str, actor_id, now: datetime = None) -> "PermitExtension":
        """Move valid_until later; the status is left unchanged"""
        now = now or utcnow()
        if self.status == PermitStatus.REVOKED:
            raise PermitRevoked(
                "A revoked permit cannot be extended",
                details={"permit_number": self.permit_number},
            )
        if self.effective_status(now.date()) == PermitStatus.EXPIRED:
            self._invalid("extend", now.date())
        if new_end_date <= self.valid_until:
            raise InvalidExtension(
                f"New end date {new_end_date.isoformat()} must be after {self.valid_until.isoformat()}",
                details={"valid_until": self.valid_until.isoformat(), "new_end_date": new_end_date.isoformat()},
            )
        reason = self._require_reason(reason, "extend the permit")

        extension = PermitExtension(
            previous_valid_until=self.valid_until,
            new_valid_until=new_end_date,
            reason=reason,
            extended_by=actor_id,
            created_by=actor_id,
        )
        self.extensions.append(extension)
        self.valid_until = new_end_date
        self.updated_at = utcnow()
        self.updated_by = actor_id
        self._event(
            EventTypes.PERMIT_EXTENDED, actor_id,
            previous_valid_until=extension.previous_valid_until.isoformat(),
            new_valid_until=new_end_date.isoformat(),
            reason=reason,
        )
        return extension

    def expire(self, today: date = None, actor_id=None) -> bool:
        """Persist EXPIRED when valid_until has passed; returns False when nothing changed"""
        today = today or date.today()
        if self.status not in (PermitStatus.ACTIVE, PermitStatus.SUSPENDED):
            return False
        if today <= self.valid_until:
            return False
        self._transition(PermitStatus.EXPIRED, actor_id, reason="Validity period ended")
        self.expired_at = utcnow()
        self._event(EventTypes.PERMIT_EXPIRED, actor_id, valid_until=self.valid_until.isoformat())
        return True


class PermitExtension(BaseModel):
    """Record of a validity extension"""
    __tablename__ = "permit_extensions"

    permit_id = Column(Uuid, ForeignKey("permits.id"), nullable=False, index=True)
    previous_valid_until = Column(Date, nullable=False)
    new_valid_until = Column(Date, nullable=False)
    reason = Column(Text, nullable=False)
    extended_by = Column(Uuid, nullable=True)

    permit = relationship("Permit", back_populates="extensions")


class PermitStatusHistory(BaseModel):
    """Status change history for permits"""
    __tablename__ = "permit_status_history"

    permit_id = Column(Uuid, ForeignKey("permits.id"), nullable=False, index=True)
    sequence_number = Column(Integer, nullable=False, default=1)
    previous_status = Column(SQLEnum(PermitStatus, native_enum=False), nullable=True)
    new_status = Column(SQLEnum(PermitStatus, native_enum=False), nullable=False)
    changed_by = Column(Uuid, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    change_reason = Column(Text, nullable=True)

    permit = relationship("Permit", back_populates="status_history")

    def __repr__(self):
        return f"<PermitStatusHistory(permit_id={self.permit_id}, {self.previous_status} -> {self.new_status})>"
