"""
Permit Service for the Foreign Operator Permit System
Issues permits from approved applications and manages the permit lifecycle.

Features:
- Permit issuance with yearly Luhn-checked permit numbers
- Suspend, reinstate, revoke and extend
- Public permit verification by number
- Expiry sweep and expiring-soon queries
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional
from uuid import UUID

from fop_system.core.exceptions import PermitNotFound
from fop_system.crud.crud_permit import crud_permit
from fop_system.models.application import FopApplication
from fop_system.models.enums import PermitStatus
from fop_system.models.permit import Permit, PermitNumberGenerator, PermitStatusHistory
from fop_system.services.base import DomainService
from fop_system.services.context import UnitOfWork, retry_on_conflict

logger = logging.getLogger(__name__)


@dataclass
class PermitVerification:
    """Outcome of a permit verification"""
    permit_number: str
    is_valid: bool
    status: Optional[PermitStatus]
    message: str
    permit: Optional[Permit] = None


class PermitService(DomainService):
    """Service class for permit issuance and lifecycle"""

    def get_permit(self, permit_id: UUID) -> Permit:
        permit = crud_permit.get(self.db, permit_id)
        if permit is None:
            raise PermitNotFound(f"Permit {permit_id} not found", details={"permit_id": str(permit_id)})
        return permit

    def get_by_number(self, permit_number: str) -> Permit:
        permit = crud_permit.get_by_number(self.db, permit_number)
        if permit is None:
            raise PermitNotFound(
                f"Permit {permit_number} not found",
                details={"permit_number": PermitNumberGenerator.normalize(permit_number)},
            )
        return permit

    def get_by_operator(self, operator_id: UUID, skip: int = 0, limit: int = 100) -> List[Permit]:
        return crud_permit.get_by_operator(self.db, operator_id, skip=skip, limit=limit)

    def get_expiring_soon(self, days: int = None, today: date = None) -> List[Permit]:
        days = self.settings.PERMIT_EXPIRING_SOON_DAYS if days is None else days
        return crud_permit.get_expiring_soon(self.db, today or date.today(), days)

    def get_status_history(self, permit_id: UUID) -> List[PermitStatusHistory]:
        return list(self.get_permit(permit_id).status_history)

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_from_application(self, uow: UnitOfWork, application: FopApplication, actor_id,
                               conditions: Optional[List[str]] = None) -> Permit:
        """Create the permit for an application approved inside the given unit of work"""
        year = date.today().year
        sequence = PermitNumberGenerator.get_next_sequence_number(self.db, year)
        permit_number = PermitNumberGenerator.format_number(year, sequence)
        permit = Permit.issue(application, permit_number, actor_id, conditions=conditions)
        uow.track("ISSUE", "PERMIT", permit, actor_id)
        logger.info(f"Permit {permit_number} issued for application {application.application_number}")
        return permit

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def suspend(self, permit_id: UUID, reason: str, actor_id: UUID, until: date = None) -> Permit:
        permit = self.get_permit(permit_id)
        with self.unit_of_work() as uow:
            uow.track("SUSPEND", "PERMIT", permit, actor_id)
            permit.suspend(reason, actor_id, until=until)
        logger.info(f"Permit {permit.permit_number} suspended")
        return permit

    def reinstate(self, permit_id: UUID, actor_id: UUID, notes: str = None) -> Permit:
        permit = self.get_permit(permit_id)
        with self.unit_of_work() as uow:
            uow.track("REINSTATE", "PERMIT", permit, actor_id)
            permit.reinstate(actor_id, notes=notes)
        logger.info(f"Permit {permit.permit_number} reinstated")
        return permit

    def revoke(self, permit_id: UUID, reason: str, actor_id: UUID) -> Permit:
        permit = self.get_permit(permit_id)
        with self.unit_of_work() as uow:
            uow.track("REVOKE", "PERMIT", permit, actor_id)
            permit.revoke(reason, actor_id)
        logger.warning(f"Permit {permit.permit_number} revoked")
        return permit

    def extend(self, permit_id: UUID, new_end_date: date, reason: str, actor_id: UUID) -> Permit:
        permit = self.get_permit(permit_id)
        with self.unit_of_work() as uow:
            uow.track("EXTEND", "PERMIT", permit, actor_id)
            permit.extend(new_end_date, reason, actor_id)
        logger.info(f"Permit {permit.permit_number} extended to {new_end_date}")
        return permit

    # ------------------------------------------------------------------
    # Verification and sweeps
    # ------------------------------------------------------------------

    def verify_permit(self, permit_number: str, today: date = None) -> PermitVerification:
        """
        Check whether a permit number refers to a currently valid permit.
        Expiry is derived from valid_until, so an unswept permit past its
        end date reports as expired.
        """
        today = today or date.today()
        number = PermitNumberGenerator.normalize(permit_number)

        def lookup() -> Optional[Permit]:
            return crud_permit.get_by_number(self.db, number)

        permit = retry_on_conflict(lookup, self.db)
        if permit is None:
            return PermitVerification(
                permit_number=number,
                is_valid=False,
                status=None,
                message=f"No permit found with number {number}",
            )

        status = permit.effective_status(today)
        if status == PermitStatus.ACTIVE:
            message = f"Permit is valid until {permit.valid_until.isoformat()}"
        elif status == PermitStatus.SUSPENDED:
            message = f"Permit is suspended: {permit.suspension_reason}"
            if permit.suspended_until:
                message += f" (until {permit.suspended_until.isoformat()})"
        elif status == PermitStatus.REVOKED:
            message = f"Permit has been revoked: {permit.revocation_reason}"
        else:
            message = f"Permit expired on {permit.valid_until.isoformat()}"

        return PermitVerification(
            permit_number=permit.permit_number,
            is_valid=status == PermitStatus.ACTIVE,
            status=status,
            message=message,
            permit=permit,
        )

    def expire_permits(self, today: date = None) -> int:
        """Persist EXPIRED for permits past valid_until; safe to run repeatedly"""
        today = today or date.today()

        def run() -> int:
            expired = 0
            with self.unit_of_work() as uow:
                for permit in crud_permit.get_due_for_expiry(self.db, today):
                    uow.track("EXPIRE", "PERMIT", permit, None)
                    if permit.expire(today):
                        expired += 1
            return expired

        count = retry_on_conflict(run, self.db)
        if count:
            logger.info(f"Expired {count} permits")
        return count
