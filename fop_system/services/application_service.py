"""
Application Service for the Foreign Operator Permit System
Orchestrates the application workflow: draft creation, submission, review,
payment request and the final approve/reject/cancel decision.

This service provides high-level operations for:
1. Creating and editing draft applications with fee calculation
2. Moving applications through review
3. Approving applications and issuing the permit in the same transaction
4. Expiring stale drafts
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from uuid import UUID

from fop_system.core.exceptions import (
    ValidationError, OperatorNotFound, AircraftNotFound, ExternalDependencyFailure
)
from fop_system.crud.crud_application import crud_application
from fop_system.crud.crud_operator import crud_operator, crud_aircraft
from fop_system.models.application import FopApplication, ApplicationPayment
from fop_system.models.base import utcnow
from fop_system.models.enums import ApplicationStatus, PaymentMethod, PermitType
from fop_system.models.operator import Aircraft
from fop_system.models.permit import Permit
from fop_system.models.value_objects import FlightDetails
from fop_system.schemas.application import ApplicationCreate, ApplicationUpdate
from fop_system.services.base import DomainService
from fop_system.services.context import retry_on_conflict
from fop_system.services.fee_calculator import FeeBreakdown, calculate_fee
from fop_system.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


class ApplicationService(DomainService):
    """Service class for the application workflow"""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_number(self, application_number: str) -> Optional[FopApplication]:
        return crud_application.get_by_number(self.db, application_number)

    def search(
        self,
        status: Optional[ApplicationStatus] = None,
        permit_type: Optional[PermitType] = None,
        operator_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[FopApplication], int]:
        return crud_application.search(
            self.db, status=status, permit_type=permit_type, operator_id=operator_id,
            skip=skip, limit=limit,
        )

    # ------------------------------------------------------------------
    # Draft
    # ------------------------------------------------------------------

    def _load_aircraft(self, operator_id: UUID, aircraft_id: UUID) -> Aircraft:
        operator = crud_operator.get(self.db, operator_id)
        if operator is None:
            raise OperatorNotFound(details={"operator_id": str(operator_id)})
        aircraft = crud_aircraft.get(self.db, aircraft_id)
        if aircraft is None:
            raise AircraftNotFound(details={"aircraft_id": str(aircraft_id)})
        if aircraft.operator_id != operator.id:
            raise ValidationError(
                f"Aircraft {aircraft.registration_mark} is not registered to this operator",
                code="AircraftOperatorMismatch",
                details={"operator_id": str(operator_id), "aircraft_id": str(aircraft_id)},
            )
        return aircraft

    def _price(self, permit_type: PermitType, aircraft: Aircraft, as_of: date = None) -> FeeBreakdown:
        config = self.context.fee_provider.get_active_config(permit_type, as_of or date.today())
        return calculate_fee(permit_type, aircraft.seat_capacity, aircraft.mtow_kg, config)

    def create_application(self, obj_in: ApplicationCreate, actor_id: UUID) -> FopApplication:
        """Create a DRAFT application priced with the fee configuration in force today"""
        aircraft = self._load_aircraft(obj_in.operator_id, obj_in.aircraft_id)
        breakdown = self._price(obj_in.permit_type, aircraft)

        application = FopApplication(
            permit_type=obj_in.permit_type,
            operator_id=obj_in.operator_id,
            aircraft_id=obj_in.aircraft_id,
        )
        application.flight_details = FlightDetails(**obj_in.flight_details.model_dump())
        application.set_requested_period(obj_in.requested_start_date, obj_in.requested_end_date)

        with self.unit_of_work() as uow:
            application.application_number = crud_application.generate_application_number(self.db, obj_in.permit_type)
            application.initialize(actor_id, self.settings.DRAFT_EXPIRY_DAYS)
            application.apply_fee(breakdown, actor_id)
            uow.track("CREATE", "APPLICATION", application, actor_id)

        logger.info(
            f"Application {application.application_number} created "
            f"({application.permit_type.value}, fee {application.fee})"
        )
        return application

    def update_draft(self, application_id: UUID, obj_in: ApplicationUpdate, actor_id: UUID) -> FopApplication:
        """Edit a draft; the fee is recalculated from the (possibly new) aircraft"""
        application = self.get_application(application_id)
        application.ensure_draft()

        aircraft_id = obj_in.aircraft_id or application.aircraft_id
        aircraft = self._load_aircraft(application.operator_id, aircraft_id)
        breakdown = self._price(application.permit_type, aircraft)

        with self.unit_of_work() as uow:
            uow.track("UPDATE_DRAFT", "APPLICATION", application, actor_id)
            application.aircraft_id = aircraft.id
            if obj_in.flight_details is not None:
                application.flight_details = FlightDetails(**obj_in.flight_details.model_dump())
            if obj_in.requested_start_date or obj_in.requested_end_date:
                application.set_requested_period(
                    obj_in.requested_start_date or application.requested_start_date,
                    obj_in.requested_end_date or application.requested_end_date,
                )
            application.apply_fee(breakdown, actor_id)

        return application

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def submit(self, application_id: UUID, actor_id: UUID) -> FopApplication:
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("SUBMIT", "APPLICATION", application, actor_id)
            application.submit(actor_id)
        logger.info(f"Application {application.application_number} submitted")
        return application

    def start_review(self, application_id: UUID, actor_id: UUID) -> FopApplication:
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("START_REVIEW", "APPLICATION", application, actor_id)
            application.start_review(actor_id)
        return application

    def request_payment(self, application_id: UUID, method: PaymentMethod, actor_id: UUID) -> ApplicationPayment:
        """
        Create the payment for the current fee, then open a charge with the gateway.

        The transition to PENDING_PAYMENT commits first. A gateway outage
        afterwards leaves the payment Pending without a gateway reference;
        PaymentService.open_charge retries it.
        """
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("REQUEST_PAYMENT", "APPLICATION", application, actor_id)
            payment = application.request_payment(method, actor_id)
        logger.info(
            f"Payment of {payment.money} requested for {application.application_number} "
            f"via {payment.method.value}"
        )

        if payment.awaiting_charge:
            try:
                PaymentService(self.db, self.context).open_charge(application.id, actor_id)
            except ExternalDependencyFailure as e:
                logger.warning(
                    f"Charge for {application.application_number} not opened, payment stays pending: {e.message}"
                )
        return payment

    def approve(self, application_id: UUID, actor_id: UUID,
                conditions: Optional[List[str]] = None) -> Tuple[FopApplication, Permit]:
        """Approve a paid application and issue its permit in one transaction"""
        from fop_system.services.permit_service import PermitService

        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("APPROVE", "APPLICATION", application, actor_id)
            application.approve(actor_id)
            permit = PermitService(self.db, self.context).issue_from_application(
                uow, application, actor_id, conditions=conditions
            )
        logger.info(f"Application {application.application_number} approved, permit {permit.permit_number} issued")
        return application, permit

    def reject(self, application_id: UUID, reason: str, actor_id: UUID) -> FopApplication:
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("REJECT", "APPLICATION", application, actor_id)
            application.reject(reason, actor_id)
        logger.info(f"Application {application.application_number} rejected")
        return application

    def cancel(self, application_id: UUID, actor_id: UUID, reason: str = None) -> FopApplication:
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("CANCEL", "APPLICATION", application, actor_id)
            application.cancel(actor_id, reason=reason)
        return application

    def expire_stale_drafts(self, now: datetime = None) -> int:
        """Move drafts past their expiry to EXPIRED; safe to run repeatedly"""
        now = now or utcnow()

        def run() -> int:
            drafts = crud_application.get_expired_drafts(self.db, now)
            with self.unit_of_work() as uow:
                for draft in drafts:
                    uow.track("EXPIRE", "APPLICATION", draft, None)
                    draft.expire_draft(None, now)
            return len(drafts)

        count = retry_on_conflict(run, self.db)
        if count:
            logger.info(f"Expired {count} stale draft applications")
        return count
