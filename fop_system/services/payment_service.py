"""
Payment Service
Gateway callbacks, finance verification and refunds for application payments
"""

import logging
from typing import List, Optional
from uuid import UUID

from fop_system.core.exceptions import ExternalDependencyFailure, InvalidStatusTransition, PaymentNotFound
from fop_system.models.application import ApplicationPayment
from fop_system.services.base import DomainService

logger = logging.getLogger(__name__)


class PaymentService(DomainService):
    """Service class for application payments"""

    def get_payment(self, application_id: UUID) -> ApplicationPayment:
        """Current payment of an application"""
        application = self.get_application(application_id)
        if application.payment is None:
            raise PaymentNotFound(
                f"No payment requested for application {application.application_number}",
                details={"application_id": str(application_id)},
            )
        return application.payment

    def list_payments(self, application_id: UUID) -> List[ApplicationPayment]:
        return list(self.get_application(application_id).payments)

    def open_charge(self, application_id: UUID, actor_id: Optional[UUID] = None) -> ApplicationPayment:
        """
        Open a charge with the payment gateway for the current Pending payment.

        The gateway is called outside any transaction; only its reference is
        written back. A gateway outage raises ExternalDependencyFailure and
        leaves the payment Pending so the charge can be opened again.
        """
        application = self.get_application(application_id)
        payment = self.get_payment(application_id)
        if not payment.awaiting_charge:
            raise InvalidStatusTransition(
                f"Payment for {application.application_number} is not awaiting a gateway charge",
                details={"payment_status": payment.status.value, "gateway_reference": payment.gateway_reference},
            )

        try:
            intent = self.context.payment_gateway.initiate_charge(
                payment.money, payment.method, application.application_number
            )
        except ExternalDependencyFailure:
            raise
        except Exception as e:
            raise ExternalDependencyFailure(
                f"Payment gateway unavailable: {e}",
                code="PaymentGatewayUnavailable",
                details={"application_id": str(application_id)},
            )

        with self.unit_of_work() as uow:
            uow.track("OPEN_CHARGE", "APPLICATION", application, actor_id)
            application.attach_payment_intent(intent.reference, actor_id)
        logger.info(f"Charge {intent.reference} opened for {application.application_number}")
        return payment

    def mark_processing(self, application_id: UUID, gateway_reference: str,
                        actor_id: Optional[UUID] = None) -> ApplicationPayment:
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("PAYMENT_PROCESSING", "APPLICATION", application, actor_id)
            application.mark_payment_processing(gateway_reference, actor_id)
        return application.payment

    def handle_callback(
        self,
        application_id: UUID,
        success: bool,
        actor_id: Optional[UUID] = None,
        transaction_reference: Optional[str] = None,
        receipt_number: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> ApplicationPayment:
        """Resolve the current payment from a gateway callback"""
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            if success:
                uow.track("PAYMENT_COMPLETED", "APPLICATION", application, actor_id)
                application.complete_payment(transaction_reference, actor_id, receipt_number=receipt_number)
            else:
                uow.track("PAYMENT_FAILED", "APPLICATION", application, actor_id)
                application.fail_payment(failure_reason or "Declined by payment gateway", actor_id)

        payment = application.payment
        logger.info(
            f"Payment for {application.application_number} {payment.status.value} "
            f"(ref {transaction_reference or '-'})"
        )
        return payment

    def verify(self, application_id: UUID, verified: bool, actor_id: UUID,
               notes: Optional[str] = None) -> ApplicationPayment:
        """Finance officer confirmation of a bank or wire transfer"""
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("VERIFY_PAYMENT", "APPLICATION", application, actor_id)
            application.verify_payment(verified, actor_id, notes=notes)
        return application.payment

    def refund(self, application_id: UUID, reason: str, actor_id: UUID) -> ApplicationPayment:
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("REFUND_PAYMENT", "APPLICATION", application, actor_id)
            application.refund_payment(reason, actor_id)
        logger.info(f"Payment for {application.application_number} refunded")
        return application.payment
