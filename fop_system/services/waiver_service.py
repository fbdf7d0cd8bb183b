"""
Waiver Service
Fee waiver requests and officer decisions
"""

import logging
from typing import List, Optional
from uuid import UUID

from fop_system.core.exceptions import WaiverNotFound
from fop_system.crud.crud_application import crud_application
from fop_system.models.application import FeeWaiver
from fop_system.models.enums import WaiverType
from fop_system.services.base import DomainService

logger = logging.getLogger(__name__)


class WaiverService(DomainService):

    def get_waiver(self, application_id: UUID, waiver_id: UUID) -> FeeWaiver:
        waiver = crud_application.get_waiver(self.db, application_id, waiver_id)
        if waiver is None:
            raise WaiverNotFound(
                f"Waiver {waiver_id} not found",
                details={"application_id": str(application_id), "waiver_id": str(waiver_id)},
            )
        return waiver

    def list_waivers(self, application_id: UUID) -> List[FeeWaiver]:
        return list(self.get_application(application_id).waivers)

    def request_waiver(self, application_id: UUID, waiver_type: WaiverType, reason: str,
                       actor_id: UUID) -> FeeWaiver:
        application = self.get_application(application_id)
        with self.unit_of_work() as uow:
            uow.track("REQUEST_WAIVER", "APPLICATION", application, actor_id)
            waiver = application.request_waiver(waiver_type, reason, actor_id)
        return waiver

    def approve_waiver(self, application_id: UUID, waiver_id: UUID, percentage: int, actor_id: UUID,
                       notes: Optional[str] = None) -> FeeWaiver:
        application = self.get_application(application_id)
        waiver = self.get_waiver(application_id, waiver_id)
        with self.unit_of_work() as uow:
            uow.track("APPROVE_WAIVER", "APPLICATION", application, actor_id)
            application.approve_waiver(waiver, percentage, actor_id, notes=notes)
        logger.info(
            f"Waiver of {percentage}% approved for {application.application_number}: "
            f"{waiver.original_fee} -> {waiver.new_fee}"
        )
        return waiver

    def reject_waiver(self, application_id: UUID, waiver_id: UUID, reason: str, actor_id: UUID) -> FeeWaiver:
        application = self.get_application(application_id)
        waiver = self.get_waiver(application_id, waiver_id)
        with self.unit_of_work() as uow:
            uow.track("REJECT_WAIVER", "APPLICATION", application, actor_id)
            application.reject_waiver(waiver, reason, actor_id)
        return waiver
