"""
Shared service plumbing
"""

from uuid import UUID

from sqlalchemy.orm import Session

from fop_system.core.exceptions import ApplicationNotFound
from fop_system.crud.crud_application import crud_application
from fop_system.models.application import FopApplication
from fop_system.services.context import ServiceContext, UnitOfWork


class DomainService:
    """Base for services operating on one session with the shared collaborators"""

    def __init__(self, db: Session, context: ServiceContext):
        self.db = db
        self.context = context

    @property
    def settings(self):
        return self.context.settings

    def unit_of_work(self) -> UnitOfWork:
        return UnitOfWork(self.db, self.context)

    def get_application(self, application_id: UUID) -> FopApplication:
        application = crud_application.get(self.db, application_id)
        if application is None:
            raise ApplicationNotFound(
                f"Application {application_id} not found",
                details={"application_id": str(application_id)},
            )
        return application
