"""
Document Service
Upload, review and download of application documents
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fop_system.core.exceptions import DocumentNotFound, ValidationError, ReasonRequired
from fop_system.crud.crud_application import crud_application
from fop_system.models.application import ApplicationDocument
from fop_system.models.enums import DocumentType
from fop_system.services.base import DomainService

logger = logging.getLogger(__name__)


class DocumentService(DomainService):
    """Service class for application documents"""

    def get_document(self, application_id: UUID, document_id: UUID) -> ApplicationDocument:
        document = crud_application.get_document(self.db, application_id, document_id)
        if document is None:
            raise DocumentNotFound(
                f"Document {document_id} not found",
                details={"application_id": str(application_id), "document_id": str(document_id)},
            )
        return document

    def list_documents(self, application_id: UUID) -> List[ApplicationDocument]:
        return self.get_application(application_id).active_documents

    def upload(
        self,
        application_id: UUID,
        document_type: DocumentType,
        filename: str,
        content: bytes,
        actor_id: UUID,
        content_type: Optional[str] = None,
        expiry_date: Optional[date] = None,
    ) -> ApplicationDocument:
        """Store the file and attach it, replacing an earlier upload of the same type"""
        if not content:
            raise ValidationError("Uploaded file is empty", code="EmptyDocument")
        max_bytes = self.settings.MAX_FILE_SIZE_MB * 1024 * 1024
        if len(content) > max_bytes:
            raise ValidationError(
                f"File exceeds the {self.settings.MAX_FILE_SIZE_MB} MB limit",
                code="DocumentTooLarge",
                details={"file_size": len(content), "max_bytes": max_bytes},
            )

        application = self.get_application(application_id)
        application.ensure_accepts_documents()

        file_reference = self.context.document_storage.upload(filename, content, content_type)
        document = ApplicationDocument(
            document_type=DocumentType(document_type),
            file_reference=file_reference,
            original_filename=filename,
            content_type=content_type,
            file_size=len(content),
            expiry_date=expiry_date,
        )
        with self.unit_of_work() as uow:
            uow.track("UPLOAD_DOCUMENT", "APPLICATION", application, actor_id)
            application.add_document(document, actor_id)

        logger.info(
            f"{document.document_type.value} uploaded for application {application.application_number}"
        )
        return document

    def verify(
        self,
        application_id: UUID,
        document_id: UUID,
        verified: bool,
        actor_id: UUID,
        rejection_reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ApplicationDocument:
        """Reviewer decision on a single document; rejection requires a reason"""
        if not verified and not (rejection_reason and rejection_reason.strip()):
            raise ReasonRequired("A rejection reason is required", details={"action": "reject document"})

        application = self.get_application(application_id)
        document = self.get_document(application_id, document_id)
        with self.unit_of_work() as uow:
            uow.track("VERIFY_DOCUMENT" if verified else "REJECT_DOCUMENT", "APPLICATION", application, actor_id)
            if verified:
                application.verify_document(document, actor_id, notes=notes)
            else:
                application.reject_document(document, rejection_reason, actor_id)
        return document

    def download(self, application_id: UUID, document_id: UUID) -> bytes:
        document = self.get_document(application_id, document_id)
        return self.context.document_storage.download(document.file_reference)
