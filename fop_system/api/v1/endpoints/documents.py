"""
Application Document API Endpoints
Upload, review and download of certificates attached to an application
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status
from fastapi.responses import Response

from fop_system.api.deps import get_actor_id, get_document_service
from fop_system.models.enums import DocumentType
from fop_system.schemas.application import DocumentResponse, DocumentVerification
from fop_system.services.document_service import DocumentService

router = APIRouter()


@router.get("/", response_model=List[DocumentResponse], summary="List Application Documents")
async def list_documents(
    application_id: UUID = Path(..., description="Application ID"),
    service: DocumentService = Depends(get_document_service)
):
    return service.list_documents(application_id)


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED,
             summary="Upload Document")
async def upload_document(
    application_id: UUID = Path(..., description="Application ID"),
    document_type: DocumentType = Form(...),
    expiry_date: Optional[date] = Form(None),
    file: UploadFile = File(...),
    service: DocumentService = Depends(get_document_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """
    Upload a certificate for a draft application, or a replacement while the
    application is waiting for documents. A new upload of the same type
    replaces the earlier one.
    """
    content = await file.read()
    return service.upload(
        application_id,
        document_type,
        file.filename,
        content,
        actor_id,
        content_type=file.content_type,
        expiry_date=expiry_date,
    )


@router.get("/{document_id}", response_model=DocumentResponse, summary="Get Document")
async def get_document(
    application_id: UUID = Path(..., description="Application ID"),
    document_id: UUID = Path(..., description="Document ID"),
    service: DocumentService = Depends(get_document_service)
):
    return service.get_document(application_id, document_id)


@router.get("/{document_id}/download", summary="Download Document")
async def download_document(
    application_id: UUID = Path(..., description="Application ID"),
    document_id: UUID = Path(..., description="Document ID"),
    service: DocumentService = Depends(get_document_service)
):
    document = service.get_document(application_id, document_id)
    content = service.download(application_id, document_id)
    return Response(
        content=content,
        media_type=document.content_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{document.original_filename or document.file_reference}"'},
    )


@router.post("/{document_id}/verify", response_model=DocumentResponse, summary="Verify or Reject Document")
async def verify_document(
    verification: DocumentVerification,
    application_id: UUID = Path(..., description="Application ID"),
    document_id: UUID = Path(..., description="Document ID"),
    service: DocumentService = Depends(get_document_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Reviewer decision; rejecting a required document sends the application back for documents"""
    return service.verify(
        application_id,
        document_id,
        verification.verified,
        actor_id,
        rejection_reason=verification.rejection_reason,
        notes=verification.notes,
    )
