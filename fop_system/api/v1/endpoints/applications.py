"""
Application API Endpoints for the Foreign Operator Permit System
REST API for the permit application workflow

Features:
- Draft creation and editing with automatic fee calculation
- Submission, review and decision
- Search with status, type and operator filters
- Status history
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from fop_system.api.deps import get_actor_id, get_application_service
from fop_system.core.exceptions import ApplicationNotFound
from fop_system.models.application import FopApplication
from fop_system.models.enums import ApplicationStatus, PermitType
from fop_system.schemas.application import (
    ApplicationCreate, ApplicationUpdate, ApplicationResponse, ApplicationDetailResponse,
    ApplicationListResponse, ReasonRequest, ApproveRequest, StatusHistoryResponse
)
from fop_system.schemas.permit import PermitResponse
from fop_system.services.application_service import ApplicationService

router = APIRouter()


def to_detail(application: FopApplication) -> ApplicationDetailResponse:
    response = ApplicationDetailResponse.model_validate(application)
    response.missing_documents = application.missing_document_types()
    response.permit_number = application.permit.permit_number if application.permit else None
    return response


@router.post("/", response_model=ApplicationDetailResponse, status_code=status.HTTP_201_CREATED,
             summary="Create Draft Application")
async def create_application(
    application_in: ApplicationCreate,
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """
    Create a draft application for an operator's aircraft

    The fee is calculated from the aircraft's seat capacity and MTOW with the
    fee configuration in force today.
    """
    application = service.create_application(application_in, actor_id)
    return to_detail(application)


@router.get("/", response_model=ApplicationListResponse, summary="Search Applications")
async def search_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    permit_type: Optional[PermitType] = Query(None),
    operator_id: Optional[UUID] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    service: ApplicationService = Depends(get_application_service)
):
    items, total = service.search(
        status=status_filter, permit_type=permit_type, operator_id=operator_id, skip=skip, limit=limit
    )
    return ApplicationListResponse(
        items=[ApplicationResponse.model_validate(a) for a in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/by-number/{application_number}", response_model=ApplicationDetailResponse,
            summary="Get Application by Number")
async def get_application_by_number(
    application_number: str = Path(..., description="Application number, e.g. FOP-OT-000001"),
    service: ApplicationService = Depends(get_application_service)
):
    application = service.get_by_number(application_number)
    if application is None:
        raise ApplicationNotFound(
            f"Application {application_number} not found",
            details={"application_number": application_number},
        )
    return to_detail(application)


@router.get("/{application_id}", response_model=ApplicationDetailResponse, summary="Get Application")
async def get_application(
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service)
):
    return to_detail(service.get_application(application_id))


@router.get("/{application_id}/history", response_model=List[StatusHistoryResponse],
            summary="Get Application Status History")
async def get_application_history(
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service)
):
    return service.get_application(application_id).status_history


@router.put("/{application_id}", response_model=ApplicationDetailResponse, summary="Update Draft")
async def update_draft(
    application_in: ApplicationUpdate,
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return to_detail(service.update_draft(application_id, application_in, actor_id))


@router.post("/{application_id}/submit", response_model=ApplicationDetailResponse, summary="Submit Application")
async def submit_application(
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Submit a draft; every required document type must be uploaded"""
    return to_detail(service.submit(application_id, actor_id))


@router.post("/{application_id}/review", response_model=ApplicationDetailResponse, summary="Start Review")
async def start_review(
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return to_detail(service.start_review(application_id, actor_id))


@router.post("/{application_id}/approve", response_model=PermitResponse, summary="Approve Application")
async def approve_application(
    approve_in: ApproveRequest,
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Approve a paid application; returns the issued permit"""
    _, permit = service.approve(application_id, actor_id, conditions=approve_in.conditions)
    return PermitResponse.from_permit(permit)


@router.post("/{application_id}/reject", response_model=ApplicationDetailResponse, summary="Reject Application")
async def reject_application(
    reject_in: ReasonRequest,
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return to_detail(service.reject(application_id, reject_in.reason, actor_id))


@router.post("/{application_id}/cancel", response_model=ApplicationDetailResponse, summary="Cancel Application")
async def cancel_application(
    cancel_in: ReasonRequest,
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return to_detail(service.cancel(application_id, actor_id, reason=cancel_in.reason))


@router.post("/expire-drafts", summary="Expire Stale Drafts")
async def expire_stale_drafts(
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Move drafts past their expiry date to EXPIRED"""
    return {"expired": service.expire_stale_drafts()}
