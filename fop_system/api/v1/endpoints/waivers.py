"""
Fee Waiver API Endpoints
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status

from fop_system.api.deps import get_actor_id, get_waiver_service
from fop_system.schemas.application import WaiverCreate, WaiverApproval, WaiverResponse, ReasonRequest
from fop_system.services.waiver_service import WaiverService

router = APIRouter()


@router.get("/", response_model=List[WaiverResponse], summary="List Waivers")
async def list_waivers(
    application_id: UUID = Path(..., description="Application ID"),
    service: WaiverService = Depends(get_waiver_service)
):
    return service.list_waivers(application_id)


@router.post("/", response_model=WaiverResponse, status_code=status.HTTP_201_CREATED, summary="Request Waiver")
async def request_waiver(
    waiver_in: WaiverCreate,
    application_id: UUID = Path(..., description="Application ID"),
    service: WaiverService = Depends(get_waiver_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.request_waiver(application_id, waiver_in.waiver_type, waiver_in.reason, actor_id)


@router.post("/{waiver_id}/approve", response_model=WaiverResponse, summary="Approve Waiver")
async def approve_waiver(
    approval: WaiverApproval,
    application_id: UUID = Path(..., description="Application ID"),
    waiver_id: UUID = Path(..., description="Waiver ID"),
    service: WaiverService = Depends(get_waiver_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Reduce the application's current fee by the approved percentage"""
    return service.approve_waiver(application_id, waiver_id, approval.percentage, actor_id, notes=approval.notes)


@router.post("/{waiver_id}/reject", response_model=WaiverResponse, summary="Reject Waiver")
async def reject_waiver(
    reject_in: ReasonRequest,
    application_id: UUID = Path(..., description="Application ID"),
    waiver_id: UUID = Path(..., description="Waiver ID"),
    service: WaiverService = Depends(get_waiver_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.reject_waiver(application_id, waiver_id, reject_in.reason, actor_id)
