"""
Permit API Endpoints for the Foreign Operator Permit System
Permit lookup, verification and lifecycle management

Features:
- Public verification by permit number
- Suspend, reinstate, revoke and extend
- Expiring-soon list and expiry sweep
- Status history
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from fop_system.api.deps import get_actor_id, get_permit_service
from fop_system.schemas.permit import (
    PermitResponse, PermitVerificationResponse, PermitSuspend, PermitReinstate, PermitRevoke, PermitExtend,
    PermitStatusHistoryResponse
)
from fop_system.services.permit_service import PermitService

router = APIRouter()


@router.get("/verify/{permit_number}", response_model=PermitVerificationResponse, summary="Verify Permit")
async def verify_permit(
    permit_number: str = Path(..., description="Permit number, case-insensitive"),
    service: PermitService = Depends(get_permit_service)
):
    """
    Check whether a permit number is currently valid

    Suspended, revoked, expired and unknown permits are reported with
    distinct messages.
    """
    result = service.verify_permit(permit_number)
    return PermitVerificationResponse(
        permit_number=result.permit_number,
        is_valid=result.is_valid,
        status=result.status,
        message=result.message,
        permit=PermitResponse.from_permit(result.permit) if result.permit else None,
    )


@router.get("/expiring", response_model=List[PermitResponse], summary="Permits Expiring Soon")
async def get_expiring_permits(
    days: Optional[int] = Query(None, ge=0, le=365),
    service: PermitService = Depends(get_permit_service)
):
    return [PermitResponse.from_permit(p) for p in service.get_expiring_soon(days)]


@router.post("/expire", summary="Expire Permits")
async def expire_permits(
    service: PermitService = Depends(get_permit_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Persist EXPIRED for permits past their validity"""
    return {"expired": service.expire_permits()}


@router.get("/by-number/{permit_number}", response_model=PermitResponse, summary="Get Permit by Number")
async def get_permit_by_number(
    permit_number: str = Path(..., description="Permit number"),
    service: PermitService = Depends(get_permit_service)
):
    return PermitResponse.from_permit(service.get_by_number(permit_number))


@router.get("/{permit_id}", response_model=PermitResponse, summary="Get Permit")
async def get_permit(
    permit_id: UUID = Path(..., description="Permit ID"),
    service: PermitService = Depends(get_permit_service)
):
    return PermitResponse.from_permit(service.get_permit(permit_id))


@router.get("/{permit_id}/history", response_model=List[PermitStatusHistoryResponse], summary="Get Permit Status History")
async def get_permit_history(
    permit_id: UUID = Path(..., description="Permit ID"),
    service: PermitService = Depends(get_permit_service)
):
    return service.get_status_history(permit_id)


@router.post("/{permit_id}/suspend", response_model=PermitResponse, summary="Suspend Permit")
async def suspend_permit(
    suspend_in: PermitSuspend,
    permit_id: UUID = Path(..., description="Permit ID"),
    service: PermitService = Depends(get_permit_service),
    actor_id: UUID = Depends(get_actor_id)
):
    permit = service.suspend(permit_id, suspend_in.reason, actor_id, until=suspend_in.suspended_until)
    return PermitResponse.from_permit(permit)


@router.post("/{permit_id}/reinstate", response_model=PermitResponse, summary="Reinstate Permit")
async def reinstate_permit(
    reinstate_in: PermitReinstate,
    permit_id: UUID = Path(..., description="Permit ID"),
    service: PermitService = Depends(get_permit_service),
    actor_id: UUID = Depends(get_actor_id)
):
    permit = service.reinstate(permit_id, actor_id, notes=reinstate_in.notes)
    return PermitResponse.from_permit(permit)


@router.post("/{permit_id}/revoke", response_model=PermitResponse, summary="Revoke Permit")
async def revoke_permit(
    revoke_in: PermitRevoke,
    permit_id: UUID = Path(..., description="Permit ID"),
    service: PermitService = Depends(get_permit_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Revoke a permit; revocation cannot be undone"""
    permit = service.revoke(permit_id, revoke_in.reason, actor_id)
    return PermitResponse.from_permit(permit)


@router.post("/{permit_id}/extend", response_model=PermitResponse, summary="Extend Permit")
async def extend_permit(
    extend_in: PermitExtend,
    permit_id: UUID = Path(..., description="Permit ID"),
    service: PermitService = Depends(get_permit_service),
    actor_id: UUID = Depends(get_actor_id)
):
    permit = service.extend(permit_id, extend_in.new_end_date, extend_in.reason, actor_id)
    return PermitResponse.from_permit(permit)
