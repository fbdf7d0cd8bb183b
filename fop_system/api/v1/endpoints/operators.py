"""
Operator API Endpoints
Registration and lookup of foreign air operators
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from fop_system.api.deps import get_actor_id, get_operator_service, get_permit_service
from fop_system.schemas.operator import OperatorCreate, OperatorResponse, AircraftResponse
from fop_system.schemas.permit import PermitResponse
from fop_system.services.operator_service import OperatorService
from fop_system.services.permit_service import PermitService

router = APIRouter()


@router.post("/", response_model=OperatorResponse, status_code=status.HTTP_201_CREATED,
             summary="Register Operator")
async def create_operator(
    operator_in: OperatorCreate,
    service: OperatorService = Depends(get_operator_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.create_operator(operator_in, actor_id)


@router.get("/", response_model=List[OperatorResponse], summary="List Operators")
async def list_operators(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: OperatorService = Depends(get_operator_service)
):
    return service.list_operators(skip=skip, limit=limit)


@router.get("/{operator_id}", response_model=OperatorResponse, summary="Get Operator")
async def get_operator(
    operator_id: UUID = Path(..., description="Operator ID"),
    service: OperatorService = Depends(get_operator_service)
):
    return service.get_operator(operator_id)


@router.get("/{operator_id}/aircraft", response_model=List[AircraftResponse], summary="List Operator Aircraft")
async def list_operator_aircraft(
    operator_id: UUID = Path(..., description="Operator ID"),
    service: OperatorService = Depends(get_operator_service)
):
    return service.list_aircraft(operator_id)


@router.get("/{operator_id}/permits", response_model=List[PermitResponse], summary="List Operator Permits")
async def list_operator_permits(
    operator_id: UUID = Path(..., description="Operator ID"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    service: PermitService = Depends(get_permit_service)
):
    return [PermitResponse.from_permit(p) for p in service.get_by_operator(operator_id, skip=skip, limit=limit)]
