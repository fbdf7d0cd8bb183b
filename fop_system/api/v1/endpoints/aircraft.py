"""
Aircraft API Endpoints
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, status

from fop_system.api.deps import get_actor_id, get_operator_service
from fop_system.schemas.operator import AircraftCreate, AircraftResponse
from fop_system.services.operator_service import OperatorService

router = APIRouter()


@router.post("/", response_model=AircraftResponse, status_code=status.HTTP_201_CREATED,
             summary="Register Aircraft")
async def create_aircraft(
    aircraft_in: AircraftCreate,
    service: OperatorService = Depends(get_operator_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Register an aircraft for an operator; seat capacity and MTOW drive the permit fee"""
    return service.create_aircraft(aircraft_in, actor_id)


@router.get("/{aircraft_id}", response_model=AircraftResponse, summary="Get Aircraft")
async def get_aircraft(
    aircraft_id: UUID = Path(..., description="Aircraft ID"),
    service: OperatorService = Depends(get_operator_service)
):
    return service.get_aircraft(aircraft_id)
