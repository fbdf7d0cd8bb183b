"""
Fee API Endpoints
Fee quotes and fee configuration versions
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from fop_system.api.deps import get_actor_id, get_fee_service
from fop_system.models.enums import PermitType
from fop_system.schemas.fee import (
    FeeEstimateRequest, FeeBreakdownResponse, FeeConfigurationCreate, FeeConfigurationResponse
)
from fop_system.services.fee_service import FeeService

router = APIRouter()


@router.post("/calculate", response_model=FeeBreakdownResponse, summary="Calculate Permit Fee")
async def calculate_fee(
    estimate_in: FeeEstimateRequest,
    service: FeeService = Depends(get_fee_service)
):
    """
    Quote the fee for a permit type and aircraft specification

    total = (base + seats x per-seat rate + MTOW x per-kg rate) x type multiplier
    """
    breakdown = service.calculate(estimate_in.permit_type, estimate_in.seat_capacity, estimate_in.mtow_kg)
    return FeeBreakdownResponse(**breakdown.to_dict())


@router.get("/configurations", response_model=List[FeeConfigurationResponse], summary="List Fee Configurations")
async def list_fee_configurations(
    permit_type: Optional[PermitType] = Query(None),
    service: FeeService = Depends(get_fee_service)
):
    return service.list_configurations(permit_type)


@router.post("/configurations", response_model=FeeConfigurationResponse, status_code=status.HTTP_201_CREATED,
             summary="Create Fee Configuration")
async def create_fee_configuration(
    config_in: FeeConfigurationCreate,
    service: FeeService = Depends(get_fee_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Add a configuration version; the previous open-ended version for the same type is closed"""
    return service.create_configuration(config_in, actor_id)
