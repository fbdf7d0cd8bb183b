"""
Application Payment API Endpoints
Payment requests, gateway callbacks, finance verification and refunds
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, status

from fop_system.api.deps import get_actor_id, get_application_service, get_payment_service
from fop_system.schemas.application import (
    PaymentRequest, PaymentCallback, PaymentVerification, PaymentResponse, ReasonRequest
)
from fop_system.services.application_service import ApplicationService
from fop_system.services.payment_service import PaymentService

router = APIRouter()


@router.get("/", response_model=PaymentResponse, summary="Get Current Payment")
async def get_payment(
    application_id: UUID = Path(..., description="Application ID"),
    service: PaymentService = Depends(get_payment_service)
):
    return service.get_payment(application_id)


@router.get("/attempts", response_model=List[PaymentResponse], summary="List Payment Attempts")
async def list_payments(
    application_id: UUID = Path(..., description="Application ID"),
    service: PaymentService = Depends(get_payment_service)
):
    return service.list_payments(application_id)


@router.post("/", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED,
             summary="Request Payment")
async def request_payment(
    payment_in: PaymentRequest,
    application_id: UUID = Path(..., description="Application ID"),
    service: ApplicationService = Depends(get_application_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.request_payment(application_id, payment_in.method, actor_id)


@router.post("/charge", response_model=PaymentResponse, summary="Open Gateway Charge")
async def open_charge(
    application_id: UUID = Path(..., description="Application ID"),
    service: PaymentService = Depends(get_payment_service),
    actor_id: UUID = Depends(get_actor_id)
):
    """Open the gateway charge for a pending payment whose charge could not be opened earlier"""
    return service.open_charge(application_id, actor_id)


@router.post("/processing", response_model=PaymentResponse, summary="Mark Payment Processing")
async def mark_processing(
    application_id: UUID = Path(..., description="Application ID"),
    gateway_reference: str = Body(..., embed=True),
    service: PaymentService = Depends(get_payment_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.mark_processing(application_id, gateway_reference, actor_id)


@router.post("/callback", response_model=PaymentResponse, summary="Payment Gateway Callback")
async def payment_callback(
    callback: PaymentCallback,
    application_id: UUID = Path(..., description="Application ID"),
    service: PaymentService = Depends(get_payment_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.handle_callback(
        application_id,
        callback.success,
        actor_id,
        transaction_reference=callback.transaction_reference,
        receipt_number=callback.receipt_number,
        failure_reason=callback.failure_reason,
    )


@router.post("/verify", response_model=PaymentResponse, summary="Verify Bank or Wire Transfer")
async def verify_payment(
    verification: PaymentVerification,
    application_id: UUID = Path(..., description="Application ID"),
    service: PaymentService = Depends(get_payment_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.verify(application_id, verification.verified, actor_id, notes=verification.notes)


@router.post("/refund", response_model=PaymentResponse, summary="Refund Payment")
async def refund_payment(
    refund_in: ReasonRequest,
    application_id: UUID = Path(..., description="Application ID"),
    service: PaymentService = Depends(get_payment_service),
    actor_id: UUID = Depends(get_actor_id)
):
    return service.refund(application_id, refund_in.reason, actor_id)
