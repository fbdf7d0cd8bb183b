"""
Shared API dependencies: database session, service context and acting user
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from fop_system.core.database import SessionLocal, get_db
from fop_system.core.exceptions import ValidationError
from fop_system.services.context import ServiceContext, build_default_context
from fop_system.services import (
    ApplicationService, DocumentService, PaymentService, WaiverService, PermitService, FeeService,
    OperatorService
)

_context: Optional[ServiceContext] = None


def get_context() -> ServiceContext:
    """Process-wide service context with the default collaborators"""
    global _context
    if _context is None:
        _context = build_default_context(SessionLocal)
    return _context


def get_actor_id(x_actor_id: Optional[str] = Header(None, alias="X-Actor-Id")) -> UUID:
    """Identity of the caller, passed explicitly to every mutating service call"""
    if not x_actor_id:
        raise ValidationError("X-Actor-Id header is required", code="ActorRequired")
    try:
        return UUID(x_actor_id.strip())
    except ValueError:
        raise ValidationError(
            "X-Actor-Id header must be a UUID",
            code="ActorRequired",
            details={"x_actor_id": x_actor_id},
        )


def get_application_service(db: Session = Depends(get_db), context: ServiceContext = Depends(get_context)):
    return ApplicationService(db, context)


def get_document_service(db: Session = Depends(get_db), context: ServiceContext = Depends(get_context)):
    return DocumentService(db, context)


def get_payment_service(db: Session = Depends(get_db), context: ServiceContext = Depends(get_context)):
    return PaymentService(db, context)


def get_waiver_service(db: Session = Depends(get_db), context: ServiceContext = Depends(get_context)):
    return WaiverService(db, context)


def get_permit_service(db: Session = Depends(get_db), context: ServiceContext = Depends(get_context)):
    return PermitService(db, context)


def get_fee_service(db: Session = Depends(get_db), context: ServiceContext = Depends(get_context)):
    return FeeService(db, context)


def get_operator_service(db: Session = Depends(get_db), context: ServiceContext = Depends(get_context)):
    return OperatorService(db, context)
