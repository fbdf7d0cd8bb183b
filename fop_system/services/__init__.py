"""
Services package for the Foreign Operator Permit System
"""

from .context import ServiceContext, UnitOfWork, build_default_context, retry_on_conflict
from .application_service import ApplicationService
from .document_service import DocumentService
from .payment_service import PaymentService
from .waiver_service import WaiverService
from .permit_service import PermitService, PermitVerification
from .fee_service import FeeService
from .operator_service import OperatorService

__all__ = [
    "ServiceContext",
    "UnitOfWork",
    "build_default_context",
    "retry_on_conflict",
    "ApplicationService",
    "DocumentService",
    "PaymentService",
    "WaiverService",
    "PermitService",
    "PermitVerification",
    "FeeService",
    "OperatorService",
]
