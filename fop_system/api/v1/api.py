"""
Main API Router for the Foreign Operator Permit System v1
Includes all endpoint routers
"""

from fastapi import APIRouter

from fop_system.api.v1.endpoints import applications
from fop_system.api.v1.endpoints import documents
from fop_system.api.v1.endpoints import payments
from fop_system.api.v1.endpoints import waivers
from fop_system.api.v1.endpoints import permits
from fop_system.api.v1.endpoints import fees
from fop_system.api.v1.endpoints import operators
from fop_system.api.v1.endpoints import aircraft

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(applications.router, prefix="/applications", tags=["Applications"])
api_router.include_router(documents.router, prefix="/applications/{application_id}/documents", tags=["Documents"])
api_router.include_router(payments.router, prefix="/applications/{application_id}/payment", tags=["Payments"])
api_router.include_router(waivers.router, prefix="/applications/{application_id}/waivers", tags=["Waivers"])
api_router.include_router(permits.router, prefix="/permits", tags=["Permits"])
api_router.include_router(fees.router, prefix="/fees", tags=["Fees"])
api_router.include_router(operators.router, prefix="/operators", tags=["Operators"])
api_router.include_router(aircraft.router, prefix="/aircraft", tags=["Aircraft"])
