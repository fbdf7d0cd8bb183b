"""
Foreign Operator Permit System Models
Import all models so they register with Base.metadata
"""

from fop_system.models.base import Base, BaseModel
from fop_system.models.operator import Operator, Aircraft
from fop_system.models.fee_configuration import FeeConfiguration
from fop_system.models.application import (
    FopApplication, ApplicationDocument, ApplicationPayment, FeeWaiver, ApplicationStatusHistory,
    ApplicationSequenceCounter
)
from fop_system.models.permit import (
    Permit, PermitExtension, PermitStatusHistory, PermitSequenceCounter, PermitNumberGenerator
)
from fop_system.models.audit import AuditLog

__all__ = [
    "Base",
    "BaseModel",
    "Operator",
    "Aircraft",
    "FeeConfiguration",
    "FopApplication",
    "ApplicationDocument",
    "ApplicationPayment",
    "FeeWaiver",
    "ApplicationStatusHistory",
    "ApplicationSequenceCounter",
    "Permit",
    "PermitExtension",
    "PermitStatusHistory",
    "PermitSequenceCounter",
    "PermitNumberGenerator",
    "AuditLog",
]
