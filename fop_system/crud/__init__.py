"""
CRUD operations for the Foreign Operator Permit System
"""

from fop_system.crud.base import CRUDBase
from fop_system.crud.crud_operator import crud_operator, crud_aircraft
from fop_system.crud.crud_fee_configuration import crud_fee_configuration
from fop_system.crud.crud_application import crud_application
from fop_system.crud.crud_permit import crud_permit
