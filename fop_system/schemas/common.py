"""
Common Schemas
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    kind: str
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: ErrorDetail
