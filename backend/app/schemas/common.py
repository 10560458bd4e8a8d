"""
Travel desk settlement - common schemas
Error envelope shared by every endpoint
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error detail"""
    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Any] = Field(None, description="Extra details")


class ErrorResponse(BaseModel):
    """Error response format"""
    error: ErrorDetail
