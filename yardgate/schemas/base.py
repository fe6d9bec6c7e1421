"""
Shared base classes for yard request and response schemas.

Response schemas read straight from ORM rows; request schemas strip
surrounding whitespace and ignore unknown keys sent by older clients.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseResponseSchema(BaseModel):
    """Response read from an ORM model (truck, approval request, weight record)."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class BaseCreateSchema(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class BaseUpdateSchema(BaseModel):
    """Partial update; every field optional, unset fields are left alone."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class VersionedRequest(BaseCreateSchema):
    """Mutating request carrying the truck version the client last read."""
    expected_version: Optional[int] = Field(
        None, ge=1, description="Rejected with 409 when the truck has moved past this version"
    )
