"""Pydantic v2 request/response schemas for the services catalogue."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

_CATEGORY = "^(photo|video|photo-video)$"
_LOCATION = "^(studio|client-home|outdoor|event-venue|other)$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ServiceCreate(BaseModel):
    """Schema for creating a new service."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    price: Decimal = Field(..., ge=0)
    duration: int = Field(..., ge=15, description="Duration in minutes")
    category: str = Field(..., pattern=_CATEGORY)
    service_type: str = Field(..., min_length=1, max_length=50)
    max_participants: int = Field(10, ge=1, le=50)
    location_type: str = Field("studio", pattern=_LOCATION)
    tags: list[str] = Field(default_factory=list)


class ServiceUpdate(BaseModel):
    """Schema for partially updating a service. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, min_length=1, max_length=1000)
    price: Decimal | None = Field(None, ge=0)
    duration: int | None = Field(None, ge=15)
    category: str | None = Field(None, pattern=_CATEGORY)
    service_type: str | None = Field(None, min_length=1, max_length=50)
    max_participants: int | None = Field(None, ge=1, le=50)
    location_type: str | None = Field(None, pattern=_LOCATION)
    tags: list[str] | None = None
    is_active: bool | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ServiceResponse(BaseModel):
    """Public service information returned from the API."""

    id: uuid.UUID
    name: str
    description: str
    price: Decimal
    duration: int
    category: str
    service_type: str
    max_participants: int
    location_type: str
    tags: list | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ServiceListResponse(BaseModel):
    """Paginated list of services."""

    items: list[ServiceResponse]
    total: int
