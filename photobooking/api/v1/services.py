"""Services catalogue routes: public browsing, admin management."""

import logging
import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.api.deps import get_db, get_optional_user, require_admin
from photobooking.booking.errors import NotFound
from photobooking.models.service import Service
from photobooking.models.user import User
from photobooking.schemas.auth import MessageResponse
from photobooking.schemas.service import (
    ServiceCreate,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/services", tags=["services"])


async def _get_service(db: AsyncSession, service_id: uuid.UUID, include_inactive: bool) -> Service:
    service = await db.get(Service, service_id)
    if service is None or (not service.is_active and not include_inactive):
        raise NotFound("Service not found")
    return service


@router.get("", response_model=ServiceListResponse, summary="List services")
async def list_services(
    category: str | None = Query(None),
    service_type: str | None = Query(None, alias="type"),
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    search: str | None = Query(None, min_length=1, max_length=100),
    include_inactive: bool = Query(False, description="Admins only"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> ServiceListResponse:
    """Return paginated services. Inactive services are listed for admins only."""
    filters = []
    if not (include_inactive and current_user is not None and current_user.is_admin):
        filters.append(Service.is_active.is_(True))
    if category is not None:
        filters.append(Service.category == category)
    if service_type is not None:
        filters.append(Service.service_type == service_type)
    if min_price is not None:
        filters.append(Service.price >= min_price)
    if max_price is not None:
        filters.append(Service.price <= max_price)
    if search:
        pattern = f"%{search}%"
        filters.append(or_(Service.name.ilike(pattern), Service.description.ilike(pattern)))

    total_result = await db.execute(select(func.count()).select_from(Service).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Service).where(*filters).order_by(Service.created_at.desc()).offset(skip).limit(limit)
    )
    return ServiceListResponse(
        items=[ServiceResponse.model_validate(s) for s in result.scalars().all()],
        total=total,
    )


@router.get("/{service_id}", response_model=ServiceResponse, summary="Get a service by ID")
async def get_service(
    service_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
) -> ServiceResponse:
    is_admin = current_user is not None and current_user.is_admin
    return ServiceResponse.model_validate(await _get_service(db, service_id, include_inactive=is_admin))


@router.post(
    "",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a service",
)
async def create_service(
    body: ServiceCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ServiceResponse:
    service = Service(created_by=admin.id, **body.model_dump())
    db.add(service)
    await db.flush()
    await db.refresh(service)
    logger.info("Service %s (%s) created by %s", service.id, service.name, admin.id)
    return ServiceResponse.model_validate(service)


@router.put("/{service_id}", response_model=ServiceResponse, summary="Update a service")
async def update_service(
    service_id: uuid.UUID,
    body: ServiceUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ServiceResponse:
    """Partially update a service. Only explicitly set fields are changed."""
    service = await _get_service(db, service_id, include_inactive=True)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(service, field, value)
    await db.flush()
    await db.refresh(service)
    return ServiceResponse.model_validate(service)


@router.delete("/{service_id}", response_model=MessageResponse, summary="Deactivate a service")
async def deactivate_service(
    service_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> MessageResponse:
    """Hide a service from the catalogue; existing bookings keep referencing it."""
    service = await _get_service(db, service_id, include_inactive=True)
    service.is_active = False
    await db.flush()
    logger.info("Service %s deactivated by %s", service.id, admin.id)
    return MessageResponse(message="Service deactivated")
