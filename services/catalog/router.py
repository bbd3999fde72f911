"""
services/catalog/router.py
Service catalog: CRUD over the services an advocate offers.
Writes are scoped to the caller's own advocate profile; a write that matches
no row answers 404 whether the service is missing or belongs to someone else.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from shared.middleware.auth import get_current_advocate
from shared.models.models import Advocate, Service
from shared.schemas.schemas import (
    MessageResponse,
    ServiceRequest,
    ServiceResponse,
    ServiceUpdateRequest,
)
from shared.utils.errors import persistence_errors

router = APIRouter(prefix="/api/services", tags=["Services"])
logger = logging.getLogger(__name__)

NOT_FOUND_OR_UNAUTHORIZED = "Service not found or unauthorized"


# ── Public ────────────────────────────────────────────────────

@router.get("/advocate/{advocate_id}", response_model=List[ServiceResponse])
async def list_advocate_services(
    advocate_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Active services of one advocate, as shown on the public profile."""
    with persistence_errors("Failed to fetch services"):
        result = await db.execute(
            select(Service).where(
                Service.advocate_id == advocate_id,
                Service.is_active.is_(True),
            )
        )
        return [ServiceResponse.model_validate(s) for s in result.scalars()]


# ── Advocate's Own Services ───────────────────────────────────

@router.get("/my-services", response_model=List[ServiceResponse])
async def list_my_services(
    advocate: Advocate = Depends(get_current_advocate),
    db: AsyncSession = Depends(get_db),
):
    """All services of the authenticated advocate, newest first, active or not."""
    with persistence_errors("Failed to fetch services"):
        result = await db.execute(
            select(Service)
            .where(Service.advocate_id == advocate.id)
            .order_by(Service.created_at.desc())
        )
        return [ServiceResponse.model_validate(s) for s in result.scalars()]


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceRequest,
    advocate: Advocate = Depends(get_current_advocate),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Publish a new service. Location was already resolved by the request schema."""
    service = Service(advocate_id=advocate.id, is_active=True, **data.model_dump())

    with persistence_errors("Failed to create service"):
        db.add(service)
        await db.commit()
        await db.refresh(service)

    await RedisCache(redis).invalidate_advocate(advocate.id, advocate.user_id)
    logger.info(f"Service created: {service.id} by advocate {advocate.id}")
    return ServiceResponse.model_validate(service)


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: UUID,
    data: ServiceUpdateRequest,
    advocate: Advocate = Depends(get_current_advocate),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Replace every editable field of one of the caller's services."""
    with persistence_errors("Failed to update service"):
        result = await db.execute(
            update(Service)
            .where(Service.id == service_id, Service.advocate_id == advocate.id)
            .values(**data.model_dump())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail=NOT_FOUND_OR_UNAUTHORIZED)
        await db.commit()

        service = (
            await db.execute(
                select(Service)
                .where(Service.id == service_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()

    await RedisCache(redis).invalidate_advocate(advocate.id, advocate.user_id)
    logger.info(f"Service updated: {service_id}")
    return ServiceResponse.model_validate(service)


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_service(
    service_id: UUID,
    advocate: Advocate = Depends(get_current_advocate),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Hard delete. Bookings keep their amount snapshot; their service_id is cleared."""
    with persistence_errors("Failed to delete service"):
        result = await db.execute(
            delete(Service)
            .where(Service.id == service_id, Service.advocate_id == advocate.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail=NOT_FOUND_OR_UNAUTHORIZED)
        await db.commit()

    await RedisCache(redis).invalidate_advocate(advocate.id, advocate.user_id)
    logger.info(f"Service deleted: {service_id}")
    return MessageResponse(message="Service deleted successfully")
