"""
services/admin/router.py
Admin-only endpoints: advocate verification queue and platform statistics.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from shared.middleware.auth import require_admin
from shared.models.models import Advocate, Booking, BookingStatus, Service, User
from shared.schemas.schemas import (
    AdminStatsResponse,
    AdminVerifyRequest,
    AdvocateListItem,
    MessageResponse,
)
from shared.utils.errors import persistence_errors

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = logging.getLogger(__name__)


# ── Advocate Verification Queue ────────────────────────────────────────────────

@router.get("/advocates/pending", response_model=list[AdvocateListItem])
async def get_pending_advocates(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Advocates awaiting verification, oldest first (FIFO queue)."""
    with persistence_errors("Failed to fetch advocates"):
        rows = (
            await db.execute(
                select(
                    Advocate.id,
                    Advocate.user_id,
                    Advocate.specialization,
                    Advocate.location,
                    Advocate.experience_years,
                    Advocate.rating,
                    User.name,
                    User.email,
                    User.phone,
                )
                .join(User, User.id == Advocate.user_id)
                .where(Advocate.is_verified.is_(False))
                .order_by(Advocate.created_at.asc())
            )
        ).mappings().all()

    return [AdvocateListItem.model_validate(dict(row)) for row in rows]


@router.put("/advocates/{advocate_id}/verify", response_model=MessageResponse)
async def verify_advocate(
    advocate_id: UUID,
    data: AdminVerifyRequest,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Set or clear the verified badge on an advocate profile."""
    advocate = (
        await db.execute(select(Advocate).where(Advocate.id == advocate_id))
    ).scalar_one_or_none()
    if not advocate:
        raise HTTPException(status_code=404, detail="Advocate not found")

    advocate.is_verified = data.is_verified
    with persistence_errors("Failed to update advocate"):
        await db.commit()

    await RedisCache(redis).invalidate_advocate(advocate.id, advocate.user_id)
    logger.info(
        f"Admin {current_user.id} set is_verified={data.is_verified} on advocate {advocate_id}"
    )
    return MessageResponse(
        message="Advocate verified" if data.is_verified else "Advocate verification revoked"
    )


# ── Platform Statistics ────────────────────────────────────────────────────────

@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Headline counts for the admin dashboard."""
    with persistence_errors("Failed to compute statistics"):
        total_users = await db.scalar(select(func.count(User.id)))
        total_advocates = await db.scalar(select(func.count(Advocate.id)))
        verified_advocates = await db.scalar(
            select(func.count(Advocate.id)).where(Advocate.is_verified.is_(True))
        )
        total_services = await db.scalar(select(func.count(Service.id)))
        status_rows = (
            await db.execute(
                select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
            )
        ).all()
        avg_rating = await db.scalar(select(func.avg(Advocate.rating)))

    bookings_by_status = {s.value: 0 for s in BookingStatus}
    for booking_status, count in status_rows:
        bookings_by_status[BookingStatus(booking_status).value] = count

    return AdminStatsResponse(
        total_users=total_users or 0,
        total_advocates=total_advocates or 0,
        verified_advocates=verified_advocates or 0,
        total_services=total_services or 0,
        total_bookings=sum(bookings_by_status.values()),
        bookings_by_status=bookings_by_status,
        avg_rating=round(float(avg_rating or 0), 2),
    )
