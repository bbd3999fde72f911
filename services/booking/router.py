"""
services/booking/router.py
Booking creation, listing and status management.
States: PENDING → CONFIRMED → COMPLETED, PENDING → CANCELLED
"""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking.lifecycle import InvalidTransition, apply_transition
from shared.middleware.auth import get_current_advocate, get_current_user, require_client
from shared.models.models import (
    Advocate,
    Booking,
    BookingAuditLog,
    BookingStatus,
    Service,
    User,
    UserRole,
)
from shared.schemas.schemas import (
    BookingCreateRequest,
    BookingResponse,
    BookingStatusUpdateRequest,
)
from shared.utils.errors import persistence_errors

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])
logger = logging.getLogger(__name__)


# ── Helpers ───────────────────────────────────────────────────

async def _get_booking_or_404(booking_id: UUID, db: AsyncSession) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def _log_status_change(
    db: AsyncSession,
    booking: Booking,
    from_status: Optional[BookingStatus],
    to_status: BookingStatus,
    changed_by: User,
):
    """Append an immutable audit log entry for every status change."""
    db.add(
        BookingAuditLog(
            booking_id=booking.id,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value,
            changed_by_id=changed_by.id,
        )
    )


def _enrich_booking(
    booking: Booking,
    service_title: Optional[str] = None,
    user_name: Optional[str] = None,
) -> BookingResponse:
    return BookingResponse(
        **{
            col.name: getattr(booking, col.name)
            for col in Booking.__table__.columns
            if col.name != "updated_at"
        },
        service_title=service_title,
        user_name=user_name,
    )


async def _transition(
    booking: Booking,
    target: BookingStatus,
    current_user: User,
    db: AsyncSession,
) -> BookingResponse:
    try:
        previous = apply_transition(booking, target)
    except InvalidTransition as e:
        raise HTTPException(status_code=400, detail=str(e))

    _log_status_change(db, booking, previous, target, current_user)
    with persistence_errors("Failed to update booking status"):
        await db.commit()

    logger.info(
        f"Booking {booking.id}: {previous.value} → {target.value} by {current_user.id}"
    )
    return _enrich_booking(booking)


# ── Booking Creation ──────────────────────────────────────────

@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreateRequest,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    """
    Book an advocate, optionally for one of their services.
    The amount is a snapshot: the service price, else the advocate's hourly
    rate, else 0. Later price changes do not touch existing bookings.
    """
    advocate = (
        await db.execute(select(Advocate).where(Advocate.id == data.advocate_id))
    ).scalar_one_or_none()
    if not advocate:
        raise HTTPException(status_code=404, detail="Advocate not found")

    service_title = None
    if data.service_id is not None:
        service = (
            await db.execute(select(Service).where(Service.id == data.service_id))
        ).scalar_one_or_none()
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        if service.advocate_id != advocate.id:
            raise HTTPException(
                status_code=400, detail="Service does not belong to this advocate"
            )
        total_amount = service.price
        service_title = service.title
    else:
        total_amount = advocate.hourly_rate or Decimal("0")

    booking = Booking(
        user_id=current_user.id,
        advocate_id=advocate.id,
        service_id=data.service_id,
        scheduled_date=data.scheduled_date,
        service_type=data.service_type,
        status=BookingStatus.PENDING,
        total_amount=total_amount,
        notes=data.notes,
    )

    with persistence_errors("Failed to create booking"):
        db.add(booking)
        await db.flush()
        _log_status_change(db, booking, None, BookingStatus.PENDING, current_user)
        await db.commit()
        await db.refresh(booking)

    logger.info(f"Booking created: {booking.id} for advocate {advocate.id}")
    return _enrich_booking(booking, service_title=service_title)


# ── Listing ───────────────────────────────────────────────────

@router.get("/my-bookings", response_model=List[BookingResponse])
async def list_my_bookings(
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    """The caller's bookings, latest appointment first."""
    with persistence_errors("Failed to fetch bookings"):
        rows = (
            await db.execute(
                select(Booking, Service.title)
                .outerjoin(Service, Service.id == Booking.service_id)
                .where(Booking.user_id == current_user.id)
                .order_by(Booking.scheduled_date.desc())
            )
        ).all()

    return [_enrich_booking(b, service_title=title) for b, title in rows]


@router.get("/advocate-bookings", response_model=List[BookingResponse])
async def list_advocate_bookings(
    advocate: Advocate = Depends(get_current_advocate),
    db: AsyncSession = Depends(get_db),
):
    """Bookings received by the caller's advocate profile, with client names."""
    with persistence_errors("Failed to fetch bookings"):
        rows = (
            await db.execute(
                select(Booking, User.name, Service.title)
                .join(User, User.id == Booking.user_id)
                .outerjoin(Service, Service.id == Booking.service_id)
                .where(Booking.advocate_id == advocate.id)
                .order_by(Booking.scheduled_date.desc())
            )
        ).all()

    return [
        _enrich_booking(b, service_title=title, user_name=name)
        for b, name, title in rows
    ]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Visible to the client who booked, the booked advocate and admins."""
    booking = await _get_booking_or_404(booking_id, db)

    if current_user.role == UserRole.USER and booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    elif current_user.role == UserRole.ADVOCATE:
        advocate = (
            await db.execute(select(Advocate).where(Advocate.user_id == current_user.id))
        ).scalar_one_or_none()
        if not advocate or booking.advocate_id != advocate.id:
            raise HTTPException(status_code=403, detail="Not authorized")

    service_title = None
    if booking.service_id:
        service_title = (
            await db.execute(select(Service.title).where(Service.id == booking.service_id))
        ).scalar_one_or_none()

    return _enrich_booking(booking, service_title=service_title)


# ── Status Changes ────────────────────────────────────────────

@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: UUID,
    data: BookingStatusUpdateRequest,
    advocate: Advocate = Depends(get_current_advocate),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Advocate confirms, cancels or completes one of their bookings."""
    booking = (
        await db.execute(
            select(Booking).where(
                Booking.id == booking_id, Booking.advocate_id == advocate.id
            )
        )
    ).scalar_one_or_none()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found or unauthorized")

    return await _transition(booking, BookingStatus(data.status), current_user, db)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
):
    """Client withdraws a booking the advocate has not confirmed yet."""
    booking = await _get_booking_or_404(booking_id, db)
    if booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    if booking.status != BookingStatus.PENDING:
        raise HTTPException(
            status_code=400,
            detail=f"Booking in '{BookingStatus(booking.status).value}' state cannot be cancelled",
        )

    return await _transition(booking, BookingStatus.CANCELLED, current_user, db)
