"""
services/review/router.py
Rating and review management.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from services.review.rating import average_rating_query, round_rating
from shared.middleware.auth import require_client
from shared.models.models import Advocate, Booking, BookingStatus, Review, User
from shared.schemas.schemas import ReviewCreateRequest, ReviewResponse
from shared.utils.errors import persistence_errors

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreateRequest,
    current_user: User = Depends(require_client),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """
    Submit a review for a completed booking.
    - One review per booking (enforced by DB unique constraint)
    - Booking must be in COMPLETED status
    - Only the user who made the booking can review
    The advocate's aggregate rating is recomputed in the same transaction.
    """
    booking_result = await db.execute(select(Booking).where(Booking.id == data.booking_id))
    booking = booking_result.scalar_one_or_none()

    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="You can only review your own bookings")
    if booking.status != BookingStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Booking must be completed before reviewing")

    existing = await db.execute(select(Review).where(Review.booking_id == data.booking_id))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="You have already reviewed this booking")

    review = Review(
        booking_id=data.booking_id,
        user_id=current_user.id,
        advocate_id=booking.advocate_id,
        rating=data.rating,
        comment=data.comment,
    )
    with persistence_errors("Failed to create review"):
        db.add(review)
        await db.flush()

        # Recalculate and denormalize the aggregate rating on Advocate
        avg = (await db.execute(average_rating_query(booking.advocate_id))).scalar()
        await db.execute(
            update(Advocate)
            .where(Advocate.id == booking.advocate_id)
            .values(rating=round_rating(avg))
        )

        await db.commit()
        await db.refresh(review)

    # Cleared only after the new rating is committed
    advocate_user_id = (
        await db.execute(select(Advocate.user_id).where(Advocate.id == booking.advocate_id))
    ).scalar_one_or_none()
    await RedisCache(redis).invalidate_advocate(booking.advocate_id, advocate_user_id)

    logger.info(f"Review {review.id} submitted for advocate {booking.advocate_id}")
    return ReviewResponse.model_validate(review).model_copy(
        update={"user_name": current_user.name}
    )


@router.get("/advocate/{advocate_id}", response_model=List[ReviewResponse])
async def get_advocate_reviews(
    advocate_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Public: reviews of one advocate with reviewer names, newest first."""
    with persistence_errors("Failed to fetch reviews"):
        rows = (
            await db.execute(
                select(Review, User.name)
                .join(User, User.id == Review.user_id)
                .where(Review.advocate_id == advocate_id)
                .order_by(Review.created_at.desc())
            )
        ).all()

    return [
        ReviewResponse.model_validate(review).model_copy(update={"user_name": name})
        for review, name in rows
    ]
