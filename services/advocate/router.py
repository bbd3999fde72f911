"""
services/advocate/router.py
Advocate directory (filtered search), public profiles, and profile updates.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import (
    SPECIALIZATIONS_KEY,
    RedisCache,
    advocate_profile_key,
    get_redis,
)
from services.advocate.directory import build_directory_query, build_specializations_query
from shared.middleware.auth import get_current_user
from shared.models.models import Advocate, Review, Service, User, UserRole
from shared.schemas.schemas import (
    AdvocateListItem,
    AdvocateProfileResponse,
    AdvocateUpdateRequest,
    MessageResponse,
    ReviewResponse,
    ServiceResponse,
)
from shared.utils.errors import persistence_errors

router = APIRouter(prefix="/api/advocates", tags=["Advocates"])
logger = logging.getLogger(__name__)


# ── Helpers ───────────────────────────────────────────────────

def _parse_min_experience(raw: Optional[str]) -> Optional[int]:
    """Empty string means "no constraint", like an absent parameter."""
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="minExperience must be an integer")


async def _build_profile(advocate: Advocate, user: User, db: AsyncSession) -> AdvocateProfileResponse:
    """Advocate row + user contact details + all services + reviews with reviewer names."""
    services = (
        await db.execute(select(Service).where(Service.advocate_id == advocate.id))
    ).scalars().all()

    review_rows = (
        await db.execute(
            select(Review, User.name)
            .join(User, User.id == Review.user_id)
            .where(Review.advocate_id == advocate.id)
            .order_by(Review.created_at.desc())
        )
    ).all()

    return AdvocateProfileResponse(
        **{
            col.name: getattr(advocate, col.name)
            for col in Advocate.__table__.columns
            if col.name not in ("created_at", "updated_at")
        },
        name=user.name,
        email=user.email,
        phone=user.phone,
        services=[ServiceResponse.model_validate(s) for s in services],
        reviews=[
            ReviewResponse.model_validate(review).model_copy(update={"user_name": user_name})
            for review, user_name in review_rows
        ],
    )


# ── Public Endpoints ──────────────────────────────────────────

# Must be registered before /{advocate_id}
@router.get("/specializations", response_model=List[str])
async def list_specializations(
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Distinct non-empty specializations, for the search filter dropdown."""
    cache = RedisCache(redis)
    cached = await cache.get(SPECIALIZATIONS_KEY)
    if cached is not None:
        return cached

    with persistence_errors("Failed to fetch specializations"):
        result = await db.execute(build_specializations_query())
        specializations = list(result.scalars().all())

    await cache.set(SPECIALIZATIONS_KEY, specializations)
    return specializations


@router.get("", response_model=List[AdvocateListItem])
async def search_advocates(
    specialization: Optional[str] = Query(None, description="Exact specialization"),
    location: Optional[str] = Query(None, description="Case-insensitive substring of the city"),
    min_experience: Optional[str] = Query(
        None, alias="minExperience", description="Minimum years of experience"
    ),
    db: AsyncSession = Depends(get_db),
):
    """Filter available advocates. Every supplied criterion must hold."""
    query = build_directory_query(
        specialization=specialization,
        location=location,
        min_experience=_parse_min_experience(min_experience),
    )
    with persistence_errors("Failed to fetch advocates"):
        rows = (await db.execute(query)).mappings().all()

    return [AdvocateListItem.model_validate(dict(row)) for row in rows]


@router.get("/{advocate_id}", response_model=AdvocateProfileResponse)
async def get_advocate(
    advocate_id: UUID,
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """
    Public profile with services and reviews.
    Accepts either the advocate id or the owning user's id. Cached for 5 minutes.
    """
    cache = RedisCache(redis)
    cache_key = advocate_profile_key(advocate_id)

    cached = await cache.get(cache_key)
    if cached:
        return AdvocateProfileResponse(**cached)

    with persistence_errors("Database error"):
        row = (
            await db.execute(
                select(Advocate, User)
                .join(User, User.id == Advocate.user_id)
                .where(or_(Advocate.id == advocate_id, Advocate.user_id == advocate_id))
            )
        ).first()
        if not row:
            raise HTTPException(status_code=404, detail="Advocate not found")

        profile = await _build_profile(row[0], row[1], db)

    await cache.set(cache_key, profile.model_dump(mode="json"))
    return profile


# ── Profile Update ────────────────────────────────────────────

@router.put("/{advocate_id}", response_model=MessageResponse)
async def update_advocate(
    advocate_id: UUID,
    data: AdvocateUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """
    Partial update: fields left out of the body keep their current value.
    Only the owning advocate or an admin may update a profile.
    """
    advocate = (
        await db.execute(select(Advocate).where(Advocate.id == advocate_id))
    ).scalar_one_or_none()

    is_owner = advocate is not None and advocate.user_id == current_user.id
    if not advocate or not (is_owner or current_user.role == UserRole.ADMIN):
        raise HTTPException(status_code=404, detail="Advocate not found or unauthorized")

    for field, value in data.model_dump(exclude_none=True).items():
        setattr(advocate, field, value)

    with persistence_errors("Failed to update profile"):
        await db.commit()

    cache = RedisCache(redis)
    await cache.invalidate_advocate(advocate.id, advocate.user_id)
    await cache.delete(SPECIALIZATIONS_KEY)

    logger.info(f"Advocate profile updated: {advocate.id} by {current_user.id}")
    return MessageResponse(message="Profile updated successfully")
