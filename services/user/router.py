"""
services/user/router.py
User profile management.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from shared.middleware.auth import get_current_user
from shared.models.models import Advocate, User, UserRole
from shared.schemas.schemas import UserResponse, UserUpdateRequest
from shared.utils.errors import persistence_errors

router = APIRouter(prefix="/api/users", tags=["Users"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Return the currently authenticated user's profile."""
    return UserResponse.model_validate(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """
    Update name and/or phone.
    Only non-None fields in the request body are updated.
    An advocate's public profile embeds these fields, so its cached copy is dropped.
    """
    updates = data.model_dump(exclude_none=True)
    if not updates:
        return UserResponse.model_validate(current_user)

    # Phone uniqueness check
    if "phone" in updates:
        existing = await db.execute(
            select(User).where(User.phone == updates["phone"], User.id != current_user.id)
        )
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=409, detail="Phone number already in use")

    for field, value in updates.items():
        setattr(current_user, field, value)

    with persistence_errors("Failed to update profile"):
        await db.commit()
        await db.refresh(current_user)

    if current_user.role == UserRole.ADVOCATE:
        advocate_id = (
            await db.execute(select(Advocate.id).where(Advocate.user_id == current_user.id))
        ).scalar_one_or_none()
        if advocate_id:
            await RedisCache(redis).invalidate_advocate(advocate_id, current_user.id)

    logger.info(f"User {current_user.id} updated fields: {sorted(updates)}")
    return UserResponse.model_validate(current_user)
