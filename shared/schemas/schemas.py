"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the platform.
"""

import uuid
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from config.settings import settings
from shared.models.models import BookingStatus, ServiceType, UserRole


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class RequestSchema(BaseSchema):
    """Incoming bodies: surrounding whitespace is never significant."""
    model_config = ConfigDict(
        from_attributes=True, use_enum_values=True, str_strip_whitespace=True
    )


# ── User ──────────────────────────────────────────────────────

class UserResponse(BaseSchema):
    id: uuid.UUID
    email: EmailStr
    name: str
    phone: Optional[str]
    role: UserRole
    created_at: datetime


class UserUpdateRequest(RequestSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{10,15}$")


# ── Advocate ──────────────────────────────────────────────────

class AdvocateListItem(BaseSchema):
    """Directory row: advocate fields plus the joined user's contact details."""
    id: uuid.UUID
    user_id: uuid.UUID
    specialization: Optional[str]
    location: Optional[str]
    experience_years: Optional[int]
    rating: float
    name: str
    email: str
    phone: Optional[str]


class ReviewResponse(BaseSchema):
    id: uuid.UUID
    booking_id: uuid.UUID
    user_id: uuid.UUID
    advocate_id: uuid.UUID
    rating: int
    comment: Optional[str]
    created_at: datetime
    user_name: Optional[str] = None


class ServiceResponse(BaseSchema):
    id: uuid.UUID
    advocate_id: uuid.UUID
    title: str
    description: str
    service_type: ServiceType
    category: Optional[str]
    price: float
    duration_minutes: int
    location: Optional[str]
    is_active: bool
    created_at: datetime


class AdvocateProfileResponse(BaseSchema):
    id: uuid.UUID
    user_id: uuid.UUID
    specialization: Optional[str]
    experience_years: Optional[int]
    bar_council_number: Optional[str]
    location: Optional[str]
    bio: Optional[str]
    hourly_rate: Optional[float]
    rating: float
    is_verified: bool
    is_available: bool
    # Injected from User join
    name: str
    email: str
    phone: Optional[str]
    services: List[ServiceResponse] = []
    reviews: List[ReviewResponse] = []


class AdvocateUpdateRequest(RequestSchema):
    specialization: Optional[str] = Field(None, max_length=120)
    experience_years: Optional[int] = Field(None, ge=0, le=80)
    location: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = Field(None, max_length=4000)
    hourly_rate: Optional[float] = Field(None, ge=0)
    is_available: Optional[bool] = None


# ── Service ───────────────────────────────────────────────────

class ServiceRequest(RequestSchema):
    """
    Create/update body for a service.
    Location is mandatory unless the service is online-only, in which case
    it is always stored as "Online".
    """
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    service_type: ServiceType = ServiceType.BOTH
    category: Optional[str] = Field(None, max_length=120)
    price: float = Field(..., ge=0)
    duration_minutes: int = Field(
        ..., gt=0, multiple_of=settings.SERVICE_DURATION_STEP_MINUTES
    )
    location: Optional[str] = Field(None, max_length=255)

    @field_validator("category")
    @classmethod
    def blank_category_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def resolve_location(self) -> "ServiceRequest":
        if self.service_type == ServiceType.ONLINE:
            self.location = "Online"
        elif not self.location:
            raise ValueError("Location is required for Offline Only or Both service types")
        return self


class ServiceUpdateRequest(ServiceRequest):
    is_active: bool = True


# ── Booking ───────────────────────────────────────────────────

class BookingCreateRequest(RequestSchema):
    advocate_id: uuid.UUID
    service_id: Optional[uuid.UUID] = None
    booking_date: date
    booking_time: time
    service_type: ServiceType
    notes: Optional[str] = Field(None, max_length=2000)

    @property
    def scheduled_date(self) -> datetime:
        return datetime.combine(self.booking_date, self.booking_time)


class BookingStatusUpdateRequest(BaseSchema):
    status: BookingStatus


class BookingResponse(BaseSchema):
    id: uuid.UUID
    user_id: uuid.UUID
    advocate_id: uuid.UUID
    service_id: Optional[uuid.UUID]
    scheduled_date: datetime
    service_type: ServiceType
    status: BookingStatus
    total_amount: float
    notes: Optional[str]
    confirmed_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    # Joined
    service_title: Optional[str] = None
    user_name: Optional[str] = None


# ── Review ────────────────────────────────────────────────────

class ReviewCreateRequest(RequestSchema):
    booking_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


# ── Admin ─────────────────────────────────────────────────────

class AdminVerifyRequest(BaseSchema):
    is_verified: bool = True


class AdminStatsResponse(BaseSchema):
    total_users: int
    total_advocates: int
    verified_advocates: int
    total_services: int
    total_bookings: int
    bookings_by_status: dict[str, int]
    avg_rating: float


# ── Generic ───────────────────────────────────────────────────

class MessageResponse(BaseSchema):
    message: str
    success: bool = True


class ErrorResponse(BaseSchema):
    error: str
