# app/schemas.py

from pydantic import BaseModel, EmailStr, Field, field_validator
from enum import Enum
from datetime import datetime, date
from typing import Dict, List, Optional

from .validation import (
    is_future_date, normalize_phone, sanitize_text, validate_name, validate_phone,
    validate_time,
)


class TimeSlot(BaseModel):
    time: str
    available: bool


class AvailabilityResponse(BaseModel):
    date: date
    staff_id: Optional[int] = None
    duration_minutes: int
    slots: List[TimeSlot]


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserPublic(BaseModel):
    id: int
    email: str


class ServiceCategory(str, Enum):
    men = "men"
    women = "women"
    unisex = "unisex"
    combo = "combo"


class ServicePublic(BaseModel):
    id: int
    name: str
    description: str
    category: ServiceCategory
    duration_minutes: int
    price: float
    is_active: bool
    sort_order: int
    is_combo: bool
    is_featured: bool


class ServiceCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str = ""
    category: ServiceCategory = ServiceCategory.unisex
    duration_minutes: int = Field(gt=0)
    price: float = Field(ge=0)
    is_active: bool = True
    sort_order: int = 0
    is_combo: bool = False
    is_featured: bool = False

    @field_validator("name", "description")
    @classmethod
    def clean_text(cls, v: str) -> str:
        return sanitize_text(v)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = None
    category: Optional[ServiceCategory] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    price: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    is_combo: Optional[bool] = None
    is_featured: Optional[bool] = None

    @field_validator("name", "description")
    @classmethod
    def clean_text(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v) if v is not None else v


class StaffPublic(BaseModel):
    id: int
    name: str
    role: str
    is_active: bool


class StaffCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    role: str = "Stylist"
    is_active: bool = True

    @field_validator("name", "role")
    @classmethod
    def clean_text(cls, v: str) -> str:
        return sanitize_text(v)


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    role: Optional[str] = None
    is_active: Optional[bool] = None


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


class AppointmentCreate(BaseModel):
    service_ids: List[int] = Field(min_length=1)
    staff_id: Optional[int] = None
    appointment_date: date
    start_time: str
    user_name: str
    user_phone: str
    user_email: Optional[EmailStr] = None
    notes: Optional[str] = None

    @field_validator("appointment_date")
    @classmethod
    def check_date(cls, v: date) -> date:
        if not is_future_date(v):
            raise ValueError("Please select a date today or in the future")
        return v

    @field_validator("start_time")
    @classmethod
    def check_time(cls, v: str) -> str:
        if not validate_time(v):
            raise ValueError("Please select a valid time")
        hours, minutes = v.split(":")
        return f"{int(hours):02d}:{minutes}"

    @field_validator("user_name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not validate_name(v):
            raise ValueError("Please enter a valid name (2-100 characters)")
        return sanitize_text(v)

    @field_validator("user_phone")
    @classmethod
    def check_phone(cls, v: str) -> str:
        if not validate_phone(v):
            raise ValueError("Please enter a valid 10-digit phone number")
        return normalize_phone(v)

    @field_validator("user_email", mode="before")
    @classmethod
    def blank_email(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v) if v else None


class AppointmentPublic(BaseModel):
    id: int
    customer_id: int
    service_id: int
    staff_id: Optional[int]
    appointment_date: date
    start_time: str
    end_time: str
    status: AppointmentStatus
    notes: Optional[str]
    final_amount: Optional[float] = None
    payment_mode: Optional[str] = None
    created_at: datetime


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class PaymentMode(str, Enum):
    cash = "cash"
    upi = "upi"
    card = "card"


class AppointmentComplete(BaseModel):
    final_amount: float = Field(ge=0)
    payment_mode: PaymentMode


class AppointmentServicePublic(BaseModel):
    id: int
    appointment_id: int
    service_id: int
    staff_id: Optional[int]
    is_completed: bool
    cancellation_reason: Optional[str]
    final_price: Optional[float]


class AppointmentServiceUpdate(BaseModel):
    staff_id: Optional[int] = None
    is_completed: Optional[bool] = None
    cancellation_reason: Optional[str] = None
    final_price: Optional[float] = Field(default=None, ge=0)

    @field_validator("cancellation_reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v) if v else None


class AdminRole(str, Enum):
    admin = "admin"
    staff = "staff"


class AdminInvite(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    role: AdminRole
    password: str = Field(min_length=8, max_length=72)


class AdminUserPublic(BaseModel):
    id: int
    user_id: int
    email: str
    name: Optional[str]
    role: str
    permissions: Dict[str, bool]
    is_active: bool


class PermissionsUpdate(BaseModel):
    permissions: Dict[str, bool]


class ActiveUpdate(BaseModel):
    is_active: bool


class PermissionsResponse(BaseModel):
    permissions: Dict[str, bool]
    is_super_admin: bool


class TestimonialPublic(BaseModel):
    id: int
    customer_name: str
    rating: int
    review_text: str
    customer_image_url: Optional[str]
    is_active: bool
    created_at: datetime


class TestimonialCreate(BaseModel):
    customer_name: str
    rating: int = Field(ge=1, le=5)
    review_text: str = Field(min_length=1, max_length=1000)
    customer_image_url: Optional[str] = None
    is_active: bool = True

    @field_validator("customer_name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not validate_name(v):
            raise ValueError("Please enter a valid name (2-100 characters)")
        return sanitize_text(v)

    @field_validator("review_text")
    @classmethod
    def clean_text(cls, v: str) -> str:
        return sanitize_text(v)


class TestimonialUpdate(BaseModel):
    customer_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review_text: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    customer_image_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("customer_name", "review_text")
    @classmethod
    def clean_text(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_text(v) if v is not None else v


class ReviewsConfigPublic(BaseModel):
    average_rating: float
    total_reviews_count: int
    updated_at: datetime


class ReviewsConfigUpdate(BaseModel):
    average_rating: Optional[float] = Field(default=None, ge=1, le=5)
    total_reviews_count: Optional[int] = Field(default=None, ge=0)
