# app/models.py

from typing import Optional, Dict
from datetime import datetime, timezone, date as Date

from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str


class AdminUser(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, unique=True)
    email: str = Field(index=True)
    name: Optional[str] = None
    role: str = "staff"  # super_admin, admin or staff
    # partial overrides, keys missing here fall back to the defaults
    permissions: Dict[str, bool] = Field(default_factory=dict, sa_column=Column(JSON))
    is_active: bool = True
    created_by: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)


class Customer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    phone: str = Field(index=True, unique=True)
    email: Optional[str] = Field(default=None, index=True)


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: str = ""
    category: str = "unisex"
    duration_minutes: int
    price: float
    is_active: bool = True
    sort_order: int = 0
    is_combo: bool = False
    is_featured: bool = False


class Staff(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    role: str = "Stylist"
    is_active: bool = True


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    customer_id: int = Field(foreign_key="customer.id", index=True)
    service_id: int = Field(foreign_key="service.id")  # primary service
    staff_id: Optional[int] = Field(default=None, foreign_key="staff.id", index=True)
    appointment_date: Date = Field(index=True)
    start_time: str  # HH:MM
    end_time: str
    status: str = "pending"
    notes: Optional[str] = None
    # billing, filled in when the appointment is completed
    final_amount: Optional[float] = None
    payment_mode: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class AppointmentService(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_id: int = Field(foreign_key="appointment.id", index=True)
    service_id: int = Field(foreign_key="service.id")
    staff_id: Optional[int] = Field(default=None, foreign_key="staff.id")
    is_completed: bool = False
    cancellation_reason: Optional[str] = None
    final_price: Optional[float] = None


class Testimonial(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    customer_name: str
    rating: int  # 1-5
    review_text: str
    customer_image_url: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class ReviewsConfig(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    average_rating: float = 5.0
    total_reviews_count: int = 0
    updated_at: datetime = Field(default_factory=utcnow)
