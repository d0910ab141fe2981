# app/routers/appointments_routes.py

import logging
import math
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.availability import expand_booked_cells, find_slot, generate_slots
from app.config import Settings
from app.core import add_minutes
from app.db import get_session
from app.deps import get_rate_limiter, get_settings_dep, require_permission
from app.models import Appointment, AppointmentService, Customer, Service, Staff
from app.permissions import PermissionKey
from app.rate_limit import RateLimiter
from app.data import DEFAULT_SERVICE_MINUTES, STATUS_TRANSITIONS
from app.schemas import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentServicePublic,
    AppointmentServiceUpdate,
    AppointmentStatusUpdate,
    AvailabilityResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["appointments"],
)


def get_booked_slots(session: Session, staff_id: Optional[int], on_date: date) -> List[str]:
    """30 minute cells already taken on a date, for one staff member or the whole salon."""
    stmt = (
        select(Appointment)
        .where(Appointment.appointment_date == on_date)
        .where(Appointment.status != "cancelled")
    )
    appointments = session.exec(stmt).all()

    # unassigned appointments can land on any staff member
    if staff_id is not None:
        appointments = [a for a in appointments if a.staff_id in (staff_id, None)]

    cells = expand_booked_cells((a.start_time, a.end_time) for a in appointments)
    logger.debug("Blocked slots for %s staff=%s -> %s", on_date, staff_id, cells)
    return cells


def load_services(session: Session, service_ids: List[int]) -> List[Service]:
    services = []
    for service_id in dict.fromkeys(service_ids):
        service = session.get(Service, service_id)
        if service is None or not service.is_active:
            raise HTTPException(status_code=422, detail=f"Service {service_id} not available")
        services.append(service)
    return services


def total_duration(services: List[Service]) -> int:
    return sum(s.duration_minutes for s in services) or DEFAULT_SERVICE_MINUTES


def check_staff(session: Session, staff_id: Optional[int]) -> None:
    if staff_id is None:
        return
    staff = session.get(Staff, staff_id)
    if staff is None or not staff.is_active:
        raise HTTPException(status_code=404, detail="Staff member not found")


def get_appointment_or_404(session: Session, appt_id: int) -> Appointment:
    appointment = session.get(Appointment, appt_id)
    if appointment is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appointment


def check_transition(appointment: Appointment, new_status: str) -> None:
    if new_status not in STATUS_TRANSITIONS[appointment.status]:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change appointment from {appointment.status} to {new_status}",
        )


@router.get("/availability", response_model=AvailabilityResponse)
def availability(
    on_date: date = Query(alias="date"),
    service_ids: List[int] = Query(default=[]),
    staff_id: Optional[int] = None,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings_dep),
):
    check_staff(session, staff_id)
    duration = total_duration(load_services(session, service_ids))
    booked = get_booked_slots(session, staff_id, on_date)

    try:
        slots = generate_slots(settings.open_time, settings.close_time, duration, booked, on_date)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "date": on_date,
        "staff_id": staff_id,
        "duration_minutes": duration,
        "slots": slots,
    }


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings_dep),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    if not limiter.check(f"booking:{appt.user_phone}", settings.booking_rate_limit,
                         settings.rate_limit_window_seconds):
        raise HTTPException(
            status_code=429,
            detail="Too many booking attempts, try again later",
            headers={"Retry-After": str(math.ceil(limiter.reset_in(f"booking:{appt.user_phone}")))},
        )

    # 1) Validate services and staff
    services = load_services(session, appt.service_ids)
    check_staff(session, appt.staff_id)
    duration = total_duration(services)

    # 2) Recompute availability; the chosen start must still be open
    booked = get_booked_slots(session, appt.staff_id, appt.appointment_date)
    slots = generate_slots(
        settings.open_time, settings.close_time, duration, booked, appt.appointment_date
    )
    slot = find_slot(slots, appt.start_time)
    if slot is None:
        raise HTTPException(status_code=422, detail="Start time is outside opening hours")
    if not slot.available:
        raise HTTPException(status_code=409, detail="This time slot is no longer available")

    # 3) Find or create the customer by phone
    customer = session.exec(
        select(Customer).where(Customer.phone == appt.user_phone)
    ).first()
    if customer is None and appt.user_email:
        customer = session.exec(
            select(Customer).where(Customer.email == appt.user_email)
        ).first()
    if customer is None:
        customer = Customer(name=appt.user_name, phone=appt.user_phone, email=appt.user_email)
        session.add(customer)
        session.flush()

    # 4) Create the appointment with one row per service
    db_appt = Appointment(
        customer_id=customer.id,
        service_id=services[0].id,
        staff_id=appt.staff_id,
        appointment_date=appt.appointment_date,
        start_time=appt.start_time,
        end_time=add_minutes(appt.start_time, duration),
        status="pending",
        notes=appt.notes,
    )
    session.add(db_appt)
    session.flush()

    for service in services:
        session.add(AppointmentService(
            appointment_id=db_appt.id,
            service_id=service.id,
            staff_id=appt.staff_id,
        ))

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Could not save appointment")

    session.refresh(db_appt)
    logger.info(
        "Booked appointment %s on %s %s-%s",
        db_appt.id, db_appt.appointment_date, db_appt.start_time, db_appt.end_time,
    )
    return db_appt


@router.get(
    "/admin/appointments",
    response_model=List[AppointmentPublic],
    dependencies=[Depends(require_permission(PermissionKey.view_bookings))],
)
def list_appointments(
    status: Optional[str] = "all",
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
):
    if status != "all" and status not in STATUS_TRANSITIONS:
        raise HTTPException(status_code=422, detail="status must be a valid appointment status or 'all'")

    stmt = select(Appointment)
    if on_date is not None:
        stmt = stmt.where(Appointment.appointment_date == on_date)
    if status != "all":
        stmt = stmt.where(Appointment.status == status)

    stmt = stmt.order_by(Appointment.appointment_date, Appointment.start_time)
    return session.exec(stmt).all()


@router.patch(
    "/admin/appointments/{appt_id}/status",
    response_model=AppointmentPublic,
    dependencies=[Depends(require_permission(PermissionKey.manage_bookings))],
)
def update_appointment_status(
    appt_id: int,
    update: AppointmentStatusUpdate,
    session: Session = Depends(get_session),
):
    target = get_appointment_or_404(session, appt_id)
    check_transition(target, update.status.value)

    target.status = update.status.value
    session.add(target)
    session.commit()
    session.refresh(target)
    return target


@router.post(
    "/admin/appointments/{appt_id}/complete",
    response_model=AppointmentPublic,
    dependencies=[Depends(require_permission(PermissionKey.manage_bookings))],
)
def complete_appointment(
    appt_id: int,
    bill: AppointmentComplete,
    session: Session = Depends(get_session),
):
    target = get_appointment_or_404(session, appt_id)
    check_transition(target, "completed")

    target.status = "completed"
    target.final_amount = bill.final_amount
    target.payment_mode = bill.payment_mode.value
    session.add(target)
    session.commit()
    session.refresh(target)
    logger.info(
        "Completed appointment %s for %.2f by %s", target.id, target.final_amount, target.payment_mode
    )
    return target


@router.get(
    "/admin/appointments/{appt_id}/services",
    response_model=List[AppointmentServicePublic],
    dependencies=[Depends(require_permission(PermissionKey.view_bookings))],
)
def list_appointment_services(appt_id: int, session: Session = Depends(get_session)):
    get_appointment_or_404(session, appt_id)
    stmt = (
        select(AppointmentService)
        .where(AppointmentService.appointment_id == appt_id)
        .order_by(AppointmentService.id)
    )
    return session.exec(stmt).all()


@router.patch(
    "/admin/appointment-services/{item_id}",
    response_model=AppointmentServicePublic,
    dependencies=[Depends(require_permission(PermissionKey.manage_bookings))],
)
def update_appointment_service(
    item_id: int,
    updates: AppointmentServiceUpdate,
    session: Session = Depends(get_session),
):
    item = session.get(AppointmentService, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Appointment service not found")

    changes = updates.model_dump(exclude_unset=True)
    if changes.get("is_completed", False) is None:
        del changes["is_completed"]
    if changes.get("staff_id") is not None:
        check_staff(session, changes["staff_id"])

    for field, value in changes.items():
        setattr(item, field, value)

    session.add(item)
    session.commit()
    session.refresh(item)
    return item
