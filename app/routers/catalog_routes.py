# app/routers/catalog_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.db import get_session
from app.deps import require_permission
from app.models import Service, Staff
from app.permissions import PermissionKey
from app.schemas import (
    ServiceCreate, ServicePublic, ServiceUpdate, StaffCreate, StaffPublic, StaffUpdate,
)

router = APIRouter(
    tags=["catalog"],
)


@router.get("/services", response_model=List[ServicePublic])
def list_services(session: Session = Depends(get_session)):
    stmt = (
        select(Service)
        .where(Service.is_active == True)  # noqa: E712
        .order_by(Service.sort_order, Service.id)
    )
    return session.exec(stmt).all()


@router.get(
    "/admin/services",
    response_model=List[ServicePublic],
    dependencies=[Depends(require_permission(PermissionKey.view_services))],
)
def list_all_services(session: Session = Depends(get_session)):
    return session.exec(select(Service).order_by(Service.sort_order, Service.id)).all()


@router.post(
    "/admin/services",
    response_model=ServicePublic,
    status_code=201,
    dependencies=[Depends(require_permission(PermissionKey.manage_services))],
)
def create_service(service: ServiceCreate, session: Session = Depends(get_session)):
    db_service = Service(**service.model_dump())
    db_service.category = service.category.value
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.patch(
    "/admin/services/{service_id}",
    response_model=ServicePublic,
    dependencies=[Depends(require_permission(PermissionKey.manage_services))],
)
def update_service(service_id: int, updates: ServiceUpdate, session: Session = Depends(get_session)):
    db_service = session.get(Service, service_id)
    if db_service is None:
        raise HTTPException(status_code=404, detail="Service not found")

    for field, value in updates.model_dump(exclude_unset=True, exclude_none=True).items():
        if field == "category" and value is not None:
            value = value.value
        setattr(db_service, field, value)

    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    return db_service


@router.delete(
    "/admin/services/{service_id}",
    status_code=204,
    dependencies=[Depends(require_permission(PermissionKey.manage_services))],
)
def delete_service(service_id: int, session: Session = Depends(get_session)):
    db_service = session.get(Service, service_id)
    if db_service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    session.delete(db_service)
    session.commit()


@router.get("/staff", response_model=List[StaffPublic])
def list_staff(session: Session = Depends(get_session)):
    stmt = select(Staff).where(Staff.is_active == True).order_by(Staff.name)  # noqa: E712
    return session.exec(stmt).all()


@router.post(
    "/admin/staff",
    response_model=StaffPublic,
    status_code=201,
    dependencies=[Depends(require_permission(PermissionKey.manage_staff))],
)
def create_staff(staff: StaffCreate, session: Session = Depends(get_session)):
    db_staff = Staff(**staff.model_dump())
    session.add(db_staff)
    session.commit()
    session.refresh(db_staff)
    return db_staff


@router.patch(
    "/admin/staff/{staff_id}",
    response_model=StaffPublic,
    dependencies=[Depends(require_permission(PermissionKey.manage_staff))],
)
def update_staff(staff_id: int, updates: StaffUpdate, session: Session = Depends(get_session)):
    db_staff = session.get(Staff, staff_id)
    if db_staff is None:
        raise HTTPException(status_code=404, detail="Staff member not found")

    for field, value in updates.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(db_staff, field, value)

    session.add(db_staff)
    session.commit()
    session.refresh(db_staff)
    return db_staff


@router.delete(
    "/admin/staff/{staff_id}",
    status_code=204,
    dependencies=[Depends(require_permission(PermissionKey.manage_staff))],
)
def delete_staff(staff_id: int, session: Session = Depends(get_session)):
    db_staff = session.get(Staff, staff_id)
    if db_staff is None:
        raise HTTPException(status_code=404, detail="Staff member not found")
    session.delete(db_staff)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="Staff member has appointments, deactivate instead")
