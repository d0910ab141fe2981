# app/routers/users_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.auth import AuthService, get_auth_service, get_current_user
from app.data import SUPER_ADMIN_ROLE
from app.db import get_session
from app.deps import get_permissions, require_permission, require_super_admin
from app.models import AdminUser, User
from app.permissions import (
    PERMISSION_CATEGORIES, PermissionKey, ResolvedPermissions, stored_overrides,
)
from app.schemas import (
    ActiveUpdate, AdminInvite, AdminUserPublic, PermissionsResponse,
    PermissionsUpdate, UserPublic,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["users"],
)


def admin_public(admin: AdminUser) -> AdminUserPublic:
    """Admin record as served, with stored overrides cleaned to known boolean keys."""
    return AdminUserPublic(
        id=admin.id,
        user_id=admin.user_id,
        email=admin.email,
        name=admin.name,
        role=admin.role,
        permissions=stored_overrides(admin.permissions),
        is_active=admin.is_active,
    )


def get_admin_or_404(session: Session, admin_id: int) -> AdminUser:
    admin = session.get(AdminUser, admin_id)
    if admin is None:
        raise HTTPException(status_code=404, detail="Admin user not found")
    return admin


@router.get("/me", response_model=UserPublic)
def me(current_user: User = Depends(get_current_user)):
    return {
        "id": current_user.id,
        "email": current_user.email,
    }


@router.get("/admin/me/permissions", response_model=PermissionsResponse)
def my_permissions(resolved: ResolvedPermissions = Depends(get_permissions)):
    return {
        "permissions": {key.value: resolved.has_permission(key) for key in PermissionKey},
        "is_super_admin": resolved.is_super_admin,
    }


@router.get("/admin/permission-categories")
def permission_categories(current_user: User = Depends(get_current_user)):
    return PERMISSION_CATEGORIES


@router.get(
    "/admin/users",
    response_model=List[AdminUserPublic],
    dependencies=[Depends(require_permission(PermissionKey.view_users))],
)
def list_admin_users(session: Session = Depends(get_session)):
    admins = session.exec(select(AdminUser).order_by(AdminUser.created_at)).all()
    return [admin_public(admin) for admin in admins]


@router.post("/admin/users", response_model=AdminUserPublic, status_code=201)
def invite_admin_user(
    invite: AdminInvite,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    resolved: ResolvedPermissions = Depends(require_super_admin),
    auth: AuthService = Depends(get_auth_service),
):
    email = invite.email.strip().lower()

    # 1) Reuse an existing sign-in account, or create one
    user = session.exec(select(User).where(User.email == email)).first()
    if user is not None:
        existing_admin = session.exec(
            select(AdminUser).where(AdminUser.user_id == user.id)
        ).first()
        if existing_admin is not None:
            raise HTTPException(status_code=409, detail="User already has admin access")
    else:
        user = User(email=email, password_hash=auth.hash_password(invite.password))
        session.add(user)
        session.flush()

    # 2) Link the admin record
    admin = AdminUser(
        user_id=user.id,
        email=email,
        name=invite.name,
        role=invite.role.value,
        created_by=current_user.id,
    )
    session.add(admin)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="User already has admin access")

    session.refresh(admin)
    logger.info("Admin %s invited %s as %s", current_user.email, email, admin.role)
    return admin_public(admin)


@router.patch("/admin/users/{admin_id}/permissions", response_model=AdminUserPublic)
def update_admin_permissions(
    admin_id: int,
    update: PermissionsUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    resolved: ResolvedPermissions = Depends(require_super_admin),
):
    known = {key.value for key in PermissionKey}
    unknown = sorted(set(update.permissions) - known)
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown permission keys: {', '.join(unknown)}")

    admin = get_admin_or_404(session, admin_id)
    if admin.role == SUPER_ADMIN_ROLE:
        raise HTTPException(status_code=409, detail="Super admin permissions cannot be changed")

    admin.permissions = {**stored_overrides(admin.permissions), **update.permissions}
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Admin %s updated permissions of %s", current_user.email, admin.email)
    return admin_public(admin)


@router.patch("/admin/users/{admin_id}/active", response_model=AdminUserPublic)
def set_admin_active(
    admin_id: int,
    update: ActiveUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    resolved: ResolvedPermissions = Depends(require_super_admin),
):
    admin = get_admin_or_404(session, admin_id)
    if admin.user_id == current_user.id and not update.is_active:
        raise HTTPException(status_code=409, detail="You cannot deactivate yourself")
    if admin.role == SUPER_ADMIN_ROLE:
        raise HTTPException(status_code=409, detail="Super admin accounts cannot be changed")

    admin.is_active = update.is_active
    session.add(admin)
    session.commit()
    session.refresh(admin)
    return admin_public(admin)


@router.delete("/admin/users/{admin_id}", status_code=204)
def delete_admin_user(
    admin_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    resolved: ResolvedPermissions = Depends(require_super_admin),
):
    admin = get_admin_or_404(session, admin_id)
    if admin.role == SUPER_ADMIN_ROLE:
        raise HTTPException(status_code=409, detail="Super admin accounts cannot be deleted")

    email = admin.email
    # the sign-in account goes with the admin record
    user = session.get(User, admin.user_id)
    session.delete(admin)
    if user is not None:
        session.delete(user)
    session.commit()
    logger.info("Admin %s deleted admin user %s", current_user.email, email)
