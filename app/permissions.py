# app/permissions.py
"""
Admin permission model.

Super admins are not stored with an explicit permission set; the role alone
grants everything. Every other admin gets the default (view-only) baseline
with their stored overrides applied on top. Any lookup problem falls back to
the baseline, never to an elevated set.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .data import SUPER_ADMIN_ROLE
from .models import AdminUser

logger = logging.getLogger(__name__)


class PermissionKey(str, Enum):
    view_dashboard = "view_dashboard"
    view_bookings = "view_bookings"
    manage_bookings = "manage_bookings"
    view_services = "view_services"
    manage_services = "manage_services"
    view_staff = "view_staff"
    manage_staff = "manage_staff"
    view_testimonials = "view_testimonials"
    manage_testimonials = "manage_testimonials"
    view_reviews = "view_reviews"
    manage_reviews = "manage_reviews"
    view_users = "view_users"
    manage_users = "manage_users"


class Permissions(BaseModel):
    view_dashboard: bool = False
    view_bookings: bool = False
    manage_bookings: bool = False
    view_services: bool = False
    manage_services: bool = False
    view_staff: bool = False
    manage_staff: bool = False
    view_testimonials: bool = False
    manage_testimonials: bool = False
    view_reviews: bool = False
    manage_reviews: bool = False
    view_users: bool = False
    manage_users: bool = False

    model_config = {"frozen": True, "extra": "forbid"}

    def get(self, key: PermissionKey) -> bool:
        return getattr(self, PermissionKey(key).value)


DEFAULT_PERMISSIONS = Permissions(
    view_dashboard=True,
    view_bookings=True,
    view_services=True,
    view_staff=True,
    view_testimonials=True,
    view_reviews=True,
)

ALL_PERMISSIONS = Permissions(**{key.value: True for key in PermissionKey})

PERMISSION_CATEGORIES = [
    {
        "name": "Dashboard",
        "permissions": [
            {"key": PermissionKey.view_dashboard, "label": "View Dashboard"},
        ],
    },
    {
        "name": "Bookings",
        "permissions": [
            {"key": PermissionKey.view_bookings, "label": "View Bookings"},
            {"key": PermissionKey.manage_bookings, "label": "Manage Bookings (accept/reject/cancel)"},
        ],
    },
    {
        "name": "Services",
        "permissions": [
            {"key": PermissionKey.view_services, "label": "View Services"},
            {"key": PermissionKey.manage_services, "label": "Manage Services (add/edit/delete)"},
        ],
    },
    {
        "name": "Staff",
        "permissions": [
            {"key": PermissionKey.view_staff, "label": "View Staff"},
            {"key": PermissionKey.manage_staff, "label": "Manage Staff (add/edit/delete)"},
        ],
    },
    {
        "name": "Testimonials",
        "permissions": [
            {"key": PermissionKey.view_testimonials, "label": "View Testimonials"},
            {"key": PermissionKey.manage_testimonials, "label": "Manage Testimonials (approve/reject)"},
        ],
    },
    {
        "name": "Reviews Config",
        "permissions": [
            {"key": PermissionKey.view_reviews, "label": "View Reviews Config"},
            {"key": PermissionKey.manage_reviews, "label": "Manage Reviews Config"},
        ],
    },
    {
        "name": "Admin Users",
        "permissions": [
            {"key": PermissionKey.view_users, "label": "View Admin Users"},
            {
                "key": PermissionKey.manage_users,
                "label": "Manage Users (invite/deactivate)",
                "super_admin_only": True,
            },
        ],
    },
]


def stored_overrides(stored: Any) -> Dict[str, bool]:
    """Boolean overrides for known keys; anything else in the stored value is dropped."""
    if not isinstance(stored, Mapping):
        return {}
    return {
        key.value: stored[key.value]
        for key in PermissionKey
        if isinstance(stored.get(key.value), bool)
    }


def merge_permissions(stored: Any) -> Permissions:
    """Default baseline with stored boolean overrides applied key by key."""
    overrides = stored_overrides(stored)
    values = {}
    for key in PermissionKey:
        values[key.value] = overrides.get(key.value, DEFAULT_PERMISSIONS.get(key))
    return Permissions(**values)


@dataclass(frozen=True)
class ResolvedPermissions:
    permissions: Optional[Permissions]
    is_super_admin: bool = False

    def has_permission(self, key: PermissionKey) -> bool:
        if self.is_super_admin:
            return True
        if self.permissions is None:
            return False
        return self.permissions.get(key) is True


UNRESOLVED = ResolvedPermissions(permissions=None, is_super_admin=False)
FALLBACK = ResolvedPermissions(permissions=DEFAULT_PERMISSIONS, is_super_admin=False)


def resolve_permissions(account: Optional[AdminUser]) -> ResolvedPermissions:
    if account is None or not account.is_active:
        return FALLBACK
    if account.role == SUPER_ADMIN_ROLE:
        return ResolvedPermissions(permissions=ALL_PERMISSIONS, is_super_admin=True)
    return ResolvedPermissions(permissions=merge_permissions(account.permissions))


def load_permissions(session: Session, user_id: int) -> ResolvedPermissions:
    try:
        account = session.exec(
            select(AdminUser)
            .where(AdminUser.user_id == user_id)
            .where(AdminUser.is_active == True)  # noqa: E712
        ).first()
    except SQLAlchemyError:
        logger.exception("Error loading permissions for user %s", user_id)
        return FALLBACK

    if account is None:
        logger.warning("No active admin account for user %s, using default permissions", user_id)
    return resolve_permissions(account)
