# app/deps.py

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from .auth import get_current_user
from .db import get_session
from .models import User
from .permissions import PermissionKey, ResolvedPermissions, load_permissions
from .rate_limit import RateLimiter


def get_permissions(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> ResolvedPermissions:
    return load_permissions(session, current_user.id)


def require_permission(key: PermissionKey):
    def dependency(resolved: ResolvedPermissions = Depends(get_permissions)) -> ResolvedPermissions:
        if not resolved.has_permission(key):
            raise HTTPException(status_code=403, detail="Forbidden")
        return resolved
    return dependency


def require_super_admin(resolved: ResolvedPermissions = Depends(get_permissions)) -> ResolvedPermissions:
    if not resolved.is_super_admin:
        raise HTTPException(status_code=403, detail="Only super admins can do this")
    return resolved


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_settings_dep(request: Request):
    return request.app.state.settings
