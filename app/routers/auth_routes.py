# app/routers/auth_routes.py

import math

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from app.auth import AuthService, get_auth_service, get_current_user, oauth2_scheme
from app.config import Settings
from app.db import get_session
from app.deps import get_rate_limiter, get_settings_dep
from app.models import User
from app.rate_limit import RateLimiter
from app.schemas import Token

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings_dep),
):
    email = form_data.username.strip().lower()

    if not limiter.check(f"login:{email}", settings.login_rate_limit, settings.rate_limit_window_seconds):
        raise HTTPException(
            status_code=429,
            detail="Too many login attempts, try again later",
            headers={"Retry-After": str(math.ceil(limiter.reset_in(f"login:{email}")))},
        )

    token = auth.sign_in(session, email, form_data.password)
    if token is None:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    limiter.reset(f"login:{email}")
    return {"access_token": token, "token_type": "bearer"}


@router.post("/logout", status_code=204)
def logout(
    token: str = Depends(oauth2_scheme),
    current_user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    auth.sign_out(token)
