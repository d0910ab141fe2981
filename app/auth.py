# app/auth.py

import logging
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session, select

from .config import Settings
from .db import get_session
from .models import User
from .session_timeout import InactivityTimer

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


class AuthService:
    """Sign-in, sign-out and session lookup for admin users.

    Built once by the application factory and reached through
    ``get_auth_service``. Each signed-in token carries an inactivity timer;
    activity restarts it and expiry revokes the token.
    """

    def __init__(self, settings: Settings, timer_factory=threading.Timer):
        self.secret_key = settings.secret_key
        self.algorithm = settings.algorithm
        self.expire_minutes = settings.access_token_expire_minutes
        self.idle_seconds = settings.session_timeout_minutes * 60
        self.warning_seconds = min(settings.session_warning_minutes * 60, self.idle_seconds / 2)
        self._timer_factory = timer_factory
        # revoked token id -> its exp timestamp
        self._revoked: Dict[str, float] = {}
        self._timers: Dict[str, InactivityTimer] = {}
        self._lock = threading.Lock()

    def hash_password(self, password: str) -> str:
        return pwd_context.hash(password)

    def verify_password(self, plain: str, hashed: str) -> bool:
        return pwd_context.verify(plain, hashed)

    def create_access_token(self, data: dict, expires_minutes: Optional[int] = None) -> str:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or self.expire_minutes)
        to_encode["exp"] = expire
        to_encode["jti"] = uuid.uuid4().hex
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def sign_in(self, session: Session, email: str, password: str) -> Optional[str]:
        user = session.exec(
            select(User).where(User.email == email)
        ).first()

        if user is None or not self.verify_password(password, user.password_hash):
            logger.info("Failed sign-in for %s", email)
            return None

        token = self.create_access_token({"sub": user.email})
        claims = jwt.get_unverified_claims(token)
        self._start_idle_timer(claims["jti"], claims["exp"])
        return token

    def sign_out(self, token: str) -> None:
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return
        token_id = claims.get("jti")
        if token_id is None:
            return
        with self._lock:
            self._revoke(token_id, claims.get("exp"))
            timer = self._timers.pop(token_id, None)
        if timer is not None:
            timer.cancel()

    def get_session_user(self, session: Session, token: str) -> Optional[User]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

        email = payload.get("sub")
        token_id = payload.get("jti")
        if email is None or token_id is None:
            return None
        with self._lock:
            if token_id in self._revoked:
                return None
            timer = self._timers.get(token_id)
        if timer is not None:
            timer.restart()

        return session.exec(
            select(User).where(User.email == email)
        ).first()

    def _revoke(self, token_id: str, expires_at: Optional[float]) -> None:
        # caller holds the lock
        now = time.time()
        for stale in [t for t, exp in self._revoked.items() if exp <= now]:
            del self._revoked[stale]
        self._revoked[token_id] = float(expires_at) if expires_at is not None else float("inf")

    def _start_idle_timer(self, token_id: str, expires_at: float) -> None:
        def expire():
            logger.info("Signing out idle session %s", token_id)
            with self._lock:
                self._revoke(token_id, expires_at)
                self._timers.pop(token_id, None)

        timer = InactivityTimer(
            on_expire=expire,
            timeout=self.idle_seconds,
            warning_before=self.warning_seconds,
            timer_factory=self._timer_factory,
        )
        with self._lock:
            self._timers[token_id] = timer
        timer.restart()


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    user = auth.get_session_user(session, token)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
