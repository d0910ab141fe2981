# app/config.py

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./salon.db"
    secret_key: str = "change-me-later"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    session_timeout_minutes: int = 30
    session_warning_minutes: int = 5
    log_level: str = "INFO"
    salon_name: str = "Velvet Family Salon"
    salon_phone: str = "+919876543210"
    open_time: str = "09:00"
    close_time: str = "21:00"
    booking_rate_limit: int = 5
    login_rate_limit: int = 5
    rate_limit_window_seconds: int = 60


def get_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings.database_url),
        secret_key=os.getenv("SECRET_KEY", Settings.secret_key),
        access_token_expire_minutes=int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", Settings.access_token_expire_minutes)
        ),
        session_timeout_minutes=int(
            os.getenv("SESSION_TIMEOUT_MINUTES", Settings.session_timeout_minutes)
        ),
        log_level=os.getenv("LOG_LEVEL", Settings.log_level),
        salon_name=os.getenv("SALON_NAME", Settings.salon_name),
        salon_phone=os.getenv("SALON_PHONE", Settings.salon_phone),
        open_time=os.getenv("SALON_OPEN_TIME", Settings.open_time),
        close_time=os.getenv("SALON_CLOSE_TIME", Settings.close_time),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
