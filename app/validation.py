# app/validation.py
"""Input validation and sanitisation for booking and admin forms."""

import re
from datetime import date, datetime
from typing import Optional, Union

PHONE_RE = re.compile(r"^[6-9]\d{9}$")
TIME_RE = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
    "`": "&#x60;",
}


def normalize_phone(phone: str) -> str:
    """Strip formatting, the 91 country code and a trunk 0 from an Indian number."""
    normalized = re.sub(r"\D", "", phone)
    if normalized.startswith("91") and len(normalized) > 10:
        normalized = normalized[2:]
    if normalized.startswith("0") and len(normalized) > 10:
        normalized = normalized[1:]
    return normalized


def validate_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(normalize_phone(phone)))


def validate_name(name: str) -> bool:
    return 2 <= len(name.strip()) <= 100


def validate_time(value: str) -> bool:
    return bool(TIME_RE.match(value))


def is_future_date(value: Union[date, str], today: Optional[date] = None) -> bool:
    """True for today or any later date."""
    if isinstance(value, str):
        value = datetime.strptime(value, "%Y-%m-%d").date()
    return value >= (today or date.today())


def sanitize_text(text: Optional[str]) -> str:
    if not text:
        return ""
    return re.sub(r"[&<>\"'`/]", lambda m: HTML_ENTITIES[m.group(0)], text).strip()
