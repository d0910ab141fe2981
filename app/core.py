# app/core.py

from datetime import datetime

def to_minutes(value: str) -> int:
    """Convert an "HH:MM" (or "HH:MM:SS") string to minutes since midnight."""
    hours, minutes = value[:5].split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def minutes_of(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def add_minutes(value: str, minutes: int) -> str:
    return format_minutes(to_minutes(value) + minutes)

