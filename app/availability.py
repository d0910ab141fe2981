# app/availability.py
"""
Slot generation for the booking page.

Slots start every 30 minutes from opening time. A slot is offered only if the
whole service fits before closing; it is marked unavailable when it has
already started (for today) or when any 30 minute cell it would occupy is
already booked.
"""

import math
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple, Union

from .core import format_minutes, minutes_of, to_minutes
from .data import SLOT_MINUTES
from .schemas import TimeSlot


def _is_today(target_date: Union[date, str, None], now: datetime) -> bool:
    if target_date is None:
        return False
    if isinstance(target_date, str):
        return target_date == now.date().isoformat()
    return target_date == now.date()


def earliest_bookable_minute(now: datetime) -> int:
    """Next slot boundary at or after ``now``."""
    return math.ceil(minutes_of(now) / SLOT_MINUTES) * SLOT_MINUTES


def generate_slots(
    open_time: str,
    close_time: str,
    duration_minutes: int,
    booked_times: Iterable[str] = (),
    target_date: Union[date, str, None] = None,
    now: Optional[datetime] = None,
) -> List[TimeSlot]:
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    start = to_minutes(open_time)
    end = to_minutes(close_time)
    booked = {to_minutes(t) for t in booked_times}

    if now is None:
        now = datetime.now()
    cutoff = earliest_bookable_minute(now) if _is_today(target_date, now) else None

    slots = []
    mins = start
    while mins + duration_minutes <= end:
        past = cutoff is not None and mins < cutoff
        conflict = any(
            cell in booked
            for cell in range(mins, mins + duration_minutes, SLOT_MINUTES)
        )
        slots.append(TimeSlot(time=format_minutes(mins), available=not (past or conflict)))
        mins += SLOT_MINUTES

    return slots


def expand_booked_cells(intervals: Iterable[Tuple[str, str]]) -> List[str]:
    """Every 30 minute cell covered by the given (start, end) appointment times."""
    cells = set()
    for start_time, end_time in intervals:
        start = to_minutes(start_time)
        end = to_minutes(end_time)
        cells.update(range(start, end, SLOT_MINUTES))
    return [format_minutes(m) for m in sorted(cells)]


def find_slot(slots: Iterable[TimeSlot], time: str) -> Optional[TimeSlot]:
    for slot in slots:
        if slot.time == time:
            return slot
    return None
