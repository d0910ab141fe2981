# app/data.py

SLOT_MINUTES = 30
DEFAULT_SERVICE_MINUTES = 30

# statuses an appointment may move to from each status
STATUS_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "cancelled": set(),
    "completed": set(),
}

SUPER_ADMIN_ROLE = "super_admin"
