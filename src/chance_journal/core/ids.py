"""Canonical ID and timestamp helpers.

Timestamp Rule
--------------
All stored timestamps are ``datetime`` with ``tzinfo=timezone.utc`` — never
naive.  Naive values coming from callers are interpreted as local time.
"""

from __future__ import annotations

import uuid
from datetime import datetime


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for all entity IDs."""
    return str(uuid.uuid4())


def as_aware(value: datetime) -> datetime:
    """Return *value* as an aware datetime.

    Naive datetimes are treated as local wall-clock time, matching how a
    user thinks about "today" or "this month".
    """
    if value.tzinfo is None:
        return value.astimezone()
    return value
