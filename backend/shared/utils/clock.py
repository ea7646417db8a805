"""Time source injected into caches and counters so expiry is testable."""
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Protocol, Union

from shared.errors import ValidationError

DateLike = Union[date, str]

_CALENDAR_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant, timezone-aware."""
        ...

    def today(self) -> date:
        """Current calendar date in server-local time."""
        ...


class SystemClock:
    """Wall-clock implementation used outside tests."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return datetime.now().astimezone().date()


def parse_calendar_date(value: DateLike) -> date:
    """Accept a ``date`` or a strict ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not _CALENDAR_DATE.match(text):
        raise ValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD.")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD.") from exc
