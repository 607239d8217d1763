"""Data models for the birthdays table."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime

# Leap year used to validate month/day pairs, so that 2/29 is accepted.
_VALIDATION_YEAR = 2000


def validate_birthday(month: int, day: int) -> None:
    """Raise ``ValueError`` unless ``month``/``day`` exists in some calendar year."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    max_day = calendar.monthrange(_VALIDATION_YEAR, month)[1]
    if not 1 <= day <= max_day:
        raise ValueError(f"Day must be between 1 and {max_day} for month {month}, got {day}")


@dataclass
class BirthdayRecord:
    """A tracked member birthday."""

    id: int
    discord_id: int
    month: int
    day: int
    timezone: str
    last_wished_year: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        validate_birthday(self.month, self.day)
