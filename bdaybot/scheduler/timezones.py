"""Local wall-clock resolution for IANA timezones."""

from __future__ import annotations

import calendar
from datetime import datetime
from typing import NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidTimezone


class LocalTime(NamedTuple):
    """Local calendar date and hour (24h) of an instant in some timezone."""

    year: int
    month: int
    day: int
    hour: int


def get_zone(timezone: str) -> ZoneInfo:
    """Look up an IANA zone, raising ``InvalidTimezone`` if it does not exist."""
    if not timezone or not timezone.strip():
        raise InvalidTimezone(timezone)
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        # ValueError/OSError cover malformed keys such as "../etc" or "Foo//Bar"
        raise InvalidTimezone(timezone) from e


def is_valid_timezone(timezone: str) -> bool:
    try:
        get_zone(timezone)
    except InvalidTimezone:
        return False
    return True


def resolve(timezone: str, instant: datetime) -> LocalTime:
    """Break ``instant`` down into the local date and hour of ``timezone``.

    The conversion goes through the tz database, so daylight-saving
    transitions are honoured.
    """
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError("instant must be timezone-aware")
    local = instant.astimezone(get_zone(timezone))
    return LocalTime(local.year, local.month, local.day, local.hour)


def is_birthday(month: int, day: int, local: LocalTime) -> bool:
    """Whether a ``month``/``day`` birthday is observed on ``local``'s date.

    Feb 29 birthdays are observed on Mar 1 in years that are not leap years.
    """
    if (month, day) == (local.month, local.day):
        return True
    return (
        (month, day) == (2, 29)
        and (local.month, local.day) == (3, 1)
        and not calendar.isleap(local.year)
    )
