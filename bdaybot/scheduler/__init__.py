"""Birthday polling scheduler: local-time wishes and birthday role lifecycle."""

from .announcements import AnnouncementEngine, AnnouncementReport, is_eligible
from .errors import (
    BirthdayError,
    ChannelUnavailable,
    InvalidTimezone,
    MemberNotFound,
    PersistenceFailure,
    RoleOperationFailed,
)
from .gateway import DiscordGateway
from .interfaces import BirthdayStore, MembershipGateway
from .messages import BIRTHDAY_MESSAGES, pick_message
from .roles import RoleLifecycleManager
from .service import BirthdayScheduler, next_tick
from .timezones import LocalTime, is_birthday, is_valid_timezone, resolve

__all__ = [
    # Components
    "AnnouncementEngine",
    "AnnouncementReport",
    "BirthdayScheduler",
    "DiscordGateway",
    "RoleLifecycleManager",
    # Interfaces
    "BirthdayStore",
    "MembershipGateway",
    # Time
    "LocalTime",
    "is_birthday",
    "is_eligible",
    "is_valid_timezone",
    "next_tick",
    "resolve",
    # Messages
    "BIRTHDAY_MESSAGES",
    "pick_message",
    # Errors
    "BirthdayError",
    "ChannelUnavailable",
    "InvalidTimezone",
    "MemberNotFound",
    "PersistenceFailure",
    "RoleOperationFailed",
]
