"""Shared data models for the birthday bot."""

from .birthday import BirthdayRecord, validate_birthday

__all__ = [
    "BirthdayRecord",
    "validate_birthday",
]
