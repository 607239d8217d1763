"""Repository layer for the birthday bot."""

from .birthday import BirthdayRepository

__all__ = ["BirthdayRepository"]
