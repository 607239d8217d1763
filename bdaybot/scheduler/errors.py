"""Exceptions raised by the birthday scheduler and its collaborators."""


class BirthdayError(Exception):
    """Base class for birthday scheduler errors."""


class InvalidTimezone(BirthdayError):
    """The timezone identifier is not a recognised IANA zone."""

    def __init__(self, timezone: str):
        super().__init__(f"Unknown timezone: {timezone!r}")
        self.timezone = timezone


class ChannelUnavailable(BirthdayError):
    """The announcement channel is missing, not a text channel, or not postable."""

    def __init__(self, channel_id: int, reason: str = "not found"):
        super().__init__(f"Announcement channel {channel_id} unavailable: {reason}")
        self.channel_id = channel_id
        self.reason = reason


class MemberNotFound(BirthdayError):
    """The member is not present in any known guild."""

    def __init__(self, discord_id: int):
        super().__init__(f"Member {discord_id} not found in any guild")
        self.discord_id = discord_id


class RoleOperationFailed(BirthdayError):
    """Granting or revoking the birthday role failed."""


class PersistenceFailure(BirthdayError):
    """The birthday store could not be read or updated."""
