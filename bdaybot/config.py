"""Birthday bot configuration"""

import logging
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# === Path Configuration ===
PACKAGE_DIR = Path(__file__).parent
PROJECT_DIR = PACKAGE_DIR.parent
ENV_FILE = PROJECT_DIR / ".env"

# === Scheduler constants (fixed for the process lifetime) ===
POSTING_HOUR = 0  # local midnight
POLL_CADENCE = timedelta(hours=1)
STARTUP_GRACE_DELAY = 5.0  # seconds


class BotSettings(BaseSettings):
    """Birthday bot settings"""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Discord
    discord_token: str = Field(..., description="Discord bot token")
    birthday_channel_id: int = Field(..., description="Channel for birthday announcements")
    birthday_role_id: int | None = Field(
        default=None, description="Role granted for the day; unset disables the role lifecycle"
    )

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")

    # Behaviour
    api_call_delay: float = Field(
        default=0.2, ge=0, description="Pause after each role mutation (rate limit guard)"
    )
    seed_on_startup: bool = Field(default=True, description="Seed birthdays when table is empty")

    # Environment
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("birthday_role_id", mode="before")
    @classmethod
    def empty_role_is_none(cls, v: object) -> object:
        """Treat an empty BIRTHDAY_ROLE_ID as not configured"""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL starts with postgresql://"""
        if not v.startswith("postgresql://"):
            raise ValueError("DATABASE_URL must start with 'postgresql://'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper


@lru_cache
def get_settings() -> BotSettings:
    """Get cached settings instance"""
    return BotSettings()  # type: ignore[call-arg]
