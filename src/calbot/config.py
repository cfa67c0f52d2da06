from functools import lru_cache
from typing import Dict

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from calbot.errors import ConfigurationError


class ChatCalendarSettings(BaseModel):
    """Calendar bound to one group chat."""
    calendar_id: str
    timezone: str


class Settings(BaseSettings):
    APP_ENV: str = "development"
    APP_PORT: int = 8005
    LOG_LEVEL: str = "INFO"

    # LLM Configuration (can be changed easily)
    LLM_API_KEY: str = ""
    LLM_PROVIDER: str = "openai"  # openai, anthropic, google, etc.
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.0
    LLM_TIMEOUT: float = 60.0

    # Agent loop
    AGENT_MAX_ROUND_TRIPS: int = 6

    # Google Calendar
    GOOGLE_CREDENTIALS_FILE: str = "credentials.json"
    CALENDAR_TIMEOUT: float = 15.0

    # Chat id -> {"calendar_id": ..., "timezone": ...}, as JSON in the environment
    CHAT_CALENDARS: Dict[str, ChatCalendarSettings] = {}

    BOT_NAME: str = "Lucho"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def validate_required_keys(settings: Settings = None):
    """Validate that all required settings are present"""
    settings = settings or get_settings()
    required_keys = [
        ("LLM_API_KEY", settings.LLM_API_KEY),
        ("GOOGLE_CREDENTIALS_FILE", settings.GOOGLE_CREDENTIALS_FILE),
    ]

    missing_keys = []
    for key_name, key_value in required_keys:
        if not key_value or key_value.strip() == "":
            missing_keys.append(key_name)

    if not settings.CHAT_CALENDARS:
        missing_keys.append("CHAT_CALENDARS")

    if missing_keys:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing_keys)}. "
            f"Please check your .env file."
        )

    if settings.AGENT_MAX_ROUND_TRIPS < 1:
        raise ConfigurationError("AGENT_MAX_ROUND_TRIPS must be at least 1")
