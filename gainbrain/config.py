"""Configuration from .env file."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Both are checked in main() before the bot connects.
    TELEGRAM_BOT_TOKEN: str = ""
    OPENAI_API_KEY: str = ""

    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT: float = 30.0  # seconds, expiry counts as a generation failure
    # No client retries, so one call is bounded by OPENAI_TIMEOUT.
    OPENAI_MAX_RETRIES: int = 0
    DATA_DIR: str = "data"
    LOG_LEVEL: str = "INFO"

    # Optional: mirror every evaluated answer into a Notion database.
    NOTION_TOKEN: Optional[str] = None
    NOTION_DATABASE_ID: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
