#!/usr/bin/env python3
"""GainBrain quiz bot - process entry point.

Usage:
    python -m gainbrain.main

All configuration comes from environment variables or a .env file
(see gainbrain/config.py).
"""

import logging

from gainbrain.bot import TelegramQuizBot
from gainbrain.config import settings
from gainbrain.services.database import DatabaseService
from gainbrain.services.llm import LLMService
from gainbrain.services.notion import NotionExporter
from gainbrain.session import QuizSession

log = logging.getLogger(__name__)


def build_session() -> QuizSession:
    """Wire the quiz session to its collaborators from settings."""
    exporter = None
    if settings.NOTION_TOKEN and settings.NOTION_DATABASE_ID:
        exporter = NotionExporter(settings.NOTION_TOKEN, settings.NOTION_DATABASE_ID)
        log.info("Notion export enabled")
    return QuizSession(
        llm=LLMService(),
        db=DatabaseService(data_dir=settings.DATA_DIR),
        exporter=exporter,
    )


def main():
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for name in ("TELEGRAM_BOT_TOKEN", "OPENAI_API_KEY"):
        if not getattr(settings, name):
            raise ValueError(f"{name} environment variable not set")

    log.info(f"Config: model={settings.OPENAI_MODEL}, data_dir={settings.DATA_DIR}")
    bot = TelegramQuizBot(settings.TELEGRAM_BOT_TOKEN, build_session())
    bot.run()


if __name__ == "__main__":
    main()
