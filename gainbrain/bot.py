"""
Telegram Bot adapter for GainBrain.

Translates Telegram updates into transport-neutral events for the quiz
session and sends the session's replies back, with inline buttons.
"""

from __future__ import annotations

import logging
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update, User
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from gainbrain.models import ButtonAction, EventKind, InboundEvent, Reply
from gainbrain.session import QuizSession

log = logging.getLogger(__name__)

BUTTON_LABELS: dict[ButtonAction, str] = {
    ButtonAction.DETAILED_STATS: "📊 Detailed stats",
    ButtonAction.CHANGE_TOPIC: "🔄 Change topic",
    ButtonAction.CLEAR_STATS: "🧹 Clear stats",
    ButtonAction.CONFIRM_TOPIC: "✅ Yes, switch",
    ButtonAction.CANCEL_TOPIC: "❌ Cancel",
}

COMMANDS = ("start", "help", "topic", "profile")


def user_key(user: Optional[User]) -> str:
    """Stable identity for a Telegram user: username, else display name, else id."""
    if user is None:
        return "unknown"
    if user.username:
        return user.username
    display = f"{user.first_name or ''} {user.last_name or ''}".strip()
    return display or str(user.id)


def build_keyboard(reply: Reply) -> Optional[InlineKeyboardMarkup]:
    if not reply.buttons:
        return None
    keyboard = [
        [InlineKeyboardButton(BUTTON_LABELS[action], callback_data=action.value)]
        for action in reply.buttons
    ]
    return InlineKeyboardMarkup(keyboard)


class TelegramQuizBot:
    """Telegram bot front end for the quiz session."""

    def __init__(self, token: str, session: QuizSession):
        """
        Initialize the Telegram quiz bot.

        Args:
            token: Telegram bot token
            session: Quiz session that handles every user event
        """
        self.session = session
        # Different users run in parallel; the session serializes each user.
        self.application = (
            Application.builder()
            .token(token)
            .concurrent_updates(True)
            .post_shutdown(self.shutdown)
            .build()
        )

        for name in COMMANDS:
            self.application.add_handler(CommandHandler(name, self.command))
        self.application.add_handler(CallbackQueryHandler(self.button_callback))
        self.application.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self.text_message)
        )
        self.application.add_error_handler(self.error_handler)

    async def send_reply(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE, reply: Reply
    ) -> None:
        markup = build_keyboard(reply)
        message = update.effective_message
        if message is not None:
            await message.reply_text(reply.text, reply_markup=markup)
            return
        # Button pressed on a message the bot can no longer access.
        chat = update.effective_chat
        chat_id = chat.id if chat is not None else update.effective_user.id
        await context.bot.send_message(chat_id=chat_id, text=reply.text, reply_markup=markup)

    async def dispatch(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
        kind: EventKind,
        payload: str,
    ) -> None:
        event = InboundEvent(
            user_id=user_key(update.effective_user), kind=kind, payload=payload
        )
        reply = await self.session.handle(event)
        await self.send_reply(update, context, reply)

    async def command(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /start, /help, /topic and /profile."""
        await self.dispatch(update, context, EventKind.COMMAND, update.effective_message.text or "")

    async def text_message(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle plain text: a topic, an answer, or a request for a question."""
        await self.dispatch(update, context, EventKind.TEXT, update.effective_message.text or "")

    async def button_callback(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle inline button presses."""
        query = update.callback_query
        await query.answer()
        await self.dispatch(update, context, EventKind.CALLBACK, query.data or "")

    async def error_handler(
        self, update: object, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        log.error("Unhandled error while processing update", exc_info=context.error)

    async def shutdown(self, application: Application) -> None:
        """Let background answer exports finish before the process exits."""
        await self.session.flush()

    def run(self) -> None:
        """Start the bot."""
        log.info("Starting Telegram bot...")
        self.application.run_polling(allowed_updates=Update.ALL_TYPES)
