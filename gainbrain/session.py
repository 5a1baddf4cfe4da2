"""Quiz session state machine.

Every inbound event goes through ``QuizSession.handle``. The user's phase is
derived from what is persisted (active topic, pending topic, last question),
so the store is the only source of truth; nothing about a user is cached here
except the lock that serializes their events.
"""

import asyncio
import logging
from typing import Optional

import httpx

from gainbrain.errors import GenerationFailure, InvalidInput, PersistenceFailure
from gainbrain.models import (
    AnswerRecord,
    ButtonAction,
    EvaluationResult,
    EventKind,
    InboundEvent,
    QuizPhase,
    Reply,
    UserQuizState,
)
from gainbrain.services.stats import breakdown_by_topic, summarize

log = logging.getLogger(__name__)

WELCOME = (
    "👋 Hi! I'm GainBrain, a quiz bot.\n\n"
    "Send me any topic you want to practice and I'll ask you questions about it. "
    "Answer in your own words and I'll score you from 0 to 10.\n\n"
    "Use /help to see all commands."
)
HELP = (
    "📚 GainBrain Help\n\n"
    "Commands:\n"
    "/start - Start the bot\n"
    "/topic <topic> - Switch to a new topic\n"
    "/profile - Your score and statistics\n"
    "/help - Show this help message\n\n"
    "💡 Tip: once a topic is set, every message you send is treated as your answer."
)
TOPIC_USAGE = "❌ Please provide a topic:\n/topic <topic>"
FAILURE = "❌ Could not process your message. Please try again."
CONFIRM_FIRST = "⚠️ Please confirm or cancel the topic change using the buttons first."
NOTHING_TO_CONFIRM = "There is no topic change waiting for confirmation."
CANCELLED = "❎ Topic change cancelled. Send me a topic you want to be quizzed on."
CLEARED = "🧹 Your statistics were cleared. Send me a topic to start again."
UNKNOWN_ACTION = "❓ Unknown action."
UNKNOWN_COMMAND = "❓ Unknown command. Use /help to see what I can do."


def require_topic(text: str) -> str:
    topic = (text or "").strip()
    if not topic:
        raise InvalidInput("Topic text is empty")
    return topic


def split_command(payload: str) -> tuple[str, str]:
    """Split ``"topic Linear algebra"`` into ``("topic", "Linear algebra")``."""
    name, _, arg = payload.strip().lstrip("/").partition(" ")
    # Telegram appends the bot name in groups: /topic@GainBrainBot
    return name.split("@", 1)[0].lower(), arg.strip()


def format_evaluation(result: EvaluationResult) -> str:
    lines = [f"⭐ Score: {result.score}/10"]
    if result.correct_answer:
        lines.append(f"✅ Correct answer: {result.correct_answer}")
    if result.next_question:
        lines.append(f"\n❓ Next question: {result.next_question}")
    else:
        lines.append("\nSend any message to get a new question.")
    return "\n".join(lines)


class QuizSession:
    """Drives one user's quiz flow per event, serialized per user."""

    def __init__(self, llm, db, exporter=None):
        self.llm = llm
        self.db = db
        self.exporter = exporter
        self._locks: dict[str, asyncio.Lock] = {}
        # Events holding or waiting on each lock; the lock is dropped at zero.
        self._in_flight: dict[str, int] = {}
        self._exports: set[asyncio.Task] = set()

    def _acquire_slot(self, username: str) -> asyncio.Lock:
        lock = self._locks.get(username)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[username] = lock
        self._in_flight[username] = self._in_flight.get(username, 0) + 1
        return lock

    def _release_slot(self, username: str) -> None:
        self._in_flight[username] -= 1
        if self._in_flight[username] == 0:
            del self._in_flight[username]
            del self._locks[username]

    async def handle(self, event: InboundEvent) -> Reply:
        """Process one event and return the reply for the user."""
        user = event.user_id
        lock = self._acquire_slot(user)
        try:
            async with lock:
                log.info(f"[{user}] {event.kind.value}: {event.payload[:60]}")
                if event.kind == EventKind.TEXT:
                    return await self.on_text(user, event.payload)
                if event.kind == EventKind.COMMAND:
                    return await self.on_command(user, event.payload)
                return await self.on_callback(user, event.payload)
        finally:
            self._release_slot(user)

    async def flush(self) -> None:
        """Wait for answer exports still running in the background."""
        if self._exports:
            await asyncio.gather(*self._exports, return_exceptions=True)

    async def on_command(self, user: str, payload: str) -> Reply:
        name, arg = split_command(payload)
        if name == "start":
            return await self.start(user)
        if name == "help":
            return Reply(text=HELP)
        if name == "topic":
            return await self.change_topic(user, arg)
        if name in ("profile", "stats"):
            return await self.profile(user)
        return Reply(text=UNKNOWN_COMMAND)

    async def on_callback(self, user: str, payload: str) -> Reply:
        try:
            action = ButtonAction(payload)
        except ValueError:
            log.warning(f"[{user}] Unknown callback data: {payload!r}")
            return Reply(text=UNKNOWN_ACTION)

        if action == ButtonAction.DETAILED_STATS:
            return await self.detailed_stats(user)
        if action == ButtonAction.CHANGE_TOPIC:
            return await self.change_topic(user, "")
        if action == ButtonAction.CLEAR_STATS:
            return await self.clear_stats(user)
        if action == ButtonAction.CONFIRM_TOPIC:
            return await self.confirm_topic(user)
        return await self.cancel_topic(user)

    async def on_text(self, user: str, text: str) -> Reply:
        text = text.strip()
        state = await self._read_state(user)
        phase = state.phase

        # A pending confirmation always wins over answer evaluation.
        if phase == QuizPhase.AWAITING_TOPIC_CONFIRMATION:
            return Reply(
                text=CONFIRM_FIRST,
                buttons=[ButtonAction.CONFIRM_TOPIC, ButtonAction.CANCEL_TOPIC],
            )
        if phase == QuizPhase.NO_TOPIC:
            return await self.set_topic(user, text)
        if phase == QuizPhase.AWAITING_FIRST_QUESTION:
            return await self.ask_question(user, state.active_topic)
        return await self.evaluate(user, state, text)

    async def start(self, user: str) -> Reply:
        state = await self._read_state(user)
        if state.active_topic:
            return Reply(
                text=f"{WELCOME}\n\n📚 Current topic: {state.active_topic}. Just keep answering!"
            )
        return Reply(text=WELCOME)

    async def set_topic(self, user: str, text: str) -> Reply:
        """Make *text* the active topic and ask the first question about it."""
        try:
            topic = require_topic(text)
        except InvalidInput:
            return Reply(text=TOPIC_USAGE)

        try:
            question = await asyncio.to_thread(self.llm.generate_question, topic)
        except GenerationFailure as e:
            log.error(f"[{user}] Question generation failed for {topic!r}: {e}")
            return Reply(text=FAILURE)

        await self._write(self.db.set_topic, user, topic)
        await self._write(self.db.set_pending_topic, user, None)
        await self._write(self.db.set_last_question, user, question)
        log.info(f"[{user}] Topic set: {topic}")
        return Reply(text=f"📚 Topic: {topic}\n\n❓ {question}")

    async def ask_question(self, user: str, topic: str, intro: str = "") -> Reply:
        """Ask a fresh question on the already active *topic*."""
        try:
            question = await asyncio.to_thread(self.llm.generate_question, topic)
        except GenerationFailure as e:
            log.error(f"[{user}] Question generation failed for {topic!r}: {e}")
            return Reply(text=f"{intro}{FAILURE}")

        await self._write(self.db.set_last_question, user, question)
        return Reply(text=f"{intro}❓ {question}")

    async def evaluate(self, user: str, state: UserQuizState, answer: str) -> Reply:
        """Grade *answer* against the last question and move on to the next one."""
        topic = state.active_topic
        question = state.last_question
        try:
            result = await asyncio.to_thread(self.llm.evaluate_answer, question, answer, topic)
        except GenerationFailure as e:
            log.error(f"[{user}] Evaluation failed: {e}")
            return Reply(text=FAILURE)

        record = AnswerRecord(
            username=user,
            topic=topic,
            question=question,
            user_answer=answer,
            correct_answer=result.correct_answer,
            score=result.score,
        )
        await self._write(self.db.append_answer, user, record)
        await self._write(self.db.set_last_question, user, result.next_question or None)
        log.info(f"[{user}] Scored {result.score}/10 on {topic!r}")
        self._schedule_export(record)
        return Reply(text=format_evaluation(result))

    async def change_topic(self, user: str, text: str) -> Reply:
        """Request a topic switch; needs confirmation when another topic is active."""
        try:
            topic = require_topic(text)
        except InvalidInput:
            return Reply(text=TOPIC_USAGE)

        state = await self._read_state(user)
        if not state.active_topic or topic == state.active_topic:
            return await self.set_topic(user, topic)

        await self._write(self.db.set_pending_topic, user, topic)
        return Reply(
            text=(
                f"🔄 Switch topic from \"{state.active_topic}\" to \"{topic}\"?\n"
                "Your answer history will be kept."
            ),
            buttons=[ButtonAction.CONFIRM_TOPIC, ButtonAction.CANCEL_TOPIC],
        )

    async def confirm_topic(self, user: str) -> Reply:
        state = await self._read_state(user)
        topic = state.pending_topic
        if not topic:
            return Reply(text=NOTHING_TO_CONFIRM)

        # Committed before the question call: a failed call leaves the new topic
        # without a question, and the next message asks for one.
        await self._write(self.db.set_topic, user, topic)
        await self._write(self.db.set_last_question, user, None)
        await self._write(self.db.set_pending_topic, user, None)
        log.info(f"[{user}] Topic changed: {state.active_topic!r} -> {topic!r}")
        return await self.ask_question(user, topic, intro=f"📚 New topic: {topic}\n\n")

    async def cancel_topic(self, user: str) -> Reply:
        state = await self._read_state(user)
        if not state.pending_topic:
            return Reply(text=NOTHING_TO_CONFIRM)

        await self._write(self.db.set_pending_topic, user, None)
        await self._write(self.db.set_topic, user, None)
        await self._write(self.db.set_last_question, user, None)
        return Reply(text=CANCELLED)

    async def clear_stats(self, user: str) -> Reply:
        await self._write(self.db.clear_answers, user)
        await self._write(self.db.set_topic, user, None)
        await self._write(self.db.set_pending_topic, user, None)
        await self._write(self.db.set_last_question, user, None)
        log.info(f"[{user}] Statistics cleared")
        return Reply(text=CLEARED)

    async def profile(self, user: str) -> Reply:
        """Read-only summary of the user's progress."""
        state = await self._read_state(user)
        summary = summarize(state.answers)
        text = (
            f"👤 Profile: {user}\n"
            f"📚 Topic: {state.active_topic or 'none'}\n"
            f"📝 Answers: {summary.total}\n"
            f"⭐ Average score: {summary.average_score:.1f}/10"
        )
        return Reply(
            text=text,
            buttons=[
                ButtonAction.DETAILED_STATS,
                ButtonAction.CHANGE_TOPIC,
                ButtonAction.CLEAR_STATS,
            ],
        )

    async def detailed_stats(self, user: str) -> Reply:
        state = await self._read_state(user)
        rows = breakdown_by_topic(state.answers)
        if not rows:
            return Reply(text="📊 No answers yet. Send me a topic to start!")
        lines = ["📊 Average score by topic:"]
        lines.extend(f"• {topic}: {avg:.1f}/10" for topic, avg in rows)
        return Reply(text="\n".join(lines))

    async def _read_state(self, user: str) -> UserQuizState:
        try:
            return await asyncio.to_thread(self.db.get_state, user)
        except PersistenceFailure:
            log.warning(f"[{user}] Could not read state, using empty defaults", exc_info=True)
            return UserQuizState(username=user)

    async def _write(self, fn, *args) -> None:
        try:
            await asyncio.to_thread(fn, *args)
        except PersistenceFailure:
            log.warning(f"[{args[0]}] {fn.__name__} failed, continuing", exc_info=True)

    def _schedule_export(self, record: AnswerRecord) -> None:
        """Export off the reply path; the task is kept until done so it is not collected."""
        if self.exporter is None:
            return
        task = asyncio.create_task(self._export(record))
        self._exports.add(task)
        task.add_done_callback(self._exports.discard)

    async def _export(self, record: AnswerRecord) -> Optional[dict]:
        try:
            page = await asyncio.to_thread(self.exporter.export, record)
        except httpx.HTTPError as e:
            log.error(f"[{record.username}] Notion export failed: {e}")
            return None
        log.info(f"[{record.username}] Exported answer to Notion")
        return page
