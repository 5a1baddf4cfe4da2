"""Pydantic models for type safety."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizPhase(str, Enum):
    """Where a user is in the quiz flow, derived from their stored state."""
    NO_TOPIC = "no_topic"
    AWAITING_FIRST_QUESTION = "awaiting_first_question"
    AWAITING_ANSWER = "awaiting_answer"
    AWAITING_TOPIC_CONFIRMATION = "awaiting_topic_confirmation"


class AnswerRecord(BaseModel):
    """One evaluated answer. Never updated, only appended or bulk-deleted."""
    username: str
    topic: str = ""
    question: str
    user_answer: str
    correct_answer: str = ""
    score: int = 0  # nominally 0-10
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}


class UserQuizState(BaseModel):
    """Per-user quiz state, keyed by username."""
    username: str
    active_topic: Optional[str] = None
    pending_topic: Optional[str] = None  # set while a topic change awaits yes/no
    last_question: Optional[str] = None
    answers: List[AnswerRecord] = []

    @property
    def phase(self) -> QuizPhase:
        if self.pending_topic:
            return QuizPhase.AWAITING_TOPIC_CONFIRMATION
        if not self.active_topic:
            return QuizPhase.NO_TOPIC
        if not self.last_question:
            return QuizPhase.AWAITING_FIRST_QUESTION
        return QuizPhase.AWAITING_ANSWER


class EvaluationResult(BaseModel):
    """Parsed evaluation of one answer."""
    score: int = 0
    correct_answer: str = ""
    next_question: str = ""


class StatsSummary(BaseModel):
    total: int = 0
    average_score: float = 0.0


class EventKind(str, Enum):
    TEXT = "text"
    COMMAND = "command"
    CALLBACK = "callback"


class InboundEvent(BaseModel):
    """Transport-neutral user event.

    For commands the payload is the command line without the leading slash,
    e.g. ``"topic Algebra"``; for callbacks it is the button's action value.
    """
    user_id: str
    kind: EventKind
    payload: str = ""


class ButtonAction(str, Enum):
    DETAILED_STATS = "detailed_stats"
    CHANGE_TOPIC = "change_topic"
    CLEAR_STATS = "clear_stats"
    CONFIRM_TOPIC = "confirm_topic"
    CANCEL_TOPIC = "cancel_topic"


class Reply(BaseModel):
    """Outbound message for a single user."""
    text: str
    buttons: List[ButtonAction] = []
