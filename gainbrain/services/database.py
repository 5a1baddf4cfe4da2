"""Simple JSON-based state persistence with one file per user."""

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from gainbrain.errors import PersistenceFailure
from gainbrain.models import AnswerRecord, UserQuizState

log = logging.getLogger(__name__)


class DatabaseService:
    """Persists topic, pending topic, last question and answer history per user.

    Each user has their own file, so writes for different users never touch
    the same file. Writes for one user are not locked here; callers serialize
    them per user.
    """

    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir) / "users"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._health_check()

    def _health_check(self):
        """Verify database directory is working."""
        try:
            test_file = self.data_dir / ".health_check"
            test_file.write_text("ok")
            test_file.unlink()
            log.info(f"Database OK: {self.data_dir}")
        except OSError as e:
            raise PersistenceFailure(f"Database error: {e}") from e

    def _user_path(self, username: str) -> Path:
        """Get path to a user's state file."""
        # Readable prefix plus a hash, since display names may collide after cleanup.
        slug = re.sub(r"[^A-Za-z0-9_-]", "_", username)[:32]
        digest = hashlib.sha1(username.encode("utf-8")).hexdigest()[:10]
        return self.data_dir / f"user_{slug}_{digest}.json"

    def get_state(self, username: str) -> UserQuizState:
        """Retrieve saved state, or a fresh one for a user seen for the first time."""
        path = self._user_path(username)
        if not path.exists():
            return UserQuizState(username=username)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return UserQuizState(**data)
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
            raise PersistenceFailure(f"Cannot read state for {username!r}: {e}") from e

    def save_state(self, state: UserQuizState):
        """Persist state atomically (tmp file + replace)."""
        path = self._user_path(state.username)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(
                json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            tmp_path.replace(path)
        except OSError as e:
            raise PersistenceFailure(f"Cannot write state for {state.username!r}: {e}") from e

    def _state_for_write(self, username: str) -> UserQuizState:
        """Current state to modify, or a fresh one when the stored file is unreadable."""
        try:
            return self.get_state(username)
        except PersistenceFailure:
            log.warning(f"Discarding unreadable state for {username!r}", exc_info=True)
            return UserQuizState(username=username)

    def _update(self, username: str, **fields) -> None:
        state = self._state_for_write(username)
        self.save_state(state.model_copy(update=fields))

    def get_topic(self, username: str) -> Optional[str]:
        return self.get_state(username).active_topic

    def set_topic(self, username: str, topic: Optional[str]):
        self._update(username, active_topic=topic)

    def get_pending_topic(self, username: str) -> Optional[str]:
        return self.get_state(username).pending_topic

    def set_pending_topic(self, username: str, topic: Optional[str]):
        self._update(username, pending_topic=topic)

    def get_last_question(self, username: str) -> Optional[str]:
        return self.get_state(username).last_question

    def set_last_question(self, username: str, question: Optional[str]):
        self._update(username, last_question=question)

    def append_answer(self, username: str, record: AnswerRecord):
        state = self._state_for_write(username)
        self.save_state(state.model_copy(update={"answers": [*state.answers, record]}))

    def list_answers(self, username: str) -> list[AnswerRecord]:
        return list(self.get_state(username).answers)

    def clear_answers(self, username: str):
        """Delete the user's whole answer history."""
        self._update(username, answers=[])
