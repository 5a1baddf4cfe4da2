"""OpenAI LLM service - question generation and answer grading."""

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from gainbrain.config import settings
from gainbrain.errors import GenerationFailure
from gainbrain.models import EvaluationResult
from gainbrain.parsing import is_well_formed, parse_evaluation, parse_question
from gainbrain.prompts import EVALUATE, QUESTION, QUESTION_REQUEST, REPAIR, REPAIR_REQUEST

log = logging.getLogger(__name__)


class LLMService:
    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        self.client = client or OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT,
            max_retries=settings.OPENAI_MAX_RETRIES,
        )
        self.model = model or settings.OPENAI_MODEL

    def complete(self, system_prompt: str, user_turn: str) -> str:
        """Send one system + user turn, return the response text.

        Raises GenerationFailure when the call itself fails (including timeouts).
        """
        try:
            response = self.client.responses.create(
                model=self.model,
                instructions=system_prompt,
                input=user_turn,
            )
        except OpenAIError as e:
            raise GenerationFailure(f"{type(e).__name__}: {e}") from e
        return (response.output_text or "").strip()

    def generate_question(self, topic: str) -> str:
        """Ask for a new question on *topic*."""
        text = self.complete(QUESTION.format(topic=topic), QUESTION_REQUEST)
        question = parse_question(text)
        if not question:
            raise GenerationFailure(f"Empty question for topic {topic!r}")
        return question

    def evaluate_answer(self, question: str, answer: str, topic: str) -> EvaluationResult:
        """Grade *answer* to *question* and get the next question.

        A response missing the required labels gets exactly one repair request;
        whatever comes back from that is parsed with defaults for missing fields.
        """
        text = self.complete(EVALUATE.format(topic=topic, question=question), answer)
        if not is_well_formed(text):
            log.warning(f"Malformed evaluation for topic {topic!r}, requesting repair: {text[:80]!r}")
            text = self.complete(
                REPAIR.format(topic=topic),
                REPAIR_REQUEST.format(question=question, answer=answer),
            )
            if not is_well_formed(text):
                log.warning(f"Evaluation still malformed after repair, using defaults: {text[:80]!r}")
        return parse_evaluation(text)
