"""Field extraction from free-form model responses."""

from __future__ import annotations

import re
from typing import Optional

from gainbrain.models import EvaluationResult

_LABELS = r"(?:SCORE:|CORRECT ANSWER:|NEXT QUESTION:|\Z)"
_FLAGS = re.IGNORECASE | re.DOTALL

SCORE_LABEL = re.compile(r"SCORE:", re.IGNORECASE)
CORRECT_LABEL = re.compile(r"CORRECT ANSWER:", re.IGNORECASE)
SCORE_VALUE = re.compile(r"SCORE:\s*(-?\d+)", re.IGNORECASE)
CORRECT_VALUE = re.compile(r"CORRECT ANSWER:\s*(.*?)\s*(?=" + _LABELS + ")", _FLAGS)
NEXT_VALUE = re.compile(r"NEXT QUESTION:\s*(.*?)\s*(?=" + _LABELS + ")", _FLAGS)
# Only the first line after the label; anything the model adds below is dropped.
QUESTION_VALUE = re.compile(r"(?<!NEXT )QUESTION:\s*(.+)", re.IGNORECASE)


def extract_field(pattern: re.Pattern[str], text: str) -> Optional[str]:
    """Return the first capture group of *pattern* in *text*, trimmed, or None if absent."""
    match = pattern.search(text or "")
    if not match:
        return None
    return match.group(1).strip()


def extract_score(text: str) -> Optional[int]:
    value = extract_field(SCORE_VALUE, text)
    if value is None:
        return None
    return int(value)


def is_well_formed(text: str) -> bool:
    """True when both the SCORE and CORRECT ANSWER labels are present."""
    text = text or ""
    return bool(SCORE_LABEL.search(text) and CORRECT_LABEL.search(text))


def parse_evaluation(text: str) -> EvaluationResult:
    """Parse an evaluation response, falling back to defaults for missing fields.

    A missing or non-numeric score becomes 0; missing text fields become "".
    """
    score = extract_score(text)
    return EvaluationResult(
        score=score if score is not None else 0,
        correct_answer=extract_field(CORRECT_VALUE, text) or "",
        next_question=extract_field(NEXT_VALUE, text) or "",
    )


def parse_question(text: str) -> str:
    """Return the line after ``QUESTION:``, or the whole trimmed response when the label is absent."""
    question = extract_field(QUESTION_VALUE, text)
    if question:
        return question
    return (text or "").strip()
