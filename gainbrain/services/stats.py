"""Answer history summarization."""

from __future__ import annotations

from typing import Iterable

from gainbrain.models import AnswerRecord, StatsSummary

UNKNOWN_TOPIC = "Unknown"


def summarize(records: Iterable[AnswerRecord]) -> StatsSummary:
    """Count answers and average their scores. Empty history averages to 0."""
    scores = [record.score for record in records]
    if not scores:
        return StatsSummary(total=0, average_score=0.0)
    return StatsSummary(total=len(scores), average_score=sum(scores) / len(scores))


def breakdown_by_topic(records: Iterable[AnswerRecord]) -> list[tuple[str, float]]:
    """Average score per topic, in order of each topic's first appearance."""
    groups: dict[str, list[int]] = {}
    for record in records:
        topic = record.topic or UNKNOWN_TOPIC
        groups.setdefault(topic, []).append(record.score)
    return [(topic, sum(scores) / len(scores)) for topic, scores in groups.items()]
