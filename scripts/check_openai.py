#!/usr/bin/env python3
"""Check the OpenAI connection and the quiz prompt contract against the configured model."""

from gainbrain.config import settings
from gainbrain.errors import GenerationFailure
from gainbrain.parsing import is_well_formed
from gainbrain.services.llm import LLMService


def check(topic: str = "Photosynthesis"):
    llm = LLMService()
    print(f"=== Model: {settings.OPENAI_MODEL} ===")

    # Test 1: question generation
    print("\n=== Question ===")
    try:
        question = llm.generate_question(topic)
    except GenerationFailure as e:
        print(f"  ✗ {str(e)[:80]}")
        return
    print(f"  ✓ {question}")

    # Test 2: raw evaluation format (before any repair)
    print("\n=== Evaluation format ===")
    from gainbrain.prompts import EVALUATE

    raw = llm.complete(EVALUATE.format(topic=topic, question=question), "I don't know")
    status = "✓ well-formed" if is_well_formed(raw) else "✗ malformed (would be repaired)"
    print(f"  {status}\n{raw}")

    # Test 3: full evaluation
    print("\n=== Parsed evaluation ===")
    result = llm.evaluate_answer(question, "I don't know", topic)
    print(f"  score={result.score} correct={result.correct_answer[:60]!r}")
    print(f"  next={result.next_question[:60]!r}")


if __name__ == "__main__":
    check()
