"""Tests for model response parsing."""

from gainbrain.parsing import is_well_formed, parse_evaluation, parse_question


def test_parse_evaluation_extracts_all_fields():
    text = (
        "SCORE: 7\n"
        "CORRECT ANSWER: Paris\n"
        "NEXT QUESTION: What is the capital of Spain?"
    )

    result = parse_evaluation(text)

    assert result.score == 7
    assert result.correct_answer == "Paris"
    assert result.next_question == "What is the capital of Spain?"


def test_parse_evaluation_labels_are_case_insensitive_and_inline():
    text = "score: 9 correct answer: Chlorophyll next question: Where does photosynthesis happen?"

    result = parse_evaluation(text)

    assert result.score == 9
    assert result.correct_answer == "Chlorophyll"
    assert result.next_question == "Where does photosynthesis happen?"


def test_parse_evaluation_keeps_multiline_answer():
    text = (
        "SCORE: 4/10\n"
        "CORRECT ANSWER: Light reactions make ATP.\n"
        "The Calvin cycle fixes CO2.\n"
        "NEXT QUESTION: What is RuBisCO?"
    )

    result = parse_evaluation(text)

    assert result.score == 4
    assert result.correct_answer == "Light reactions make ATP.\nThe Calvin cycle fixes CO2."


def test_parse_evaluation_defaults_for_missing_fields():
    result = parse_evaluation("Great answer, well done!")

    assert result.score == 0
    assert result.correct_answer == ""
    assert result.next_question == ""


def test_parse_evaluation_non_numeric_score_defaults_to_zero():
    result = parse_evaluation("SCORE: seven\nCORRECT ANSWER: Paris")

    assert result.score == 0
    assert result.correct_answer == "Paris"


def test_is_well_formed_requires_score_and_correct_answer():
    assert is_well_formed("Score: 3\nCorrect Answer: 42")
    assert not is_well_formed("SCORE: 3\nNEXT QUESTION: Why?")
    assert not is_well_formed("CORRECT ANSWER: 42")
    assert not is_well_formed("")


def test_parse_question_strips_label():
    assert parse_question("QUESTION: What pigment absorbs light?") == "What pigment absorbs light?"
    assert parse_question("Sure!\nQuestion:  What is ATP? ") == "What is ATP?"


def test_parse_question_falls_back_to_full_text():
    assert parse_question("  What is a chloroplast?\n") == "What is a chloroplast?"


def test_parse_question_drops_text_after_question_line():
    text = "QUESTION: What is ATP?\n\nGood luck, take your time!"

    assert parse_question(text) == "What is ATP?"
