from __future__ import annotations

import random

import pytest

from assessment_app.core.question_parser import (
    QuestionImportError,
    load_questions_from_file,
    match_answer_to_option,
    parse_question_text,
    parse_questions,
)


def test_numbered_question_with_answer_letter():
    text = "1. What is 2+2?\nA. 2\nB. 3\nC. 4\nD. 5\nAnswer: C"

    questions = parse_questions(text, "aptitude")

    assert len(questions) == 1
    question = questions[0]
    assert question.text == "What is 2+2?"
    assert question.options == ("2", "3", "4", "5")
    assert question.correct_answer == "4"
    assert question.category == "aptitude"
    assert question.topic == "general"
    assert question.level == "medium"


def test_question_prefix_and_parenthesis_options():
    text = (
        "Question 1: What is the capital of France?\n"
        "A) London\nB) Paris\nC) Berlin\nD) Rome\n"
        "Correct: B"
    )

    questions = parse_questions(text, "gk")

    assert [q.correct_answer for q in questions] == ["Paris"]


def test_short_q_prefix_with_lowercase_options_and_ans():
    text = (
        "Q1. Who invented the light bulb?\n"
        "a) Tesla\nb) Edison\nc) Einstein\nd) Newton\n"
        "Ans: B"
    )

    questions = parse_questions(text, "gk")

    assert questions[0].options == ("Tesla", "Edison", "Einstein", "Newton")
    assert questions[0].correct_answer == "Edison"


def test_bare_letter_after_four_options():
    text = "1) What is Python?\nA. A snake\nB. A programming language\nC. A movie\nD. A game\nB"

    questions = parse_questions(text, "tech")

    assert questions[0].correct_answer == "A programming language"


def test_lowercase_answer_letter():
    text = (
        "1. What does HTML stand for?\n"
        "a. Hyper Text Markup Language\n"
        "b. High Tech Modern Language\n"
        "c. Home Tool Markup Language\n"
        "d. None of the above\n"
        "answer: a"
    )

    questions = parse_questions(text, "tech")

    assert questions[0].correct_answer == "Hyper Text Markup Language"


def test_parenthesised_answer_letter():
    text = "1. What is 3 times 3?\nA. 6\nB. 9\nC. 12\nD. 3\nCorrect Answer: (B)"

    assert parse_questions(text, "aptitude")[0].correct_answer == "9"


def test_free_text_answer_matches_option_exactly():
    text = (
        "1. Which planet is known as the Red Planet?\n"
        "A. Venus\nB. Mars\nC. Jupiter\nD. Saturn\n"
        "Answer: Mars"
    )

    assert parse_questions(text, "science")[0].correct_answer == "Mars"


def test_answer_text_starting_with_option_letter_is_not_a_letter():
    text = (
        "1. What is the capital of India?\n"
        "A. Mumbai\nB. Kolkata\nC. Chennai\nD. Delhi\n"
        "Answer: Delhi"
    )

    assert parse_questions(text, "gk")[0].correct_answer == "Delhi"


def test_free_text_answer_contained_in_sentence():
    text = (
        "1. Which is the largest planet?\n"
        "A. Venus\nB. Mars\nC. Jupiter\nD. Saturn\n"
        "Answer: The answer is Jupiter"
    )

    assert parse_questions(text, "science")[0].correct_answer == "Jupiter"


def test_free_text_answer_without_options_synthesises_four():
    text = (
        "=== TOPIC: history, LEVEL: medium ===\n"
        "1. In which year did World War II end?\n"
        "Answer: 1945"
    )

    questions = parse_questions(text, "gk", rng=random.Random(7))

    assert len(questions) == 1
    question = questions[0]
    assert question.correct_answer == "1945"
    assert sorted(question.options) == ["1935", "1944", "1945", "1946"]
    assert question.topic == "history"


def test_section_markers_set_topic_and_level():
    text = (
        "=== TOPIC: Percentages, LEVEL: Easy ===\n"
        "1. What is 10% of 50?\nA. 5\nB. 10\nC. 15\nD. 20\nAnswer: A\n"
        "=== TOPIC: Ratios, LEVEL: Hard ===\n"
        "2. Split 20 in the ratio 1:3, smaller part?\nA. 5\nB. 10\nC. 15\nD. 20\nAnswer: A"
    )

    questions = parse_questions(text, "aptitude")

    assert [(q.topic, q.level) for q in questions] == [
        ("percentages", "easy"),
        ("ratios", "hard"),
    ]


def test_continuation_lines_and_bullets_join_question_text():
    text = (
        "=== TOPIC: logic, LEVEL: easy ===\n"
        "1. Read the statements below:\n"
        "- Statement one is true\n"
        "• Statement two is false\n"
        "Which one is correct overall?\n"
        "A. Only one\nB. Only two\nC. Both\nD. Neither\n"
        "Answer: A"
    )

    question = parse_questions(text, "aptitude")[0]

    assert question.text == (
        "Read the statements below:\n"
        "• Statement one is true\n"
        "• Statement two is false\n"
        "Which one is correct overall?"
    )
    assert question.correct_answer == "Only one"


def test_unnumbered_follow_up_question_after_answer():
    text = (
        "1. What is the capital of Japan?\n"
        "A. Tokyo\nB. Osaka\nC. Kyoto\nD. Nagoya\nAnswer: A\n"
        "What is the largest city in Japan by population?\n"
        "A. Tokyo\nB. Osaka\nC. Yokohama\nD. Sapporo\nAnswer: A"
    )

    questions = parse_questions(text, "gk")

    assert len(questions) == 2
    assert questions[1].text == "What is the largest city in Japan by population?"
    assert questions[1].options == ("Tokyo", "Osaka", "Yokohama", "Sapporo")


def test_explanation_is_attached():
    text = "1. What is 2+2?\nA. 2\nB. 3\nC. 4\nD. 5\nAnswer: C\nExplanation: two plus two is four"

    assert parse_questions(text, "aptitude")[0].explanation == "two plus two is four"


def test_fifth_option_is_ignored():
    text = "1. What is 2+2?\nA. 2\nB. 3\nC. 4\nD. 5\nA. 6\nAnswer: C"

    question = parse_questions(text, "aptitude")[0]

    assert question.options == ("2", "3", "4", "5")


def test_question_with_two_options_is_discarded():
    text = "1. What is 2+2?\nA. 2\nB. 4\nAnswer: B"

    parsed = parse_question_text(text, "aptitude")

    assert parsed.questions == []
    assert parsed.discarded_count == 1


def test_question_without_answer_is_discarded_but_others_survive():
    text = (
        "1. What is 2+2?\nA. 2\nB. 3\nC. 4\nD. 5\n"
        "2. What is 3+3?\nA. 5\nB. 6\nC. 7\nD. 8\nAnswer: B"
    )

    parsed = parse_question_text(text, "aptitude")

    assert [q.text for q in parsed.questions] == ["What is 3+3?"]
    assert parsed.discarded_count == 1


def test_unmatched_free_text_answer_discards_question():
    text = (
        "1. What do plants need to make food?\n"
        "A. Photosynthesis in green plants\nB. Respiration in animals\n"
        "C. Digestion in humans\nD. Transpiration in leaves\n"
        "Answer: renewable energy sources today"
    )

    parsed = parse_question_text(text, "science")

    assert parsed.questions == []
    assert parsed.discarded_count == 1


def test_short_question_text_is_discarded():
    text = "1. Hi?\nA. 1\nB. 2\nC. 3\nD. 4\nAnswer: A"

    assert parse_questions(text, "aptitude") == []


def test_missing_category_yields_nothing():
    text = "1. What is 2+2?\nA. 2\nB. 3\nC. 4\nD. 5\nAnswer: C"

    assert parse_questions(text, "  ") == []


def test_markers_required_when_no_default_topic():
    text = "1. What is 2+2?\nA. 2\nB. 3\nC. 4\nD. 5\nAnswer: C"

    parsed = parse_question_text(text, "aptitude", default_topic=None, default_level=None)

    assert parsed.questions == []
    assert parsed.discarded_count == 1


@pytest.mark.parametrize("text", ["", "   \n\n", "hello world\nthis is not a quiz"])
def test_unrecognisable_text_returns_empty_list(text):
    assert parse_questions(text, "aptitude") == []


def test_crlf_line_endings_are_accepted():
    text = "1. What is 2+2?\r\nA. 2\r\nB. 3\r\nC. 4\r\nD. 5\r\nAnswer: C\r\n"

    assert parse_questions(text, "aptitude")[0].correct_answer == "4"


def test_match_answer_by_word_overlap():
    options = [
        "Photosynthesis in green plants",
        "Respiration in animals",
        "Digestion in humans",
        "Transpiration in leaves",
    ]

    assert (
        match_answer_to_option("green plants photosynthesis process", options)
        == "Photosynthesis in green plants"
    )


def test_match_answer_at_overlap_threshold():
    options = ["green plants", "blue whales", "red stars", "tall trees"]

    assert match_answer_to_option("plants growing", options) == "green plants"


def test_match_answer_returns_none_for_blank():
    assert match_answer_to_option("   ", ["a", "b"]) is None


def test_load_questions_from_file(tmp_path):
    path = tmp_path / "questions.txt"
    path.write_text("1. What is 2+2?\nA. 2\nB. 3\nC. 4\nD. 5\nAnswer: C\n", encoding="utf-8")

    imported = load_questions_from_file(path, "aptitude")

    assert imported.source_path == path
    assert len(imported.questions) == 1


def test_load_questions_from_file_without_questions(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("nothing to see here\n", encoding="utf-8")

    with pytest.raises(QuestionImportError):
        load_questions_from_file(path, "aptitude")
