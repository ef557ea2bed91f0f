from __future__ import annotations

import math

import pytest

from assessment_app.core.services.scoring import (
    compute_percentage,
    is_correct_answer,
    normalize_timing,
    score_answers,
)
from conftest import make_question


def test_comparison_ignores_case_and_surrounding_whitespace():
    assert is_correct_answer(" Paris ", "paris")
    assert not is_correct_answer("Pari s", "paris")


@pytest.mark.parametrize(
    ("score", "total", "expected"),
    [(2, 3, 67), (1, 3, 33), (1, 8, 13), (0, 5, 0), (5, 5, 100), (0, 0, 0)],
)
def test_percentage_rounds_half_up(score, total, expected):
    assert compute_percentage(score, total) == expected


def test_score_counts_correct_wrong_and_skipped(three_questions):
    result = score_answers(three_questions, ["A", "B", None])

    assert result.score == 1
    assert result.correct_count == 1
    assert result.wrong_count == 1
    assert result.skipped_count == 1
    assert result.total_questions == 3
    assert result.percentage == 33
    assert [row.is_correct for row in result.results] == [True, False, False]


def test_blank_answers_and_short_answer_lists_are_skipped(three_questions):
    result = score_answers(three_questions, ["  "])

    assert result.skipped_count == 3
    assert result.wrong_count == 0
    assert [row.submitted_answer for row in result.results] == [None, None, None]


def test_extra_answers_are_ignored(three_questions):
    result = score_answers(three_questions, ["A", "C", "D", "A", "B"])

    assert result.score == 3
    assert result.percentage == 100
    assert len(result.results) == 3


def test_counts_always_add_up_to_total(three_questions):
    for answers in ([], ["A"], ["B", "B", "B"], [None, "C", " d "]):
        result = score_answers(three_questions, answers)
        assert result.correct_count + result.wrong_count + result.skipped_count == 3


def test_result_rows_carry_explanation_and_timings():
    questions = [make_question(explanation="Two plus two is four")]

    result = score_answers(questions, ["4"], timings=["12.5"])

    row = result.results[0]
    assert row.correct_answer == "4"
    assert row.explanation == "Two plus two is four"
    assert row.elapsed_seconds == 12.5


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (12, 12.0),
        ("7.5", 7.5),
        (0, 0.0),
        (-3, None),
        ("abc", None),
        (None, None),
        (True, None),
        (math.nan, None),
        (math.inf, None),
    ],
)
def test_normalize_timing(value, expected):
    assert normalize_timing(value) == expected


def test_invalid_timings_do_not_affect_score(three_questions):
    result = score_answers(three_questions, ["A", "C", "D"], timings=[-1, "x"])

    assert result.score == 3
    assert [row.elapsed_seconds for row in result.results] == [None, None, None]
