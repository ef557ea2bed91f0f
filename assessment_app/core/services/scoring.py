"""Scoring of submitted answers against a set's authoritative questions."""

from __future__ import annotations

import math
from typing import Sequence

from assessment_app.core.models import Question, QuestionResult, ScoreResult


def score_answers(
    questions: Sequence[Question],
    answers: Sequence[str | None],
    timings: Sequence[object] | None = None,
) -> ScoreResult:
    """Compare ``answers`` (index-aligned to ``questions``) with the correct answers.

    Missing, ``None`` or blank answers count as skipped, never wrong. Answers
    beyond the last question are ignored. ``timings`` are per-question elapsed
    seconds reported by the client; they are carried into the result rows for
    display only and never affect the score.
    """
    correct_count = 0
    wrong_count = 0
    skipped_count = 0
    results: list[QuestionResult] = []

    for index, question in enumerate(questions):
        submitted = _normalize_answer(answers[index] if index < len(answers) else None)
        is_correct = submitted is not None and is_correct_answer(submitted, question.correct_answer)

        if submitted is None:
            skipped_count += 1
        elif is_correct:
            correct_count += 1
        else:
            wrong_count += 1

        results.append(
            QuestionResult(
                question_text=question.text,
                submitted_answer=submitted,
                correct_answer=question.correct_answer,
                is_correct=is_correct,
                explanation=question.explanation,
                elapsed_seconds=_timing_at(timings, index),
            )
        )

    total = len(questions)
    return ScoreResult(
        score=correct_count,
        total_questions=total,
        correct_count=correct_count,
        wrong_count=wrong_count,
        skipped_count=skipped_count,
        percentage=compute_percentage(correct_count, total),
        results=results,
    )


def is_correct_answer(answer: str, correct_answer: str) -> bool:
    return answer.strip().lower() == correct_answer.strip().lower()


def compute_percentage(score: int, total: int) -> int:
    """``round(score / total * 100)`` with halves rounded up; 0 for an empty set."""
    if total <= 0:
        return 0
    return math.floor(score / total * 100 + 0.5)


def normalize_timing(value: object) -> float | None:
    """Return a non-negative finite number of seconds, or None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _timing_at(timings: Sequence[object] | None, index: int) -> float | None:
    if not timings or index >= len(timings):
        return None
    return normalize_timing(timings[index])


def _normalize_answer(answer: str | None) -> str | None:
    if answer is None:
        return None
    if not isinstance(answer, str):
        answer = str(answer)
    return answer if answer.strip() else None
