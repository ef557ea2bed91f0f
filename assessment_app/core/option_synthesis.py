"""Manufacture multiple-choice options for questions that only carry a free-text answer.

Distractors are derived from the shape of the answer:

* years (four digits) → one year before/after and a decade earlier,
* integers → ±1 and doubled,
* percentages → ±5 points and doubled,
* anything else → word reordering / truncation, or simple variations for
  single words.

Missing distractors are padded with ``Option N`` placeholders so that every
question ends up with exactly four options, then the options are shuffled.
"""

from __future__ import annotations

import random
import re

from assessment_app.constants.quiz_constants import (
    OPTIONS_PER_QUESTION,
    PLACEHOLDER_OPTION_TEMPLATE,
)

_YEAR_PATTERN = re.compile(r"^\d{4}$")
_INTEGER_PATTERN = re.compile(r"^\d+$")
_LEADING_NUMBER_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")

_DISTRACTOR_COUNT = OPTIONS_PER_QUESTION - 1


def synthesize_options(correct_answer: str, rng: random.Random | None = None) -> list[str]:
    """Return four shuffled options, one of which is ``correct_answer``."""
    rng = rng or random.Random()
    options = [correct_answer, *generate_distractors(correct_answer)]
    rng.shuffle(options)
    return options


def generate_distractors(correct_answer: str) -> list[str]:
    """Return exactly three distinct wrong answers for ``correct_answer``."""
    candidates = _candidate_distractors(correct_answer.strip())

    distractors: list[str] = []
    for candidate in candidates:
        candidate = candidate.strip()
        if candidate and candidate != correct_answer and candidate not in distractors:
            distractors.append(candidate)

    number = len(distractors) + 1
    while len(distractors) < _DISTRACTOR_COUNT:
        placeholder = PLACEHOLDER_OPTION_TEMPLATE.format(number=number)
        number += 1
        if placeholder != correct_answer and placeholder not in distractors:
            distractors.append(placeholder)
    return distractors[:_DISTRACTOR_COUNT]


def _candidate_distractors(answer: str) -> list[str]:
    if _YEAR_PATTERN.match(answer):
        year = int(answer)
        return [str(year - 1), str(year + 1), str(year - 10)]

    if _INTEGER_PATTERN.match(answer):
        value = int(answer)
        return [str(value + 1), str(value - 1), str(value * 2)]

    if "%" in answer:
        match = _LEADING_NUMBER_PATTERN.match(answer)
        if match:
            value = float(match.group(1))
            return [
                f"{_format_number(value + 5)}%",
                f"{_format_number(value - 5)}%",
                f"{_format_number(value * 2)}%",
            ]

    words = answer.split()
    if len(words) > 1:
        return [
            " ".join(reversed(words)),
            " ".join(words[1:]),
            " ".join(words[:-1]),
        ]
    return [f"{answer}s", f"Not {answer}", f"{answer} related"]


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"
