"""Write questions back out in the plain-text grammar read by the question parser."""

from __future__ import annotations

from itertools import groupby
from pathlib import Path

from assessment_app.constants.quiz_constants import OPTION_LETTERS
from assessment_app.core.models import Question


def save_questions_to_file(file_path: Path, questions: list[Question]) -> None:
    """Persist the provided questions to disk in the text import format."""

    if not questions:
        raise ValueError("Cannot export an empty question list.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(export_questions_text(questions), encoding="utf-8")


def export_questions_text(questions: list[Question]) -> str:
    sections: list[str] = []
    number = 1
    for (topic, level), group in groupby(questions, key=lambda q: (q.topic, q.level)):
        blocks = [f"=== TOPIC: {topic}, LEVEL: {level} ==="]
        for question in group:
            blocks.append(_serialize_question(number, question))
            number += 1
        sections.append("\n\n".join(blocks))
    return "\n\n".join(sections) + "\n"


def _serialize_question(number: int, question: Question) -> str:
    question_lines = question.text.splitlines() or [question.text]
    lines = [f"{number}. {question_lines[0]}"]
    for extra in question_lines[1:]:
        if extra.startswith("• "):
            lines.append(f"- {extra[2:]}")
        else:
            lines.append(extra)

    for letter, option in zip(OPTION_LETTERS, question.options):
        lines.append(f"{letter}. {option}")

    correct_letter = OPTION_LETTERS[question.options.index(question.correct_answer)]
    lines.append(f"Answer: {correct_letter}")

    if question.explanation:
        lines.append(f"Explanation: {question.explanation}")
    return "\n".join(lines)
