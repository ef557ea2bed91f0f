from __future__ import annotations

import random

import pytest

from assessment_app.core.question_exporter import export_questions_text, save_questions_to_file
from assessment_app.core.question_parser import load_questions_from_file, parse_questions

SOURCE = """
=== TOPIC: logic, LEVEL: easy ===
1. Read the statements below:
- Statement one is true
- Statement two is false
Which one is correct overall?
A. Only one
B. Only two
C. Both
D. Neither
Answer: A
Explanation: Only the first statement holds.

=== TOPIC: history, LEVEL: medium ===
2. In which year did World War II end?
Answer: 1945
"""


def test_export_then_parse_gives_the_same_questions():
    original = parse_questions(SOURCE, "gk", rng=random.Random(5))

    exported = export_questions_text(original)

    assert parse_questions(exported, "gk") == original


def test_export_layout():
    original = parse_questions(SOURCE, "gk", rng=random.Random(5))

    lines = [line for line in export_questions_text(original).splitlines() if line]

    assert lines[0] == "=== TOPIC: logic, LEVEL: easy ==="
    assert lines[1] == "1. Read the statements below:"
    assert lines[2] == "- Statement one is true"
    assert "Answer: A" in lines
    assert "Explanation: Only the first statement holds." in lines
    assert "=== TOPIC: history, LEVEL: medium ===" in lines


def test_save_questions_to_file(tmp_path):
    original = parse_questions(SOURCE, "gk", rng=random.Random(5))
    path = tmp_path / "out" / "questions.txt"

    save_questions_to_file(path, original)

    assert load_questions_from_file(path, "gk").questions == original


def test_save_rejects_empty_list(tmp_path):
    with pytest.raises(ValueError):
        save_questions_to_file(tmp_path / "empty.txt", [])
