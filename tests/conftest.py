from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.core.models import Question
from assessment_app.core.services.attempt_store import AttemptStore
from assessment_app.core.services.question_set_store import QuestionSetStore
from assessment_app.core.services.session_engine import SessionEngine


class FakeClock:
    """Manually advanced clock for deterministic timing tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_question(
    text: str = "What is 2+2?",
    options: tuple[str, ...] = ("2", "3", "4", "5"),
    correct: str = "4",
    topic: str = "arithmetic",
    level: str = "easy",
    explanation: str | None = None,
) -> Question:
    return Question(
        text=text,
        options=options,
        correct_answer=correct,
        category="aptitude",
        topic=topic,
        level=level,
        explanation=explanation,
    )


def numbered_questions_text(count: int, topic: str = "percentages", level: str = "easy") -> str:
    lines = [f"=== TOPIC: {topic}, LEVEL: {level} ==="]
    for number in range(1, count + 1):
        lines.extend(
            [
                f"{number}. What is {number} plus {number}?",
                f"A. {number * 2}",
                f"B. {number * 2 + 1}",
                f"C. {number * 2 + 2}",
                f"D. {number * 2 + 3}",
                "Answer: A",
            ]
        )
    return "\n".join(lines)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def three_questions() -> list[Question]:
    return [
        make_question("First question text", ("A", "B", "C", "D"), "A"),
        make_question("Second question text", ("A", "B", "C", "D"), "C"),
        make_question("Third question text", ("A", "B", "C", "D"), "D"),
    ]


@pytest.fixture
def set_store() -> QuestionSetStore:
    return QuestionSetStore()


@pytest.fixture
def attempt_store() -> AttemptStore:
    return AttemptStore()


@pytest.fixture
def engine(set_store, attempt_store, clock) -> SessionEngine:
    return SessionEngine(set_store, attempt_store, clock=clock)


@pytest.fixture
def active_set(set_store, three_questions):
    question_set = set_store.create_set(
        name="Round 1",
        questions=three_questions,
        parent_id="event-1",
        time_limit_minutes=10,
        set_id="round-1",
    )
    set_store.set_active("round-1", True)
    return question_set


@pytest.fixture
def manager(clock) -> AssessmentManager:
    return AssessmentManager(clock=clock)
