"""Domain models for question sets and timed attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from assessment_app.core.time_utils import utc_now


class AttemptState(str, Enum):
    NOT_STARTED = "not_started"
    OPEN = "open"
    COMPLETED = "completed"


class SubmissionKind(str, Enum):
    """How an attempt reached the completed state."""

    MANUAL = "manual"
    TIMEOUT = "timeout"
    TAB_SWITCH = "tab_switch"


class SetKind(str, Enum):
    EVENT = "event"
    PRACTICE = "practice"


@dataclass(frozen=True, slots=True)
class Question:
    """Multiple-choice question with two to four options.

    ``correct_answer`` is always one of ``options``. Instances are immutable;
    the question parser is the only producer during ingestion.
    """

    text: str
    options: tuple[str, ...]
    correct_answer: str
    category: str
    topic: str
    level: str
    explanation: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))
        if not 2 <= len(self.options) <= 4:
            raise ValueError("A question must have between two and four options.")
        if self.correct_answer not in self.options:
            raise ValueError("Correct answer must be one of the options.")


@dataclass(slots=True)
class QuestionSet:
    """Fixed, ordered bundle of questions with a time limit.

    The question order is never changed after creation; submitted answers are
    index-aligned to it.
    """

    set_id: str
    name: str
    questions: tuple[Question, ...]
    time_limit_minutes: int
    parent_id: str
    kind: SetKind = SetKind.EVENT
    is_active: bool = False
    set_number: int = 1
    requires_previous_set: bool = False
    allow_retake: bool = True
    shuffle_options: bool = False
    created_at: datetime = field(default_factory=utc_now)

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit_minutes * 60

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def is_available(self) -> bool:
        """Practice sets are always open; event sets only while toggled active."""
        return self.kind is SetKind.PRACTICE or self.is_active


@dataclass(frozen=True, slots=True)
class PublicQuestion:
    """Question as shown to a participant. Never carries the correct answer."""

    text: str
    options: tuple[str, ...]


@dataclass(slots=True)
class QuestionResult:
    question_text: str
    submitted_answer: str | None
    correct_answer: str
    is_correct: bool
    explanation: str | None = None
    elapsed_seconds: float | None = None


@dataclass(slots=True)
class ScoreResult:
    score: int
    total_questions: int
    correct_count: int
    wrong_count: int
    skipped_count: int
    percentage: int
    results: list[QuestionResult]


@dataclass(slots=True)
class SessionAttempt:
    """One participant's timed run through one question set."""

    attempt_id: str
    participant_id: str
    set_id: str
    started_at: datetime
    deadline: datetime  # fixed at start, never recomputed
    time_limit_minutes: int
    # Position of the set when the attempt began; practice progress is keyed on it.
    parent_id: str = ""
    set_number: int = 1
    completed_at: datetime | None = None
    answers: list[str | None] = field(default_factory=list)
    question_timings: list[float | None] = field(default_factory=list)
    results: list[QuestionResult] = field(default_factory=list)
    score: int | None = None
    total_questions: int = 0
    correct_count: int = 0
    wrong_count: int = 0
    skipped_count: int = 0
    percentage: int = 0
    time_taken_seconds: int | None = None
    submission_kind: SubmissionKind | None = None
    submitted_late: bool = False

    @property
    def state(self) -> AttemptState:
        return AttemptState.OPEN if self.completed_at is None else AttemptState.COMPLETED

    def is_open(self) -> bool:
        return self.completed_at is None


@dataclass(slots=True)
class StartedSet:
    """Response to a start or resume request."""

    attempt_id: str
    set_id: str
    resumed: bool
    time_limit_minutes: int
    time_remaining_seconds: int
    deadline: datetime
    questions: list[PublicQuestion]

    @property
    def message(self) -> str:
        return "Resuming existing session" if self.resumed else "Set started successfully"


@dataclass(slots=True)
class TimeCheck:
    remaining_seconds: int
    deadline: datetime
    time_up: bool


@dataclass(slots=True)
class SubmissionResult:
    attempt_id: str
    score: int
    total_questions: int
    correct_count: int
    wrong_count: int
    skipped_count: int
    percentage: int
    results: list[QuestionResult]
    time_taken_seconds: int
    completed_at: datetime
    submission_kind: SubmissionKind
    submitted_late: bool = False


@dataclass(slots=True)
class SetProgress:
    """A set as listed for one participant, with its lock and completion state."""

    question_set: QuestionSet
    completed: bool
    locked: bool
    score: int | None = None
    percentage: int | None = None
    completed_at: datetime | None = None
