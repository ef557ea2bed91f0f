"""Business logic facade shared by the API layer and ingestion scripts."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
import logging
from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, Sequence

from assessment_app.constants.quiz_constants import (
    DEFAULT_TIME_LIMIT_MINUTES,
    PRACTICE_SET_SIZE,
)
from assessment_app.core.models import (
    AttemptState,
    Question,
    QuestionSet,
    SessionAttempt,
    SetProgress,
    StartedSet,
    SubmissionResult,
    TimeCheck,
)
from assessment_app.core.question_exporter import save_questions_to_file
from assessment_app.core.question_parser import (
    ParsedQuestions,
    QuestionImportError,
    load_questions_from_file,
    parse_question_text,
)
from assessment_app.core.services.attempt_store import AttemptStore
from assessment_app.core.services.question_set_store import QuestionSetStore
from assessment_app.core.services.session_engine import SessionEngine
from assessment_app.core.time_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestionReport:
    """Outcome of loading a question document into the practice bank."""

    parsed_count: int
    discarded_count: int
    sets_generated: int
    breakdown: list[tuple[str, str, int]] = field(default_factory=list)


class AssessmentManager:
    """Facade for the set store, attempt store and session engine.

    Every operation runs under one lock, so a start observes a consistent
    activation flag and two concurrent starts for the same participant and
    set resolve to a single open attempt.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._lock = Lock()

        # Services
        self._sets = QuestionSetStore()
        self._attempts = AttemptStore()
        self._engine = SessionEngine(self._sets, self._attempts, clock=clock)

    # --- Ingestion ---

    def parse_questions(self, raw_text: str, category: str) -> ParsedQuestions:
        return parse_question_text(raw_text, category)

    def create_event_set(
        self,
        parent_id: str,
        name: str,
        questions: Iterable[Question],
        time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES,
        allow_retake: bool = True,
        shuffle_options: bool = False,
        set_id: str | None = None,
    ) -> QuestionSet:
        with self._lock:
            existing = self._sets.list_sets(parent_id)
            return self._sets.create_set(
                name=name,
                questions=questions,
                parent_id=parent_id,
                time_limit_minutes=time_limit_minutes,
                set_number=len(existing) + 1,
                allow_retake=allow_retake,
                shuffle_options=shuffle_options,
                set_id=set_id,
            )

    def create_event_set_from_text(
        self,
        parent_id: str,
        name: str,
        raw_text: str,
        category: str,
        time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES,
        allow_retake: bool = True,
        shuffle_options: bool = False,
    ) -> QuestionSet:
        parsed = parse_question_text(raw_text, category)
        if not parsed.questions:
            raise QuestionImportError(f"Failed to parse questions for {name}: no valid questions found")
        return self.create_event_set(
            parent_id=parent_id,
            name=name,
            questions=parsed.questions,
            time_limit_minutes=time_limit_minutes,
            allow_retake=allow_retake,
            shuffle_options=shuffle_options,
        )

    def ingest_practice_questions(
        self,
        raw_text: str,
        category: str,
        time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES,
        set_size: int = PRACTICE_SET_SIZE,
    ) -> IngestionReport:
        """Parse a document, add it to the bank and regenerate the category's practice sets."""
        parsed = parse_question_text(raw_text, category)
        if not parsed.questions:
            raise QuestionImportError(
                "No questions could be parsed from the document. Please check the format."
            )
        return self._ingest(
            parsed.questions, parsed.discarded_count, category, time_limit_minutes, set_size
        )

    def ingest_practice_file(
        self,
        file_path: Path,
        category: str,
        time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES,
        set_size: int = PRACTICE_SET_SIZE,
    ) -> IngestionReport:
        imported = load_questions_from_file(file_path, category)
        logger.info("Loaded %d question(s) from %s", len(imported.questions), imported.source_path)
        return self._ingest(
            imported.questions, imported.discarded_count, category, time_limit_minutes, set_size
        )

    def export_question_bank(self, file_path: Path, category: str | None = None) -> int:
        """Write the bank (optionally one category) to ``file_path`` in the import format."""
        with self._lock:
            questions = self._sets.get_bank_questions(category)
        save_questions_to_file(file_path, questions)
        return len(questions)

    def _ingest(
        self,
        questions: list[Question],
        discarded_count: int,
        category: str,
        time_limit_minutes: int,
        set_size: int,
    ) -> IngestionReport:
        with self._lock:
            self._sets.add_to_bank(questions)
            created, replaced = self._sets.generate_practice_sets(
                category, time_limit_minutes=time_limit_minutes, set_size=set_size
            )

        counts: dict[tuple[str, str], int] = {}
        for question_set in created:
            topic, level = question_set.questions[0].topic, question_set.questions[0].level
            counts[(topic, level)] = counts.get((topic, level), 0) + 1
        if replaced:
            logger.info("Replaced %d practice set(s) for category %s", len(replaced), category)
        return IngestionReport(
            parsed_count=len(questions),
            discarded_count=discarded_count,
            sets_generated=len(created),
            breakdown=[(topic, level, count) for (topic, level), count in counts.items()],
        )

    # --- Set store delegation ---

    def get_set(self, set_id: str) -> QuestionSet:
        with self._lock:
            return self._sets.get_set(set_id)

    def list_sets(self, parent_id: str | None = None) -> list[QuestionSet]:
        """Return snapshots of the sets, taken under the lock."""
        with self._lock:
            return [replace(s) for s in self._sets.list_sets(parent_id)]

    def get_questions(self, set_id: str) -> list[Question]:
        with self._lock:
            return self._sets.get_questions(set_id)

    def is_set_active(self, set_id: str) -> bool:
        with self._lock:
            return self._sets.is_active(set_id)

    def toggle_set(self, set_id: str, enable: bool) -> QuestionSet:
        with self._lock:
            return self._sets.set_active(set_id, enable)

    def get_active_set(self, parent_id: str) -> QuestionSet | None:
        with self._lock:
            return self._sets.get_active_set(parent_id)

    def delete_event(self, parent_id: str) -> int:
        """Delete an event's sets and every attempt on them. Returns the attempts removed."""
        with self._lock:
            removed_sets = self._sets.delete_parent(parent_id)
            removed_attempts = self._attempts.delete_for_sets(removed_sets)
        logger.info(
            "Deleted event %s: %d set(s), %d attempt(s)",
            parent_id,
            len(removed_sets),
            removed_attempts,
        )
        return removed_attempts

    def delete_participant(self, participant_id: str) -> int:
        with self._lock:
            return self._attempts.delete_for_participant(participant_id)

    # --- Session engine delegation ---

    def start_set(self, participant_id: str, set_id: str) -> StartedSet:
        with self._lock:
            return self._engine.start(participant_id, set_id)

    def check_time(self, participant_id: str, set_id: str) -> TimeCheck:
        with self._lock:
            return self._engine.check_remaining_time(participant_id, set_id)

    def submit_set(
        self,
        participant_id: str,
        set_id: str,
        answers: Sequence[str | None],
        time_taken_seconds: float | None = None,
        timings: Sequence[object] | None = None,
    ) -> SubmissionResult:
        with self._lock:
            return self._engine.submit(
                participant_id,
                set_id,
                answers,
                time_taken_seconds=time_taken_seconds,
                timings=timings,
            )

    def force_submit_timeout(self, participant_id: str, set_id: str) -> SubmissionResult:
        with self._lock:
            return self._engine.force_submit_timeout(participant_id, set_id)

    def force_submit_tab_switch(
        self, participant_id: str, set_id: str, time_taken_seconds: float | None = None
    ) -> SubmissionResult:
        with self._lock:
            return self._engine.force_submit_tab_switch(
                participant_id, set_id, time_taken_seconds=time_taken_seconds
            )

    def get_attempt(self, attempt_id: str, caller_id: str) -> SessionAttempt:
        with self._lock:
            return self._engine.get_attempt(attempt_id, caller_id)

    def attempt_history(self, participant_id: str, set_id: str | None = None) -> list[SessionAttempt]:
        with self._lock:
            return self._attempts.history(participant_id, set_id)

    def list_sets_with_progress(self, participant_id: str, parent_id: str) -> list[SetProgress]:
        with self._lock:
            return self._engine.list_progress(participant_id, parent_id)

    def attempt_state(self, participant_id: str, set_id: str) -> AttemptState:
        with self._lock:
            return self._engine.attempt_state(participant_id, set_id)

    def count_open_attempts(self, participant_id: str, set_id: str) -> int:
        with self._lock:
            return self._attempts.count_open(participant_id, set_id)
