"""State machine for timed attempts at a question set.

An attempt is created OPEN by ``start`` and becomes COMPLETED exactly once,
through ``submit`` or one of the force-submit paths. The deadline is fixed when
the attempt is created; resuming never extends it. Expiry is detected lazily:
nothing runs on a timer, callers poll ``check_remaining_time`` and force-submit
when it reports ``time_up``.

The engine is not thread-safe on its own. ``AssessmentManager`` serialises
calls so that concurrent starts for the same participant and set resolve to a
single open attempt.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
import math
import random
from typing import Callable, Sequence

from assessment_app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from assessment_app.core.models import (
    AttemptState,
    PublicQuestion,
    Question,
    QuestionSet,
    SessionAttempt,
    SetProgress,
    StartedSet,
    SubmissionKind,
    SubmissionResult,
    TimeCheck,
)
from assessment_app.core.services.attempt_store import AttemptStore
from assessment_app.core.services.question_set_store import QuestionSetStore
from assessment_app.core.services.scoring import normalize_timing, score_answers
from assessment_app.core.time_utils import format_duration, seconds_between, utc_now

logger = logging.getLogger(__name__)


def remaining_time(attempt: SessionAttempt, now: datetime) -> TimeCheck:
    """Seconds left before ``attempt.deadline``; ``time_up`` once none remain."""
    remaining = max(0, math.ceil((attempt.deadline - now).total_seconds()))
    return TimeCheck(remaining_seconds=remaining, deadline=attempt.deadline, time_up=remaining == 0)


class SessionEngine:
    """Start, resume, time-check and submit attempts."""

    def __init__(
        self,
        set_store: QuestionSetStore,
        attempt_store: AttemptStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._sets = set_store
        self._attempts = attempt_store
        self._clock = clock

    def start(self, participant_id: str, set_id: str) -> StartedSet:
        question_set = self._sets.get_set(set_id)
        if not question_set.is_available():
            raise InvalidStateError("Set is not active")

        existing = self._attempts.find_open(participant_id, set_id)
        if existing is not None:
            questions = self._sets.get_questions(set_id)
            elapsed = seconds_between(existing.started_at, self._clock())
            remaining = max(0, existing.time_limit_minutes * 60 - elapsed)
            logger.info(
                "Resuming attempt %s for %s on set %s (%ss left)",
                existing.attempt_id,
                participant_id,
                set_id,
                remaining,
            )
            return self._started(existing, question_set, questions, remaining, resumed=True)

        self._check_can_begin(participant_id, question_set)
        questions = self._sets.get_questions(set_id)

        if self._attempts.discard_open(participant_id, set_id):
            logger.warning("Discarded leftover open attempt for %s on set %s", participant_id, set_id)

        started_at = self._clock()
        attempt = self._attempts.create_open(
            participant_id=participant_id,
            set_id=set_id,
            started_at=started_at,
            deadline=started_at + timedelta(minutes=question_set.time_limit_minutes),
            time_limit_minutes=question_set.time_limit_minutes,
            parent_id=question_set.parent_id,
            set_number=question_set.set_number,
        )
        logger.info(
            "Started attempt %s for %s on set %s, deadline %s",
            attempt.attempt_id,
            participant_id,
            set_id,
            attempt.deadline.isoformat(),
        )
        return self._started(
            attempt, question_set, questions, question_set.time_limit_seconds, resumed=False
        )

    def check_remaining_time(self, participant_id: str, set_id: str) -> TimeCheck:
        attempt = self._attempts.find_open(participant_id, set_id)
        if attempt is None:
            raise NotFoundError("No active quiz found")
        return remaining_time(attempt, self._clock())

    def submit(
        self,
        participant_id: str,
        set_id: str,
        answers: Sequence[str | None],
        time_taken_seconds: float | None = None,
        timings: Sequence[object] | None = None,
    ) -> SubmissionResult:
        attempt = self._require_open(participant_id, set_id)
        return self._complete(
            attempt, answers, time_taken_seconds, timings, SubmissionKind.MANUAL
        )

    def force_submit_timeout(self, participant_id: str, set_id: str) -> SubmissionResult:
        """Close an expired attempt with every question skipped."""
        attempt = self._require_open(participant_id, set_id)
        if not remaining_time(attempt, self._clock()).time_up:
            raise InvalidStateError("Time limit has not expired")
        logger.info("Time expired for attempt %s, auto-submitting", attempt.attempt_id)
        return self._complete(
            attempt, [], attempt.time_limit_minutes * 60, None, SubmissionKind.TIMEOUT
        )

    def force_submit_tab_switch(
        self, participant_id: str, set_id: str, time_taken_seconds: float | None = None
    ) -> SubmissionResult:
        """Close an attempt because the client reported leaving the quiz tab."""
        attempt = self._require_open(participant_id, set_id)
        logger.info("Tab switch reported for attempt %s, auto-submitting", attempt.attempt_id)
        return self._complete(attempt, [], time_taken_seconds, None, SubmissionKind.TAB_SWITCH)

    def get_attempt(self, attempt_id: str, caller_id: str) -> SessionAttempt:
        attempt = self._attempts.get(attempt_id)
        if attempt.participant_id != caller_id:
            raise UnauthorizedError("Unauthorized")
        return attempt

    def attempt_state(self, participant_id: str, set_id: str) -> AttemptState:
        if self._attempts.find_open(participant_id, set_id) is not None:
            return AttemptState.OPEN
        if self._attempts.has_completed(participant_id, set_id):
            return AttemptState.COMPLETED
        return AttemptState.NOT_STARTED

    def list_progress(self, participant_id: str, parent_id: str) -> list[SetProgress]:
        """Sets under ``parent_id`` in order, with the participant's lock and completion state."""
        rows: list[SetProgress] = []
        for question_set in self._sets.list_sets(parent_id):
            latest = self._attempts.latest_completed_at(
                participant_id, parent_id, question_set.set_number
            )
            locked = not question_set.is_available() or (
                question_set.requires_previous_set
                and not self._previous_completed(participant_id, question_set)
            )
            rows.append(
                SetProgress(
                    question_set=question_set,
                    completed=latest is not None,
                    locked=locked,
                    score=latest.score if latest else None,
                    percentage=latest.percentage if latest else None,
                    completed_at=latest.completed_at if latest else None,
                )
            )
        return rows

    def _check_can_begin(self, participant_id: str, question_set: QuestionSet) -> None:
        if not question_set.allow_retake and self._attempts.has_completed(
            participant_id, question_set.set_id
        ):
            raise InvalidStateError("You have already completed this quiz")
        if question_set.requires_previous_set and not self._previous_completed(
            participant_id, question_set
        ):
            raise InvalidStateError("Complete the previous set first")

    def _previous_completed(self, participant_id: str, question_set: QuestionSet) -> bool:
        return (
            self._attempts.latest_completed_at(
                participant_id, question_set.parent_id, question_set.set_number - 1
            )
            is not None
        )

    def _require_open(self, participant_id: str, set_id: str) -> SessionAttempt:
        attempt = self._attempts.find_open(participant_id, set_id)
        if attempt is None:
            raise InvalidStateError("Set not started or already completed")
        return attempt

    def _complete(
        self,
        attempt: SessionAttempt,
        answers: Sequence[str | None],
        time_taken_seconds: float | None,
        timings: Sequence[object] | None,
        kind: SubmissionKind,
    ) -> SubmissionResult:
        # The set may have been replaced by a regeneration since the attempt began.
        questions = self._sets.get_questions(attempt.set_id, include_retired=True)
        now = self._clock()

        reported = normalize_timing(time_taken_seconds)
        if reported is not None:
            time_taken = int(reported)
        else:
            time_taken = max(0, seconds_between(attempt.started_at, now))

        result = score_answers(questions, answers, timings)
        late = kind is SubmissionKind.MANUAL and now > attempt.deadline
        if late:
            logger.warning(
                "Attempt %s submitted after its deadline (%s)",
                attempt.attempt_id,
                attempt.deadline.isoformat(),
            )

        attempt.answers = [row.submitted_answer for row in result.results]
        attempt.question_timings = [row.elapsed_seconds for row in result.results]
        attempt.results = result.results
        attempt.score = result.score
        attempt.total_questions = result.total_questions
        attempt.correct_count = result.correct_count
        attempt.wrong_count = result.wrong_count
        attempt.skipped_count = result.skipped_count
        attempt.percentage = result.percentage
        attempt.time_taken_seconds = time_taken
        attempt.submission_kind = kind
        attempt.submitted_late = late
        attempt.completed_at = now
        self._attempts.mark_completed(attempt)

        logger.info(
            "Attempt %s submitted (%s): %d/%d (%d%%) in %s by %s",
            attempt.attempt_id,
            kind.value,
            result.score,
            result.total_questions,
            result.percentage,
            format_duration(time_taken),
            attempt.participant_id,
        )
        return SubmissionResult(
            attempt_id=attempt.attempt_id,
            score=result.score,
            total_questions=result.total_questions,
            correct_count=result.correct_count,
            wrong_count=result.wrong_count,
            skipped_count=result.skipped_count,
            percentage=result.percentage,
            results=list(result.results),
            time_taken_seconds=time_taken,
            completed_at=now,
            submission_kind=kind,
            submitted_late=late,
        )

    def _started(
        self,
        attempt: SessionAttempt,
        question_set: QuestionSet,
        questions: list[Question],
        remaining_seconds: int,
        resumed: bool,
    ) -> StartedSet:
        return StartedSet(
            attempt_id=attempt.attempt_id,
            set_id=question_set.set_id,
            resumed=resumed,
            time_limit_minutes=attempt.time_limit_minutes,
            time_remaining_seconds=remaining_seconds,
            deadline=attempt.deadline,
            questions=[
                _public_question(question, attempt.attempt_id, index, question_set.shuffle_options)
                for index, question in enumerate(questions)
            ],
        )


def _public_question(
    question: Question, attempt_id: str, index: int, shuffle: bool
) -> PublicQuestion:
    options = list(question.options)
    if shuffle:
        # Seeded per attempt so a resumed attempt sees the same order.
        random.Random(f"{attempt_id}:{index}").shuffle(options)
    return PublicQuestion(text=question.text, options=tuple(options))
