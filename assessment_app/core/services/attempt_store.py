"""Service storing session attempts with at most one open attempt per participant and set."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from assessment_app.core.errors import InvalidStateError, NotFoundError
from assessment_app.core.models import SessionAttempt


class AttemptStore:
    """Keeps every attempt plus an index of the open one per (participant, set).

    The open index acts as the uniqueness constraint: ``create_open`` refuses
    to create a second open attempt for the same pair.
    """

    def __init__(self) -> None:
        self._attempts: dict[str, SessionAttempt] = {}
        self._open: dict[tuple[str, str], str] = {}

    def find_open(self, participant_id: str, set_id: str) -> SessionAttempt | None:
        attempt_id = self._open.get((participant_id, set_id))
        if attempt_id is None:
            return None
        return self._attempts[attempt_id]

    def create_open(
        self,
        participant_id: str,
        set_id: str,
        started_at: datetime,
        deadline: datetime,
        time_limit_minutes: int,
        parent_id: str = "",
        set_number: int = 1,
    ) -> SessionAttempt:
        key = (participant_id, set_id)
        if key in self._open:
            raise InvalidStateError("An open attempt already exists for this set")

        attempt = SessionAttempt(
            attempt_id=uuid4().hex,
            participant_id=participant_id,
            set_id=set_id,
            started_at=started_at,
            deadline=deadline,
            time_limit_minutes=time_limit_minutes,
            parent_id=parent_id,
            set_number=set_number,
        )
        self._attempts[attempt.attempt_id] = attempt
        self._open[key] = attempt.attempt_id
        return attempt

    def discard_open(self, participant_id: str, set_id: str) -> bool:
        """Drop a leftover open attempt for the pair. Returns True if one existed."""
        attempt_id = self._open.pop((participant_id, set_id), None)
        if attempt_id is None:
            return False
        self._attempts.pop(attempt_id, None)
        return True

    def mark_completed(self, attempt: SessionAttempt) -> None:
        if attempt.completed_at is None:
            raise InvalidStateError("Attempt has no completion time")
        key = (attempt.participant_id, attempt.set_id)
        if self._open.get(key) == attempt.attempt_id:
            del self._open[key]

    def get(self, attempt_id: str) -> SessionAttempt:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise NotFoundError("Attempt not found")
        return attempt

    def history(self, participant_id: str, set_id: str | None = None) -> list[SessionAttempt]:
        """Attempts for a participant, newest first."""
        matching = [
            (index, attempt)
            for index, attempt in enumerate(self._attempts.values())
            if attempt.participant_id == participant_id
            and (set_id is None or attempt.set_id == set_id)
        ]
        matching.sort(key=lambda item: (item[1].started_at, item[0]), reverse=True)
        return [attempt for _, attempt in matching]

    def has_completed(self, participant_id: str, set_id: str) -> bool:
        return any(
            a.participant_id == participant_id and a.set_id == set_id and not a.is_open()
            for a in self._attempts.values()
        )

    def latest_completed_at(
        self, participant_id: str, parent_id: str, set_number: int
    ) -> SessionAttempt | None:
        """Most recently completed attempt on the set at this position.

        Looked up by position rather than set id so progress survives
        practice sets being regenerated under new ids.
        """
        completed = [
            a
            for a in self._attempts.values()
            if a.participant_id == participant_id
            and a.parent_id == parent_id
            and a.set_number == set_number
            and not a.is_open()
        ]
        return max(completed, key=lambda a: a.completed_at, default=None)

    def count_open(self, participant_id: str, set_id: str) -> int:
        return sum(
            1
            for a in self._attempts.values()
            if a.participant_id == participant_id and a.set_id == set_id and a.is_open()
        )

    def delete_for_sets(self, set_ids: list[str]) -> int:
        doomed = set(set_ids)
        return self._delete_where(lambda attempt: attempt.set_id in doomed)

    def delete_for_participant(self, participant_id: str) -> int:
        return self._delete_where(lambda attempt: attempt.participant_id == participant_id)

    def _delete_where(self, predicate) -> int:
        removed = [a for a in self._attempts.values() if predicate(a)]
        for attempt in removed:
            del self._attempts[attempt.attempt_id]
            key = (attempt.participant_id, attempt.set_id)
            if self._open.get(key) == attempt.attempt_id:
                del self._open[key]
        return len(removed)
