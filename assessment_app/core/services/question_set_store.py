"""Service owning question sets, the question bank and set activation."""

from __future__ import annotations

import logging
from typing import Iterable

from assessment_app.constants.quiz_constants import (
    DEFAULT_TIME_LIMIT_MINUTES,
    PRACTICE_SET_SIZE,
)
from assessment_app.core.errors import InvalidStateError, NotFoundError
from assessment_app.core.models import Question, QuestionSet, SetKind

logger = logging.getLogger(__name__)


def practice_parent_id(category: str, topic: str, level: str) -> str:
    return f"{category}/{topic}/{level}"


class QuestionSetStore:
    """Manages the lifecycle and storage of question sets.

    Sets are immutable apart from their activation flag. Event sets sharing a
    ``parent_id`` obey a single-active rule: enabling one disables the others
    in the same call. Callers that share the store across threads are
    expected to serialise access (see ``AssessmentManager``).
    """

    def __init__(self) -> None:
        self._sets: dict[str, QuestionSet] = {}
        # Replaced practice sets, kept so attempts begun on them can still be scored.
        self._retired: dict[str, QuestionSet] = {}
        self._question_bank: list[Question] = []
        self._set_counter: int = 0

    # --- Sets ---

    def create_set(
        self,
        name: str,
        questions: Iterable[Question],
        parent_id: str,
        time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES,
        kind: SetKind = SetKind.EVENT,
        set_number: int = 1,
        requires_previous_set: bool = False,
        allow_retake: bool = True,
        shuffle_options: bool = False,
        set_id: str | None = None,
    ) -> QuestionSet:
        cleaned_name = name.strip()
        if not cleaned_name:
            raise ValueError("Set name must not be empty.")
        if not parent_id:
            raise ValueError("Set must belong to an event or practice group.")
        normalized_time_limit = self._normalize_time_limit(time_limit_minutes)

        set_id = set_id or self._next_set_id()
        if self._is_taken(set_id):
            raise ValueError(f"Set id {set_id!r} already exists.")

        question_set = QuestionSet(
            set_id=set_id,
            name=cleaned_name,
            questions=tuple(questions),
            time_limit_minutes=normalized_time_limit,
            parent_id=parent_id,
            kind=kind,
            is_active=False,
            set_number=set_number,
            requires_previous_set=requires_previous_set,
            allow_retake=allow_retake,
            shuffle_options=shuffle_options,
        )
        self._sets[set_id] = question_set
        logger.info(
            "Created %s set %s (%s) with %d question(s), %d min",
            kind.value,
            set_id,
            cleaned_name,
            question_set.question_count,
            normalized_time_limit,
        )
        return question_set

    def get_set(self, set_id: str) -> QuestionSet:
        question_set = self._sets.get(set_id)
        if question_set is None:
            raise NotFoundError("Set not found")
        return question_set

    def get_questions(self, set_id: str, include_retired: bool = False) -> list[Question]:
        """Return the set's questions in their fixed order."""
        if include_retired and set_id in self._retired:
            question_set = self._retired[set_id]
        else:
            question_set = self.get_set(set_id)
        if not question_set.questions:
            raise NotFoundError("No questions available for this set")
        return list(question_set.questions)

    def is_active(self, set_id: str) -> bool:
        return self.get_set(set_id).is_available()

    def set_active(self, set_id: str, enable: bool) -> QuestionSet:
        """Toggle an event set; enabling it deactivates every sibling first."""
        target = self.get_set(set_id)
        if target.kind is SetKind.PRACTICE:
            raise InvalidStateError("Practice sets are always available")

        if enable:
            for sibling in self._sets.values():
                if sibling.parent_id == target.parent_id:
                    sibling.is_active = False
            target.is_active = True
            logger.info("Set %s (%s) activated", target.set_id, target.name)
        else:
            target.is_active = False
            logger.info("Set %s (%s) deactivated", target.set_id, target.name)
        return target

    def get_active_set(self, parent_id: str) -> QuestionSet | None:
        return next(
            (
                s
                for s in self._sets.values()
                if s.parent_id == parent_id and s.kind is SetKind.EVENT and s.is_active
            ),
            None,
        )

    def list_sets(self, parent_id: str | None = None) -> list[QuestionSet]:
        sets = [s for s in self._sets.values() if parent_id is None or s.parent_id == parent_id]
        return sorted(sets, key=lambda s: (s.parent_id, s.set_number))

    def delete_parent(self, parent_id: str) -> list[str]:
        """Remove every set under ``parent_id``, retired ones included, and return the removed ids."""
        removed = [set_id for set_id, s in self._sets.items() if s.parent_id == parent_id]
        for set_id in removed:
            del self._sets[set_id]
        retired = [set_id for set_id, s in self._retired.items() if s.parent_id == parent_id]
        for set_id in retired:
            del self._retired[set_id]
        return removed + retired

    # --- Question bank / practice sets ---

    def add_to_bank(self, questions: Iterable[Question]) -> int:
        added = list(questions)
        self._question_bank.extend(added)
        return len(added)

    def get_bank_questions(self, category: str | None = None) -> list[Question]:
        return [q for q in self._question_bank if category is None or q.category == category]

    def generate_practice_sets(
        self,
        category: str,
        time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES,
        set_size: int = PRACTICE_SET_SIZE,
    ) -> tuple[list[QuestionSet], list[str]]:
        """Bundle the bank's questions for ``category`` into numbered practice sets.

        Questions are grouped per (topic, level) in bank order and sliced into
        sets of exactly ``set_size``; a smaller remainder is left unbundled.
        Existing practice sets for a regenerated combination are replaced; the
        replaced sets are retired rather than dropped so open attempts on them
        can still be submitted. Set N > 1 requires set N - 1 to be completed.
        Returns the created sets and the ids of the sets that were replaced.
        """
        if set_size <= 0:
            raise ValueError("Set size must be a positive integer.")

        groups: dict[tuple[str, str], list[Question]] = {}
        for question in self.get_bank_questions(category):
            groups.setdefault((question.topic, question.level), []).append(question)

        created: list[QuestionSet] = []
        replaced: list[str] = []
        for (topic, level), questions in groups.items():
            if len(questions) < set_size:
                logger.info(
                    "Only %d question(s) for %s/%s, skipping", len(questions), topic, level
                )
                continue

            parent_id = practice_parent_id(category, topic, level)
            replaced.extend(self._retire_parent(parent_id))

            for set_number, offset in enumerate(
                range(0, len(questions) - set_size + 1, set_size), start=1
            ):
                question_set = self.create_set(
                    name=f"{topic} ({level}) - Set {set_number}",
                    questions=questions[offset : offset + set_size],
                    parent_id=parent_id,
                    time_limit_minutes=time_limit_minutes,
                    kind=SetKind.PRACTICE,
                    set_number=set_number,
                    requires_previous_set=set_number > 1,
                )
                created.append(question_set)
        return created, replaced

    def _retire_parent(self, parent_id: str) -> list[str]:
        retired = [set_id for set_id, s in self._sets.items() if s.parent_id == parent_id]
        for set_id in retired:
            self._retired[set_id] = self._sets.pop(set_id)
        return retired

    def _is_taken(self, set_id: str) -> bool:
        return set_id in self._sets or set_id in self._retired

    def _next_set_id(self) -> str:
        self._set_counter += 1
        while self._is_taken(f"set-{self._set_counter}"):
            self._set_counter += 1
        return f"set-{self._set_counter}"

    @staticmethod
    def _normalize_time_limit(time_limit_minutes: int) -> int:
        if isinstance(time_limit_minutes, bool) or not isinstance(time_limit_minutes, int):
            raise ValueError("Time limit must be provided as an integer number of minutes.")
        if time_limit_minutes <= 0:
            raise ValueError("Time limit must be a positive integer.")
        return time_limit_minutes
