"""Convert text extracted from quiz documents into structured questions.

The text is read line by line (CRLF normalised, lines trimmed, blank lines
dropped). Recognised lines:

    === TOPIC: percentages, LEVEL: easy ===    section marker (topic/level context)
    1. What is 20% of 50?                      question start ("1.", "1)", "Q1.", "Question 1:")
    - given a cost price of 40                 continuation / bullet before the options
    A. 5                                       option (A-D, ".", ")" or ":")
    B. 10
    C. 15
    D. 20
    Answer: B                                  answer letter (Answer/Correct/Ans/Solution)
    Explanation: 0.2 * 50 = 10                 optional explanation

Also accepted:

* a bare ``B`` line as the answer once four options are collected,
* a free-text answer (``Answer: 10``) which is matched against the options, or,
  for questions without options, used to synthesise four options,
* an un-numbered line ending in ``?`` after an answered question, which opens a
  follow-up question.

Parsing never raises on malformed input: questions that cannot be assembled
are dropped and counted in :class:`ParsedQuestions.discarded_count`.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging
from pathlib import Path
import random
import re

from assessment_app.constants.quiz_constants import (
    ANSWER_WORD_MIN_LENGTH,
    ANSWER_WORD_OVERLAP_THRESHOLD,
    DEFAULT_LEVEL,
    DEFAULT_TOPIC,
    FOLLOW_UP_QUESTION_MIN_LENGTH,
    MIN_QUESTION_TEXT_LENGTH,
    OPTION_LETTERS,
    OPTIONS_PER_QUESTION,
)
from assessment_app.core.models import Question
from assessment_app.core.option_synthesis import synthesize_options

logger = logging.getLogger(__name__)

_SECTION_MARKER = re.compile(r"===\s*TOPIC:\s*(.+?),\s*LEVEL:\s*(.+?)\s*===", re.IGNORECASE)
_QUESTION_START = re.compile(r"^(?:Q(?:uestion)?\s*)?(\d+)\s*[.):]\s*(.+)$", re.IGNORECASE)
_OPTION_LINE = re.compile(r"^([A-D])[.):]\s*(.+)$", re.IGNORECASE)
_ANSWER_PREFIX = r"(?:correct\s+answer|answer|correct|ans|solution)"
_ANSWER_LETTER = re.compile(
    rf"^{_ANSWER_PREFIX}\s*:?\s*\(?([A-D])\)?(?:[.)]\s*.*)?$", re.IGNORECASE
)
_ANSWER_TEXT = re.compile(rf"^{_ANSWER_PREFIX}(?:\s*:\s*|\s+)(.+)$", re.IGNORECASE)
_BARE_LETTER = re.compile(r"^([A-D])$", re.IGNORECASE)
_BULLET = re.compile(r"^[-•·*]\s+(.*)$")
_EXPLANATION = re.compile(r"^(?:Explanation|Exp)\s*:\s*(.*)$", re.IGNORECASE)


class QuestionImportError(Exception):
    """Raised when a question file yields no usable questions."""


@dataclass(slots=True)
class ParsedQuestions:
    questions: list[Question]
    discarded_count: int = 0


@dataclass(slots=True)
class ImportedQuestions:
    """Container for questions read from a text file on disk."""

    source_path: Path
    questions: list[Question]
    discarded_count: int = 0


@dataclass(slots=True)
class _QuestionDraft:
    text: str
    topic: str | None
    level: str | None
    options: list[str] = field(default_factory=list)
    correct_answer: str | None = None
    answer_text: str | None = None
    explanation: str | None = None
    collecting_text: bool = True


def parse_questions(
    raw_text: str,
    category: str,
    default_topic: str | None = DEFAULT_TOPIC,
    default_level: str | None = DEFAULT_LEVEL,
    rng: random.Random | None = None,
) -> list[Question]:
    """Parse ``raw_text`` and return the questions that could be recovered."""
    return parse_question_text(
        raw_text,
        category,
        default_topic=default_topic,
        default_level=default_level,
        rng=rng,
    ).questions


def parse_question_text(
    raw_text: str,
    category: str,
    default_topic: str | None = DEFAULT_TOPIC,
    default_level: str | None = DEFAULT_LEVEL,
    rng: random.Random | None = None,
) -> ParsedQuestions:
    """Parse ``raw_text`` and report how many question blocks were discarded.

    ``default_topic``/``default_level`` apply to questions that appear before
    any section marker; pass ``None`` to require markers.
    """
    parser = _LineParser(
        category=(category or "").strip(),
        topic=default_topic,
        level=default_level,
        rng=rng or random.Random(),
    )
    for line in _normalize_lines(raw_text or ""):
        parser.feed(line)
    parsed = parser.finish()

    if parsed.questions:
        breakdown = Counter(f"{q.topic}-{q.level}" for q in parsed.questions)
        logger.info(
            "Parsed %d question(s), discarded %d (%s)",
            len(parsed.questions),
            parsed.discarded_count,
            ", ".join(f"{key}: {count}" for key, count in sorted(breakdown.items())),
        )
    else:
        logger.warning(
            "No questions parsed (discarded %d). Text preview: %r",
            parsed.discarded_count,
            (raw_text or "")[:200],
        )
    return parsed


def load_questions_from_file(file_path: Path, category: str) -> ImportedQuestions:
    text = file_path.read_text(encoding="utf-8")
    parsed = parse_question_text(text, category)
    if not parsed.questions:
        raise QuestionImportError("No valid questions found in file.")
    return ImportedQuestions(
        source_path=file_path,
        questions=parsed.questions,
        discarded_count=parsed.discarded_count,
    )


def match_answer_to_option(answer_text: str, options: list[str]) -> str | None:
    """Pick the option a free-text answer refers to.

    Tried in order: exact match, answer contained in an option, option
    contained in the answer, then word overlap (words longer than three
    characters) of at least 50%.
    """
    normalized = answer_text.strip().lower()
    if not normalized:
        return None

    for option in options:
        if option.strip().lower() == normalized:
            return option
    for option in options:
        if normalized in option.lower():
            return option
    for option in options:
        if option.strip().lower() in normalized:
            return option

    answer_words = _significant_words(normalized)
    best_match: str | None = None
    best_score = 0.0
    for option in options:
        option_words = _significant_words(option.lower())
        denominator = max(len(answer_words), len(option_words))
        if denominator == 0:
            continue
        matches = sum(
            1
            for word in answer_words
            if any(other in word or word in other for other in option_words)
        )
        score = matches / denominator
        if score > best_score and score >= ANSWER_WORD_OVERLAP_THRESHOLD:
            best_score = score
            best_match = option
    return best_match


def _significant_words(text: str) -> list[str]:
    return [word for word in text.split() if len(word) > ANSWER_WORD_MIN_LENGTH]


def _normalize_lines(text: str) -> list[str]:
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return [line.strip() for line in normalized.split("\n") if line.strip()]


class _LineParser:
    """Single pass state machine over normalised lines."""

    def __init__(
        self, category: str, topic: str | None, level: str | None, rng: random.Random
    ) -> None:
        self._category = category
        self._rng = rng
        self._topic = topic
        self._level = level
        self._current: _QuestionDraft | None = None
        self._questions: list[Question] = []
        self._discarded = 0

    def feed(self, line: str) -> None:
        marker = _SECTION_MARKER.search(line)
        if marker:
            self._topic = marker.group(1).strip().lower()
            self._level = marker.group(2).strip().lower()
            logger.debug("Switched to topic %s, level %s", self._topic, self._level)
            return

        start = _QUESTION_START.match(line)
        if start:
            self._open_question(start.group(2).strip())
            return

        draft = self._current
        if draft is None:
            return

        option = _OPTION_LINE.match(line)
        if option:
            draft.collecting_text = False
            if len(draft.options) < OPTIONS_PER_QUESTION:
                draft.options.append(option.group(2).strip())
            return

        letter = _ANSWER_LETTER.match(line)
        if letter:
            draft.collecting_text = False
            index = OPTION_LETTERS.index(letter.group(1).upper())
            if index < len(draft.options):
                draft.correct_answer = draft.options[index]
            return

        answer = _ANSWER_TEXT.match(line)
        if answer:
            draft.collecting_text = False
            draft.answer_text = answer.group(1).strip()
            if draft.options:
                matched = match_answer_to_option(draft.answer_text, draft.options)
                if matched is not None:
                    draft.correct_answer = matched
            return

        if len(draft.options) == OPTIONS_PER_QUESTION and draft.correct_answer is None:
            bare = _BARE_LETTER.match(line)
            if bare:
                draft.collecting_text = False
                draft.correct_answer = draft.options[OPTION_LETTERS.index(bare.group(1).upper())]
                return

        if draft.collecting_text and not draft.options:
            bullet = _BULLET.match(line)
            if bullet:
                draft.text += "\n• " + bullet.group(1).strip()
            else:
                draft.text += "\n" + line
            return

        if (
            draft.correct_answer is not None
            and line.endswith("?")
            and len(line) > FOLLOW_UP_QUESTION_MIN_LENGTH
        ):
            self._open_question(line)
            return

        explanation = _EXPLANATION.match(line)
        if explanation and (draft.correct_answer is not None or draft.answer_text):
            draft.explanation = explanation.group(1).strip() or None
            return

        logger.debug("Ignoring unrecognised line: %.40s", line)

    def finish(self) -> ParsedQuestions:
        self._finalize_current()
        return ParsedQuestions(questions=list(self._questions), discarded_count=self._discarded)

    def _open_question(self, text: str) -> None:
        self._finalize_current()
        self._current = _QuestionDraft(text=text, topic=self._topic, level=self._level)

    def _finalize_current(self) -> None:
        draft = self._current
        self._current = None
        if draft is None:
            return
        reason = self._rejection_reason(draft)
        if reason is not None:
            self._discarded += 1
            logger.debug("Discarding question %.50r: %s", draft.text, reason)
            return
        self._questions.append(self._build_question(draft))

    def _rejection_reason(self, draft: _QuestionDraft) -> str | None:
        if len(draft.text.strip()) <= MIN_QUESTION_TEXT_LENGTH:
            return "question text too short"
        if not self._category:
            return "missing category"
        if not draft.topic or not draft.level:
            return "missing topic/level section marker"
        if draft.options:
            if len(draft.options) != OPTIONS_PER_QUESTION:
                return f"expected {OPTIONS_PER_QUESTION} options, found {len(draft.options)}"
            if draft.correct_answer is None or draft.correct_answer not in draft.options:
                return "no correct answer among the options"
            return None
        if not draft.answer_text:
            return "no options and no answer"
        return None

    def _build_question(self, draft: _QuestionDraft) -> Question:
        if draft.options:
            options = list(draft.options)
            correct_answer = draft.correct_answer
        else:
            correct_answer = draft.answer_text.strip()
            options = synthesize_options(correct_answer, self._rng)
        return Question(
            text=draft.text.strip(),
            options=tuple(options),
            correct_answer=correct_answer,
            category=self._category,
            topic=draft.topic,
            level=draft.level,
            explanation=draft.explanation,
        )
