"""Quiz-related constants shared across the parser, services and API layers."""

DEFAULT_TIME_LIMIT_MINUTES: int = 10
OPTIONS_PER_QUESTION: int = 4
OPTION_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")

# Ingestion / parser heuristics
MIN_QUESTION_TEXT_LENGTH: int = 5
FOLLOW_UP_QUESTION_MIN_LENGTH: int = 20
ANSWER_WORD_MIN_LENGTH: int = 3
ANSWER_WORD_OVERLAP_THRESHOLD: float = 0.5
PLACEHOLDER_OPTION_TEMPLATE: str = "Option {number}"

# Applied to questions that appear before any "=== TOPIC: ..., LEVEL: ... ===" marker.
DEFAULT_TOPIC: str = "general"
DEFAULT_LEVEL: str = "medium"

# Practice sets are bundled in fixed-size slices of the question bank.
PRACTICE_SET_SIZE: int = 10
