"""Network configuration constants for the assessment API."""

import os

DEFAULT_HOST: str = os.getenv("ASSESSMENT_HOST", "0.0.0.0")
DEFAULT_PORT: int = int(os.getenv("ASSESSMENT_PORT", "8000"))

PARTICIPANT_HEADER: str = "X-Participant-Id"
ADMIN_TOKEN_HEADER: str = "X-Admin-Token"
ADMIN_TOKEN: str | None = os.getenv("ASSESSMENT_ADMIN_TOKEN")
