"""Static metadata describing the assessment service."""

APP_NAME = "Assessment Sessions"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Timed quiz sessions for institutional events and self-paced practice sets. "
    "Question sets are ingested from plain text and attempts are scored server-side."
)
