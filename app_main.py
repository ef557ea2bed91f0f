"""Application entry point for the assessment API."""

from __future__ import annotations

from assessment_app.constants.about import APP_NAME, APP_VERSION
from assessment_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.server.api_server import run_api_server
from assessment_app.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging and serve the API."""
    logger = configure_logging()
    logger.info("Starting %s %s on %s:%s", APP_NAME, APP_VERSION, DEFAULT_HOST, DEFAULT_PORT)

    manager = AssessmentManager()
    run_api_server(manager=manager, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
