"""FastAPI server that exposes the participant and admin endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
import hmac
import logging
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field
import uvicorn

from assessment_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from assessment_app.constants.network_constants import (
    ADMIN_TOKEN,
    ADMIN_TOKEN_HEADER,
    DEFAULT_HOST,
    DEFAULT_PORT,
    PARTICIPANT_HEADER,
)
from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.core.errors import (
    AssessmentError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from assessment_app.core.markdown_math_renderer import renderer
from assessment_app.core.models import (
    Question,
    QuestionResult,
    QuestionSet,
    SessionAttempt,
    SetProgress,
    SubmissionResult,
)

logger = logging.getLogger(__name__)


class SubmitPayload(BaseModel):
    """Payload schema for a submitted set."""

    answers: list[str | None] = Field(default_factory=list)
    time_taken_seconds: Any = None
    question_timings: list[Any] | None = None


class TabSwitchPayload(BaseModel):
    time_taken_seconds: Any = None


class TogglePayload(BaseModel):
    enable: bool


class ParsePayload(BaseModel):
    """Payload schema for text extracted from an uploaded question document."""

    raw_text: str
    category: str


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidStateError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, UnauthorizedError):
        return HTTPException(status_code=403, detail=str(exc))
    return HTTPException(status_code=422, detail=str(exc))


def _result_row(row: QuestionResult) -> dict[str, object]:
    return {
        "question": row.question_text,
        "selected_answer": row.submitted_answer,
        "correct_answer": row.correct_answer,
        "is_correct": row.is_correct,
        "explanation": row.explanation,
        "time_spent": row.elapsed_seconds,
    }


def _submission_body(result: SubmissionResult) -> dict[str, object]:
    return {
        "attempt_id": result.attempt_id,
        "score": result.score,
        "total_questions": result.total_questions,
        "correct_count": result.correct_count,
        "wrong_count": result.wrong_count,
        "skipped_count": result.skipped_count,
        "percentage": result.percentage,
        "results": [_result_row(row) for row in result.results],
        "time_taken_seconds": result.time_taken_seconds,
        "completed_at": _iso(result.completed_at),
        "submission_kind": result.submission_kind.value,
        "submitted_late": result.submitted_late,
    }


def _attempt_body(attempt: SessionAttempt) -> dict[str, object]:
    return {
        "attempt_id": attempt.attempt_id,
        "set_id": attempt.set_id,
        "state": attempt.state.value,
        "started_at": _iso(attempt.started_at),
        "deadline": _iso(attempt.deadline),
        "completed_at": _iso(attempt.completed_at),
        "score": attempt.score,
        "total_questions": attempt.total_questions,
        "correct_count": attempt.correct_count,
        "wrong_count": attempt.wrong_count,
        "skipped_count": attempt.skipped_count,
        "percentage": attempt.percentage,
        "time_taken_seconds": attempt.time_taken_seconds,
        "submission_kind": attempt.submission_kind.value if attempt.submission_kind else None,
        "results": [_result_row(row) for row in attempt.results],
    }


def _set_summary(question_set: QuestionSet) -> dict[str, object]:
    return {
        "set_id": question_set.set_id,
        "name": question_set.name,
        "is_active": question_set.is_active,
        "time_limit_minutes": question_set.time_limit_minutes,
        "question_count": question_set.question_count,
    }


def _progress_row(row: SetProgress) -> dict[str, object]:
    return {
        **_set_summary(row.question_set),
        "set_number": row.question_set.set_number,
        "kind": row.question_set.kind.value,
        "completed": row.completed,
        "locked": row.locked,
        "score": row.score,
        "percentage": row.percentage,
        "completed_at": _iso(row.completed_at),
    }


def _question_body(question: Question) -> dict[str, object]:
    return {
        "question": question.text,
        "options": list(question.options),
        "correct_answer": question.correct_answer,
        "category": question.category,
        "topic": question.topic,
        "level": question.level,
        "explanation": question.explanation,
    }


def _get_manager_dependency(manager: AssessmentManager):
    def dependency() -> AssessmentManager:
        return manager

    return dependency


def _require_participant(
    participant_id: str | None = Header(default=None, alias=PARTICIPANT_HEADER),
) -> str:
    if not participant_id or not participant_id.strip():
        raise HTTPException(status_code=401, detail="Missing participant identity")
    return participant_id.strip()


def create_api_app(manager: AssessmentManager, admin_token: str | None = ADMIN_TOKEN) -> FastAPI:
    """Create a FastAPI application wired to the provided assessment manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    manager_dep = _get_manager_dependency(manager)

    def require_admin(
        token: str | None = Header(default=None, alias=ADMIN_TOKEN_HEADER),
    ) -> None:
        if admin_token is None:
            raise HTTPException(status_code=403, detail="Admin access is not configured")
        if token is None or not hmac.compare_digest(token, admin_token):
            raise HTTPException(status_code=403, detail="Invalid admin token")

    @app.post("/sets/{set_id}/start")
    def start_set(
        set_id: str,
        participant_id: str = Depends(_require_participant),
        mgr: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            started = mgr.start_set(participant_id, set_id)
        except AssessmentError as exc:
            raise _http_error(exc) from exc
        return {
            "message": started.message,
            "attempt_id": started.attempt_id,
            "resumed": started.resumed,
            "time_limit_minutes": started.time_limit_minutes,
            "time_remaining_seconds": started.time_remaining_seconds,
            "deadline": _iso(started.deadline),
            "questions": [
                {
                    "question": question.text,
                    "question_html": renderer.render_fragment(question.text),
                    "options": list(question.options),
                }
                for question in started.questions
            ],
        }

    @app.get("/sets/{set_id}/time")
    def check_time(
        set_id: str,
        participant_id: str = Depends(_require_participant),
        mgr: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            check = mgr.check_time(participant_id, set_id)
        except AssessmentError as exc:
            raise _http_error(exc) from exc

        if not check.time_up:
            return {
                "remaining_seconds": check.remaining_seconds,
                "deadline": _iso(check.deadline),
                "time_up": False,
            }

        result: dict[str, object] | None = None
        try:
            result = _submission_body(mgr.force_submit_timeout(participant_id, set_id))
        except AssessmentError as exc:
            logger.info("Timeout auto-submit for %s on %s skipped: %s", participant_id, set_id, exc)
        return {
            "remaining_seconds": 0,
            "deadline": _iso(check.deadline),
            "time_up": True,
            "message": "Time expired - quiz auto-submitted",
            "result": result,
        }

    @app.post("/sets/{set_id}/submit")
    def submit_set(
        set_id: str,
        payload: SubmitPayload,
        participant_id: str = Depends(_require_participant),
        mgr: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            result = mgr.submit_set(
                participant_id,
                set_id,
                payload.answers,
                time_taken_seconds=payload.time_taken_seconds,
                timings=payload.question_timings,
            )
        except AssessmentError as exc:
            raise _http_error(exc) from exc
        return {"message": "Set submitted successfully", **_submission_body(result)}

    @app.post("/sets/{set_id}/tab-switch")
    def tab_switch(
        set_id: str,
        payload: TabSwitchPayload,
        participant_id: str = Depends(_require_participant),
        mgr: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            result = mgr.force_submit_tab_switch(
                participant_id, set_id, time_taken_seconds=payload.time_taken_seconds
            )
        except AssessmentError as exc:
            logger.info("Tab switch tracked for %s on %s: %s", participant_id, set_id, exc)
            return {"auto_submitted": False, "message": "Tab switch tracked"}
        return {
            "auto_submitted": True,
            "message": "Quiz auto-submitted due to tab switch",
            "result": _submission_body(result),
        }

    @app.get("/attempts/{attempt_id}")
    def get_attempt(
        attempt_id: str,
        participant_id: str = Depends(_require_participant),
        mgr: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            attempt = mgr.get_attempt(attempt_id, participant_id)
        except AssessmentError as exc:
            raise _http_error(exc) from exc
        return _attempt_body(attempt)

    @app.get("/sets")
    def list_sets(
        parent_id: str,
        participant_id: str = Depends(_require_participant),
        mgr: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        rows = mgr.list_sets_with_progress(participant_id, parent_id)
        return {"parent_id": parent_id, "sets": [_progress_row(row) for row in rows]}

    @app.get("/events/{parent_id}/active-set")
    def get_active_set(
        parent_id: str, mgr: AssessmentManager = Depends(manager_dep)
    ) -> dict[str, object]:
        active = mgr.get_active_set(parent_id)
        if active is None:
            return {"message": "No active set", "active_set": None}
        return {"active_set": _set_summary(active)}

    @app.post("/sets/{set_id}/toggle", dependencies=[Depends(require_admin)])
    def toggle_set(
        set_id: str,
        payload: TogglePayload,
        mgr: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            toggled = mgr.toggle_set(set_id, payload.enable)
        except AssessmentError as exc:
            raise _http_error(exc) from exc
        return {
            "message": "Set enabled" if payload.enable else "Set disabled",
            "set": _set_summary(toggled),
        }

    @app.post("/questions/parse", dependencies=[Depends(require_admin)])
    def parse_questions(
        payload: ParsePayload, mgr: AssessmentManager = Depends(manager_dep)
    ) -> dict[str, object]:
        parsed = mgr.parse_questions(payload.raw_text, payload.category)
        return {
            "questions": [_question_body(question) for question in parsed.questions],
            "discarded_count": parsed.discarded_count,
        }

    return app


def run_api_server(
    manager: AssessmentManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    server.run()
