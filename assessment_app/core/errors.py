"""Typed failures raised by the assessment core."""

from __future__ import annotations


class AssessmentError(Exception):
    """Base class for failures surfaced to the boundary layer."""


class NotFoundError(AssessmentError):
    """A set, attempt or participant record does not exist."""


class InvalidStateError(AssessmentError):
    """The requested transition is not allowed from the attempt's current state."""


class UnauthorizedError(AssessmentError):
    """The caller does not own the record it tried to access."""
