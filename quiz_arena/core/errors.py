"""Exceptions raised by the quiz core."""

from __future__ import annotations


class QuizError(Exception):
    """Base class for quiz core errors."""


class OutOfRangeError(QuizError, IndexError):
    """Raised when the session index is past the last question."""


class StaleSubmissionError(QuizError):
    """Raised when a submission targets a question or run that is no longer current."""


class PersistenceFailure(QuizError):
    """Raised when the persistence collaborator cannot save or read data."""
