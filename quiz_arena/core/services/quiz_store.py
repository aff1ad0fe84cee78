"""Persistence for answer records and results."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from itertools import count
import logging
from threading import Lock

from quiz_arena.core.models import AnswerRecord, QuizResult
from quiz_arena.core.services.ranking import rank_results

logger = logging.getLogger(__name__)


class QuizStore(ABC):
    """Durable store for answers and results.

    Implementations raise ``PersistenceFailure`` when a read or write fails;
    the core does not retry.
    """

    @abstractmethod
    def save_answer(self, record: AnswerRecord) -> AnswerRecord:
        """Insert or replace the record for ``(user_id, question_id)``."""

    @abstractmethod
    def list_answers(self, user_id: str) -> list[AnswerRecord]:
        ...

    @abstractmethod
    def save_result(self, result: QuizResult) -> QuizResult:
        """Insert or replace the result for ``user_id`` and re-rank every result."""

    @abstractmethod
    def get_result(self, user_id: str) -> QuizResult | None:
        ...

    @abstractmethod
    def list_results(self) -> list[QuizResult]:
        """Return every result ordered by rank."""

    @abstractmethod
    def clear(self) -> None:
        """Drop all answers and results."""


class MemoryQuizStore(QuizStore):
    """Dictionary-backed store used by the single-process server."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._answers: dict[tuple[str, int], AnswerRecord] = {}
        self._results: dict[str, QuizResult] = {}
        self._sequence = count(1)

    def save_answer(self, record: AnswerRecord) -> AnswerRecord:
        with self._lock:
            stored = replace(record)
            self._answers[(record.user_id, record.question_id)] = stored
            return replace(stored)

    def list_answers(self, user_id: str) -> list[AnswerRecord]:
        with self._lock:
            return [replace(a) for (owner, _), a in self._answers.items() if owner == user_id]

    def save_result(self, result: QuizResult) -> QuizResult:
        with self._lock:
            existing = self._results.get(result.user_id)
            if existing is None:
                stored = replace(result, created_at=datetime.utcnow(), sequence=next(self._sequence))
            else:
                # Replacement keeps the original place in creation order.
                logger.info("Replacing result for user %s", result.user_id)
                stored = replace(result, created_at=existing.created_at, sequence=existing.sequence)
            self._results[result.user_id] = stored
            self._recalculate_rankings()
            return replace(self._results[result.user_id])

    def get_result(self, user_id: str) -> QuizResult | None:
        with self._lock:
            result = self._results.get(user_id)
            return replace(result) if result is not None else None

    def list_results(self) -> list[QuizResult]:
        with self._lock:
            return sorted((replace(r) for r in self._results.values()), key=lambda r: r.rank or 0)

    def clear(self) -> None:
        with self._lock:
            self._answers.clear()
            self._results.clear()
            self._sequence = count(1)

    def _recalculate_rankings(self) -> None:
        for ranked in rank_results(self._results.values()):
            self._results[ranked.user_id] = ranked
