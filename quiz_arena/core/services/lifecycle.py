"""Service for the global quiz phase shared by every participant."""

from __future__ import annotations

from datetime import datetime
import logging

from quiz_arena.core.models import LifecycleSnapshot, LifecycleState

logger = logging.getLogger(__name__)


class LifecycleController:
    """Tracks whether the competition is waiting, running or over.

    Not thread-safe on its own; ``QuizManager`` serializes every call.
    """

    def __init__(self) -> None:
        self._state = LifecycleState.WAITING
        self._start_time: datetime | None = None
        self._end_time: datetime | None = None
        self._last_reset: datetime | None = None
        self._run_id: int = 0
        self._updated_at = datetime.utcnow()

    def get(self) -> LifecycleSnapshot:
        return LifecycleSnapshot(
            state=self._state,
            start_time=self._start_time,
            end_time=self._end_time,
            last_reset=self._last_reset,
            run_id=self._run_id,
            updated_at=self._updated_at,
        )

    def start(self) -> LifecycleSnapshot:
        """Start the quiz. Repeated calls overwrite the start time."""
        now = datetime.utcnow()
        if self._state is LifecycleState.STARTED:
            logger.warning("Quiz already started; overwriting start time")
        self._state = LifecycleState.STARTED
        self._start_time = now
        self._end_time = None
        self._updated_at = now
        logger.info("Quiz started (run %d)", self._run_id)
        return self.get()

    def complete(self) -> LifecycleSnapshot:
        now = datetime.utcnow()
        self._state = LifecycleState.COMPLETED
        self._end_time = now
        self._updated_at = now
        logger.info("Quiz completed (run %d)", self._run_id)
        return self.get()

    def reset(self) -> LifecycleSnapshot:
        """Return to waiting and open a new run. Always succeeds."""
        now = datetime.utcnow()
        self._state = LifecycleState.WAITING
        self._start_time = None
        self._end_time = None
        self._last_reset = now
        self._updated_at = now
        self._run_id += 1
        logger.info("Quiz reset; run %d is waiting", self._run_id)
        return self.get()

    def is_started(self) -> bool:
        return self._state is LifecycleState.STARTED

    def get_run_id(self) -> int:
        return self._run_id
