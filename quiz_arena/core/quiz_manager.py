"""Business logic for the quiz competition shared by every request and timer."""

from __future__ import annotations

import logging
from threading import Lock
import time
from typing import Callable, Protocol

from quiz_arena.constants.quiz_constants import DEFAULT_QUESTION_DURATION_SECONDS
from quiz_arena.core.errors import PersistenceFailure, StaleSubmissionError
from quiz_arena.core.models import (
    AnswerRecord,
    LifecycleSnapshot,
    Question,
    QuizResult,
    SessionStatus,
    SessionView,
)
from quiz_arena.core.services.countdown import CountdownTimer
from quiz_arena.core.services.lifecycle import LifecycleController
from quiz_arena.core.services.question_bank import QuestionBank
from quiz_arena.core.services.quiz_session import QuizSession
from quiz_arena.core.services.quiz_store import MemoryQuizStore, QuizStore

logger = logging.getLogger(__name__)

ANSWER_SAVE_ADVISORY = "Your answer could not be saved; your progress is kept and the quiz continues."
RESULT_SAVE_ADVISORY = "Your result could not be submitted yet. Please retry."


class Timer(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


TimerFactory = Callable[[str, Callable[[], bool]], Timer]


class QuizManager:
    """Facade over lifecycle, sessions, countdowns and the result store.

    Every mutation goes through ``self._lock`` so lifecycle changes, answer
    commits and result saves never interleave.
    """

    def __init__(
        self,
        question_bank: QuestionBank,
        store: QuizStore | None = None,
        question_duration: int = DEFAULT_QUESTION_DURATION_SECONDS,
        timer_factory: TimerFactory = CountdownTimer,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = Lock()
        self._question_bank = question_bank
        self._store = store if store is not None else MemoryQuizStore()
        self._lifecycle = LifecycleController()
        self._question_duration = question_duration
        self._timer_factory = timer_factory
        self._clock = clock
        self._sessions: dict[str, QuizSession] = {}
        self._timers: dict[str, Timer] = {}

    # --- Lifecycle ---

    def get_lifecycle(self) -> LifecycleSnapshot:
        with self._lock:
            return self._lifecycle.get()

    def start_quiz(self) -> LifecycleSnapshot:
        with self._lock:
            return self._lifecycle.start()

    def complete_quiz(self) -> LifecycleSnapshot:
        """End the quiz, finishing every session that is still running."""
        with self._lock:
            snapshot = self._lifecycle.complete()
            for session in list(self._sessions.values()):
                if not session.is_in_progress():
                    continue
                record = session.finish_now()
                try:
                    self._after_commit(session, record)
                except PersistenceFailure:
                    logger.warning("Could not persist forced finish for %s", session.user_id)
            return snapshot

    def reset_quiz(self) -> LifecycleSnapshot:
        """Stop every countdown, drop all answers and results, and wait again.

        The run id moves first, so the quiz is back in the waiting state even
        when clearing the store fails; the failure is re-raised afterwards.
        """
        with self._lock:
            snapshot = self._lifecycle.reset()
            for user_id in list(self._timers):
                self._stop_timer(user_id)
            self._sessions.clear()
            try:
                self._store.clear()
            except PersistenceFailure:
                logger.error("Clearing stored answers and results failed during reset")
                raise
            return snapshot

    def shutdown(self) -> None:
        with self._lock:
            for user_id in list(self._timers):
                self._stop_timer(user_id)

    # --- Sessions ---

    def join_session(self, user_id: str) -> SessionView:
        """Return the student's session, creating it once the quiz has started."""
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None and self._lifecycle.is_started():
                session = self._create_session(user_id)
            return self._build_view(user_id, session)

    def get_session_view(self, user_id: str) -> SessionView:
        with self._lock:
            return self._build_view(user_id, self._sessions.get(user_id))

    def record_answer(self, user_id: str, question_id: int, option: str | None) -> SessionView:
        with self._lock:
            session = self._require_session(user_id)
            try:
                session.record_answer(question_id, option)
            except StaleSubmissionError:
                logger.info("Stale answer from %s for question %s ignored", user_id, question_id)
                raise
            return self._build_view(user_id, session)

    def advance(self, user_id: str, question_id: int | None = None) -> SessionView:
        """Commit the student's current question and move to the next one.

        Raises ``PersistenceFailure`` after the session has moved on when the
        answer or result could not be saved.
        """
        with self._lock:
            session = self._require_session(user_id)
            record = session.advance(question_id)
            self._after_commit(session, record)
            return self._build_view(user_id, session)

    def retry_result(self, user_id: str) -> QuizResult:
        """Submit a finished session's result again after a persistence failure."""
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None or not session.is_finished():
                existing = self._store.get_result(user_id)
                if existing is None:
                    raise StaleSubmissionError(f"No finished session for {user_id}.")
                return existing
            self._submit_result(session)
            stored = session.get_result()
            if stored is None:
                raise RuntimeError("Session finished without a result.")
            return stored

    # --- Queries ---

    def list_questions(self) -> list[Question]:
        return self._question_bank.list()

    def list_answers(self, user_id: str) -> list[AnswerRecord]:
        with self._lock:
            return self._store.list_answers(user_id)

    def list_results(self) -> list[QuizResult]:
        with self._lock:
            return self._store.list_results()

    def get_result(self, user_id: str) -> QuizResult | None:
        with self._lock:
            return self._store.get_result(user_id)

    def active_session_count(self) -> int:
        with self._lock:
            return sum(1 for s in self._sessions.values() if s.is_in_progress())

    # --- Internals (caller holds the lock) ---

    def _create_session(self, user_id: str) -> QuizSession | None:
        questions = self._question_bank.list()
        if not questions:
            logger.warning("Quiz started without questions; %s stays idle", user_id)
            return None

        if self._store.get_result(user_id) is not None:
            logger.info("%s already has a result for this run", user_id)
            return None

        session = QuizSession(
            user_id,
            questions,
            run_id=self._lifecycle.get_run_id(),
            question_duration=self._question_duration,
            clock=self._clock,
        )
        try:
            previous = self._store.list_answers(user_id)
        except PersistenceFailure:
            logger.warning("Could not load saved answers for %s; starting fresh", user_id)
            previous = []
        session.begin(previous)
        self._sessions[user_id] = session

        if session.is_finished():
            self._after_commit(session, None)
        else:
            self._start_timer(session)
        logger.info("Session started for %s with %d questions", user_id, session.question_count)
        return session

    def _require_session(self, user_id: str) -> QuizSession:
        session = self._sessions.get(user_id)
        if session is None:
            raise StaleSubmissionError(f"No active session for {user_id}.")
        return session

    def _after_commit(self, session: QuizSession, record: AnswerRecord | None) -> None:
        failure: PersistenceFailure | None = None
        if record is not None:
            try:
                self._persist_answer(session, record)
            except PersistenceFailure as exc:
                failure = exc
        if session.is_finished():
            self._stop_timer(session.user_id)
            try:
                self._submit_result(session)
            except PersistenceFailure as exc:
                failure = failure or exc
        if failure is not None:
            raise failure

    def _persist_answer(self, session: QuizSession, record: AnswerRecord) -> None:
        self._check_run(session)
        try:
            self._store.save_answer(record)
        except PersistenceFailure:
            logger.warning(
                "Saving answer of %s for question %s failed", session.user_id, record.question_id
            )
            session.advisory = ANSWER_SAVE_ADVISORY
            raise
        if session.advisory == ANSWER_SAVE_ADVISORY:
            session.advisory = None

    def _submit_result(self, session: QuizSession) -> None:
        if session.is_result_submitted():
            logger.debug("Duplicate finish for %s ignored", session.user_id)
            return
        self._check_run(session)
        result = session.get_result()
        if result is None:
            return
        try:
            stored = self._store.save_result(result)
        except PersistenceFailure:
            logger.warning("Saving result of %s failed", session.user_id)
            session.advisory = RESULT_SAVE_ADVISORY
            raise
        session.mark_result_submitted(stored)
        session.advisory = None
        logger.info("Result stored for %s: score %d, rank %s", stored.user_id, stored.score, stored.rank)

    def _check_run(self, session: QuizSession) -> None:
        if session.run_id != self._lifecycle.get_run_id():
            logger.warning("Rejected submission from %s for a previous run", session.user_id)
            raise StaleSubmissionError("The quiz was reset; this submission belongs to a previous run.")

    def _start_timer(self, session: QuizSession) -> None:
        user_id = session.user_id
        timer = self._timer_factory(user_id, lambda: self._on_tick(user_id, session))
        self._timers[user_id] = timer
        timer.start()

    def _stop_timer(self, user_id: str) -> None:
        timer = self._timers.pop(user_id, None)
        if timer is not None:
            timer.stop()

    def _on_tick(self, user_id: str, session: QuizSession) -> bool:
        """Timer callback; returns False once the countdown should stop."""
        with self._lock:
            if self._sessions.get(user_id) is not session or not session.is_in_progress():
                return False
            record = session.tick()
            try:
                self._after_commit(session, record)
            except PersistenceFailure:
                logger.debug("Countdown for %s continues after a failed save", user_id)
            return session.is_in_progress()

    def _build_view(self, user_id: str, session: QuizSession | None) -> SessionView:
        lifecycle_state = self._lifecycle.get().state
        if session is None:
            result = self._store.get_result(user_id)
            status = SessionStatus.FINISHED if result is not None else SessionStatus.IDLE
            return SessionView(
                user_id=user_id,
                status=status,
                lifecycle_state=lifecycle_state,
                result=result,
            )

        question = session.current_question() if session.is_in_progress() else None
        result = session.get_result()
        if session.is_result_submitted():
            # Ranks move as other students finish.
            result = self._store.get_result(user_id) or result
        return SessionView(
            user_id=user_id,
            status=session.status,
            lifecycle_state=lifecycle_state,
            question=question,
            question_index=session.current_index,
            question_count=session.question_count,
            remaining_seconds=session.remaining_seconds,
            selected_option=session.pending_option,
            advisory=session.advisory,
            result=result,
            result_pending=session.has_pending_result(),
        )
