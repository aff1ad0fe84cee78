"""State machine for one student's run through the question sequence."""

from __future__ import annotations

from datetime import datetime
import logging
import time
from typing import Callable, Iterable, Sequence

from quiz_arena.constants.quiz_constants import DEFAULT_QUESTION_DURATION_SECONDS, OPTION_LABELS
from quiz_arena.core.errors import OutOfRangeError, StaleSubmissionError
from quiz_arena.core.models import AnswerRecord, Question, QuizResult, SessionStatus
from quiz_arena.core.services.scoring import classify_answer, AnswerOutcome, score_answers

logger = logging.getLogger(__name__)


class QuizSession:
    """Tracks position, countdown and answers of a single student.

    ``advance()`` and the countdown reaching zero both commit the active
    question. A commit only succeeds for the index equal to the number of
    questions already committed, so two racing triggers collapse into one
    commit. The session itself is not locked; callers serialize access.
    """

    def __init__(
        self,
        user_id: str,
        questions: Sequence[Question],
        run_id: int = 0,
        question_duration: int = DEFAULT_QUESTION_DURATION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if question_duration <= 0:
            raise ValueError("Question duration must be a positive number of seconds.")
        self.user_id = user_id
        self.run_id = run_id
        self.advisory: str | None = None
        self._questions: list[Question] = list(questions)
        self._question_duration = question_duration
        self._clock = clock

        self._status = SessionStatus.IDLE
        self._index: int = 0
        self._committed_count: int = 0
        self._remaining: int = question_duration
        self._pending_option: str | None = None
        self._pending_response_time: int | None = None
        self._answers: dict[int, AnswerRecord] = {}
        self._started_at: float | None = None
        self._finished_at: float | None = None
        self._result: QuizResult | None = None
        self._result_submitted: bool = False

    # --- State ---

    @property
    def status(self) -> SessionStatus:
        return self._status

    def is_in_progress(self) -> bool:
        return self._status is SessionStatus.IN_PROGRESS

    def is_finished(self) -> bool:
        return self._status is SessionStatus.FINISHED

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def question_count(self) -> int:
        return len(self._questions)

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def question_duration(self) -> int:
        return self._question_duration

    @property
    def pending_option(self) -> str | None:
        return self._pending_option

    def get_answers(self) -> dict[int, AnswerRecord]:
        return dict(self._answers)

    def current_question(self) -> Question:
        if self._index >= len(self._questions):
            raise OutOfRangeError(
                f"Question index {self._index} out of range for {len(self._questions)} questions"
            )
        return self._questions[self._index]

    # --- Transitions ---

    def begin(self, resume_answers: Iterable[AnswerRecord] = ()) -> None:
        """Move from idle to in-progress, skipping questions already answered."""
        if self._status is not SessionStatus.IDLE:
            return
        if not self._questions:
            raise ValueError("Cannot begin a session without questions.")

        known_ids = {q.id for q in self._questions}
        for record in resume_answers:
            if record.question_id in known_ids:
                self._answers[record.question_id] = record

        # Resume at the first question that has no committed record.
        while self._index < len(self._questions) and self._questions[self._index].id in self._answers:
            self._index += 1
        self._committed_count = self._index
        if self._index:
            logger.info("Resuming session for %s at question %d", self.user_id, self._index + 1)

        self._status = SessionStatus.IN_PROGRESS
        self._started_at = self._clock()
        self._remaining = self._question_duration
        if self._index == len(self._questions):
            self._finish()

    def record_answer(self, question_id: int, option: str | None) -> None:
        """Store the choice for the active question without advancing."""
        if self._status is not SessionStatus.IN_PROGRESS:
            raise StaleSubmissionError(f"Session for {self.user_id} is not in progress.")
        current = self.current_question()
        if question_id != current.id:
            raise StaleSubmissionError(
                f"Question {question_id} is no longer current (active question is {current.id})."
            )
        normalized = option.strip().upper() if option is not None else None
        if normalized is not None and normalized not in OPTION_LABELS:
            raise ValueError("Option must be one of A, B, C or D.")

        self._pending_option = normalized
        self._pending_response_time = self._elapsed_on_question()

    def advance(self, expected_question_id: int | None = None) -> AnswerRecord | None:
        """Commit the active question and move on.

        Returns the committed record, or ``None`` when nothing was committed
        because the session already finished or ``expected_question_id`` was
        already committed by the countdown.
        """
        if self._status is SessionStatus.FINISHED:
            logger.debug("Advance ignored for %s: session already finished", self.user_id)
            return None
        if self._status is SessionStatus.IDLE:
            raise StaleSubmissionError(f"Session for {self.user_id} has not started.")
        if expected_question_id is not None and expected_question_id != self.current_question().id:
            logger.debug(
                "Advance for question %s ignored for %s: already committed",
                expected_question_id,
                self.user_id,
            )
            return None
        return self._commit(self._index)

    def tick(self) -> AnswerRecord | None:
        """Count down one second, committing the active question at zero."""
        if self._status is not SessionStatus.IN_PROGRESS:
            return None
        self._remaining = max(0, self._remaining - 1)
        if self._remaining > 0:
            return None
        logger.info("Time is up for %s on question %d", self.user_id, self._index + 1)
        return self._commit(self._index)

    def finish_now(self) -> AnswerRecord | None:
        """Commit the active question and finish; later questions stay skipped."""
        if self._status is not SessionStatus.IN_PROGRESS:
            return None
        record = self._commit(self._index)
        if self._status is not SessionStatus.FINISHED:
            self._finish()
        return record

    # --- Result ---

    def get_result(self) -> QuizResult | None:
        return self._result

    def has_pending_result(self) -> bool:
        return self._result is not None and not self._result_submitted

    def is_result_submitted(self) -> bool:
        return self._result_submitted

    def mark_result_submitted(self, stored: QuizResult) -> None:
        self._result = stored
        self._result_submitted = True

    # --- Internals ---

    def _commit(self, index: int) -> AnswerRecord | None:
        if index != self._committed_count or index >= len(self._questions):
            return None

        question = self._questions[index]
        option = self._pending_option
        if option is None:
            response_time = self._elapsed_on_question()
        else:
            response_time = self._pending_response_time or 0
        record = AnswerRecord(
            user_id=self.user_id,
            question_id=question.id,
            selected_option=option,
            is_correct=classify_answer(question, option) is AnswerOutcome.CORRECT,
            response_time_seconds=response_time,
            submitted_at=datetime.utcnow(),
        )
        self._answers[question.id] = record
        self._committed_count = index + 1

        self._index = index + 1
        self._remaining = self._question_duration
        self._pending_option = None
        self._pending_response_time = None
        if self._index == len(self._questions):
            self._finish()
        return record

    def _finish(self) -> None:
        self._status = SessionStatus.FINISHED
        self._remaining = 0
        self._finished_at = self._clock()
        started = self._started_at if self._started_at is not None else self._finished_at
        completion_time = int(self._finished_at - started + 0.5)
        summary = score_answers(self._questions, self._answers)
        self._result = QuizResult.from_summary(self.user_id, summary, completion_time)
        logger.info(
            "Session for %s finished: score %d (%d correct, %d incorrect, %d skipped)",
            self.user_id,
            summary.score,
            summary.correct_count,
            summary.incorrect_count,
            summary.skipped_count,
        )

    def _elapsed_on_question(self) -> int:
        return self._question_duration - self._remaining
