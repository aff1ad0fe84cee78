"""Payload and response schemas for the quiz API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from quiz_arena.constants.quiz_constants import LIFECYCLE_POLL_INTERVAL_SECONDS
from quiz_arena.core.markdown_renderer import renderer
from quiz_arena.core.models import (
    AnswerRecord,
    LifecycleSnapshot,
    Question,
    QuizResult,
    SessionView,
)


class AnswerPayload(BaseModel):
    """Choice for the active question; ``null`` clears it."""

    question_id: int
    selected_option: str | None = Field(default=None, pattern="^[A-Da-d]$")


class AdvancePayload(BaseModel):
    question_id: int | None = None


class LifecycleOut(BaseModel):
    state: str
    start_time: datetime | None
    end_time: datetime | None
    last_reset: datetime | None
    run_id: int
    poll_interval_seconds: int = LIFECYCLE_POLL_INTERVAL_SECONDS

    @classmethod
    def from_snapshot(cls, snapshot: LifecycleSnapshot) -> "LifecycleOut":
        return cls(
            state=snapshot.state.value,
            start_time=snapshot.start_time,
            end_time=snapshot.end_time,
            last_reset=snapshot.last_reset,
            run_id=snapshot.run_id,
        )


class QuestionOut(BaseModel):
    id: int
    question_html: str
    options: dict[str, str]

    @classmethod
    def from_question(cls, question: Question) -> "QuestionOut":
        return cls(
            id=question.id,
            question_html=renderer.render_fragment(question.question_text),
            options=renderer.render_options(question),
        )


class AdminQuestionOut(BaseModel):
    id: int
    question_text: str
    options: list[str]
    correct_option: str


class AnswerOut(BaseModel):
    question_id: int
    selected_option: str | None
    is_correct: bool
    response_time_seconds: int
    submitted_at: datetime

    @classmethod
    def from_record(cls, record: AnswerRecord) -> "AnswerOut":
        return cls(
            question_id=record.question_id,
            selected_option=record.selected_option,
            is_correct=record.is_correct,
            response_time_seconds=record.response_time_seconds,
            submitted_at=record.submitted_at,
        )


class ResultOut(BaseModel):
    user_id: str | None
    score: int
    correct_answers: int
    incorrect_answers: int
    skipped_answers: int
    average_response_time: int
    completion_time: int
    rank: int | None
    created_at: datetime | None

    @classmethod
    def from_result(cls, result: QuizResult, hide_user: bool = False) -> "ResultOut":
        return cls(
            user_id=None if hide_user else result.user_id,
            score=result.score,
            correct_answers=result.correct_count,
            incorrect_answers=result.incorrect_count,
            skipped_answers=result.skipped_count,
            average_response_time=result.average_response_time,
            completion_time=result.completion_time,
            rank=result.rank,
            created_at=result.created_at,
        )


class SessionOut(BaseModel):
    status: str
    quiz_state: str
    question: QuestionOut | None
    question_index: int
    question_count: int
    remaining_seconds: int
    selected_option: str | None
    advisory: str | None
    result: ResultOut | None
    result_pending: bool
    poll_interval_seconds: int = LIFECYCLE_POLL_INTERVAL_SECONDS

    @classmethod
    def from_view(cls, view: SessionView) -> "SessionOut":
        return cls(
            status=view.status.value,
            quiz_state=view.lifecycle_state.value,
            question=QuestionOut.from_question(view.question) if view.question else None,
            question_index=view.question_index,
            question_count=view.question_count,
            remaining_seconds=view.remaining_seconds,
            selected_option=view.selected_option,
            advisory=view.advisory,
            result=ResultOut.from_result(view.result) if view.result else None,
            result_pending=view.result_pending,
        )
