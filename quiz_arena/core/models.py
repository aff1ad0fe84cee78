"""Domain models for the quiz competition."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Role attached to an authenticated identity."""

    STUDENT = "student"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class LifecycleState(str, Enum):
    """Global phase of the competition."""

    WAITING = "waiting"
    STARTED = "started"
    COMPLETED = "completed"


class SessionStatus(str, Enum):
    """Phase of one student's traversal of the question sequence."""

    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


@dataclass(slots=True, frozen=True)
class Identity:
    """Opaque identity handed over by the authentication collaborator."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPERADMIN)


@dataclass(slots=True, frozen=True)
class Question:
    """Multiple-choice question with exactly four options labelled A-D."""

    id: int
    question_text: str
    options: list[str]
    correct_option: str


@dataclass(slots=True)
class AnswerRecord:
    """The committed (possibly empty) choice of one student for one question."""

    user_id: str
    question_id: int
    selected_option: str | None
    is_correct: bool
    response_time_seconds: int
    submitted_at: datetime

    @property
    def is_skipped(self) -> bool:
        return self.selected_option is None


@dataclass(slots=True, frozen=True)
class LifecycleSnapshot:
    """Read-only copy of the global lifecycle state."""

    state: LifecycleState
    start_time: datetime | None
    end_time: datetime | None
    last_reset: datetime | None
    run_id: int
    updated_at: datetime


@dataclass(slots=True, frozen=True)
class ScoreSummary:
    """Aggregate statistics computed from one student's answers."""

    score: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    average_response_time: int


@dataclass(slots=True)
class QuizResult:
    """Finalized scoring summary for one student, ranked among all results."""

    user_id: str
    score: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    average_response_time: int
    completion_time: int
    rank: int | None = None
    created_at: datetime | None = None
    sequence: int | None = None  # creation order, assigned by the store

    @classmethod
    def from_summary(cls, user_id: str, summary: ScoreSummary, completion_time: int) -> "QuizResult":
        return cls(
            user_id=user_id,
            score=summary.score,
            correct_count=summary.correct_count,
            incorrect_count=summary.incorrect_count,
            skipped_count=summary.skipped_count,
            average_response_time=summary.average_response_time,
            completion_time=completion_time,
        )


@dataclass(slots=True, frozen=True)
class SessionView:
    """What a student sees when polling their session."""

    user_id: str
    status: SessionStatus
    lifecycle_state: LifecycleState
    question: Question | None = None
    question_index: int = 0
    question_count: int = 0
    remaining_seconds: int = 0
    selected_option: str | None = None
    advisory: str | None = None
    result: QuizResult | None = None
    result_pending: bool = False
