"""Shared test helpers for quiz tests."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from quiz_arena.core.models import AnswerRecord, Question, QuizResult


def make_questions(correct_options: str = "ABC") -> list[Question]:
    """One question per letter in ``correct_options``, ids starting at 1."""
    return [
        Question(
            id=index,
            question_text=f"Question {index}",
            options=["one", "two", "three", "four"],
            correct_option=correct,
        )
        for index, correct in enumerate(correct_options, start=1)
    ]


def make_record(
    question_id: int,
    selected_option: str | None,
    response_time_seconds: int = 10,
    user_id: str = "student1",
    is_correct: bool = False,
) -> AnswerRecord:
    return AnswerRecord(
        user_id=user_id,
        question_id=question_id,
        selected_option=selected_option,
        is_correct=is_correct,
        response_time_seconds=response_time_seconds,
        submitted_at=datetime(2024, 1, 1, 12, 0, 0),
    )


def make_result(user_id: str, score: int, sequence: int | None = None) -> QuizResult:
    return QuizResult(
        user_id=user_id,
        score=score,
        correct_count=0,
        incorrect_count=0,
        skipped_count=0,
        average_response_time=0,
        completion_time=0,
        sequence=sequence,
    )


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimer:
    """Countdown stand-in that ticks only when ``fire`` is called."""

    def __init__(self, name: str, on_tick: Callable[[], bool]) -> None:
        self.name = name
        self.on_tick = on_tick
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def fire(self, times: int = 1) -> bool:
        keep_running = True
        for _ in range(times):
            keep_running = self.on_tick()
        return keep_running


class ManualTimerFactory:
    """Collects every timer a manager creates."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, name: str, on_tick: Callable[[], bool]) -> ManualTimer:
        timer = ManualTimer(name, on_tick)
        self.timers.append(timer)
        return timer

    def latest(self, name: str) -> ManualTimer:
        return [timer for timer in self.timers if timer.name == name][-1]
