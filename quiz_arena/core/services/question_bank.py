"""Read-only question bank consumed by quiz sessions."""

from __future__ import annotations

from threading import Lock
from typing import Protocol, Sequence

from quiz_arena.constants.quiz_constants import OPTION_LABELS
from quiz_arena.core.models import Question


class QuestionBank(Protocol):
    """Ordered source of questions, stable for the duration of a quiz run."""

    def list(self) -> list[Question]:
        ...


class InMemoryQuestionBank:
    """Validates questions once and serves them in a fixed order."""

    def __init__(self, questions: Sequence[Question] = ()) -> None:
        self._lock = Lock()
        self._questions: list[Question] = []
        self._question_counter: int = 0
        if questions:
            self.load_questions(questions)

    def load_questions(self, questions: Sequence[Question]) -> None:
        """Replace the bank with a new list of questions."""
        if not questions:
            raise ValueError("Question bank must contain at least one question.")
        with self._lock:
            self._question_counter = 0
            self._questions = [self._prepare_question(q) for q in questions]

    def list(self) -> list[Question]:
        with self._lock:
            return list(self._questions)

    def _prepare_question(self, question: Question) -> Question:
        options = self._validate_options(question.options)
        correct = question.correct_option.strip().upper()
        if correct not in OPTION_LABELS:
            raise ValueError("Correct option must be one of A, B, C or D.")

        cleaned_text = question.question_text.strip()
        if not cleaned_text:
            raise ValueError("Question text must not be empty.")

        self._question_counter += 1
        return Question(
            id=self._question_counter,
            question_text=cleaned_text,
            options=options,
            correct_option=correct,
        )

    @staticmethod
    def _validate_options(options: list[str]) -> list[str]:
        if len(options) != len(OPTION_LABELS):
            raise ValueError("Each question must have exactly four options.")
        cleaned = [option.strip() for option in options]
        if any(not option for option in cleaned):
            raise ValueError("Option text cannot be empty.")
        return cleaned
