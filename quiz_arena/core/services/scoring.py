"""Scoring of a completed set of answers."""

from __future__ import annotations

from enum import Enum
import math
from typing import Mapping, Sequence

from quiz_arena.constants.quiz_constants import CORRECT_POINTS, INCORRECT_PENALTY
from quiz_arena.core.models import AnswerRecord, Question, ScoreSummary


class AnswerOutcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    SKIPPED = "skipped"


def classify_answer(question: Question, selected_option: str | None) -> AnswerOutcome:
    """Classify a single choice; an absent choice is skipped, never incorrect."""
    if selected_option is None:
        return AnswerOutcome.SKIPPED
    if selected_option == question.correct_option:
        return AnswerOutcome.CORRECT
    return AnswerOutcome.INCORRECT


def compute_score(correct_count: int, incorrect_count: int) -> int:
    return CORRECT_POINTS * correct_count - INCORRECT_PENALTY * incorrect_count


def score_answers(
    questions: Sequence[Question],
    answers: Mapping[int, AnswerRecord],
) -> ScoreSummary:
    """Compute the score summary for ``answers`` keyed by question id.

    Every question of the bank is classified; questions without a record are
    skipped. The average response time covers answered questions only and is
    rounded to whole seconds.
    """
    correct_count = 0
    incorrect_count = 0
    skipped_count = 0
    total_response_time = 0

    for question in questions:
        record = answers.get(question.id)
        selected = record.selected_option if record is not None else None
        outcome = classify_answer(question, selected)
        if outcome is AnswerOutcome.SKIPPED:
            skipped_count += 1
            continue
        if outcome is AnswerOutcome.CORRECT:
            correct_count += 1
        else:
            incorrect_count += 1
        total_response_time += record.response_time_seconds

    answered_count = correct_count + incorrect_count
    # Halves round up.
    average = math.floor(total_response_time / answered_count + 0.5) if answered_count else 0

    return ScoreSummary(
        score=compute_score(correct_count, incorrect_count),
        correct_count=correct_count,
        incorrect_count=incorrect_count,
        skipped_count=skipped_count,
        average_response_time=average,
    )
