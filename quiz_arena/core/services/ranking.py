"""Leaderboard ordering for finalized results."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from quiz_arena.core.models import QuizResult


def rank_results(results: Iterable[QuizResult]) -> list[QuizResult]:
    """Return copies of ``results`` ordered by score with 1-based ranks.

    Equal scores keep creation order (``sequence``); they are not resolved by
    response time or any other metric. Ranks follow sort position, so ties
    still get distinct, gapless ranks ``1..N``. Ranks are always recomputed
    from scratch.
    """
    by_creation = sorted(results, key=_creation_key)
    ordered = sorted(by_creation, key=lambda result: -result.score)
    return [replace(result, rank=position) for position, result in enumerate(ordered, start=1)]


def _creation_key(result: QuizResult) -> tuple[int, int]:
    # Results that have not been stored yet sort after stored ones, in input order.
    if result.sequence is None:
        return (1, 0)
    return (0, result.sequence)
