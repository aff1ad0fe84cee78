"""Quiz-related constants shared across the core and server layers."""

OPTION_LABELS: tuple[str, ...] = ("A", "B", "C", "D")

DEFAULT_QUESTION_DURATION_SECONDS: int = 60
TICK_INTERVAL_SECONDS: float = 1.0
LIFECYCLE_POLL_INTERVAL_SECONDS: int = 5

# Scoring policy: +2 per correct answer, -1 per incorrect one, skipped answers count 0.
CORRECT_POINTS: int = 2
INCORRECT_PENALTY: int = 1
