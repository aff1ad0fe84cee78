"""Static metadata describing QuizArena."""

APP_NAME = "QuizArena"
APP_VERSION = "0.1"
APP_ABOUT_TEXT = (
    "QuizArena runs timed multiple-choice competitions: students wait for an "
    "administrator to start the quiz, answer each question against a countdown, "
    "and are ranked on a shared leaderboard."
)
