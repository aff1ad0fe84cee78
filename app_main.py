"""Application entry point for the QuizArena competition server."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from quiz_arena.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quiz_arena.constants.quiz_constants import DEFAULT_QUESTION_DURATION_SECONDS
from quiz_arena.core.quiz_importer import QuizImportError, load_quiz_from_file
from quiz_arena.core.quiz_manager import QuizManager
from quiz_arena.core.services.question_bank import InMemoryQuestionBank
from quiz_arena.server.api_server import run_api_server
from quiz_arena.utils.logging_config import configure_logging

_DEFAULT_QUIZ_FILE = Path(__file__).resolve().parent / "quiz_arena" / "data" / "sample_quiz.txt"


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the QuizArena competition server.")
    parser.add_argument(
        "--quiz-file",
        type=Path,
        default=_DEFAULT_QUIZ_FILE,
        help="question bank in the Q:/A:-D:/CORRECT: text format",
    )
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--question-seconds",
        type=_positive_int,
        default=DEFAULT_QUESTION_DURATION_SECONDS,
        help="countdown per question",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Initialize logging, load the question bank and serve the API."""
    args = _build_parser().parse_args(argv)
    logger = configure_logging()
    logger.info("Starting QuizArena…")

    try:
        imported = load_quiz_from_file(args.quiz_file)
    except QuizImportError as exc:
        logger.error("Could not load quiz: %s", exc)
        return 1
    logger.info("Loaded %d questions from %s", len(imported.questions), imported.source_path)

    quiz_manager = QuizManager(
        InMemoryQuestionBank(imported.questions),
        question_duration=args.question_seconds,
    )
    run_api_server(quiz_manager=quiz_manager, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
