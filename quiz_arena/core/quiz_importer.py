"""Utilities for importing a question bank from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    C: Third option text
    D: Fourth option text
    CORRECT: A|B|C|D

Example:

    Q: What is $2 + 2$?
    A: 3
    B: 4
    C: 5
    D: 22
    CORRECT: B

Every question must be graded, so CORRECT is mandatory. The countdown is a
competition-wide setting and is not part of the file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from quiz_arena.constants.quiz_constants import OPTION_LABELS
from quiz_arena.core.models import Question


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for imported quiz metadata and questions."""

    source_path: Path
    questions: list[Question]


def load_quiz_from_file(file_path: Path) -> ImportedQuiz:
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise QuizImportError(f"Unable to read quiz file '{file_path}': {exc}") from exc
    questions = parse_quiz_text(text)
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")
    return ImportedQuiz(source_path=file_path, questions=questions)


def parse_quiz_text(text: str) -> list[Question]:
    """Parse every question block found in ``text``."""
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    return [_parse_block(block, position) for position, block in enumerate(blocks, start=1) if block]


def _parse_block(block: str, position: int) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_label: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_label = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LABELS and line[1] == ":":
            label = line[0].upper()
            options[label] = line[2:].strip()
            current_section = label
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in OPTION_LABELS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Question {position}: text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise QuizImportError(f"Question {position}: question text missing (Q: ...)")
    if len(options) != len(OPTION_LABELS):
        raise QuizImportError(f"Question {position}: exactly four options (A-D) are required.")
    if correct_label is None:
        raise QuizImportError(f"Question {position}: CORRECT is required.")
    if correct_label not in OPTION_LABELS:
        raise QuizImportError(f"Question {position}: CORRECT must be one of A, B, C, or D.")

    option_list = [options[label].strip() for label in OPTION_LABELS]
    if any(not opt for opt in option_list):
        raise QuizImportError(f"Question {position}: option text cannot be empty.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError(f"Question {position}: question text cannot be empty.")

    return Question(
        id=0,  # assigned by the question bank
        question_text=question_text,
        options=option_list,
        correct_option=correct_label,
    )
