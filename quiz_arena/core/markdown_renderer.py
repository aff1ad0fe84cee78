"""Markdown rendering for question and option text returned by the API.

Math markup (``$...$``) is passed through untouched inside the HTML
fragments; typesetting it is left to whoever displays them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

from quiz_arena.constants.quiz_constants import OPTION_LABELS
from quiz_arena.core.models import Question


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render option text without the surrounding paragraph."""
        return self._markdown.renderInline(markdown_text.strip())

    def render_options(self, question: Question) -> dict[str, str]:
        return {
            label: self.render_inline(text)
            for label, text in zip(OPTION_LABELS, question.options)
        }


# MarkdownIt is safe for concurrent read-only renders; request handlers share this instance.
renderer = MarkdownRenderer()
