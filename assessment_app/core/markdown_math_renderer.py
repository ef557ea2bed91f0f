"""Markdown + LaTeX rendering of question text for web clients.

Question bodies keep their parsed line structure (continuation lines and
``•`` bullets). The renderer turns them into an HTML fragment and leaves
``$...$`` math untouched so MathJax can typeset it in the browser.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html, "breaks": True})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = _bullets_to_markdown(markdown_text.strip())
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)


def _bullets_to_markdown(text: str) -> str:
    lines = []
    for line in text.splitlines():
        if line.startswith("• "):
            if lines and not lines[-1].startswith("- "):
                lines.append("")
            lines.append(f"- {line[2:]}")
        else:
            lines.append(line)
    return "\n".join(lines)


# MarkdownIt is safe for concurrent read-only renders, so one instance is shared.
renderer = MarkdownMathRenderer()
