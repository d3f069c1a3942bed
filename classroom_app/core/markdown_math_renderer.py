"""Markdown + LaTeX rendering of question text for the browser.

Question and option text is stored as markdown source. The server renders
fragments with markdown-it and the review page loads MathJax so formulas
written as ``$...$`` display on the client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape

from markdown_it import MarkdownIt

_MATHJAX_SCRIPT = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments or full documents."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line (such as an option) without a wrapping paragraph."""
        return self._markdown.renderInline((markdown_text or "").strip())

    def wrap_with_mathjax(self, body_html: str, title: str = "Classroom") -> str:
        """Wrap a fragment inside a minimal HTML document that loads MathJax."""
        return f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{escape(title)}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      body {{ font-family: system-ui, sans-serif; margin: 0; padding: 1.5rem; }}
      .option {{ padding: 0.4rem 0.75rem; border-radius: 0.5rem; margin: 0.25rem 0; }}
      .selected_correct {{ background: #dcfce7; border: 2px solid #16a34a; }}
      .correct_not_selected {{ border: 2px dashed #16a34a; }}
      .selected_incorrect {{ background: #fee2e2; border: 2px solid #dc2626; }}
    </style>
    <script>
      window.MathJax = {{ tex: {{ inlineMath: [['$','$']], displayMath: [['$$','$$']] }} }};
    </script>
    <script defer src="{_MATHJAX_SCRIPT}"></script>
  </head>
  <body>
{body_html}
  </body>
</html>"""


# Shared by every request thread.
renderer = MarkdownMathRenderer()
