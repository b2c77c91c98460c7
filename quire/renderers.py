"""Markdown rendering for Quire.

Converts Markdown bodies to HTML with mistune. Fenced code blocks are handed
to the build's Highlighter instead of being emitted as plain <pre> text.

Key classes:
- MarkdownRenderer: Renders a Markdown body to HTML.
"""

from __future__ import annotations

import mistune

from .highlight import Highlighter

PLUGINS = ["strikethrough", "footnotes", "table", "url"]


class _HighlightRenderer(mistune.HTMLRenderer):
    """HTML renderer that delegates code blocks to a Highlighter.

    Attributes:
        highlighter: Initialized highlighter used for fenced blocks.
    """

    def __init__(self, highlighter: Highlighter):
        super().__init__(escape=False)
        self.highlighter = highlighter

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block through the highlighter.

        Args:
            code: The code content.
            info: Fence info string; its first word names the language.

        Returns:
            Highlighted HTML fragment.
        """
        lang = info.split()[0] if info and info.strip() else None
        return self.highlighter.highlight(code, lang)


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    The highlighter must be initialized before the first render call.
    """

    def __init__(self, highlighter: Highlighter):
        self.highlighter = highlighter
        self._markdown = mistune.create_markdown(
            renderer=_HighlightRenderer(highlighter), plugins=PLUGINS
        )

    def render(self, body: str) -> str:
        """Render Markdown content to HTML.

        Args:
            body: Markdown source.

        Returns:
            Rendered HTML.

        Raises:
            RuntimeError: The highlighter has not been initialized.
        """
        if not self.highlighter.initialized:
            raise RuntimeError("Highlighter must be initialized before rendering")
        return self._markdown(body)
