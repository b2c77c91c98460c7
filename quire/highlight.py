"""Syntax highlighting for fenced code blocks.

The Highlighter has an explicit two-phase lifecycle: initialize() resolves
the Pygments style once per build, then highlight() is a pure, synchronous
call that the Markdown renderer may invoke any number of times.

Highlighted fragments carry inline styles, so the output needs no extra
stylesheet and survives CSS purging untouched.
"""

from __future__ import annotations

import logging

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_THEME = "nord"


class Highlighter:
    """Highlights source code to HTML with a Pygments theme.

    Attributes:
        theme: Name of the Pygments style.
    """

    def __init__(self, theme: str = DEFAULT_THEME):
        self.theme = theme
        self._formatter: HtmlFormatter | None = None
        self._lexers: dict[str, Lexer] = {}

    @property
    def initialized(self) -> bool:
        return self._formatter is not None

    def initialize(self) -> None:
        """Resolve the theme and build the formatter.

        Raises:
            ConfigError: The theme is not a known Pygments style.
        """
        if self.initialized:
            return
        try:
            style = get_style_by_name(self.theme)
        except ClassNotFound as exc:
            raise ConfigError(f"Unknown highlight theme '{self.theme}'") from exc
        self._formatter = HtmlFormatter(style=style, noclasses=True, cssclass="highlight")
        logger.debug("Highlighter ready with theme %s", self.theme)

    def highlight(self, code: str, lang: str | None = None) -> str:
        """Render code as a highlighted HTML fragment.

        Args:
            code: Source code of the block.
            lang: Language name from the fence info string.

        Returns:
            HTML fragment wrapping a <pre> block.

        Raises:
            RuntimeError: initialize() has not completed.
        """
        if self._formatter is None:
            raise RuntimeError("Highlighter used before initialize()")
        return pygments_highlight(code, self._lexer_for(lang), self._formatter)

    def _lexer_for(self, lang: str | None) -> Lexer:
        key = (lang or "").strip().lower()
        if key not in self._lexers:
            try:
                lexer = get_lexer_by_name(key) if key else TextLexer()
            except ClassNotFound:
                logger.debug("No lexer for language %r; using plain text", lang)
                lexer = TextLexer()
            self._lexers[key] = lexer
        return self._lexers[key]
