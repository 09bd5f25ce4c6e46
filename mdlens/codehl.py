"""Pygments-backed code highlighting for fenced blocks in both views."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "monokai"

# (code, language) -> HTML fragment, or None when the language is unsupported.
CodeHighlighter = Callable[[str, str], Optional[str]]


class PygmentsHighlighter:
    """Highlight code to inline-styled HTML spans, one formatter per style."""

    def __init__(self, style_name: str | None = None) -> None:
        chosen_style = (style_name or DEFAULT_STYLE).strip() or DEFAULT_STYLE
        try:
            self._formatter = HtmlFormatter(style=chosen_style, nowrap=True, noclasses=True)
        except ClassNotFound:
            logger.warning("Unknown Pygments style %r; using %s", chosen_style, DEFAULT_STYLE)
            chosen_style = DEFAULT_STYLE
            self._formatter = HtmlFormatter(style=chosen_style, nowrap=True, noclasses=True)
        self.style_name = chosen_style
        self._lexer_cache: dict[str, Lexer | None] = {}

    def _lexer_for(self, language: str) -> Lexer | None:
        cache_key = (language or "").strip().lower()
        if cache_key in self._lexer_cache:
            return self._lexer_cache[cache_key]
        lexer: Lexer | None = None
        if cache_key:
            try:
                lexer = get_lexer_by_name(cache_key, stripnl=False, ensurenl=False)
            except ClassNotFound:
                logger.debug("No Pygments lexer for %r; code stays plain", cache_key)
        self._lexer_cache[cache_key] = lexer
        return lexer

    def background_color(self) -> str:
        return str(self._formatter.style.background_color or "")

    def __call__(self, code: str, language: str) -> str | None:
        lexer = self._lexer_for(language)
        if lexer is None:
            return None
        try:
            return highlight(code, lexer, self._formatter)
        except Exception as exc:
            logger.debug("Pygments highlighting failed for %s: %s", language, exc)
            return None
