"""Template rendering engine for Quire.

This module uses Jinja2 to render layouts, post pages and page templates.
Each build owns one TemplateEngine; its filter table is filled from the
project config before the first render and is read-only afterwards.

Key class:
- TemplateEngine: Renders template strings and loads layouts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateSyntaxError, select_autoescape

from .errors import ConfigError, FilesystemError, TemplateError

logger = logging.getLogger(__name__)

DATE_FORMAT = "%m/%d/%Y"


def format_date(value: Any, fmt: str = DATE_FORMAT) -> str:
    """Format a date, datetime or ISO date string.

    Args:
        value: Value to format.
        fmt: strftime format, month/day/year by default.

    Returns:
        The formatted date, or the value unchanged as text when it is not a date.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, (date, datetime)):
        return value.strftime(fmt)
    return str(value)


DEFAULT_FILTERS: dict[str, Callable[..., Any]] = {"date": format_date}


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        layout_dir: Directory holding layouts and includable templates.
        env: Jinja2 environment.
    """

    def __init__(self, layout_dir: Path | None = None):
        """Initialize the template engine.

        Args:
            layout_dir: Directory with layouts, also used to resolve
                extends/include in rendered templates.
        """
        self.layout_dir = layout_dir
        self.env = Environment(
            loader=FileSystemLoader([layout_dir]) if layout_dir else None,
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.filters.update(DEFAULT_FILTERS)
        self._sealed = False

    def add_filter(self, name: str, fn: Callable[..., Any]) -> None:
        """Register a filter usable as ``{{ value | name }}``.

        Raises:
            ConfigError: fn is not callable.
            RuntimeError: Rendering has already started.
        """
        if self._sealed:
            raise RuntimeError(f"Cannot add filter '{name}' after rendering started")
        if not callable(fn):
            raise ConfigError(f"Filter '{name}' is not callable")
        self.env.filters[name] = fn
        logger.debug("Registered template filter %s", name)

    def add_filters(self, filters: Mapping[str, Callable[..., Any]]) -> None:
        for name, fn in filters.items():
            self.add_filter(name, fn)

    def render(self, template: str, data: Mapping[str, Any]) -> str:
        """Render a template string.

        Args:
            template: Template source.
            data: Variables available in the template.

        Returns:
            Rendered string.

        Raises:
            TemplateError: Unknown filter, malformed syntax or a render failure.
        """
        self._sealed = True
        try:
            return self.env.from_string(template).render(dict(data))
        except TemplateSyntaxError as exc:
            raise TemplateError(
                f"Template syntax error on line {exc.lineno}: {exc.message}"
            ) from exc
        except Exception as exc:
            raise TemplateError(_format_error_message(exc)) from exc

    def load_layout(self, name: str) -> str:
        """Read a layout file from the layout directory.

        Raises:
            FilesystemError: The layout does not exist.
        """
        if self.layout_dir is None:
            raise FilesystemError(f"No layout directory configured for '{name}'")
        path = self.layout_dir / name
        if not path.is_file():
            raise FilesystemError(f"Missing required layout '{name}'", path)
        return path.read_text(encoding="utf-8")


def _format_error_message(exc: Exception) -> str:
    """Format a template exception into a user-friendly message."""
    error_type = type(exc).__name__
    if error_type == "UndefinedError":
        return f"Undefined variable: {exc}"
    if error_type == "TemplateNotFound":
        return f"Template not found: {exc}"
    return f"{error_type}: {exc}"
