"""Error types raised by the Quire build pipeline.

Every error carries an optional source path so the CLI can point the author
at the file that caused it.

Item-level errors (ParseError, TemplateError, AssetError) skip a single post,
page or asset. Stage-level errors (ConfigError, FilesystemError) abort the
whole build.
"""

from __future__ import annotations

from pathlib import Path


class QuireError(Exception):
    """Base class for pipeline errors.

    Attributes:
        message: Human-readable error message.
        source_path: Path to the file that caused the error, if known.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.message = message
        self.source_path = source_path
        if source_path is not None:
            super().__init__(f"{source_path}: {message}")
        else:
            super().__init__(message)


class ParseError(QuireError):
    """Malformed front matter or content file."""


class TemplateError(QuireError):
    """Unknown filter, malformed template syntax or a failing render."""


class AssetError(QuireError):
    """A CSS or JS transform failed for one asset."""


class FilesystemError(QuireError):
    """Missing required file or an unusable output directory."""


class ConfigError(QuireError):
    """Invalid settings, config module or highlighter theme."""
