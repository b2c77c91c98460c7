"""Content loading for Quire.

Reads a content file and splits its leading YAML front matter block from the
Markdown body. Malformed front matter raises ParseError, which the post
builder turns into a skipped post.

Key functions:
- extract_frontmatter: Split front matter from text.
- load_content: Read a file and return (body, front matter).
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from .errors import ParseError

OPENING_RE = re.compile(r"\A---[ \t]*\r?\n")
FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)


def extract_frontmatter(
    text: str, source_path: Path | None = None
) -> tuple[dict[str, Any], str]:
    """Extract YAML front matter from content.

    Args:
        text: Raw file content.
        source_path: Path reported in errors.

    Returns:
        Tuple of (front matter dict, remaining body). Text without a
        front matter block yields an empty dict and the full text.

    Raises:
        ParseError: The block is unterminated, is not valid YAML, or
            does not hold a mapping.
    """
    stripped = text.removeprefix("\ufeff")
    if not OPENING_RE.match(stripped):
        return {}, text

    match = FRONTMATTER_RE.match(stripped)
    if not match:
        raise ParseError("Unterminated front matter block", source_path)

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid front matter: {exc}", source_path) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError(
            f"Front matter must be a mapping, got {type(data).__name__}",
            source_path,
        )
    return data, stripped[match.end() :]


def load_content(path: Path) -> tuple[str, dict[str, Any]]:
    """Read a content file and split its front matter from the body.

    Args:
        path: Path to the content file.

    Returns:
        Tuple of (body, front matter).
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Not valid UTF-8: {exc}", path) from exc
    frontmatter, body = extract_frontmatter(text, path)
    return body, frontmatter
