"""Utility functions for Quire.

Directory listing, output cleanup, file timestamps and executable lookup
shared by the builders and the asset pipeline.

Key functions:
    list_content_files: Non-hidden files of a directory in listing order.
    walk_files: All files below a directory in listing order.
    ensure_clean_dir: Ensure a directory exists and is empty.
    file_timestamps: Creation and modification time of a file.
    find_executable: Locate a tool in PATH or node_modules/.bin.
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path

IGNORED_NAMES = {".gitkeep", ".DS_Store"}


def list_content_files(directory: Path) -> list[Path]:
    """List the files of a content directory.

    Directories and dotfiles are skipped. Files are returned sorted by name,
    which is the listing order every stage processes items in.

    Args:
        directory: Directory to list.

    Returns:
        Sorted list of file paths, empty if the directory is missing.
    """
    if not directory.is_dir():
        return []
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file() and not path.name.startswith(".")
    )


def walk_files(directory: Path) -> list[Path]:
    """List every file below a directory, recursively.

    Args:
        directory: Root directory to walk.

    Returns:
        Sorted list of file paths, excluding placeholder files like .gitkeep.
    """
    if not directory.is_dir():
        return []
    return sorted(
        path
        for path in directory.rglob("*")
        if path.is_file() and path.name not in IGNORED_NAMES
    )


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def file_timestamps(path: Path) -> tuple[datetime, datetime]:
    """Return the creation and modification time of a file.

    Platforms without a birth time report ctime as the creation time.

    Args:
        path: File to inspect.

    Returns:
        Tuple of (created, updated) datetimes.
    """
    stat = path.stat()
    created = getattr(stat, "st_birthtime", stat.st_ctime)
    return datetime.fromtimestamp(created), datetime.fromtimestamp(stat.st_mtime)


def find_executable(name: str, project_root: Path | None = None) -> str | None:
    """Find an executable in PATH or the project's node_modules/.bin.

    Args:
        name: Name of the executable (e.g. 'tailwindcss', 'terser').
        project_root: Optional project root to search for a local install.

    Returns:
        Full path to the executable if found, None otherwise.
    """
    found = shutil.which(name)
    if found:
        return found

    if project_root is not None:
        local = project_root / "node_modules" / ".bin" / name
        if local.exists():
            return str(local)

    return None
