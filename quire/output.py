"""Output tree materialization for Quire.

The OutputWriter owns the output directory: it cleans it at the start of a
build, writes rendered documents to ``<url>/index.html`` and writes or copies
assets to their mirrored path.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .errors import FilesystemError
from .utils import ensure_clean_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedDocument:
    """A finished HTML document.

    Attributes:
        path: Output path relative to the output root.
        html: Minified HTML.
    """

    path: Path
    html: str

    @classmethod
    def for_url(cls, url: str, html: str) -> RenderedDocument:
        """Create a document written to the index.html of a URL path."""
        url_path = url.strip("/")
        return cls(path=Path(url_path) / "index.html", html=html)


class OutputWriter:
    """Writes build artifacts below an output root.

    Attributes:
        output_dir: Root of the generated site.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir

    def clean(self, protect: Path | None = None) -> None:
        """Remove any previous output and recreate an empty root.

        Args:
            protect: Directory that must survive the clean, usually the
                project root. The output root may not be it or contain it.

        Raises:
            FilesystemError: The directory could not be removed or created, or
                removing it would delete the protected directory.
        """
        if protect is not None and protect.resolve().is_relative_to(self.output_dir.resolve()):
            raise FilesystemError(
                f"Output directory would delete the project at {protect}", self.output_dir
            )
        try:
            ensure_clean_dir(self.output_dir)
        except OSError as exc:
            raise FilesystemError(
                f"Cannot prepare output directory: {exc.strerror or exc}", self.output_dir
            ) from exc

    def write(self, document: RenderedDocument) -> Path:
        target = self._resolve(document.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(document.html, encoding="utf-8")
        logger.debug("Wrote %s", target)
        return target

    def write_asset(self, relative: Path, content: str) -> Path:
        target = self._resolve(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.debug("Wrote asset %s", target)
        return target

    def copy_asset(self, source: Path, relative: Path) -> Path:
        target = self._resolve(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        logger.debug("Copied asset %s", target)
        return target

    def html_files(self) -> list[Path]:
        """Every HTML file written so far, sorted."""
        if not self.output_dir.exists():
            return []
        return sorted(self.output_dir.rglob("*.html"))

    def _resolve(self, relative: Path) -> Path:
        target = (self.output_dir / relative).resolve()
        if not target.is_relative_to(self.output_dir.resolve()):
            raise FilesystemError(f"Refusing to write outside the output directory: {relative}")
        return target
