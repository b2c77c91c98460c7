"""Asset processing pipeline for Quire.

Mirrors the project's ``assets/`` tree into the output directory, routing
each file through the processor registered for it. The pipeline runs after
every HTML document has been written, because the CSS purge scans the
written HTML tree.

Key components:
- AssetEntry: One asset file and its transform kind.
- AssetPipeline: Walks the asset tree and applies processors.

A failing asset is skipped with a warning and recorded in the build report;
the remaining assets are still processed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .asset_processors import AssetProcessorRegistry, create_default_registry
from .errors import AssetError
from .output import OutputWriter
from .utils import walk_files

if TYPE_CHECKING:
    from .build import BuildReport

logger = logging.getLogger(__name__)

ASSET_KINDS = {".css": "css", ".js": "js"}


@dataclass(frozen=True)
class AssetEntry:
    """An asset file found under the assets directory.

    Attributes:
        path: Absolute source path.
        relative: Path relative to the project root, e.g. assets/css/site.css.
    """

    path: Path
    relative: Path

    @property
    def kind(self) -> str:
        return ASSET_KINDS.get(self.path.suffix.lower(), "other")


class AssetPipeline:
    """Handles the processing of static assets for the site.

    Attributes:
        project_root: Root directory of the project.
        assets_dir: Directory containing source assets.
        writer: Writer for the output tree.
        processor_registry: Registry of asset processors.
    """

    def __init__(
        self,
        project_root: Path,
        writer: OutputWriter,
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.project_root = project_root
        self.assets_dir = project_root / "assets"
        self.writer = writer
        self.processor_registry = processor_registry or create_default_registry(
            project_root, writer
        )

    def entries(self) -> list[AssetEntry]:
        """List the asset files in processing order."""
        return [
            AssetEntry(path=path, relative=path.relative_to(self.project_root))
            for path in walk_files(self.assets_dir)
        ]

    def run(self, report: BuildReport | None = None) -> list[Path]:
        """Process every asset.

        Args:
            report: Optional build report collecting written files and failures.

        Returns:
            Paths of the files written to the output tree.
        """
        written: list[Path] = []
        for entry in self.entries():
            logger.info("Processing %s (%s)", entry.relative.as_posix(), entry.kind)
            try:
                target = self.processor_registry.process(entry.path, entry.relative, self.writer)
            except AssetError as exc:
                logger.warning("Skipping %s: %s", entry.relative.as_posix(), exc.message)
                if report is not None:
                    report.record_failure("assets", entry.path, exc)
                continue
            if target is None:
                logger.info("No processor for %s", entry.relative.as_posix())
                continue
            written.append(target)
        if report is not None:
            report.assets.extend(written)
        return written
