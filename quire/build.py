"""Site building functionality for Quire.

This module sequences the build stages:

    clean → load config → register filters → initialize highlighter →
    build posts → build pages → process assets

The order is strict: posts feed pages, and the CSS purge in the asset stage
scans the HTML written by the two stages before it. Item failures (one bad
post, page or asset) are collected in the BuildReport while the build goes
on. Stage failures abort the build with a BuildError.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from .assets import AssetPipeline
from .builders import POST_LAYOUT, PageBuilder, Post, PostBuilder
from .config import load_config, load_settings
from .errors import ConfigError, FilesystemError, QuireError
from .highlight import Highlighter
from .output import OutputWriter, RenderedDocument
from .renderers import MarkdownRenderer
from .templates import TemplateEngine
from .utils import list_content_files

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """A build stage failed and the build was aborted.

    Attributes:
        stage: Name of the stage that failed.
        message: Human-readable error message.
        source_path: Path to the file that caused the error, if known.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        stage: str,
        message: str,
        source_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.stage = stage
        self.message = message
        self.source_path = source_path
        self.original_error = original_error
        location = f"{source_path}: " if source_path else ""
        super().__init__(f"[{stage}] {location}{message}")


@dataclass
class ItemFailure:
    """A post, page or asset that was skipped.

    Attributes:
        stage: Stage the item belongs to ('posts', 'pages' or 'assets').
        path: Source path of the item.
        error: The error that caused the skip.
    """

    stage: str
    path: Path
    error: QuireError

    @property
    def message(self) -> str:
        return self.error.message


@dataclass
class BuildReport:
    """Result of a site build.

    Attributes:
        output_dir: Directory where the site was built.
        posts: Posts built, in listing order.
        pages: Pages written.
        assets: Asset files written.
        failures: Items skipped because of an error.
    """

    output_dir: Path
    posts: list[Post] = field(default_factory=list)
    pages: list[RenderedDocument] = field(default_factory=list)
    assets: list[Path] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def record_failure(self, stage: str, path: Path, error: QuireError) -> None:
        self.failures.append(ItemFailure(stage=stage, path=path, error=error))


@contextmanager
def _stage(name: str) -> Iterator[None]:
    """Run one build stage, turning its hard failures into a BuildError."""
    logger.debug("Stage %s started", name)
    try:
        yield
    except (ConfigError, FilesystemError) as exc:
        raise BuildError(name, exc.message, exc.source_path, exc) from exc
    except OSError as exc:
        source = Path(exc.filename) if exc.filename else None
        raise BuildError(name, exc.strerror or str(exc), source, exc) from exc
    logger.debug("Stage %s finished", name)


def build_site(project_root: Path, output_dir_override: Path | None = None) -> BuildReport:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        output_dir_override: Optional path to write the build output instead of
            the configured output_dir.

    Returns:
        BuildReport with the built posts, pages, assets and skipped items.

    Raises:
        BuildError: A stage failed and the build was aborted.
    """
    with _stage("config"):
        settings = load_settings(project_root)
    output_dir = output_dir_override or (project_root / str(settings["output_dir"]))
    writer = OutputWriter(output_dir)
    report = BuildReport(output_dir=output_dir)

    logger.info("Building %s into %s", project_root, output_dir)

    with _stage("clean"):
        writer.clean(protect=project_root)

    with _stage("config"):
        config = load_config(project_root, str(settings["config_file"]))

    with _stage("filters"):
        engine = TemplateEngine(project_root / "layouts")
        engine.add_filters(config.filters)

    with _stage("highlighter"):
        highlighter = Highlighter(str(settings["highlight_theme"]))
        highlighter.initialize()

    with _stage("posts"):
        posts_dir = project_root / "posts"
        if list_content_files(posts_dir):
            post_builder = PostBuilder(
                engine,
                MarkdownRenderer(highlighter),
                writer,
                engine.load_layout(POST_LAYOUT),
                prefix=str(settings["blog_prefix"]),
                inject_reset=bool(settings["inject_reset"]),
            )
            post_builder.build_all(posts_dir, report)
    logger.info("%d posts processed", len(report.posts))

    with _stage("pages"):
        page_builder = PageBuilder(engine, writer, inject_reset=bool(settings["inject_reset"]))
        page_builder.build_all(project_root / "pages", report.posts, report)
    logger.info("%d pages processed", len(report.pages))

    with _stage("assets"):
        AssetPipeline(project_root, writer).run(report)
    logger.info("%d assets processed", len(report.assets))

    return report
