"""Post and page builders for Quire.

PostBuilder turns each file in ``posts/`` into a page under the blog prefix:
load → parse front matter → render Markdown → merge metadata → render the
``post.html`` layout → finishing pass → write. PageBuilder renders each
template in ``pages/`` with the accumulated post metadata.

A post or page that fails to parse or render is skipped and recorded in the
build report; it never reaches the post sequence handed to pages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from markupsafe import Markup

from .content import load_content
from .errors import ParseError, TemplateError
from .html_utils import finalize_document
from .output import OutputWriter, RenderedDocument
from .renderers import MarkdownRenderer
from .templates import TemplateEngine
from .utils import file_timestamps, list_content_files

if TYPE_CHECKING:
    from .build import BuildReport

logger = logging.getLogger(__name__)

POST_LAYOUT = "post.html"
RESERVED_KEYS = ("content", "url", "createdAt", "updatedAt")


@dataclass
class Post:
    """A built post.

    Attributes:
        source: Path to the source file.
        slug: File name minus extension.
        url: URL path of the post.
        metadata: Front matter plus the computed keys, as seen by templates.
        document: The rendered page as written.
    """

    source: Path
    slug: str
    url: str
    metadata: dict[str, Any]
    document: RenderedDocument


def post_url(path: Path, prefix: str = "/blog") -> str:
    return f"{prefix.rstrip('/')}/{path.stem}"


def page_url(path: Path) -> str:
    """URL of a page template: its stem, with ``index`` mapping to the root."""
    stem = path.stem
    return "/" if stem == "index" else f"/{stem}"


class PostBuilder:
    """Builds one rendered page per post file.

    Attributes:
        engine: Template engine for the build.
        renderer: Markdown renderer with an initialized highlighter.
        writer: Writer for the output tree.
        layout: Source of the post layout.
        prefix: URL prefix every post lives under.
        inject_reset: Whether the finishing pass inlines the reset stylesheet.
    """

    def __init__(
        self,
        engine: TemplateEngine,
        renderer: MarkdownRenderer,
        writer: OutputWriter,
        layout: str,
        prefix: str = "/blog",
        inject_reset: bool = True,
    ):
        self.engine = engine
        self.renderer = renderer
        self.writer = writer
        self.layout = layout
        self.prefix = prefix
        self.inject_reset = inject_reset

    def build(self, path: Path) -> Post:
        """Build and write a single post.

        Raises:
            ParseError: Malformed front matter or a reserved key collision.
            TemplateError: The layout failed to render.
        """
        body, frontmatter = load_content(path)
        collisions = [key for key in RESERVED_KEYS if key in frontmatter]
        if collisions:
            raise ParseError(
                f"Front matter redefines reserved key(s): {', '.join(collisions)}", path
            )

        content = Markup(self.renderer.render(body))
        created_at, updated_at = file_timestamps(path)
        url = post_url(path, self.prefix)
        metadata = {
            **frontmatter,
            "createdAt": created_at,
            "updatedAt": updated_at,
            "content": content,
            "url": url,
        }

        try:
            rendered = self.engine.render(self.layout, metadata)
        except TemplateError as exc:
            raise TemplateError(exc.message, path) from exc
        document = RenderedDocument.for_url(url, finalize_document(rendered, self.inject_reset))
        self.writer.write(document)
        return Post(source=path, slug=path.stem, url=url, metadata=metadata, document=document)

    def build_all(self, posts_dir: Path, report: BuildReport | None = None) -> list[Post]:
        """Build every post in listing order, skipping the ones that fail."""
        posts: list[Post] = []
        for path in list_content_files(posts_dir):
            try:
                post = self.build(path)
            except (ParseError, TemplateError) as exc:
                logger.warning("Skipping post %s: %s", path.name, exc.message)
                if report is not None:
                    report.record_failure("posts", path, exc)
                continue
            logger.debug("Built post %s", post.url)
            posts.append(post)
        if report is not None:
            report.posts.extend(posts)
        return posts


class PageBuilder:
    """Renders each top-level page template with the built posts.

    Attributes:
        engine: Template engine for the build.
        writer: Writer for the output tree.
        inject_reset: Whether the finishing pass inlines the reset stylesheet.
    """

    def __init__(self, engine: TemplateEngine, writer: OutputWriter, inject_reset: bool = True):
        self.engine = engine
        self.writer = writer
        self.inject_reset = inject_reset

    def build(self, path: Path, posts: list[Post]) -> RenderedDocument:
        """Build and write a single page.

        Raises:
            TemplateError: The page template failed to load or render.
        """
        try:
            template = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise TemplateError(f"Not valid UTF-8: {exc}", path) from exc
        url = page_url(path)
        context = {"posts": [post.metadata for post in posts], "url": url}
        try:
            rendered = self.engine.render(template, context)
        except TemplateError as exc:
            raise TemplateError(exc.message, path) from exc
        document = RenderedDocument.for_url(url, finalize_document(rendered, self.inject_reset))
        self.writer.write(document)
        return document

    def build_all(
        self, pages_dir: Path, posts: list[Post], report: BuildReport | None = None
    ) -> list[RenderedDocument]:
        """Build every page in listing order, skipping the ones that fail."""
        pages: list[RenderedDocument] = []
        for path in list_content_files(pages_dir):
            try:
                document = self.build(path, posts)
            except TemplateError as exc:
                logger.warning("Skipping page %s: %s", path.name, exc.message)
                if report is not None:
                    report.record_failure("pages", path, exc)
                continue
            pages.append(document)
        if report is not None:
            report.pages.extend(pages)
        return pages
