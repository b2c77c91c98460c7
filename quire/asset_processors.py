"""Asset processors for Quire.

Each processor handles a single kind of asset and is selected through the
AssetProcessorRegistry by priority.

Key classes:
- CSSProcessor: Utility generation, unused-selector purge, vendor prefixing
  and minification.
- JSProcessor: Minifies JavaScript files.
- StaticAssetProcessor: Copies everything else byte for byte.
- AssetProcessorRegistry: Registry for managing asset processors.
"""

from __future__ import annotations

import logging
import re
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

import esprima
from esprima.error_handler import Error as JSSyntaxError
from rcssmin import cssmin
from rjsmin import jsmin

from .css import add_vendor_prefixes, purge_unused_selectors
from .errors import AssetError
from .html_utils import extract_tokens
from .output import OutputWriter
from .utils import find_executable

logger = logging.getLogger(__name__)

TAILWIND_DIRECTIVE_RE = re.compile(
    r"""@(?:tailwind|apply|config|plugin)\b|@import\s+["']tailwindcss""", re.IGNORECASE
)


class BaseAssetProcessor(ABC):
    """Base class for asset processors.

    Subclasses declare whether they accept a given file and how to write
    its output.
    """

    @property
    @abstractmethod
    def priority(self) -> int:
        """Return processor priority (higher = checked first)."""
        ...

    @abstractmethod
    def can_process(self, path: Path) -> bool:
        """Check if this processor can handle the given asset."""
        ...

    @abstractmethod
    def process(self, source: Path, relative: Path, writer: OutputWriter) -> Path:
        """Process an asset file.

        Args:
            source: Source asset path.
            relative: Asset path relative to the project root.
            writer: Writer for the output tree.

        Returns:
            Path of the written output file.

        Raises:
            AssetError: The transform failed for this asset.
        """
        ...


class TextAssetProcessor(BaseAssetProcessor):
    """Processor whose output is a text transform of the source file."""

    def process(self, source: Path, relative: Path, writer: OutputWriter) -> Path:
        try:
            text = source.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise AssetError(f"Not valid UTF-8: {exc}", source) from exc
        try:
            result = self.transform(source, text)
        except AssetError as exc:
            raise AssetError(exc.message, source) from exc
        return writer.write_asset(relative, result)

    @abstractmethod
    def transform(self, source: Path, text: str) -> str:
        ...


class CSSProcessor(TextAssetProcessor):
    """Runs stylesheets through the CSS transform chain.

    The chain is: Tailwind utility generation, unused-selector elimination
    against the written HTML tree, vendor prefixing, minification. The HTML
    tree is scanned once, on the first stylesheet processed.
    """

    def __init__(self, project_root: Path, writer: OutputWriter):
        self.project_root = project_root
        self.writer = writer
        self._used_tokens: set[str] | None = None

    @property
    def priority(self) -> int:
        return 90

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".css"

    @property
    def used_tokens(self) -> set[str]:
        if self._used_tokens is None:
            tokens: set[str] = set()
            for html_file in self.writer.html_files():
                tokens |= extract_tokens(html_file.read_text(encoding="utf-8"))
            self._used_tokens = tokens
        return self._used_tokens

    def transform(self, source: Path, text: str) -> str:
        css = self.generate_utilities(source, text)
        css = purge_unused_selectors(css, self.used_tokens)
        css = add_vendor_prefixes(css)
        return cssmin(css)

    def generate_utilities(self, source: Path, text: str) -> str:
        """Expand Tailwind directives with the tailwindcss CLI.

        Stylesheets without Tailwind directives pass through unchanged, as do
        stylesheets processed on a machine without the CLI installed.
        """
        if not TAILWIND_DIRECTIVE_RE.search(text):
            return text

        tailwind_bin = find_executable("tailwindcss", self.project_root)
        if not tailwind_bin:
            logger.warning(
                "Tailwind CSS CLI not found; %s is processed without utility generation",
                source.name,
            )
            return text

        cmd = [
            tailwind_bin,
            "-i",
            str(source),
            "--content",
            str(self.writer.output_dir / "**" / "*.html"),
        ]
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            raise AssetError(f"Tailwind build failed: {result.stderr.strip()}")
        return result.stdout


class JSProcessor(TextAssetProcessor):
    """Minifies JavaScript files.

    Uses terser when installed, which also rejects files with syntax errors.
    Otherwise the source is parsed with esprima, so broken scripts are still
    rejected, and minified with rjsmin.
    """

    def __init__(self, project_root: Path):
        self.project_root = project_root

    @property
    def priority(self) -> int:
        return 80

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() == ".js"

    def transform(self, source: Path, text: str) -> str:
        terser = find_executable("terser", self.project_root)
        if terser:
            result = subprocess.run(
                [terser, str(source), "-c", "-m"],
                capture_output=True,
                text=True,
            )
            if result.returncode != 0:
                raise AssetError(f"JS minification failed via terser: {result.stderr.strip()}")
            return result.stdout
        check_javascript(text)
        return jsmin(text)


def check_javascript(text: str) -> None:
    """Parse JavaScript as a script, then as a module.

    Raises:
        AssetError: The source is neither a valid script nor a valid module.
    """
    error: JSSyntaxError | None = None
    for parse in (esprima.parseScript, esprima.parseModule):
        try:
            parse(text)
        except JSSyntaxError as exc:
            error = error or exc
        else:
            return
    raise AssetError(f"JavaScript syntax error: {error}") from error


class StaticAssetProcessor(BaseAssetProcessor):
    """Copies assets without modification.

    This is the fallback processor for every file without a transform.
    """

    @property
    def priority(self) -> int:
        return 0

    def can_process(self, path: Path) -> bool:
        return True

    def process(self, source: Path, relative: Path, writer: OutputWriter) -> Path:
        return writer.copy_asset(source, relative)


class AssetProcessorRegistry:
    """Registry for managing asset processors."""

    def __init__(self):
        self._processors: list[BaseAssetProcessor] = []

    def register(self, processor: BaseAssetProcessor) -> None:
        """Register a new processor.

        Processors are stored sorted by priority (highest first).
        """
        self._processors.append(processor)
        self._processors.sort(key=lambda p: p.priority, reverse=True)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        for processor in self._processors:
            if processor.can_process(path):
                return processor
        return None

    def process(self, source: Path, relative: Path, writer: OutputWriter) -> Path | None:
        """Process an asset using the appropriate processor.

        Returns:
            Path of the written file, or None if no processor accepts it.
        """
        processor = self.get_processor(source)
        if processor:
            return processor.process(source, relative, writer)
        return None


def create_default_registry(project_root: Path, writer: OutputWriter) -> AssetProcessorRegistry:
    """Create a registry with the CSS, JS and static processors."""
    registry = AssetProcessorRegistry()
    registry.register(CSSProcessor(project_root, writer))
    registry.register(JSProcessor(project_root))
    registry.register(StaticAssetProcessor())
    return registry
