"""Project configuration for Quire.

Two optional files live at the project root:

- ``quire.yaml`` holds plain settings (output directory, highlight theme,
  blog URL prefix, ...), merged over DEFAULT_SETTINGS.
- ``config.py`` is a Python module whose ``filters`` mapping registers
  template filters. Callables cannot be expressed in YAML, hence the module.

Both are loaded once at the start of a build and never reloaded.
"""

from __future__ import annotations

import importlib.util
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "quire.yaml"

DEFAULT_SETTINGS: dict[str, Any] = {
    "output_dir": "dist",
    "highlight_theme": "nord",
    "blog_prefix": "/blog",
    "config_file": "config.py",
    "inject_reset": True,
}


@dataclass
class SiteConfig:
    """Options exported by the project's config module.

    Attributes:
        filters: Template filters keyed by the name used in templates.
        source_path: The module the options came from, if any.
    """

    filters: dict[str, Callable[..., Any]] = field(default_factory=dict)
    source_path: Path | None = None


def load_settings(project_root: Path) -> dict[str, Any]:
    """Load site settings from quire.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing settings values, with defaults applied.

    Raises:
        ConfigError: The file is not valid YAML or not a mapping.
    """
    settings_path = project_root / SETTINGS_FILE
    settings = DEFAULT_SETTINGS.copy()
    if not settings_path.exists():
        return settings
    try:
        with open(settings_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Invalid settings file: {exc}", settings_path) from exc
    if not isinstance(loaded, dict):
        raise ConfigError("Settings file must contain a mapping", settings_path)
    settings.update(loaded)
    return settings


def load_config(project_root: Path, config_file: str = "config.py") -> SiteConfig:
    """Import the project's config module and collect its options.

    Args:
        project_root: Root directory of the project.
        config_file: Module file name relative to the project root.

    Returns:
        The collected options; empty when the module does not exist.

    Raises:
        ConfigError: The module fails to import or exports invalid filters.
    """
    config_path = project_root / config_file
    if not config_path.exists():
        logger.debug("No config module at %s", config_path)
        return SiteConfig()

    module_spec = importlib.util.spec_from_file_location("quire_site_config", config_path)
    if module_spec is None or module_spec.loader is None:
        raise ConfigError("Cannot import config module", config_path)
    module = importlib.util.module_from_spec(module_spec)
    try:
        module_spec.loader.exec_module(module)
    except Exception as exc:
        raise ConfigError(f"Config module failed to load: {exc}", config_path) from exc

    filters = getattr(module, "filters", None) or {}
    if not isinstance(filters, Mapping):
        raise ConfigError("'filters' must be a mapping of name to function", config_path)
    for name, fn in filters.items():
        if not isinstance(name, str) or not callable(fn):
            raise ConfigError(f"Filter {name!r} must map a name to a function", config_path)
    return SiteConfig(filters=dict(filters), source_path=config_path)
