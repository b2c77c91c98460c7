"""Quire static site builder.

Quire turns a project of Markdown posts, HTML page templates, layouts and
assets into a rendered, minified site tree. Posts are rendered with mistune
and Pygments, templates with Jinja2, and stylesheets are purged against the
written HTML before minification.

The main entry point is the CLI module; build_site in the build module is the
programmatic entry point.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
