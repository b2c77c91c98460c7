"""HTML utility functions for Quire.

The finishing pass applied to every rendered post and page: a small reset
stylesheet is inlined into the document head, then the document is minified.
Also holds the token extractor the CSS purge uses to scan written HTML.

Functions:
    inject_reset_stylesheet: Inline the reset stylesheet before </head>.
    minify_html: Minify an HTML document.
    finalize_document: Reset injection followed by minification.
    extract_tokens: Collect class-like tokens from HTML text.
"""

from __future__ import annotations

import re

from rcssmin import cssmin
from rjsmin import jsmin

RESET_CSS = """
*, *::before, *::after { box-sizing: border-box; }
body, h1, h2, h3, h4, p, figure, blockquote, dl, dd { margin: 0; }
ul[role='list'], ol[role='list'] { list-style: none; }
html:focus-within { scroll-behavior: smooth; }
body { min-height: 100vh; text-rendering: optimizeSpeed; line-height: 1.5; }
a:not([class]) { text-decoration-skip-ink: auto; }
img, picture { max-width: 100%; display: block; }
input, button, textarea, select { font: inherit; }
"""

BLOCK_TAGS = (
    "html|head|body|title|meta|link|style|script|noscript|base|"
    "address|article|aside|blockquote|details|dialog|dd|div|dl|dt|"
    "fieldset|figcaption|figure|footer|form|h[1-6]|header|hgroup|hr|"
    "li|main|nav|ol|p|pre|section|summary|table|tbody|td|tfoot|th|"
    "thead|tr|ul|option|select|textarea|!doctype"
)

_HEAD_CLOSE_RE = re.compile(r"</head>", re.IGNORECASE)
_PRESERVE_RE = re.compile(
    r"(<(pre|textarea|script|style)\b[^>]*>)(.*?)(</\2\s*>)", re.IGNORECASE | re.DOTALL
)
_COMMENT_RE = re.compile(r"<!--(?!\[if|<!|>).*?-->", re.DOTALL)
_DOCTYPE_RE = re.compile(r"<!doctype[^>]*>", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_BLOCK_TAG_RE = re.compile(
    rf"\s*(</?(?:{BLOCK_TAGS})(?:\s[^>]*)?/?>)\s*", re.IGNORECASE
)
_REDUNDANT_TYPE_RE = re.compile(
    r"""(<(?:script|style)\b[^>]*?)\s+type=["']?text/(?:javascript|css)["']?""",
    re.IGNORECASE,
)
_SCRIPT_TYPE_RE = re.compile(r"""\btype=["']?([^"'\s>]+)""", re.IGNORECASE)
_OPEN_TAG_RE = re.compile(r"""<[A-Za-z](?:[^>"']|"[^"]*"|'[^']*')*>""")
_QUOTED_VALUE_RE = re.compile(r"""=\s*("[^"]*"|'[^']*')""")
_PLACEHOLDER_RE = re.compile("\x00(\\d+)\x00")

TOKEN_RE = re.compile(r"[A-Za-z0-9_:/-]+")

JS_TYPES = {"text/javascript", "application/javascript", "module"}


def inject_reset_stylesheet(html: str, css: str = RESET_CSS) -> str:
    """Insert a <style> block before every closing head tag."""
    return _HEAD_CLOSE_RE.sub(lambda _: f"<style>{css}</style></head>", html)


def minify_html(html: str) -> str:
    """Minify an HTML document.

    Comments are removed (conditional comments are kept), whitespace is
    collapsed and trimmed around block-level tags, the doctype is shortened
    and redundant script/style type attributes are dropped. Inline CSS and
    JavaScript bodies are minified; <pre> and <textarea> content and quoted
    attribute values are left untouched.

    Args:
        html: Rendered HTML.

    Returns:
        Minified HTML.
    """
    stash: list[str] = []

    def keep(text: str) -> str:
        stash.append(text)
        return f"\x00{len(stash) - 1}\x00"

    def protect(match: re.Match) -> str:
        open_tag, tag, body, close_tag = match.groups()
        tag = tag.lower()
        if tag == "style":
            body = cssmin(body)
        elif tag == "script" and _is_javascript(open_tag):
            body = jsmin(body).strip()
        return open_tag + keep(body) + close_tag

    def protect_attributes(match: re.Match) -> str:
        return _QUOTED_VALUE_RE.sub(lambda value: "=" + keep(value.group(1)), match.group(0))

    html = _PRESERVE_RE.sub(protect, html)
    html = _COMMENT_RE.sub("", html)
    html = _DOCTYPE_RE.sub("<!DOCTYPE html>", html)
    html = _REDUNDANT_TYPE_RE.sub(r"\1", html)
    html = _OPEN_TAG_RE.sub(protect_attributes, html)
    html = _WHITESPACE_RE.sub(" ", html)
    html = _BLOCK_TAG_RE.sub(r"\1", html)
    html = html.strip()
    return _PLACEHOLDER_RE.sub(lambda m: stash[int(m.group(1))], html)


def finalize_document(html: str, inject_reset: bool = True) -> str:
    """Apply the finishing pass shared by posts and pages."""
    if inject_reset:
        html = inject_reset_stylesheet(html)
    return minify_html(html)


def extract_tokens(html: str) -> set[str]:
    """Collect every class-like token in an HTML document.

    Examples:
        >>> sorted(extract_tokens('<div class="md:flex w-1/2">'))
        ['class', 'div', 'md:flex', 'w-1/2']
    """
    return set(TOKEN_RE.findall(html))


def _is_javascript(open_tag: str) -> bool:
    match = _SCRIPT_TYPE_RE.search(open_tag)
    return match is None or match.group(1).lower() in JS_TYPES
