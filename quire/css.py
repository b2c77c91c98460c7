"""Stylesheet transforms for the asset pipeline.

Both transforms parse the stylesheet with tinycss2 and serialize it back:

- purge_unused_selectors drops style rules whose selectors reference a class
  or id that never appears in the written HTML.
- add_vendor_prefixes inserts prefixed copies of declarations that still
  need them in current browsers.

Grouping at-rules (@media, @supports, ...) are processed recursively; every
other at-rule (@font-face, @keyframes, @import, ...) is kept verbatim.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import tinycss2
from tinycss2.ast import Declaration, Node

from .errors import AssetError

GROUPING_AT_RULES = {"media", "supports", "layer", "container", "document"}

VENDOR_PREFIXES: dict[str, tuple[str, ...]] = {
    "appearance": ("-webkit-", "-moz-"),
    "backdrop-filter": ("-webkit-",),
    "box-decoration-break": ("-webkit-",),
    "hyphens": ("-webkit-",),
    "mask-image": ("-webkit-",),
    "print-color-adjust": ("-webkit-",),
    "tab-size": ("-moz-",),
    "text-size-adjust": ("-webkit-", "-moz-"),
    "user-select": ("-webkit-", "-moz-"),
}


def purge_unused_selectors(css: str, used: set[str]) -> str:
    """Remove style rules that cannot match the written HTML.

    A selector survives when every class and id it names is in ``used``.
    A rule survives when at least one of its selectors does.

    Args:
        css: Stylesheet source.
        used: Tokens extracted from the HTML output tree.

    Returns:
        The purged stylesheet.

    Raises:
        AssetError: The stylesheet contains a top-level parse error.
    """
    rules = _parse(css)
    return "".join(_purge_rules(rules, used))


def add_vendor_prefixes(css: str) -> str:
    """Insert vendor-prefixed copies of declarations listed in VENDOR_PREFIXES.

    Prefixed copies already present in a rule are not duplicated.

    Raises:
        AssetError: The stylesheet contains a top-level parse error.
    """
    rules = _parse(css)
    return "".join(_prefix_rules(rules))


def _parse(css: str) -> list[Node]:
    rules = tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True)
    for rule in rules:
        if rule.type == "error":
            raise AssetError(
                f"CSS parse error on line {rule.source_line}: {rule.message}"
            )
    return rules


def _nested_rules(rule: Node) -> list[Node]:
    return [
        node
        for node in tinycss2.parse_rule_list(
            rule.content, skip_comments=True, skip_whitespace=True
        )
        if node.type != "error"
    ]


def _at_rule(rule: Node, inner: str) -> str:
    return f"@{rule.at_keyword}{tinycss2.serialize(rule.prelude)}{{{inner}}}"


def _purge_rules(rules: Iterable[Node], used: set[str]) -> Iterator[str]:
    for rule in rules:
        if rule.type == "qualified-rule":
            selectors = [
                tinycss2.serialize(tokens).strip()
                for tokens in _split(rule.prelude, ",")
                if _selector_is_used(tokens, used)
            ]
            if selectors:
                yield ",".join(selectors) + "{" + tinycss2.serialize(rule.content) + "}"
        elif rule.type == "at-rule":
            if rule.content is not None and rule.lower_at_keyword in GROUPING_AT_RULES:
                inner = "".join(_purge_rules(_nested_rules(rule), used))
                if inner:
                    yield _at_rule(rule, inner)
            else:
                yield rule.serialize()


def _selector_is_used(tokens: list[Node], used: set[str]) -> bool:
    return all(name in used for name in _selector_names(tokens))


def _selector_names(tokens: list[Node]) -> list[str]:
    """Classes and ids named at the top level of a selector.

    Names inside functional pseudo-classes such as :not() are ignored.
    """
    names = []
    previous = None
    for token in tokens:
        if token.type == "hash":
            names.append(token.value)
        elif (
            token.type == "ident"
            and previous is not None
            and previous.type == "literal"
            and previous.value == "."
        ):
            names.append(token.value)
        previous = token
    return names


def _prefix_rules(rules: Iterable[Node]) -> Iterator[str]:
    for rule in rules:
        if rule.type == "qualified-rule":
            prelude = tinycss2.serialize(rule.prelude).strip()
            yield prelude + "{" + _prefix_block(rule.content) + "}"
        elif rule.type == "at-rule":
            if rule.content is not None and rule.lower_at_keyword in GROUPING_AT_RULES:
                yield _at_rule(rule, "".join(_prefix_rules(_nested_rules(rule))))
            else:
                yield rule.serialize()


def _prefix_block(content: list[Node]) -> str:
    chunks = [chunk for chunk in _split(content, ";") if tinycss2.serialize(chunk).strip()]
    parsed = [tinycss2.parse_one_declaration(chunk, skip_comments=True) for chunk in chunks]
    present = {node.lower_name for node in parsed if node.type == "declaration"}

    out = []
    for chunk, node in zip(chunks, parsed):
        if node.type != "declaration":
            out.append(tinycss2.serialize(chunk).strip())
            continue
        for prefix in VENDOR_PREFIXES.get(node.lower_name, ()):
            if prefix + node.lower_name not in present:
                out.append(_declaration(prefix + node.name, node))
        out.append(_declaration(node.name, node))
    return ";".join(out)


def _declaration(name: str, node: Declaration) -> str:
    value = tinycss2.serialize(node.value).strip()
    important = "!important" if node.important else ""
    return f"{name}:{value}{important}"


def _split(tokens: list[Node], separator: str) -> Iterator[list[Node]]:
    current: list[Node] = []
    for token in tokens:
        if token.type == "literal" and token.value == separator:
            yield current
            current = []
        else:
            current.append(token)
    yield current
