"""Typed transform document tree.

A transform document is operator-authored JSON of the form::

    {
        "items": [{"search": "div.news", "do": [...]}],
        "transform": {"title": "News {{id}}", "uri": "/news/{{id}}"}
    }

Each entry of `items` is an extraction node (search, find, attr or text).
Search and find nodes nest further extraction nodes in `do`; attr and text
nodes nest storage nodes (copy or regex). The whole tree is parsed and
validated up front so evaluation never sees an unknown node kind.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Union

from crawl_feeds.errors import ConfigurationError
from crawl_feeds.transform.coerce import check_value_type

EXTRACTION_KINDS = ("search", "find", "attr", "text")
STORAGE_KINDS = ("copy", "regex")


@dataclass(frozen=True)
class Capture:
    """Target of one regex capture group."""
    name: str
    type: str


@dataclass(frozen=True)
class CopyNode:
    name: str
    type: str


@dataclass(frozen=True)
class RegexNode:
    pattern: re.Pattern
    captures: tuple[Capture, ...]


StorageNode = Union[CopyNode, RegexNode]


@dataclass(frozen=True)
class SearchNode:
    """Zero or more descendants matching `selector`."""
    selector: str
    do: tuple["ExtractionNode", ...] = ()


@dataclass(frozen=True)
class FindNode:
    """Exactly one descendant matching `selector` (the first one)."""
    selector: str
    do: tuple["ExtractionNode", ...] = ()


@dataclass(frozen=True)
class AttrNode:
    name: str
    do: tuple[StorageNode, ...] = ()


@dataclass(frozen=True)
class TextNode:
    do: tuple[StorageNode, ...] = ()


ExtractionNode = Union[SearchNode, FindNode, AttrNode, TextNode]


@dataclass(frozen=True)
class TransformDocument:
    items: tuple[ExtractionNode, ...]
    fields: dict[str, str]


def parse_transform_document(raw: str) -> TransformDocument:
    """Parse a transform document from its JSON text.

    Unrecognized top-level members are ignored.

    Raises:
        ConfigurationError: On malformed JSON, missing members or any
            malformed node.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"cannot parse transform JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("transform document must be a JSON object")
    for member in ("items", "transform"):
        if member not in data:
            raise ConfigurationError(f"transform document has no {member!r} element")

    items = _expect_list(data["items"], "items")

    fields = data["transform"]
    if not isinstance(fields, dict):
        raise ConfigurationError("'transform' element must be an object")
    for name, template in fields.items():
        if not isinstance(template, str):
            raise ConfigurationError(f"template for field {name!r} must be a string")

    return TransformDocument(
        items=tuple(parse_extraction_node(node) for node in items),
        fields=dict(fields),
    )


def parse_extraction_node(node: Any) -> ExtractionNode:
    kind = _node_kind(node, EXTRACTION_KINDS)

    if kind == "search":
        return SearchNode(
            selector=_expect_str(node, "search"),
            do=tuple(parse_extraction_node(child) for child in _children(node)),
        )
    if kind == "find":
        return FindNode(
            selector=_expect_str(node, "find"),
            do=tuple(parse_extraction_node(child) for child in _children(node)),
        )
    if kind == "attr":
        return AttrNode(
            name=_expect_str(node, "attr"),
            do=tuple(parse_storage_node(child) for child in _children(node)),
        )
    return TextNode(do=tuple(parse_storage_node(child) for child in _children(node)))


def parse_storage_node(node: Any) -> StorageNode:
    kind = _node_kind(node, STORAGE_KINDS)

    if kind == "copy":
        return CopyNode(
            name=_expect_str(node, "name"),
            type=check_value_type(_expect_str(node, "type")),
        )

    pattern = _expect_str(node, "regex")
    try:
        compiled = re.compile(pattern, re.ASCII)
    except re.error as e:
        raise ConfigurationError(f"invalid regex {pattern!r}: {e}") from e

    # "data" is the older spelling of "matches"
    key = "matches" if "matches" in node else "data"
    if key not in node:
        raise ConfigurationError(f"regex node has no 'matches': {_dump(node)}")
    captures = []
    for capture in _expect_list(node[key], key):
        if not isinstance(capture, dict):
            raise ConfigurationError(f"regex match must be an object: {_dump(capture)}")
        captures.append(Capture(
            name=_expect_str(capture, "name"),
            type=check_value_type(_expect_str(capture, "type")),
        ))

    return RegexNode(pattern=compiled, captures=tuple(captures))


def _node_kind(node: Any, kinds: tuple[str, ...]) -> str:
    if not isinstance(node, dict):
        raise ConfigurationError(f"do not know how to transform this node: {_dump(node)}")
    present = [kind for kind in kinds if kind in node]
    if len(present) != 1:
        raise ConfigurationError(f"do not know how to transform this node: {_dump(node)}")
    return present[0]


def _children(node: dict) -> list:
    return _expect_list(node.get("do", []), "do")


def _expect_list(value: Any, key: str) -> list:
    if not isinstance(value, list):
        raise ConfigurationError(f"{key!r} must be a list, got {_dump(value)}")
    return value


def _expect_str(node: dict, key: str) -> str:
    value = node.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"{key!r} must be a non-empty string in {_dump(node)}")
    return value


def _dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)
