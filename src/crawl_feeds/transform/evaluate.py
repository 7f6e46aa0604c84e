"""Evaluate a parsed transform tree against a DOM.

Only the outermost node of an `items` entry (the base node) may open new
field-mappings: a base search starts a fresh mapping for every matched
element once the previous one holds at least one key. Every other node
writes into the last mapping of the working list.
"""

from __future__ import annotations

import logging

from crawl_feeds.errors import ConfigurationError, ExtractionError
from crawl_feeds.fetch_page import DomNode
from crawl_feeds.models import FieldMapping
from crawl_feeds.transform.coerce import coerce_value
from crawl_feeds.transform.nodes import (
    AttrNode,
    CopyNode,
    ExtractionNode,
    FindNode,
    RegexNode,
    SearchNode,
    StorageNode,
    TextNode,
)

logger = logging.getLogger(__name__)


def evaluate(root: DomNode, node: ExtractionNode) -> list[FieldMapping]:
    """Run one `items` entry against `root` and return its field-mappings.

    An entry whose last mapping ends up empty yields nothing.
    """
    mappings: list[FieldMapping] = [{}]
    _walk(root, node, mappings, base=True)

    if not mappings[-1]:
        logger.debug("Nothing to transform for %s", node)
        return []
    return mappings


def evaluate_storage(value: str, node: StorageNode, mapping: FieldMapping) -> None:
    """Store the extracted `value` into `mapping` as described by `node`."""
    if isinstance(node, CopyNode):
        mapping[node.name] = coerce_value(value, node.type)
        return

    if isinstance(node, RegexNode):
        match = node.pattern.search(value)
        if match is None:
            raise ExtractionError(f"no matches found for {node.pattern.pattern!r} in {value!r}")

        groups = match.groups()
        if len(groups) != len(node.captures):
            raise ExtractionError(
                f"unequal match count for {node.pattern.pattern!r}: "
                f"{len(groups)} groups, {len(node.captures)} matches"
            )

        for capture, group in zip(node.captures, groups):
            # Groups that did not take part in the match capture nothing
            mapping[capture.name] = coerce_value(group or "", capture.type)
        return

    raise ConfigurationError(f"do not know how to store with {node!r}")


def _walk(element: DomNode, node: ExtractionNode, mappings: list[FieldMapping], base: bool = False) -> None:
    if isinstance(node, SearchNode):
        matches = element.find_all(node.selector)
        for i, match in enumerate(matches):
            for child in node.do:
                _walk(match, child, mappings)

            if base and i < len(matches) - 1 and mappings[-1]:
                mappings.append({})

    elif isinstance(node, FindNode):
        matches = element.find_all(node.selector)
        if not matches:
            raise ExtractionError(f"no element found for {node.selector!r}")
        for child in node.do:
            _walk(matches[0], child, mappings)

    elif isinstance(node, AttrNode):
        value = element.attr(node.name)
        if value is None:
            raise ExtractionError(f"no attribute found: {node.name!r}")
        for child in node.do:
            evaluate_storage(value, child, mappings[-1])

    elif isinstance(node, TextNode):
        value = element.text()
        for child in node.do:
            evaluate_storage(value, child, mappings[-1])

    else:
        raise ConfigurationError(f"do not know how to transform {node!r}")
