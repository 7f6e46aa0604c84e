"""Tests for crawl_feeds.transform.evaluate module."""

import re

import pytest

from crawl_feeds.errors import ExtractionError
from crawl_feeds.fetch_page import parse_document
from crawl_feeds.transform.evaluate import evaluate, evaluate_storage
from crawl_feeds.transform.nodes import Capture, CopyNode, RegexNode, parse_extraction_node

NEWS_PAGE = """
<html><body>
  <div class="news"><a href="/show?id=42">First story</a></div>
  <div class="news"><a href="/show?id=43">Second story</a></div>
  <div class="news"><a href="/show?id=44">Third story</a></div>
  <p class="footer" data-count="3">Footer</p>
</body></html>
"""


def _regex(pattern: str, *captures: tuple[str, str]) -> RegexNode:
    return RegexNode(
        pattern=re.compile(pattern, re.ASCII),
        captures=tuple(Capture(name=n, type=t) for n, t in captures),
    )


@pytest.fixture
def page():
    return parse_document(NEWS_PAGE)


class TestEvaluate:
    def test_base_search_creates_one_mapping_per_match(self, page) -> None:
        node = parse_extraction_node({
            "search": "div.news",
            "do": [{"find": "a", "do": [
                {"attr": "href", "do": [{"regex": "id=(\\d+)", "matches": [{"name": "id", "type": "int"}]}]},
                {"text": True, "do": [{"copy": True, "name": "headline", "type": "string"}]},
            ]}],
        })

        result = evaluate(page, node)

        assert result == [
            {"id": 42, "headline": "First story"},
            {"id": 43, "headline": "Second story"},
            {"id": 44, "headline": "Third story"},
        ]

    def test_search_without_matches_yields_nothing(self, page) -> None:
        node = parse_extraction_node({
            "search": "div.missing",
            "do": [{"text": True, "do": [{"copy": True, "name": "t", "type": "string"}]}],
        })

        assert evaluate(page, node) == []

    def test_nested_search_without_matches_yields_nothing(self, page) -> None:
        node = parse_extraction_node({
            "search": "div.news",
            "do": [{"search": "span", "do": [{"text": True, "do": [{"copy": True, "name": "t", "type": "string"}]}]}],
        })

        assert evaluate(page, node) == []

    def test_empty_siblings_reuse_the_mapping(self) -> None:
        # The middle div writes nothing, so its mapping is reused by the third
        html = """
        <html><body>
          <div class="news"><a class="hot" href="/1">One</a></div>
          <div class="news"><span>none</span></div>
          <div class="news"><a class="hot" href="/3">Three</a></div>
        </body></html>
        """
        node = parse_extraction_node({
            "search": "div.news",
            "do": [{"search": "a.hot", "do": [{"attr": "href", "do": [{"copy": True, "name": "href", "type": "string"}]}]}],
        })

        assert evaluate(parse_document(html), node) == [{"href": "/1"}, {"href": "/3"}]

    def test_trailing_empty_mapping_drops_the_entry(self) -> None:
        html = """
        <html><body>
          <div class="news"><a class="hot" href="/1">One</a></div>
          <div class="news"><span>none</span></div>
        </body></html>
        """
        node = parse_extraction_node({
            "search": "div.news",
            "do": [{"search": "a.hot", "do": [{"attr": "href", "do": [{"copy": True, "name": "href", "type": "string"}]}]}],
        })

        assert evaluate(parse_document(html), node) == []

    def test_nested_search_writes_into_current_mapping(self, page) -> None:
        node = parse_extraction_node({
            "search": "body",
            "do": [{"search": "a", "do": [{"attr": "href", "do": [{"copy": True, "name": "last", "type": "string"}]}]}],
        })

        assert evaluate(page, node) == [{"last": "/show?id=44"}]

    def test_base_find_uses_first_match(self, page) -> None:
        node = parse_extraction_node({
            "find": "div.news a",
            "do": [{"text": True, "do": [{"copy": True, "name": "headline", "type": "string"}]}],
        })

        assert evaluate(page, node) == [{"headline": "First story"}]

    def test_find_without_match_raises(self, page) -> None:
        node = parse_extraction_node({"find": "table", "do": []})

        with pytest.raises(ExtractionError, match="no element found"):
            evaluate(page, node)

    def test_missing_attribute_raises(self, page) -> None:
        node = parse_extraction_node({
            "find": "p.footer",
            "do": [{"attr": "href", "do": [{"copy": True, "name": "x", "type": "string"}]}],
        })

        with pytest.raises(ExtractionError, match="no attribute found"):
            evaluate(page, node)

    def test_attr_copy_with_int_type(self, page) -> None:
        node = parse_extraction_node({
            "find": "p.footer",
            "do": [{"attr": "data-count", "do": [{"copy": True, "name": "count", "type": "int"}]}],
        })

        assert evaluate(page, node) == [{"count": 3}]

    def test_text_includes_descendants(self) -> None:
        html = "<html><body><div id='x'>Hello <b>big</b> world</div></body></html>"
        node = parse_extraction_node({
            "find": "#x",
            "do": [{"text": True, "do": [{"copy": True, "name": "t", "type": "string"}]}],
        })

        assert evaluate(parse_document(html), node) == [{"t": "Hello big world"}]

    def test_selectors_match_descendants_only(self) -> None:
        html = "<html><body><div class='a'>outer <div class='a'>inner</div></div></body></html>"
        node = parse_extraction_node({
            "find": "div.a",
            "do": [{"find": "div.a", "do": [{"text": True, "do": [{"copy": True, "name": "t", "type": "string"}]}]}],
        })

        assert evaluate(parse_document(html), node) == [{"t": "inner"}]


class TestEvaluateStorage:
    def test_copy_string(self) -> None:
        mapping = {}
        evaluate_storage("value", CopyNode(name="v", type="string"), mapping)
        assert mapping == {"v": "value"}

    def test_copy_non_numeric_int_stores_zero(self) -> None:
        mapping = {}
        evaluate_storage("abc", CopyNode(name="n", type="int"), mapping)
        assert mapping == {"n": 0}

    def test_regex_writes_each_group(self) -> None:
        mapping = {}
        evaluate_storage(
            "2024-05 by alice",
            _regex(r"(\d+)-(\d+) by (\w+)", ("year", "int"), ("month", "int"), ("author", "string")),
            mapping,
        )
        assert mapping == {"year": 2024, "month": 5, "author": "alice"}

    def test_regex_without_match_raises(self) -> None:
        with pytest.raises(ExtractionError, match="no matches found"):
            evaluate_storage("nothing here", _regex(r"id=(\d+)", ("id", "int")), {})

    def test_regex_zero_groups_with_matches_raises(self) -> None:
        with pytest.raises(ExtractionError, match="unequal match count"):
            evaluate_storage("id=1", _regex(r"id=\d+", ("id", "int")), {})

    def test_regex_one_group_without_matches_raises(self) -> None:
        with pytest.raises(ExtractionError, match="unequal match count"):
            evaluate_storage("id=1", _regex(r"id=(\d+)"), {})

    def test_regex_many_groups_too_few_matches_raises(self) -> None:
        with pytest.raises(ExtractionError, match="unequal match count"):
            evaluate_storage("a-b-c", _regex(r"(\w)-(\w)-(\w)", ("a", "string"), ("b", "string")), {})

    def test_regex_zero_groups_zero_matches_stores_nothing(self) -> None:
        mapping = {}
        evaluate_storage("id=1", _regex(r"id=\d+"), mapping)
        assert mapping == {}

    def test_regex_unmatched_optional_group_is_empty(self) -> None:
        mapping = {}
        evaluate_storage("id=1", _regex(r"id=(\d+)(x)?", ("id", "int"), ("x", "string")), mapping)
        assert mapping == {"id": 1, "x": ""}

    def test_regex_non_numeric_int_group_stores_zero(self) -> None:
        mapping = {}
        evaluate_storage("id=abc", _regex(r"id=(\w+)", ("id", "int")), mapping)
        assert mapping == {"id": 0}
