"""Fetch web pages and query them with CSS selectors."""

from __future__ import annotations

import functools
import logging

import requests
from cssselect import HTMLTranslator, SelectorError
from lxml import etree
from lxml import html as lxml_html

from crawl_feeds.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_USER_AGENT = "feedme-crawler/1.0"

_translator = HTMLTranslator()


@functools.lru_cache(maxsize=512)
def selector_to_xpath(selector: str) -> str:
    """Translate a CSS selector to an XPath matching descendants only."""
    try:
        return _translator.css_to_xpath(selector, prefix="descendant::")
    except SelectorError as e:
        raise ConfigurationError(f"invalid selector {selector!r}: {e}") from e


class DomNode:
    """Read-only view of one element of a parsed page."""

    def __init__(self, element: lxml_html.HtmlElement):
        self._element = element

    @property
    def tag(self) -> str:
        return self._element.tag

    def find_all(self, selector: str) -> list[DomNode]:
        """Descendants matching `selector`, in document order."""
        return [DomNode(e) for e in self._element.xpath(selector_to_xpath(selector))]

    def attr(self, name: str) -> str | None:
        return self._element.get(name)

    def text(self) -> str:
        """Text of this element and all of its descendants."""
        return str(self._element.text_content())

    def __repr__(self) -> str:
        return f"DomNode({self._element.tag!r})"


def parse_document(content: str | bytes) -> DomNode:
    """Parse an HTML page and return its root element.

    A page without any elements (blank, or only comments) gives an empty
    <html> root, so selectors simply match nothing.
    """
    try:
        root = lxml_html.document_fromstring(content)
    except etree.ParserError as e:
        logger.debug("Page has no elements (%s), using an empty document", e)
        root = lxml_html.Element("html")
    except ValueError as e:
        raise TransportError(f"cannot parse page: {e}") from e
    return DomNode(root)


def fetch_document(
    url: str,
    timeout: int = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> DomNode:
    """Download `url` and parse it as HTML.

    Raises:
        TransportError: If the page cannot be downloaded or parsed.
    """
    try:
        response = requests.get(url, timeout=timeout, headers={"User-Agent": user_agent})
        response.raise_for_status()
    except requests.RequestException as e:
        raise TransportError(f"cannot open URL {url}: {e}") from e

    logger.debug("Fetched %d bytes from %s", len(response.content), url)
    return parse_document(response.content)
