"""Data models for the crawl_feeds pipeline stage."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

# A field-mapping value is either an int or a string, nothing else.
Scalar = Union[int, str]
FieldMapping = dict[str, Scalar]


@dataclass(frozen=True)
class Source:
    """One configured page to crawl, with its transform document (raw JSON)."""
    name: str
    url: str
    transform: str
    id: Optional[int] = None


@dataclass
class Item:
    """Feed item rendered from one field-mapping.

    `created` stays None until the store persists the item.
    """
    feed: str
    title: str
    uri: str
    description: str
    created: Optional[datetime] = None

    def dedupe_key(self) -> tuple[str, str, str, str]:
        return (self.feed, self.title, self.uri, self.description)


@dataclass
class SourceResult:
    """Outcome of processing one source, as reported by the scheduler."""
    source: str
    worker: int
    items_found: int = 0
    items_inserted: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
