"""In-process store, used for local runs and tests."""

import threading
from dataclasses import replace
from datetime import datetime, timezone

from crawl_feeds.errors import PersistenceError
from crawl_feeds.models import Item, Source


class MemoryStore:
    """Sources and items kept in memory. Every call is atomic."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sources: dict[str, Source] = {}
        self._items: list[Item] = []
        self._keys: set[tuple[str, str, str, str]] = set()
        self._next_id = 1

    def ensure_tables(self) -> None:
        pass

    def close(self) -> None:
        pass

    def add_source(self, name: str, url: str, transform: str) -> Source:
        with self._lock:
            existing = self._sources.get(name)
            if existing is not None:
                source = replace(existing, url=url, transform=transform)
            else:
                source = Source(name=name, url=url, transform=transform, id=self._next_id)
                self._next_id += 1
            self._sources[name] = source
            return source

    def list_sources(self, names: list[str] | None = None) -> list[Source]:
        with self._lock:
            sources = [s for s in self._sources.values() if names is None or s.name in names]
        return sorted(sources, key=lambda s: s.name)

    def find_source(self, name: str) -> Source | None:
        with self._lock:
            return self._sources.get(name)

    def insert_items(self, source: Source, items: list[Item]) -> int:
        """Insert the items not stored yet and return how many were new."""
        with self._lock:
            if source.name not in self._sources:
                raise PersistenceError(f"unknown source {source.name!r}")

            created = datetime.now(timezone.utc)
            inserted = 0
            for item in items:
                key = item.dedupe_key()
                if key in self._keys:
                    continue
                self._keys.add(key)
                self._items.append(replace(item, created=created))
                inserted += 1
            return inserted

    def list_items(self, source: Source, limit: int = 10) -> list[Item]:
        """Newest items of `source` first."""
        with self._lock:
            items = [i for i in reversed(self._items) if i.feed == source.name]
        return items[:limit]
