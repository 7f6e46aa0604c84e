"""Source store and item persistence backends."""

from typing import Protocol

from crawl_feeds.config import Config
from crawl_feeds.errors import ConfigurationError
from crawl_feeds.models import Item, Source
from crawl_feeds.store.memory import MemoryStore
from crawl_feeds.store.postgres import PostgresStore


class Store(Protocol):
    def ensure_tables(self) -> None: ...

    def close(self) -> None: ...

    def add_source(self, name: str, url: str, transform: str) -> Source: ...

    def list_sources(self, names: list[str] | None = None) -> list[Source]: ...

    def find_source(self, name: str) -> Source | None: ...

    def insert_items(self, source: Source, items: list[Item]) -> int: ...

    def list_items(self, source: Source, limit: int = 10) -> list[Item]: ...


def get_store(config: Config) -> Store:
    """Create the store selected by `config.store.backend`.

    The memory store is seeded with the sources listed in the config.
    """
    backend = config.store.backend

    if backend == "memory":
        store = MemoryStore()
        for source in config.sources:
            store.add_source(source.name, source.url, source.transform)
        return store

    if backend == "postgres":
        return PostgresStore(
            config.store.dsn,
            min_conns=config.store.min_conns,
            max_conns=config.store.max_conns,
        )

    raise ConfigurationError(f"Unknown store backend {backend!r}")


__all__ = ["Store", "MemoryStore", "PostgresStore", "get_store"]
