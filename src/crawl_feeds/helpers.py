"""Helper functions for crawl_feeds CLI."""

from __future__ import annotations

import argparse
import logging

from common.cli_helpers import parse_positive_int
from crawl_feeds.errors import ConfigurationError
from crawl_feeds.models import Source, SourceResult
from crawl_feeds.store import Store

logger = logging.getLogger(__name__)


def parse_sources(value: str | None) -> list[str] | None:
    '''Parse the --sources argument into a list of source names (None means all).'''

    if not value or value.strip().lower() == "all":
        return None

    names = []
    for part in value.split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    return names or None


def select_sources(store: Store, names: list[str] | None) -> list[Source]:
    '''Load the sources to crawl, failing on names the store does not know.'''

    sources = store.list_sources(names)
    if names is not None:
        missing = sorted(set(names) - {source.name for source in sources})
        if missing:
            raise ConfigurationError(f"Unknown sources: {', '.join(missing)}")
    return sources


def report_results(results: list[SourceResult]) -> int:
    '''Log a run summary and return the exit code (1 if any source failed).'''

    failed = [result.source for result in results if not result.ok]
    inserted = sum(result.items_inserted for result in results)

    logger.info(
        "Crawled %d sources (%d failed), %d new items",
        len(results), len(failed), inserted,
    )

    if failed:
        logger.error("Failed sources: %s", failed)
        return 1
    return 0


def parse_crawl_feeds_args(argv: list[str] | None = None) -> argparse.Namespace:
    '''Parse CLI arguments for crawl_feeds.'''

    parser = argparse.ArgumentParser(
        description="Crawl configured web pages and store their feed items"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config name (prod/test) or path to a YAML file. Defaults to CONFIG_ENV or 'prod'",
    )
    parser.add_argument(
        "--sources",
        default=None,
        help="Comma-separated list of source names (default: all).",
    )
    parser.add_argument(
        "-w", "--workers",
        type=lambda v: parse_positive_int(v, "workers"),
        default=None,
        help="Worker count for processing sources (overrides config).",
    )
    parser.add_argument("--dsn", default=None, help="Database connection spec (overrides config).")
    parser.add_argument("--init-db", action="store_true", help="Create tables before crawling.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print what is going on.")
    return parser.parse_args(argv)
