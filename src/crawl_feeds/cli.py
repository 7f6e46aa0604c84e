"""CLI for crawling sources into feed items."""

from __future__ import annotations

import logging
import sys

import yaml
from dotenv import load_dotenv

from common.cli_helpers import setup_logging
from crawl_feeds.config import load_config
from crawl_feeds.crawl_feeds import run_crawl
from crawl_feeds.errors import CrawlError
from crawl_feeds.helpers import parse_crawl_feeds_args, parse_sources, report_results, select_sources
from crawl_feeds.store import get_store

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    args = parse_crawl_feeds_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, KeyError, ValueError, yaml.YAMLError) as e:
        logger.error("Failed to load config %s: %s", args.config or "", e)
        return 2

    if args.workers is not None:
        config.workers = args.workers
    if args.dsn:
        config.store.dsn = args.dsn

    try:
        store = get_store(config)
    except CrawlError as e:
        logger.error("Failed to open %s store: %s", config.store.backend, e)
        return 2

    try:
        if args.init_db:
            store.ensure_tables()
        sources = select_sources(store, parse_sources(args.sources))
        results = run_crawl(config, store, sources)
    except CrawlError as e:
        logger.error("%s", e)
        return 2
    finally:
        store.close()

    return report_results(results)


if __name__ == "__main__":
    sys.exit(main())
