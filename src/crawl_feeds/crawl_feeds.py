"""Crawl many sources with a fixed pool of worker threads."""

import functools
import logging
import queue
import threading
from typing import Callable

from crawl_feeds.config import Config
from crawl_feeds.errors import CrawlError
from crawl_feeds.fetch_page import fetch_document
from crawl_feeds.models import Source, SourceResult
from crawl_feeds.process_source import process_source
from crawl_feeds.store import Store

logger = logging.getLogger(__name__)

ProcessFn = Callable[[Source, int], SourceResult]


def crawl_feeds(sources: list[Source], workers: int, process: ProcessFn) -> list[SourceResult]:
    """Process every source on `workers` threads and wait for all of them.

    A failing source is logged and reported in its SourceResult; it never
    stops a worker or the run.

    Args:
        sources: Sources to crawl; names must be unique
        workers: Number of worker threads (at least 1 is used)
        process: Called as process(source, worker_id) for each source

    Returns:
        One SourceResult per source, in the order of `sources`
    """
    if not sources:
        logger.info("No sources to crawl")
        return []

    workers = max(1, workers)
    logger.info("Crawling %d sources with %d workers", len(sources), workers)

    jobs: queue.Queue = queue.Queue(maxsize=len(sources) + workers)
    done: queue.Queue = queue.Queue(maxsize=len(sources))

    threads = [
        threading.Thread(
            target=_work,
            args=(worker, jobs, done, process),
            name=f"crawl-worker-{worker}",
            daemon=True,
        )
        for worker in range(workers)
    ]
    for thread in threads:
        thread.start()

    for source in sources:
        jobs.put(source)

    results = [done.get() for _ in sources]

    # Queue is drained, one stop marker per worker
    for _ in threads:
        jobs.put(None)
    for thread in threads:
        thread.join()

    order = {source.name: i for i, source in enumerate(sources)}
    results.sort(key=lambda r: order[r.source])
    return results


def _work(worker: int, jobs: queue.Queue, done: queue.Queue, process: ProcessFn) -> None:
    while True:
        source = jobs.get()
        if source is None:
            return

        result = None
        try:
            result = process(source, worker)
        except CrawlError as e:
            logger.error("[%d] Source %s failed: %s", worker, source.name, e)
            result = SourceResult(source=source.name, worker=worker, error=e)
        except Exception as e:
            logger.exception("[%d] Source %s failed unexpectedly", worker, source.name)
            result = SourceResult(source=source.name, worker=worker, error=e)
        finally:
            # Exactly one result per source reaches `done`
            if result is None:
                logger.error("[%d] Worker stopped while processing %s", worker, source.name)
                result = SourceResult(
                    source=source.name, worker=worker, error=CrawlError("worker stopped"),
                )
            done.put(result)


def run_crawl(config: Config, store: Store, sources: list[Source]) -> list[SourceResult]:
    """Crawl `sources` with the fetch settings and worker count from `config`."""
    fetch = functools.partial(
        fetch_document,
        timeout=config.fetch.timeout,
        user_agent=config.fetch.user_agent,
    )

    def process(source: Source, worker: int) -> SourceResult:
        return process_source(source, store, fetch, worker=worker)

    return crawl_feeds(sources, config.workers, process)
