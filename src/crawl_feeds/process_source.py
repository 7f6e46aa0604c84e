"""Crawl one source: fetch, extract, render and store its items."""

import logging
import time
from contextlib import contextmanager
from typing import Callable

from crawl_feeds.assemble import assemble_items
from crawl_feeds.errors import CrawlError, SourceError
from crawl_feeds.fetch_page import DomNode
from crawl_feeds.models import FieldMapping, Source, SourceResult
from crawl_feeds.store import Store
from crawl_feeds.transform.evaluate import evaluate
from crawl_feeds.transform.nodes import parse_transform_document
from crawl_feeds.transform.template import compile_templates

logger = logging.getLogger(__name__)

STAGE_PARSE = "parse transform"
STAGE_COMPILE = "compile templates"
STAGE_FETCH = "fetch"
STAGE_EXTRACT = "extract"
STAGE_ASSEMBLE = "assemble"
STAGE_PERSIST = "persist"


@contextmanager
def _stage(source: Source, stage: str):
    """Tag crawl errors raised inside the block with the source and stage."""
    try:
        yield
    except CrawlError as e:
        raise SourceError(source.name, stage, e) from e


def process_source(
    source: Source,
    store: Store,
    fetch: Callable[[str], DomNode],
    worker: int = 0,
) -> SourceResult:
    """Run the whole pipeline for `source`.

    Args:
        source: The source to crawl
        store: Store receiving the items
        fetch: Returns the parsed page for a URL
        worker: Id of the calling worker, for log messages

    Returns:
        SourceResult with the number of items found and newly inserted

    Raises:
        SourceError: If any stage fails; `cause` holds the original error
    """
    start_time = time.monotonic()

    with _stage(source, STAGE_PARSE):
        document = parse_transform_document(source.transform)

    with _stage(source, STAGE_COMPILE):
        templates = compile_templates(document.fields)

    logger.info("[%d] Fetch source %s from %s", worker, source.name, source.url)
    with _stage(source, STAGE_FETCH):
        root = fetch(source.url)

    mappings: list[FieldMapping] = []
    with _stage(source, STAGE_EXTRACT):
        for node in document.items:
            mappings.extend(evaluate(root, node))

    with _stage(source, STAGE_ASSEMBLE):
        items = assemble_items(source.name, mappings, templates)

    for item in items:
        logger.info("[%d] Found item %s", worker, item)

    with _stage(source, STAGE_PERSIST):
        inserted = store.insert_items(source, items)

    elapsed = time.monotonic() - start_time
    logger.info(
        "[%d] Crawled %s: %d items, %d new in %.2fs",
        worker, source.name, len(items), inserted, elapsed,
    )

    return SourceResult(
        source=source.name,
        worker=worker,
        items_found=len(items),
        items_inserted=inserted,
    )
