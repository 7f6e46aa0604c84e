"""Turn field-mappings into feed items."""

import logging
from typing import Callable

from crawl_feeds.models import FieldMapping, Item
from crawl_feeds.transform.coerce import DATE_FIELD, default_date
from crawl_feeds.transform.template import Template

logger = logging.getLogger(__name__)


def with_default_date(mapping: FieldMapping, today: Callable[[], str] = default_date) -> FieldMapping:
    """Copy of `mapping` with `date` filled in when the page did not provide one."""
    if DATE_FIELD in mapping:
        return mapping
    return {**mapping, DATE_FIELD: today()}


def assemble_items(
    feed: str,
    mappings: list[FieldMapping],
    templates: dict[str, Template],
    today: Callable[[], str] = default_date,
) -> list[Item]:
    """Render every mapping into an item, dropping those without title or uri."""
    uses_date = any(DATE_FIELD in template.names for template in templates.values())

    items = []
    for mapping in mappings:
        if uses_date:
            mapping = with_default_date(mapping, today)

        rendered = {name: template.render(mapping) for name, template in templates.items()}
        item = Item(
            feed=feed,
            title=rendered.get("title", ""),
            uri=rendered.get("uri", ""),
            description=rendered.get("description", ""),
        )

        if not item.title or not item.uri:
            logger.debug("Dropping item without title or uri from %s: %r", feed, mapping)
            continue
        items.append(item)

    return items
