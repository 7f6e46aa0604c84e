"""Error taxonomy for crawling sources.

Every error is fatal for the source it belongs to and never for the batch.
"""


class CrawlError(Exception):
    """Base class for all crawl errors."""


class ConfigurationError(CrawlError):
    """Malformed transform document, unknown node kind, field name or type."""


class ExtractionError(CrawlError):
    """The page does not have what the transform requires."""


class TransportError(CrawlError):
    """The page could not be fetched or parsed."""


class PersistenceError(CrawlError):
    """The store failed to read sources or write items."""


class SourceError(CrawlError):
    """Wraps a failure with the source and pipeline stage it happened in."""

    def __init__(self, source: str, stage: str, cause: Exception):
        super().__init__(f"{stage}: {cause}")
        self.source = source
        self.stage = stage
        self.cause = cause
