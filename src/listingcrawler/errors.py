from __future__ import annotations


class CrawlError(Exception):
    """Base class for errors raised by the crawl engine."""


class NavigationFailure(CrawlError):
    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"failed to load {url}" + (f": {reason}" if reason else ""))


class ExtractionFailure(CrawlError):
    """A page could not be read at all (individual selector misses use NOT_AVAILABLE)."""


class PersistenceFailure(CrawlError):
    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"store error for {url}" + (f": {reason}" if reason else ""))


class FatalInitializationFailure(CrawlError):
    """The run cannot start (no browser session, or the store is unreachable)."""
