from __future__ import annotations


class CrawlerError(Exception):
    """Base class for every error raised by the crawl pipeline."""


class ProxyParseError(CrawlerError, ValueError):
    """A listing row held a port cell that is not an integer."""

    def __init__(self, raw_port: str) -> None:
        super().__init__(f"invalid port value: {raw_port!r}")
        self.raw_port = raw_port


class NavigationError(CrawlerError):
    """The page renderer could not load a URL."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"failed to load {url}: {reason}")
        self.url = url
        self.reason = reason


class PersistenceError(CrawlerError):
    """Writing the document snapshot or the execution log failed."""
