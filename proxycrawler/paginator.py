from __future__ import annotations

import logging
import re
from typing import Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup

from .extractor import extract_proxies
from .logging_utils import log_event
from .models import Proxy
from .renderers import PageRenderer
from .storage import PageArchive

logger = logging.getLogger(__name__)

LAST_PAGE_SELECTOR = "ul.pagination li:last-child a"
PAGE_NUMBER_PATTERN = re.compile(r"page=(\d+)")


class Paginator:
    """Walks every page of a paginated listing for one crawl job.

    The entry page is loaded first; its pagination bar tells how many pages
    exist. Pages are then visited strictly in ascending order through
    "<entry_url>?page=N" and each page's raw markup is archived under its
    page index.
    """

    def __init__(self, entry_url: str, archive: Optional[PageArchive] = None) -> None:
        if not entry_url:
            raise ValueError("entry_url is required")
        self._entry_url = entry_url
        self._archive = archive

    @property
    def entry_url(self) -> str:
        return self._entry_url

    def crawl(self, renderer: PageRenderer) -> Iterator[Tuple[int, str]]:
        """Yield (page_index, markup) for pages 1..N, navigating between them.

        A page is archived once the caller has consumed it, so a page whose
        records fail to parse leaves no artifact behind.
        """
        renderer.navigate(self._entry_url)
        total = self.total_pages(renderer.page_source)
        log_event(logger, logging.DEBUG, "total_pages_resolved", url=self._entry_url, total_pages=total)

        for index in range(1, total + 1):
            html = renderer.page_source
            yield index, html

            if self._archive is not None:
                self._archive.save(index, html)
            log_event(
                logger,
                logging.DEBUG,
                "page_crawled",
                url=renderer.current_url,
                page=index,
                total_pages=total,
                latency_ms=renderer.last_latency_ms,
            )

            if index < total:
                renderer.navigate(self.page_url(index + 1))

    def collect(self, renderer: PageRenderer) -> List[Proxy]:
        """Crawl every page and return all extracted proxies, page then row order."""
        proxies: List[Proxy] = []
        for _, html in self.crawl(renderer):
            proxies.extend(extract_proxies(html))
        return proxies

    def page_url(self, index: int) -> str:
        return f"{self._entry_url}?page={index}"

    @staticmethod
    def total_pages(html: str) -> int:
        """Read the page count from the last pagination link; 1 when there is none."""
        soup = BeautifulSoup(html, "html.parser")
        link = soup.select_one(LAST_PAGE_SELECTOR)
        if link is None:
            return 1
        href = link.get("href") or ""
        match = PAGE_NUMBER_PATTERN.search(href)
        return int(match.group(1)) if match else 1
