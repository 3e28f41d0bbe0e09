"""Shared fakes and HTML builders for the crawler tests."""

import threading
import time
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence

from proxycrawler.renderers import PageRenderer


ENTRY_URL = "https://proxies.test/free-proxy/"


def listing_page(rows: Sequence[Sequence[str]], last_page: Optional[int] = None) -> str:
    """Build a listing page with one <tr> per row and an optional pagination bar."""
    body = "".join("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows)
    pagination = ""
    if last_page is not None:
        pagination = (
            '<ul class="pagination">'
            f'<li><a href="{ENTRY_URL}?page=1">1</a></li>'
            f'<li><a href="{ENTRY_URL}?page={last_page}">&raquo;</a></li>'
            "</ul>"
        )
    return (
        "<html><body><table>"
        '<thead><tr class="head"><th>IP</th><th>Port</th></tr></thead>'
        f"<tbody>{body}</tbody></table>{pagination}</body></html>"
    )


def proxy_row(index: int, scheme: str = "HTTP") -> List[str]:
    return [f"10.0.0.{index}", str(8000 + index), "BR", "elite", scheme]


def two_page_site() -> Dict[str, str]:
    """Page 1 holds three proxies, page 2 holds two."""
    return {
        ENTRY_URL: listing_page([proxy_row(1), proxy_row(2), proxy_row(3)], last_page=2),
        f"{ENTRY_URL}?page=2": listing_page([proxy_row(4), proxy_row(5, scheme="SOCKS5")], last_page=2),
    }


class FakeRenderer(PageRenderer):
    """Serves pages from a dict; unknown URLs answer 404."""

    def __init__(self, pages: Dict[str, str], delay: float = 0.0, on_close=None) -> None:
        super().__init__()
        self._pages = pages
        self._delay = delay
        self._on_close = on_close
        self.visited: List[str] = []
        self.closed = False

    def fetch(self, url):
        self.visited.append(url)
        if self._delay:
            time.sleep(self._delay)
        if url not in self._pages:
            return SimpleNamespace(status_code=404, text="")
        return SimpleNamespace(status_code=200, text=self._pages[url])

    def close(self) -> None:
        self.closed = True
        if self._on_close is not None:
            self._on_close()


class FakeRendererFactory:
    """Hands out FakeRenderers and counts how many are open at the same time.

    Pass a list of page dicts as sites to give each renderer, in creation
    order, a different site; the last entry is reused once exhausted.
    """

    def __init__(self, sites: Sequence[Dict[str, str]], delay: float = 0.0) -> None:
        self._sites = list(sites)
        self._delay = delay
        self._lock = threading.Lock()
        self.created: List[FakeRenderer] = []
        self.open_count = 0
        self.max_open = 0

    def create_renderer(self, kind: str = "") -> FakeRenderer:
        with self._lock:
            index = min(len(self.created), len(self._sites) - 1)
            renderer = FakeRenderer(self._sites[index], delay=self._delay, on_close=self._closed)
            self.created.append(renderer)
            self.open_count += 1
            self.max_open = max(self.max_open, self.open_count)
        return renderer

    def _closed(self) -> None:
        with self._lock:
            self.open_count -= 1
