from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests
from curl_cffi import CurlError
from curl_cffi import requests as curl_requests

from .errors import NavigationError


class PageRenderer(ABC):
    """Abstract page renderer: navigate to a URL, then read its markup.

    Behaves like a single browser tab. navigate() blocks the calling thread
    until the page is loaded, and page_source returns the markup of the last
    page loaded. A renderer keeps navigation state, so each crawl job owns
    its own instance.

    - Any 2xx status counts as a loaded page; other statuses raise
      NavigationError carrying the HTTP code.
    - Subclasses only implement fetch() and translate their client's
      exceptions into NavigationError.
    """

    def __init__(self) -> None:
        self._page_source = ""
        self._current_url: Optional[str] = None
        self._last_latency_ms = 0

    def navigate(self, url: str) -> None:
        self.validate(url)
        start_ms = self._now_ms()
        response = self.fetch(url)
        self._last_latency_ms = self._now_ms() - start_ms

        status_code = getattr(response, "status_code", None)
        if status_code is None or not 200 <= int(status_code) < 300:
            raise NavigationError(url, f"HTTP_{status_code}")

        self._page_source = response.text
        self._current_url = url

    @property
    def page_source(self) -> str:
        return self._page_source

    @property
    def current_url(self) -> Optional[str]:
        return self._current_url

    @property
    def last_latency_ms(self) -> int:
        return self._last_latency_ms

    def validate(self, url: str) -> None:
        if not url:
            raise ValueError("url is required")

    @abstractmethod
    def fetch(self, url: str) -> Any:
        ...

    def close(self) -> None:
        """Release client resources; the renderer must not be used afterwards."""

    def __enter__(self) -> "PageRenderer":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)


class RequestsRenderer(PageRenderer):
    def __init__(
        self,
        timeout: int = 20,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__()
        self._timeout = timeout
        self._session = session or requests.Session()
        if user_agent:
            self._session.headers["User-Agent"] = user_agent

    def fetch(self, url: str) -> Any:
        try:
            return self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NavigationError(url, type(exc).__name__) from exc

    def close(self) -> None:
        self._session.close()


class CurlRenderer(PageRenderer):
    """Renderer that impersonates a Chrome TLS/HTTP2 fingerprint via curl_cffi.

    Use it for listing sites that turn away plain HTTP clients and only
    serve pages to something that looks like a real browser."""

    def __init__(
        self,
        timeout: int = 20,
        user_agent: Optional[str] = None,
        impersonate: str = "chrome120",
    ) -> None:
        super().__init__()
        self._timeout = timeout
        self._impersonate = impersonate
        self._headers: Dict[str, str] = {"User-Agent": user_agent} if user_agent else {}
        self._session = curl_requests.Session()

    def fetch(self, url: str) -> Any:
        try:
            return self._session.get(
                url,
                headers=self._headers or None,
                impersonate=self._impersonate,
                timeout=self._timeout,
            )
        except CurlError as exc:
            raise NavigationError(url, type(exc).__name__) from exc

    def close(self) -> None:
        self._session.close()
