from __future__ import annotations

from typing import Callable, Dict

from .config import CrawlerSettings
from .renderers import CurlRenderer, PageRenderer, RequestsRenderer


class RendererFactory:
    """Factory for creating page renderers from crawler settings.

    Renderers are never cached: each one holds the page it last navigated to,
    so sharing an instance between concurrent jobs would mix their pages.
    """

    def __init__(self, settings: CrawlerSettings) -> None:
        self._settings = settings
        self._builders: Dict[str, Callable[[], PageRenderer]] = {
            "requests": self._build_requests,
            "curl": self._build_curl,
        }

    def create_renderer(self, kind: str = "") -> PageRenderer:
        kind = kind or self._settings.renderer
        builder = self._builders.get(kind)
        if builder is None:
            raise ValueError(f"Unknown renderer: {kind}")
        return builder()

    def _build_requests(self) -> PageRenderer:
        return RequestsRenderer(
            timeout=self._settings.timeout_seconds,
            user_agent=self._settings.user_agent,
        )

    def _build_curl(self) -> PageRenderer:
        return CurlRenderer(
            timeout=self._settings.timeout_seconds,
            user_agent=self._settings.user_agent,
        )
