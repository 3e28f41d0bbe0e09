from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional


DEFAULT_BASE_URL = "https://fineproxy.org/pt/free-proxy/"
DEFAULT_JOB_COUNT = 10
DEFAULT_CONCURRENCY_LIMIT = 3
DEFAULT_OUTPUT_PATH = "proxies.json"
DEFAULT_DATABASE_URL = "sqlite:///proxies.db"
DEFAULT_PAGES_DIR = "html_pages"
RENDERER_KINDS = ("requests", "curl")
DEFAULT_RENDERER = "requests"
DEFAULT_TIMEOUT_SECONDS = 20
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ENV_PREFIX = "PROXYCRAWLER_"


@dataclass(frozen=True)
class CrawlerSettings:
    """Runtime configuration for one crawl batch.

    Every field has a working default so the crawler runs with no arguments;
    from_env() and the CLI only override what they are given."""

    base_url: str = DEFAULT_BASE_URL
    job_count: int = DEFAULT_JOB_COUNT
    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    output_path: str = DEFAULT_OUTPUT_PATH
    database_url: str = DEFAULT_DATABASE_URL
    pages_dir: str = DEFAULT_PAGES_DIR
    renderer: str = DEFAULT_RENDERER
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url is required")
        if self.job_count < 1:
            raise ValueError(f"job_count must be >= 1, got {self.job_count}")
        if self.concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be >= 1, got {self.concurrency_limit}")
        if self.renderer not in RENDERER_KINDS:
            raise ValueError(f"renderer must be one of {RENDERER_KINDS}, got {self.renderer!r}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CrawlerSettings":
        """Build settings from PROXYCRAWLER_* environment variables."""
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for name, kind in (
            ("base_url", str),
            ("job_count", int),
            ("concurrency_limit", int),
            ("output_path", str),
            ("database_url", str),
            ("pages_dir", str),
            ("renderer", str),
            ("timeout_seconds", int),
            ("user_agent", str),
        ):
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None or not raw.strip():
                continue
            overrides[name] = kind(raw.strip())
        return cls(**overrides)

    def with_overrides(self, **changes: Any) -> "CrawlerSettings":
        """Return a copy with the non-None values of changes applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
