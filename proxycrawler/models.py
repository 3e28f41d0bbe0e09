from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Proxy:
    address: str
    port: int
    region: str
    scheme: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RunSummary:
    """One execution-log row describing a completed crawl job."""

    started_at: datetime
    finished_at: datetime
    page_count: int
    record_count: int


@dataclass(frozen=True)
class CrawlJob:
    job_id: str
    entry_url: str


@dataclass(frozen=True)
class RunReport:
    """Outcome of a whole batch of crawl jobs.

    Only the batch as a whole is reported: a failed job turns success off
    and carries its message in error, without naming which job it was."""

    success: bool
    elapsed_seconds: float
    job_count: int
    concurrency_limit: int
    error: Optional[str] = None
