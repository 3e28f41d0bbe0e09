from __future__ import annotations

import logging
import time
import uuid
from concurrent.futures import Future
from datetime import datetime
from typing import List, Optional

from .config import CrawlerSettings
from .controller import ThreadPoolController
from .factory import RendererFactory
from .logging_utils import log_event
from .models import CrawlJob, RunReport, RunSummary
from .paginator import Paginator
from .storage import ExecutionLogStorage, JsonSnapshotStorage, PageArchive, PersistenceSink

logger = logging.getLogger(__name__)


class CrawlOrchestrator:
    """Dispatches a batch of identical crawl jobs under a fixed concurrency cap.

    Each job opens its own renderer, walks every listing page, extracts the
    proxies and hands them to the persistence sink. At most
    concurrency_limit jobs hold a slot at a time; the rest wait for one.

    Failures:
    - A failing job is logged and frees its slot; the batch keeps going.
    - Once every job has finished, the first job failure is re-raised to the
      batch boundary in run_all(), which logs it and reports the batch as
      unsuccessful instead of crashing.
    """

    def __init__(
        self,
        settings: CrawlerSettings,
        renderer_factory: RendererFactory,
        sink: PersistenceSink,
        archive: Optional[PageArchive] = None,
    ) -> None:
        self._settings = settings
        self._renderer_factory = renderer_factory
        self._sink = sink
        self._archive = archive
        self._last_controller: Optional[ThreadPoolController] = None

    @classmethod
    def from_settings(cls, settings: CrawlerSettings) -> "CrawlOrchestrator":
        sink = PersistenceSink(
            snapshot=JsonSnapshotStorage(settings.output_path),
            execution_log=ExecutionLogStorage(settings.database_url),
        )
        return cls(
            settings=settings,
            renderer_factory=RendererFactory(settings),
            sink=sink,
            archive=PageArchive(settings.pages_dir),
        )

    def run_all(self, job_count: Optional[int] = None, concurrency_limit: Optional[int] = None) -> RunReport:
        job_count = self._settings.job_count if job_count is None else job_count
        concurrency_limit = self._settings.concurrency_limit if concurrency_limit is None else concurrency_limit

        start = time.perf_counter()
        error: Optional[str] = None
        try:
            self._run_batch(job_count, concurrency_limit)
        except Exception as exc:  # noqa: BLE001
            error = f"{type(exc).__name__}: {exc}"
            log_event(logger, logging.ERROR, "run_failed", error=error)
        elapsed = time.perf_counter() - start

        log_event(
            logger,
            logging.INFO,
            "run_completed",
            jobs=job_count,
            concurrency_limit=concurrency_limit,
            success=error is None,
            elapsed_secs=round(elapsed, 3),
        )
        return RunReport(
            success=error is None,
            elapsed_seconds=elapsed,
            job_count=job_count,
            concurrency_limit=concurrency_limit,
            error=error,
        )

    def run_job(self, job: CrawlJob) -> RunSummary:
        """Run one crawl-paginate-extract-persist cycle."""
        started_at = datetime.now()
        log_event(logger, logging.INFO, "job_started", job_id=job.job_id, url=job.entry_url)
        try:
            paginator = Paginator(job.entry_url, self._archive)
            with self._renderer_factory.create_renderer() as renderer:
                proxies = paginator.collect(renderer)
            summary = self._sink.persist(started_at, datetime.now(), proxies)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "job_failed",
                job_id=job.job_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

        log_event(
            logger,
            logging.INFO,
            "job_completed",
            job_id=job.job_id,
            records=summary.record_count,
        )
        return summary

    @property
    def last_controller(self) -> Optional[ThreadPoolController]:
        """The controller used by the most recent batch, for inspection."""
        return self._last_controller

    def close(self) -> None:
        self._sink.close()

    def _run_batch(self, job_count: int, concurrency_limit: int) -> None:
        controller = ThreadPoolController(limit=concurrency_limit)
        self._last_controller = controller
        controller.start()

        futures: List[Future] = []
        try:
            for _ in range(job_count):
                job = CrawlJob(job_id=str(uuid.uuid4()), entry_url=self._settings.base_url)
                futures.append(controller.submit(self.run_job, job))
        finally:
            controller.stop(wait=True)

        failures = [f.exception() for f in futures if f.exception() is not None]
        if failures:
            raise failures[0]
