from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import PersistenceError
from .logging_utils import log_event
from .models import Proxy, RunSummary

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
# The execution log records a start time this far before the finish time.
LOGGED_START_OFFSET = timedelta(minutes=1)
# Placeholder page count written to every execution log row.
LOGGED_PAGE_COUNT = 0
# os.umask() can only be read by setting it, so read it once at import.
_UMASK = os.umask(0)
os.umask(_UMASK)

CREATE_EXECUTION_INFO = """
CREATE TABLE IF NOT EXISTS ExecutionInfo (
    StartTime TEXT NOT NULL,
    EndTime TEXT NOT NULL,
    TotalPages INTEGER NOT NULL,
    TotalProxies INTEGER NOT NULL
)
"""

INSERT_EXECUTION_INFO = """
INSERT INTO ExecutionInfo (StartTime, EndTime, TotalPages, TotalProxies)
VALUES (:start_time, :end_time, :total_pages, :total_proxies)
"""

SELECT_EXECUTION_INFO = """
SELECT StartTime, EndTime, TotalPages, TotalProxies
  FROM ExecutionInfo
 ORDER BY rowid
"""


class StorageBase(ABC):
    """Abstract base class for the crawl result sinks.

    Subclasses must implement write() and close(). Writes from concurrent
    jobs are not serialised here: each write is only as atomic as the
    backend makes a single call.
    """

    @abstractmethod
    def write(self, item: Any) -> None:
        """Persist one item."""

    @abstractmethod
    def close(self) -> None:
        """Release resources."""


class JsonSnapshotStorage(StorageBase):
    """Writes a job's full proxy list as one indented JSON document.

    Every write replaces the file in one step (temp file, then rename), so
    after concurrent jobs the file holds the complete list of whichever job
    wrote last.
    """

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def write(self, item: Sequence[Proxy]) -> None:
        document = json.dumps([proxy.to_dict() for proxy in item], ensure_ascii=False, indent=2)
        directory = os.path.dirname(os.path.abspath(self._path))
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=directory, suffix=".tmp", delete=False) as f:
                tmp_path = f.name
                f.write(document)
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            if tmp_path is not None:
                _remove_quietly(tmp_path)
            raise PersistenceError(f"could not write snapshot {self._path}: {exc}") from exc

    def _file_mode(self) -> int:
        """Keep the mode of the snapshot being replaced, or use the umask default."""
        try:
            return stat.S_IMODE(os.stat(self._path).st_mode)
        except FileNotFoundError:
            return 0o666 & ~_UMASK

    def read(self) -> List[Proxy]:
        with open(self._path, "r", encoding="utf-8") as f:
            return [Proxy(**row) for row in json.load(f)]

    def close(self) -> None:
        pass


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


class ExecutionLogStorage(StorageBase):
    """Append-only execution log kept in the ExecutionInfo SQL table."""

    def __init__(self, database_url: str = "", engine: Optional[Engine] = None) -> None:
        if engine is None and not database_url:
            raise ValueError("database_url or engine is required")
        self._engine = engine or create_engine(database_url, future=True)
        self.ensure_schema()

    def ensure_schema(self) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(text(CREATE_EXECUTION_INFO))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not create ExecutionInfo: {exc}") from exc

    def write(self, item: RunSummary) -> None:
        params = {
            "start_time": item.started_at.strftime(TIMESTAMP_FORMAT),
            "end_time": item.finished_at.strftime(TIMESTAMP_FORMAT),
            "total_pages": item.page_count,
            "total_proxies": item.record_count,
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(text(INSERT_EXECUTION_INFO), params)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not append execution log row: {exc}") from exc

    def fetch_all(self) -> List[Dict[str, Any]]:
        with self._engine.connect() as conn:
            rows = conn.execute(text(SELECT_EXECUTION_INFO)).mappings().all()
        return [dict(row) for row in rows]

    def close(self) -> None:
        self._engine.dispose()


class PageArchive:
    """Keeps a raw copy of each crawled page as <directory>/page_<index>.html.

    File names carry only the page index, so jobs crawling the same listing
    overwrite each other's copies.
    """

    def __init__(self, directory: str) -> None:
        self._directory = directory

    @property
    def directory(self) -> str:
        return self._directory

    def path_for(self, index: int) -> str:
        return os.path.join(self._directory, f"page_{index}.html")

    def save(self, index: int, html: str) -> str:
        os.makedirs(self._directory, exist_ok=True)
        path = self.path_for(index)
        with open(path, "w", encoding="utf-8") as f:
            f.write(html)
        return path


class PersistenceSink:
    """Commits one job's results to the JSON snapshot and the execution log.

    The two writes are independent: both are attempted, neither is rolled
    back when the other fails, and the first failure is re-raised afterwards.
    """

    def __init__(self, snapshot: JsonSnapshotStorage, execution_log: ExecutionLogStorage) -> None:
        self._snapshot = snapshot
        self._execution_log = execution_log

    def persist(self, started_at: datetime, finished_at: datetime, records: Sequence[Proxy]) -> RunSummary:
        summary = RunSummary(
            started_at=finished_at - LOGGED_START_OFFSET,
            finished_at=finished_at,
            page_count=LOGGED_PAGE_COUNT,
            record_count=len(records),
        )
        errors: List[PersistenceError] = []

        try:
            self._snapshot.write(records)
            log_event(logger, logging.DEBUG, "snapshot_written", path=self._snapshot.path, records=len(records))
        except PersistenceError as exc:
            errors.append(exc)
            log_event(logger, logging.ERROR, "snapshot_failed", path=self._snapshot.path, error=str(exc))

        try:
            self._execution_log.write(summary)
            log_event(
                logger,
                logging.DEBUG,
                "execution_logged",
                records=summary.record_count,
                duration_secs=round((finished_at - started_at).total_seconds(), 3),
            )
        except PersistenceError as exc:
            errors.append(exc)
            log_event(logger, logging.ERROR, "execution_log_failed", error=str(exc))

        if errors:
            raise errors[0]
        return summary

    def close(self) -> None:
        self._snapshot.close()
        self._execution_log.close()
