"""Tests for the snapshot, execution log, page archive and sink."""

import json
import os
import stat
import tempfile
import unittest
from datetime import datetime, timedelta

from proxycrawler.errors import PersistenceError
from proxycrawler.models import Proxy, RunSummary
from proxycrawler.storage import (
    ExecutionLogStorage,
    JsonSnapshotStorage,
    PageArchive,
    PersistenceSink,
)

PROXIES = [
    Proxy(address="10.0.0.1", port=8080, region="BR", scheme="HTTP"),
    Proxy(address="10.0.0.2", port=1080, region="", scheme="SOCKS5"),
]


class _TempDirTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def _execution_log(self):
        storage = ExecutionLogStorage(f"sqlite:///{os.path.join(self.tmp, 'proxies.db')}")
        self.addCleanup(storage.close)
        return storage


class TestJsonSnapshotStorage(_TempDirTestCase):
    """Verify the JSON snapshot document."""

    def test_writes_indented_records(self):
        """The snapshot is an indented array of address/port/region/scheme objects."""
        path = os.path.join(self.tmp, "proxies.json")
        JsonSnapshotStorage(path).write(PROXIES)
        with open(path, encoding="utf-8") as f:
            raw = f.read()
        self.assertIn('\n  {\n    "address": "10.0.0.1"', raw)
        self.assertEqual(
            json.loads(raw)[1],
            {"address": "10.0.0.2", "port": 1080, "region": "", "scheme": "SOCKS5"},
        )

    def test_write_overwrites_previous_snapshot(self):
        """Each write replaces the file instead of appending."""
        storage = JsonSnapshotStorage(os.path.join(self.tmp, "proxies.json"))
        storage.write(PROXIES)
        storage.write(PROXIES[:1])
        self.assertEqual(storage.read(), PROXIES[:1])

    def test_unwritable_path_raises_persistence_error(self):
        storage = JsonSnapshotStorage(os.path.join(self.tmp, "missing", "proxies.json"))
        with self.assertRaises(PersistenceError):
            storage.write(PROXIES)

    def test_failed_replace_leaves_no_temp_file(self):
        """A write that cannot replace the target removes its temp file."""
        target = os.path.join(self.tmp, "proxies.json")
        os.mkdir(target)
        with self.assertRaises(PersistenceError):
            JsonSnapshotStorage(target).write(PROXIES)
        self.assertEqual([name for name in os.listdir(self.tmp) if name.endswith(".tmp")], [])

    @unittest.skipIf(os.name == "nt", "POSIX file modes")
    def test_new_snapshot_follows_umask(self):
        """A fresh snapshot gets the usual 0666 & ~umask mode, not the temp file's 0600."""
        umask = os.umask(0)
        os.umask(umask)
        path = os.path.join(self.tmp, "proxies.json")
        JsonSnapshotStorage(path).write(PROXIES)
        self.assertEqual(stat.S_IMODE(os.stat(path).st_mode), 0o666 & ~umask)

    @unittest.skipIf(os.name == "nt", "POSIX file modes")
    def test_rewrite_keeps_existing_mode(self):
        """Replacing a snapshot keeps the mode the old file had."""
        path = os.path.join(self.tmp, "proxies.json")
        storage = JsonSnapshotStorage(path)
        storage.write(PROXIES)
        os.chmod(path, 0o640)
        storage.write(PROXIES[:1])
        self.assertEqual(stat.S_IMODE(os.stat(path).st_mode), 0o640)


class TestExecutionLogStorage(_TempDirTestCase):
    """Verify rows appended to the ExecutionInfo table."""

    def test_write_appends_formatted_row(self):
        storage = self._execution_log()
        storage.write(
            RunSummary(
                started_at=datetime(2024, 3, 1, 11, 59, 30),
                finished_at=datetime(2024, 3, 1, 12, 0, 30, 999),
                page_count=0,
                record_count=42,
            )
        )
        self.assertEqual(
            storage.fetch_all(),
            [{"StartTime": "2024-03-01 11:59:30", "EndTime": "2024-03-01 12:00:30", "TotalPages": 0, "TotalProxies": 42}],
        )

    def test_schema_creation_is_idempotent(self):
        """Opening the same database twice keeps existing rows."""
        first = self._execution_log()
        now = datetime(2024, 1, 1)
        first.write(RunSummary(started_at=now, finished_at=now, page_count=0, record_count=1))
        second = self._execution_log()
        self.assertEqual(len(second.fetch_all()), 1)

    def test_requires_url_or_engine(self):
        with self.assertRaises(ValueError):
            ExecutionLogStorage()


class TestPageArchive(_TempDirTestCase):
    """Verify raw page artifacts."""

    def test_save_creates_directory_and_file(self):
        archive = PageArchive(os.path.join(self.tmp, "html_pages"))
        path = archive.save(3, "<html>3</html>")
        self.assertEqual(os.path.basename(path), "page_3.html")
        with open(path, encoding="utf-8") as f:
            self.assertEqual(f.read(), "<html>3</html>")

    def test_same_index_overwrites(self):
        """Artifacts are keyed only by page index."""
        archive = PageArchive(os.path.join(self.tmp, "html_pages"))
        archive.save(1, "first job")
        archive.save(1, "second job")
        self.assertEqual(os.listdir(archive.directory), ["page_1.html"])
        with open(archive.path_for(1), encoding="utf-8") as f:
            self.assertEqual(f.read(), "second job")


class TestPersistenceSink(_TempDirTestCase):
    """Verify the two independent writes of a job's results."""

    def test_persist_backdates_start_and_zeroes_page_count(self):
        """The logged start is one minute before the finish, pages are always 0."""
        log = self._execution_log()
        sink = PersistenceSink(JsonSnapshotStorage(os.path.join(self.tmp, "proxies.json")), log)
        started = datetime(2024, 3, 1, 12, 0, 0)
        finished = datetime(2024, 3, 1, 12, 0, 5)

        summary = sink.persist(started, finished, PROXIES)

        self.assertEqual(summary.started_at, finished - timedelta(minutes=1))
        self.assertEqual(summary.page_count, 0)
        self.assertEqual(summary.record_count, 2)
        self.assertEqual(log.fetch_all()[0]["StartTime"], "2024-03-01 11:59:05")

    def test_snapshot_failure_still_writes_log(self):
        """A failed document write does not stop the log row, and the error is raised."""
        log = self._execution_log()
        sink = PersistenceSink(JsonSnapshotStorage(os.path.join(self.tmp, "missing", "p.json")), log)
        now = datetime.now()
        with self.assertRaises(PersistenceError):
            sink.persist(now, now, PROXIES)
        self.assertEqual(log.fetch_all()[0]["TotalProxies"], 2)

    def test_log_failure_keeps_snapshot(self):
        """A failed log write does not roll back the snapshot."""
        path = os.path.join(self.tmp, "proxies.json")

        class BrokenLog:
            def write(self, item):
                raise PersistenceError("database is locked")

            def close(self):
                pass

        sink = PersistenceSink(JsonSnapshotStorage(path), BrokenLog())
        now = datetime.now()
        with self.assertRaises(PersistenceError):
            sink.persist(now, now, PROXIES)
        self.assertEqual(JsonSnapshotStorage(path).read(), PROXIES)


if __name__ == "__main__":
    unittest.main()
