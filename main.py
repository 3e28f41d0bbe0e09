from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from proxycrawler.config import RENDERER_KINDS, CrawlerSettings
from proxycrawler.orchestrator import CrawlOrchestrator


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_settings(argv: Optional[Sequence[str]] = None) -> tuple[CrawlerSettings, str]:
    defaults = CrawlerSettings.from_env()

    parser = argparse.ArgumentParser(description="Crawl a paginated proxy listing with concurrent jobs")
    parser.add_argument("--url", dest="base_url", help=f"Listing entry URL (default: {defaults.base_url})")
    parser.add_argument("--jobs", dest="job_count", type=int, help=f"Number of crawl jobs (default: {defaults.job_count})")
    parser.add_argument(
        "--concurrency",
        dest="concurrency_limit",
        type=int,
        help=f"Max jobs running at once (default: {defaults.concurrency_limit})",
    )
    parser.add_argument("--output", dest="output_path", help=f"JSON snapshot path (default: {defaults.output_path})")
    parser.add_argument("--database", dest="database_url", help=f"Execution log database URL (default: {defaults.database_url})")
    parser.add_argument("--pages-dir", dest="pages_dir", help=f"Raw page archive directory (default: {defaults.pages_dir})")
    parser.add_argument("--renderer", choices=RENDERER_KINDS, help=f"Page renderer (default: {defaults.renderer})")
    parser.add_argument("--timeout", dest="timeout_seconds", type=int, help=f"HTTP timeout seconds (default: {defaults.timeout_seconds})")
    parser.add_argument("--log-level", default="INFO", help="Logging level")

    args = parser.parse_args(argv)
    settings = defaults.with_overrides(
        base_url=args.base_url,
        job_count=args.job_count,
        concurrency_limit=args.concurrency_limit,
        output_path=args.output_path,
        database_url=args.database_url,
        pages_dir=args.pages_dir,
        renderer=args.renderer,
        timeout_seconds=args.timeout_seconds,
    )
    return settings, args.log_level


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings, log_level = build_settings(argv)
    _configure_logging(log_level)

    orchestrator = CrawlOrchestrator.from_settings(settings)
    try:
        report = orchestrator.run_all()
    finally:
        orchestrator.close()

    if report.error:
        print(f"An error occurred: {report.error}")
    print(f"\nDONE: jobs={report.job_count} success={report.success} elapsed={report.elapsed_seconds:.2f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
