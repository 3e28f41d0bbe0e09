"""Bounded-concurrency proxy listing crawler.

Crawls a paginated proxy listing with several overlapping jobs, extracts
one Proxy per table row, and stores each job's result as a JSON snapshot
plus a row in an SQL execution log.

Key modules:
    config          -- CrawlerSettings and their defaults
    models          -- Proxy, RunSummary, CrawlJob, RunReport dataclasses
    errors          -- CrawlerError hierarchy
    extractor       -- extract_proxies(): table rows to Proxy records
    renderers       -- PageRenderer ABC, RequestsRenderer, CurlRenderer
    factory         -- RendererFactory for per-job renderers
    paginator       -- Paginator for walking listing pages
    storage         -- JSON snapshot, execution log, page archive, sink
    controller      -- ThreadPoolController for the concurrency ceiling
    orchestrator    -- CrawlOrchestrator for running a batch of jobs
    logging_utils   -- log_event() structured log lines
"""
