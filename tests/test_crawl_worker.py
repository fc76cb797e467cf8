from __future__ import annotations

import asyncio
import json
import threading

from community_crawler.config import CrawlSettings
from community_crawler.models import CommunityLink, LinkOutcome, WorkerReport
from community_crawler.scrapers.base import PageLoadError, RenderedPage
from community_crawler.services import crawl_worker
from community_crawler.services.crawl_worker import CrawlWorker
from community_crawler.services.progress_store import ProgressStore
from community_crawler.services.record_writer import CsvRecordWriter

GOOD_HTML = """
<html><body>
  <h1>Oak Park</h1>
  <p>123 Main St Springfield IL 62701</p>
  <a href="tel:2175550100">Call</a>
</body></html>
"""
INCOMPLETE_HTML = "<html><body><p>Coming soon</p></body></html>"

GOOD = CommunityLink(origin_region="Illinois", name="Oak Park", source_url="https://a.test/good")
INCOMPLETE = CommunityLink(origin_region="Illinois", name="Soon", source_url="https://a.test/soon")
BROKEN = CommunityLink(origin_region="Illinois", name="Broken", source_url="https://a.test/broken")


class _FakeFetcher:
    def __init__(self, pages: dict) -> None:
        self.pages = pages
        self.visited: list[str] = []

    async def fetch(self, url: str, timeout_ms: int) -> RenderedPage:
        self.visited.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return RenderedPage(url=url, html=page)

    async def close(self) -> None:
        pass


class _FailingWriter(CsvRecordWriter):
    def append(self, record) -> None:
        raise OSError("disk full")


def _worker(settings: CrawlSettings, pages: dict, writer: CsvRecordWriter | None = None):
    progress = ProgressStore(settings.progress_file)
    writer = writer or CsvRecordWriter(settings.output_file)
    writer.initialize()
    fetcher = _FakeFetcher(pages)
    return CrawlWorker(0, fetcher, progress, writer, settings), fetcher


def _processed_urls(settings: CrawlSettings) -> list[str]:
    return json.loads(settings.progress_file.read_text(encoding="utf-8"))["processedUrls"]


def test_complete_page_is_written(settings: CrawlSettings) -> None:
    worker, _ = _worker(settings, {GOOD.source_url: GOOD_HTML})

    result = asyncio.run(worker.process_link(GOOD))

    assert result.outcome is LinkOutcome.ACCEPTED
    assert worker.writer.read_rows() == [
        [
            "Illinois",
            "Oak Park",
            "123 Main St",
            "Springfield",
            "IL",
            "62701",
            "+1 217 555 0100",
            "oakparkmgr@greystar.com",
        ]
    ]


def test_each_outcome_marks_url_processed(settings: CrawlSettings) -> None:
    pages = {
        GOOD.source_url: GOOD_HTML,
        INCOMPLETE.source_url: INCOMPLETE_HTML,
        BROKEN.source_url: PageLoadError(BROKEN.source_url, "timeout", "Timeout 20000ms exceeded"),
    }
    worker, fetcher = _worker(settings, pages)

    report = asyncio.run(worker.run_links([GOOD, INCOMPLETE, BROKEN]))

    assert fetcher.visited == [GOOD.source_url, INCOMPLETE.source_url, BROKEN.source_url]
    assert (report.assigned, report.processed, report.accepted, report.rejected, report.failed) == (3, 3, 1, 1, 1)
    assert _processed_urls(settings) == [GOOD.source_url, INCOMPLETE.source_url, BROKEN.source_url]
    assert len(worker.writer.read_rows()) == 1


def test_incomplete_page_is_rejected_with_reasons(settings: CrawlSettings) -> None:
    worker, _ = _worker(settings, {INCOMPLETE.source_url: INCOMPLETE_HTML})

    result = asyncio.run(worker.process_link(INCOMPLETE))

    assert result.outcome is LinkOutcome.REJECTED
    assert "phone" in result.reason
    assert worker.writer.read_rows() == []


def test_navigation_error_is_classified(settings: CrawlSettings) -> None:
    pages = {BROKEN.source_url: PageLoadError(BROKEN.source_url, "network", "net::ERR_NAME_NOT_RESOLVED")}
    worker, _ = _worker(settings, pages)

    result = asyncio.run(worker.process_link(BROKEN))

    assert result.outcome is LinkOutcome.FAILED
    assert result.error_kind == "network"


def test_unexpected_fetch_error_is_an_extraction_failure(settings: CrawlSettings) -> None:
    worker, _ = _worker(settings, {BROKEN.source_url: ValueError("bad html")})

    result = asyncio.run(worker.process_link(BROKEN))

    assert result.outcome is LinkOutcome.FAILED
    assert result.error_kind == "extraction"


def test_write_failure_still_marks_processed(settings: CrawlSettings) -> None:
    worker, _ = _worker(settings, {GOOD.source_url: GOOD_HTML}, writer=_FailingWriter(settings.output_file))
    report = WorkerReport(worker_id=0)

    result = asyncio.run(worker.handle(GOOD, report))

    assert result.outcome is LinkOutcome.FAILED
    assert result.error_kind == "persist"
    assert report.failed == 1
    assert _processed_urls(settings) == [GOOD.source_url]


def test_run_queue_drains_shared_queue(settings: CrawlSettings) -> None:
    pages = {GOOD.source_url: GOOD_HTML, INCOMPLETE.source_url: INCOMPLETE_HTML}

    async def _run():
        queue: asyncio.Queue = asyncio.Queue()
        for link in (GOOD, INCOMPLETE):
            queue.put_nowait(link)
        worker, _ = _worker(settings, pages)
        report = await worker.run_queue(queue)
        return report, queue

    report, queue = asyncio.run(_run())

    assert report.processed == 2
    assert queue.empty()


def test_extraction_runs_off_the_event_loop_thread(settings: CrawlSettings, monkeypatch) -> None:
    threads: list[int] = []

    def _extract(page):
        threads.append(threading.get_ident())
        return crawl_worker.ExtractedContent()

    monkeypatch.setattr(crawl_worker, "extract_fields", _extract)
    worker, _ = _worker(settings, {GOOD.source_url: GOOD_HTML})

    result = asyncio.run(worker.process_link(GOOD))

    assert result.outcome is LinkOutcome.REJECTED
    assert threads and threads[0] != threading.get_ident()
