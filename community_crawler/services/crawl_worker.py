"""
Crawl worker.

One worker owns one page fetcher (one browser context) and visits its links
strictly one after another:

    fetch -> extract -> parse address -> validate -> append row (if valid)
          -> mark URL processed (always)

Every link ends as a ``LinkResult`` (ACCEPTED, REJECTED or FAILED) and every
outcome marks the URL processed. Nothing a single page does can stop the
loop over the remaining links.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from loguru import logger

from community_crawler.config import CrawlSettings
from community_crawler.models import (
    CommunityLink,
    ExtractedContent,
    LinkOutcome,
    LinkResult,
    PropertyRecord,
    WorkerReport,
)
from community_crawler.scrapers.base import PageFetcher, PageLoadError
from community_crawler.scrapers.field_extractor import extract_fields
from community_crawler.services.progress_store import ProgressStore
from community_crawler.services.record_writer import CsvRecordWriter
from community_crawler.services.validator import rejection_reasons
from community_crawler.utils.address_parser import parse_address


class CrawlWorker:
    def __init__(
        self,
        worker_id: int,
        fetcher: PageFetcher,
        progress: ProgressStore,
        writer: CsvRecordWriter,
        settings: CrawlSettings,
    ):
        self.worker_id = worker_id
        self.fetcher = fetcher
        self.progress = progress
        self.writer = writer
        self.settings = settings
        self.log = logger.bind(worker=worker_id)

    async def process_link(self, link: CommunityLink) -> LinkResult:
        """Visit one link and persist it if complete. Does not touch progress."""
        error_kind = None
        error_message = ""
        try:
            page = await self.fetcher.fetch(link.source_url, timeout_ms=self.settings.nav_timeout_ms)
            # HTML parsing runs off the event loop so other workers keep going
            loop = asyncio.get_running_loop()
            content = await loop.run_in_executor(None, extract_fields, page)
        except PageLoadError as exc:
            error_kind, error_message = exc.kind, str(exc)
            content = ExtractedContent()
        except Exception as exc:
            error_kind, error_message = "extraction", str(exc)
            content = ExtractedContent()

        parsed = parse_address(content.raw_address)
        missing = rejection_reasons(content, parsed)

        if error_kind:
            self.log.error(f"Worker {self.worker_id}: error processing {link.name}: {error_message}")
            return LinkResult(link=link, outcome=LinkOutcome.FAILED, reason=error_message, error_kind=error_kind)

        if missing:
            self.log.warning(
                f"Worker {self.worker_id}: incomplete record skipped - {link.name} "
                f"(phone={content.raw_phone or 'NO'}, zip={parsed.postal_code or 'NO'}, "
                f"state={parsed.region_code or 'NO'}, address/city={parsed.street_address or parsed.city or 'NO'})"
            )
            return LinkResult(link=link, outcome=LinkOutcome.REJECTED, reason="missing " + ", ".join(missing))

        record = PropertyRecord.build(link, parsed, content.raw_phone, self.settings.email_domain)
        try:
            self.writer.append(record)
        except OSError as exc:
            self.log.error(f"Worker {self.worker_id}: could not write row for {link.name}: {exc}")
            return LinkResult(link=link, outcome=LinkOutcome.FAILED, record=record, reason=str(exc), error_kind="persist")

        return LinkResult(link=link, outcome=LinkOutcome.ACCEPTED, record=record)

    async def handle(self, link: CommunityLink, report: WorkerReport) -> LinkResult:
        """Process one link, then record it in the progress store whatever happened."""
        try:
            result = await self.process_link(link)
        except Exception as exc:
            self.log.exception(f"Worker {self.worker_id}: unexpected error on {link.source_url}: {exc}")
            result = LinkResult(link=link, outcome=LinkOutcome.FAILED, reason=str(exc), error_kind="unexpected")

        self.progress.merge([link.source_url])
        report.count(result)
        if result.outcome is LinkOutcome.ACCEPTED:
            self.log.success(
                f"Worker {self.worker_id}: processed {report.processed}/{report.assigned or '?'} - {link.name}"
            )

        if self.settings.throttle_ms:
            await asyncio.sleep(self.settings.throttle_ms / 1000)
        return result

    async def run_links(self, links: Iterable[CommunityLink]) -> WorkerReport:
        """Process an assigned chunk in order."""
        links = list(links)
        report = WorkerReport(worker_id=self.worker_id, assigned=len(links))
        self.log.info(f"Worker {self.worker_id}: processing {len(links)} communities")
        for link in links:
            await self.handle(link, report)
        self.log.info(f"Worker {self.worker_id}: done - {report.processed} communities processed")
        return report

    async def run_queue(self, queue: "asyncio.Queue[CommunityLink]") -> WorkerReport:
        """Pull links from a shared queue until it is empty."""
        report = WorkerReport(worker_id=self.worker_id)
        self.log.info(f"Worker {self.worker_id}: started")
        while True:
            try:
                link = queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            try:
                await self.handle(link, report)
            finally:
                queue.task_done()
        self.log.info(f"Worker {self.worker_id}: done - {report.processed} communities processed")
        return report
