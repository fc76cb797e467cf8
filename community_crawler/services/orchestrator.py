"""
Crawl orchestrator.

    links (cache or live discovery)
      - processed URLs (progress file)
      = remaining
      -> fixed pool of CrawlWorkers, each with its own browser context
      -> join all, report counts

Dispatch modes:
    queue   shared asyncio.Queue; idle workers pick the next link (default)
    chunks  contiguous slices of ceil(remaining / workers) links per worker
"""

from __future__ import annotations

import asyncio
import math
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from loguru import logger

from community_crawler.config import CrawlSettings
from community_crawler.models import CommunityLink, CrawlSummary, WorkerReport
from community_crawler.scrapers.base import BrowserSession
from community_crawler.scrapers.directory_scraper import discover_links
from community_crawler.services.crawl_worker import CrawlWorker
from community_crawler.services.link_cache import LinkCache
from community_crawler.services.progress_store import ProgressStore
from community_crawler.services.record_writer import CsvRecordWriter
from community_crawler.utils.time import now_utc

SessionFactory = Callable[[CrawlSettings], BrowserSession]
Discoverer = Callable[[BrowserSession, str], Awaitable[List[CommunityLink]]]


def compute_remaining(links: Sequence[CommunityLink], processed: Set[str]) -> List[CommunityLink]:
    """Links not yet processed, in discovery order, one per source URL."""
    seen: set[str] = set()
    remaining = []
    for link in links:
        if link.source_url in processed or link.source_url in seen:
            continue
        seen.add(link.source_url)
        remaining.append(link)
    return remaining


def partition_links(links: Sequence[CommunityLink], worker_count: int) -> List[List[CommunityLink]]:
    """Contiguous chunks of size ceil(len / worker_count)."""
    if not links:
        return []
    size = math.ceil(len(links) / max(worker_count, 1))
    return [list(links[i:i + size]) for i in range(0, len(links), size)]


class CrawlOrchestrator:
    def __init__(
        self,
        settings: CrawlSettings,
        *,
        link_cache: Optional[LinkCache] = None,
        progress: Optional[ProgressStore] = None,
        writer: Optional[CsvRecordWriter] = None,
        session_factory: SessionFactory = BrowserSession,
        discoverer: Discoverer = discover_links,
    ):
        self.settings = settings
        self.link_cache = link_cache or LinkCache(settings.links_file)
        self.progress = progress or ProgressStore(settings.progress_file)
        self.writer = writer or CsvRecordWriter(settings.output_file)
        self.session_factory = session_factory
        self.discoverer = discoverer

    async def load_links(self, session: BrowserSession) -> List[CommunityLink]:
        """Cached links when available, otherwise live discovery (then cached)."""
        links = self.link_cache.load()
        if links is not None:
            return links
        logger.info("No usable link cache, discovering links")
        links = await self.discoverer(session, self.settings.root_url)
        self.link_cache.save(links)
        return links

    async def run(self) -> CrawlSummary:
        summary = CrawlSummary()
        async with self.session_factory(self.settings) as session:
            links = await self.load_links(session)
            processed = self.progress.load_or_initialize()
            remaining = compute_remaining(links, processed)

            summary.total_links = len(links)
            summary.already_processed = len(processed)
            summary.remaining = len(remaining)
            logger.info(
                f"Total links: {summary.total_links} | already processed: {summary.already_processed} "
                f"| remaining: {summary.remaining}"
            )

            if not remaining:
                logger.success("All links have already been processed")
                summary.finished_at = now_utc()
                return summary

            self.writer.initialize()
            reports = await self._dispatch(session, remaining)

        for report in reports:
            summary.processed += report.processed
            summary.accepted += report.accepted
            summary.rejected += report.rejected
            summary.failed += report.failed
        summary.workers = len(reports)
        summary.finished_at = now_utc()
        logger.success(
            f"Crawl complete: {summary.processed} communities processed this session "
            f"({summary.accepted} saved, {summary.rejected} incomplete, {summary.failed} failed)"
        )
        return summary

    async def _dispatch(self, session: BrowserSession, remaining: List[CommunityLink]) -> List[WorkerReport]:
        worker_count = self.settings.worker_count
        if self.settings.dispatch == "chunks":
            chunks = partition_links(remaining, worker_count)
            logger.info(f"Processing {len(remaining)} communities in {len(chunks)} chunks")
            jobs = [self._run_worker(session, index, chunk=chunk) for index, chunk in enumerate(chunks)]
        else:
            queue: asyncio.Queue[CommunityLink] = asyncio.Queue()
            for link in remaining:
                queue.put_nowait(link)
            pool_size = min(worker_count, len(remaining))
            logger.info(f"Processing {len(remaining)} communities with {pool_size} workers")
            jobs = [self._run_worker(session, index, queue=queue) for index in range(pool_size)]

        results = await asyncio.gather(*jobs, return_exceptions=True)
        reports = []
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.error(f"Worker {index} stopped early: {result!r}")
                continue
            reports.append(result)
        return reports

    async def _run_worker(
        self,
        session: BrowserSession,
        index: int,
        *,
        chunk: Optional[List[CommunityLink]] = None,
        queue: Optional["asyncio.Queue[CommunityLink]"] = None,
    ) -> WorkerReport:
        fetcher = await session.open_fetcher()
        try:
            worker = CrawlWorker(index, fetcher, self.progress, self.writer, self.settings)
            if queue is not None:
                return await worker.run_queue(queue)
            return await worker.run_links(chunk or [])
        finally:
            await fetcher.close()
