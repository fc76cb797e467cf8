"""
Crawl services: workers, orchestration, and the files they persist to.
"""
from .crawl_worker import CrawlWorker
from .dedupe import DedupeSummary, dedupe_against_batch
from .link_cache import LinkCache
from .orchestrator import CrawlOrchestrator, compute_remaining, partition_links
from .progress_store import ProgressStore
from .record_writer import OUTPUT_COLUMNS, CsvRecordWriter
from .validator import is_valid_record, rejection_reasons
