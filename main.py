"""
Main entry point for the community crawler.
Supports modes:
  (no arguments): discover or load links, resume from progress, crawl, report
  --dedupe MAIN PREVIOUS OUTPUT: drop MAIN rows whose phone is already in PREVIOUS
"""
import argparse
import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from community_crawler.config import load_settings
from community_crawler.scrapers.directory_scraper import DiscoveryError
from community_crawler.services.dedupe import dedupe_against_batch
from community_crawler.services.orchestrator import CrawlOrchestrator
from community_crawler.utils.logging_config import configure_logger
from community_crawler.utils.run_lock import RunLockError, exclusive_run_lock


def handle_crawl() -> int:
    settings = load_settings()
    logger.info(f"Starting crawl of {settings.root_url} with {settings.worker_count} workers ({settings.dispatch})")
    try:
        with exclusive_run_lock(settings.lock_file):
            summary = asyncio.run(CrawlOrchestrator(settings).run())
    except DiscoveryError as e:
        logger.error(f"Link discovery failed: {e}")
        return 1
    except RunLockError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception(f"Crawl failed: {e}")
        return 0

    logger.info(
        f"Links: {summary.total_links} | processed before: {summary.already_processed} "
        f"| processed now: {summary.processed} | saved: {summary.accepted}"
    )
    logger.info(f"Results saved to {settings.output_file}")
    return 0


def handle_dedupe(main_csv: str, previous_csv: str, output_csv: str) -> int:
    try:
        dedupe_against_batch(main_csv, previous_csv, output_csv)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Dedupe failed: {e}")
        return 1
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Community directory crawler")
    parser.add_argument(
        "--dedupe",
        nargs=3,
        metavar=("MAIN", "PREVIOUS", "OUTPUT"),
        default=None,
        help="Write MAIN to OUTPUT without rows whose phone appears in PREVIOUS, then exit.",
    )
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logger()

    if args.dedupe:
        code = handle_dedupe(*args.dedupe)
    else:
        code = handle_crawl()
    sys.exit(code)


if __name__ == "__main__":
    main()
