"""
Crawler configuration.

Every knob can be overridden from the environment (or a ``.env`` file):

    CRAWL_ROOT_URL              directory page listing every community
    CRAWL_DATA_DIR              where cache, progress and CSV files live
    CRAWL_WORKERS               size of the worker pool
    CRAWL_DISPATCH              "queue" (shared work queue) or "chunks"
    CRAWL_NAV_TIMEOUT_MS        per-page navigation timeout
    CRAWL_SETTLE_MS             pause after navigation before reading the DOM
    CRAWL_THROTTLE_MS           pause between two links of the same worker
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv
from loguru import logger

DEFAULT_ROOT_URL = "https://www.greystar.com/properties"
DEFAULT_DATA_DIR = Path("data")
DEFAULT_EMAIL_DOMAIN = "greystar.com"

LINKS_FILENAME = "community_links.json"
PROGRESS_FILENAME = "crawl_progress.json"
OUTPUT_FILENAME = "properties.csv"
LOCK_FILENAME = "crawl.lock"

DISPATCH_MODES = ("queue", "chunks")

# Flags passed to Chromium; nothing beyond a plain headless launch.
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]


@dataclass(slots=True)
class CrawlSettings:
    root_url: str = DEFAULT_ROOT_URL
    data_dir: Path = DEFAULT_DATA_DIR
    links_file: Path = DEFAULT_DATA_DIR / LINKS_FILENAME
    progress_file: Path = DEFAULT_DATA_DIR / PROGRESS_FILENAME
    output_file: Path = DEFAULT_DATA_DIR / OUTPUT_FILENAME
    # Worker pool
    worker_count: int = 10
    dispatch: str = "queue"
    # Timing (milliseconds)
    nav_timeout_ms: int = 20_000
    settle_ms: int = 1_000
    throttle_ms: int = 800
    discovery_timeout_ms: int = 60_000
    discovery_settle_ms: int = 5_000
    wait_until: str = "networkidle"
    # Browser
    headless: bool = True
    browser_executable: str | None = None
    # Output
    email_domain: str = DEFAULT_EMAIL_DOMAIN

    @property
    def lock_file(self) -> Path:
        return self.data_dir / LOCK_FILENAME


def _env_true(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default
    if value < minimum:
        logger.warning(f"{name}={value} is below {minimum}; using {minimum}")
        return minimum
    return value


def load_settings(env: Mapping[str, str] | None = None) -> CrawlSettings:
    """Build settings from the environment, loading ``.env`` first when reading os.environ."""
    if env is None:
        load_dotenv()
        env = os.environ

    data_dir = Path(env.get("CRAWL_DATA_DIR") or DEFAULT_DATA_DIR).expanduser()

    def _path(name: str, filename: str) -> Path:
        raw = env.get(name)
        return Path(raw).expanduser() if raw else data_dir / filename

    dispatch = (env.get("CRAWL_DISPATCH") or "queue").strip().lower()
    if dispatch not in DISPATCH_MODES:
        logger.warning(f"Unknown CRAWL_DISPATCH={dispatch!r}; using 'queue'")
        dispatch = "queue"

    return CrawlSettings(
        root_url=env.get("CRAWL_ROOT_URL") or DEFAULT_ROOT_URL,
        data_dir=data_dir,
        links_file=_path("CRAWL_LINKS_FILE", LINKS_FILENAME),
        progress_file=_path("CRAWL_PROGRESS_FILE", PROGRESS_FILENAME),
        output_file=_path("CRAWL_OUTPUT_FILE", OUTPUT_FILENAME),
        worker_count=_env_int(env, "CRAWL_WORKERS", 10, minimum=1),
        dispatch=dispatch,
        nav_timeout_ms=_env_int(env, "CRAWL_NAV_TIMEOUT_MS", 20_000, minimum=1),
        settle_ms=_env_int(env, "CRAWL_SETTLE_MS", 1_000),
        throttle_ms=_env_int(env, "CRAWL_THROTTLE_MS", 800),
        discovery_timeout_ms=_env_int(env, "CRAWL_DISCOVERY_TIMEOUT_MS", 60_000, minimum=1),
        discovery_settle_ms=_env_int(env, "CRAWL_DISCOVERY_SETTLE_MS", 5_000),
        wait_until=env.get("CRAWL_WAIT_UNTIL") or "networkidle",
        headless=_env_true(env.get("CRAWL_HEADLESS"), True),
        browser_executable=env.get("CRAWL_BROWSER_EXECUTABLE") or None,
        email_domain=env.get("CRAWL_EMAIL_DOMAIN") or DEFAULT_EMAIL_DOMAIN,
    )
