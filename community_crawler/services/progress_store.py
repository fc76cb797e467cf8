"""
Progress Store

Durable set of source URLs already handled by the crawl. Every worker
merges into it after every single link, so a killed run loses at most the
link that was in flight.

File format:
    {
      "startedAt": "2026-01-01T00:00:00.000Z",
      "processedUrls": ["https://...", ...],
      "lastUpdated": "2026-01-01T00:05:00.000Z",
      "totalProcessed": 42
    }

Each merge is one read-modify-write of the whole file under a lock, written
to a temporary file and swapped in with ``os.replace``. The set never
shrinks: the store keeps an in-memory mirror of every URL it has seen and
folds it into each write, including the fallback write used when the file
on disk cannot be read.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Set

from loguru import logger

from community_crawler.models import ProgressState
from community_crawler.utils.time import now_utc


class ProgressStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._known: dict[str, None] = {}
        self._started_at: Optional[datetime] = None

    def exists(self) -> bool:
        return self.path.exists()

    def _read_state(self) -> ProgressState:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return ProgressState.model_validate(data)

    def _write(self, state: ProgressState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(state.to_json_dict(), indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def _remember(self, state: ProgressState) -> None:
        if self._started_at is None:
            self._started_at = state.started_at
        for url in state.processed_urls:
            self._known.setdefault(url, None)

    def initialize(self) -> ProgressState:
        """Write a fresh, empty progress file."""
        state = ProgressState(started_at=now_utc(), processed_urls=[])
        with self._lock:
            self._write(state)
            self._started_at = state.started_at
        logger.info(f"Initialized progress file {self.path}")
        return state

    def load(self) -> Set[str]:
        """Return every processed URL (empty set when the file is missing or unreadable)."""
        with self._lock:
            if self.path.exists():
                try:
                    self._remember(self._read_state())
                except (OSError, ValueError) as exc:
                    logger.error(f"Error loading progress file {self.path}: {exc}")
            return set(self._known)

    def load_or_initialize(self) -> Set[str]:
        if not self.path.exists():
            logger.info("No previous progress found, starting from scratch")
            self.initialize()
            return set()
        processed = self.load()
        logger.info(f"Previous progress: {len(processed)} URLs already processed")
        return processed

    def merge(self, urls: Iterable[str]) -> Optional[ProgressState]:
        """
        Union ``urls`` into the stored set.

        Idempotent and order-independent. Never raises: on failure a
        fallback write of everything known so far is attempted.
        """
        new_urls = [url for url in urls if url]
        with self._lock:
            try:
                current = self._read_state() if self.path.exists() else ProgressState()
                self._remember(current)
                merged = ProgressState(
                    started_at=self._started_at or current.started_at,
                    processed_urls=[*current.processed_urls, *self._known, *new_urls],
                    last_updated=now_utc(),
                )
                self._write(merged)
                self._remember(merged)
                logger.debug(f"Progress updated: {merged.total_processed} URLs processed")
                return merged
            except Exception as exc:
                logger.error(f"Error updating progress file {self.path}: {exc}")
                return self._fallback_write(new_urls, exc)

    def _fallback_write(self, new_urls: list[str], error: Exception) -> Optional[ProgressState]:
        for url in new_urls:
            self._known.setdefault(url, None)
        state = ProgressState(
            started_at=self._started_at or now_utc(),
            processed_urls=list(self._known),
            last_updated=now_utc(),
            error=str(error),
        )
        try:
            self._write(state)
        except Exception as exc:
            logger.error(f"Fallback progress write to {self.path} failed: {exc}")
            return None
        logger.warning(f"Fallback progress written: {state.total_processed} URLs")
        return state
