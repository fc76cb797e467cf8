"""Append-only CSV output table."""

from __future__ import annotations

import csv
import io
import threading
from pathlib import Path
from typing import List, Sequence

from loguru import logger

from community_crawler.models import PropertyRecord

OUTPUT_COLUMNS = ["state_name", "communityName", "address", "city", "state_code", "zip", "phone", "email"]


def format_csv_line(values: Sequence[str]) -> str:
    """One CSV line; values with a comma, quote or newline are quoted with doubled quotes."""
    buffer = io.StringIO()
    csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n").writerow(
        ["" if value is None else value for value in values]
    )
    return buffer.getvalue()


def split_csv_line(line: str) -> List[str]:
    """Inverse of ``format_csv_line`` for a single line."""
    return next(csv.reader([line]), [])


class CsvRecordWriter:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Write the header row if the file does not exist yet."""
        with self._lock:
            if self.path.exists():
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8", newline="") as f:
                f.write(format_csv_line(OUTPUT_COLUMNS))
        logger.info(f"Initialized CSV file {self.path}")

    def append(self, record: PropertyRecord) -> None:
        """Append one row in a single write. Raises OSError on failure."""
        line = format_csv_line(record.csv_row())
        with self._lock:
            with open(self.path, "a", encoding="utf-8", newline="") as f:
                f.write(line)

    def read_rows(self) -> List[List[str]]:
        """Data rows (header excluded)."""
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
        return rows[1:]
