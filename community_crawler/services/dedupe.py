"""Drop rows from a crawl batch whose phone number already appeared in a previous batch."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import List

from loguru import logger
from pydantic import BaseModel

PHONE_COLUMN = 6


class DedupeSummary(BaseModel):
    main_rows: int = 0
    previous_rows: int = 0
    previous_phones: int = 0
    duplicates: int = 0
    written: int = 0


def _read_csv(path: Path) -> List[List[str]]:
    with open(path, encoding="utf-8", newline="") as f:
        return list(csv.reader(f))


def dedupe_against_batch(main_csv: Path | str, previous_csv: Path | str, output_csv: Path | str) -> DedupeSummary:
    """
    Write ``main_csv`` to ``output_csv`` minus every row whose phone (7th column)
    is a non-empty phone of ``previous_csv``. Rows with fewer than 7 columns are dropped.
    """
    main_rows = _read_csv(Path(main_csv))
    previous_rows = _read_csv(Path(previous_csv))

    previous_phones = {
        row[PHONE_COLUMN].strip()
        for row in previous_rows[1:]
        if len(row) > PHONE_COLUMN and row[PHONE_COLUMN].strip()
    }

    summary = DedupeSummary(
        main_rows=max(len(main_rows) - 1, 0),
        previous_rows=max(len(previous_rows) - 1, 0),
        previous_phones=len(previous_phones),
    )
    header, body = (main_rows[0], main_rows[1:]) if main_rows else ([], [])

    kept = []
    for row in body:
        if len(row) <= PHONE_COLUMN:
            continue
        if row[PHONE_COLUMN].strip() in previous_phones:
            summary.duplicates += 1
            continue
        kept.append(row)

    output_path = Path(output_csv)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        if header:
            writer.writerow(header)
        writer.writerows(kept)
    summary.written = len(kept)

    logger.info(
        f"Main batch: {summary.main_rows} rows | previous batch: {summary.previous_rows} rows "
        f"({summary.previous_phones} distinct phones)"
    )
    logger.success(f"Removed {summary.duplicates} duplicates, wrote {summary.written} rows to {output_path}")
    return summary
