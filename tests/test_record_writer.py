from __future__ import annotations

from pathlib import Path

from community_crawler.models import PropertyRecord
from community_crawler.services.record_writer import (
    OUTPUT_COLUMNS,
    CsvRecordWriter,
    format_csv_line,
    split_csv_line,
)


def _record(**overrides) -> PropertyRecord:
    values = dict(
        origin_region="Illinois",
        name="Oak Park",
        street_address="123 Main St",
        city="Springfield",
        region_code="IL",
        postal_code="62701",
        phone="+1 217 555 0100",
        email="oakparkmgr@greystar.com",
    )
    values.update(overrides)
    return PropertyRecord(**values)


def test_format_csv_line_quotes_only_when_needed() -> None:
    line = format_csv_line(["a,b", 'say "hi"', "plain", ""])

    assert line == '"a,b","say ""hi""",plain,\n'
    assert split_csv_line(line) == ["a,b", 'say "hi"', "plain", ""]


def test_initialize_writes_header_once(tmp_path: Path) -> None:
    writer = CsvRecordWriter(tmp_path / "out.csv")

    writer.initialize()
    writer.append(_record())
    writer.initialize()

    lines = writer.path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(OUTPUT_COLUMNS)
    assert len(lines) == 2


def test_append_preserves_values_with_commas(tmp_path: Path) -> None:
    writer = CsvRecordWriter(tmp_path / "out.csv")
    writer.initialize()

    record = _record(name='The "Lofts", Phase 2', street_address="1 Main St, Suite 4")
    writer.append(record)

    assert writer.read_rows() == [record.csv_row()]


def test_read_rows_without_file(tmp_path: Path) -> None:
    assert CsvRecordWriter(tmp_path / "missing.csv").read_rows() == []
