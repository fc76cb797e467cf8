from __future__ import annotations

from pathlib import Path

import pytest

from community_crawler.config import CrawlSettings


@pytest.fixture
def settings(tmp_path: Path) -> CrawlSettings:
    """Settings rooted in a temp dir with every delay switched off."""
    return CrawlSettings(
        root_url="https://example.test/properties",
        data_dir=tmp_path,
        links_file=tmp_path / "community_links.json",
        progress_file=tmp_path / "crawl_progress.json",
        output_file=tmp_path / "properties.csv",
        worker_count=2,
        settle_ms=0,
        throttle_ms=0,
        discovery_settle_ms=0,
    )
