from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from community_crawler.services.progress_store import ProgressStore


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_load_or_initialize_creates_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "progress.json"
    store = ProgressStore(path)

    assert store.load_or_initialize() == set()
    data = _read(path)
    assert data["processedUrls"] == []
    assert data["totalProcessed"] == 0
    assert "startedAt" in data


def test_merge_writes_expected_keys(tmp_path: Path) -> None:
    path = tmp_path / "progress.json"
    store = ProgressStore(path)
    store.initialize()

    store.merge(["https://a.test/1"])

    data = _read(path)
    assert data["processedUrls"] == ["https://a.test/1"]
    assert data["totalProcessed"] == 1
    assert data["lastUpdated"].endswith("Z")
    assert "error" not in data


def test_merge_is_idempotent(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.json")

    store.merge(["u1"])
    store.merge(["u1"])
    store.merge(["u1", "", "u1"])

    assert _read(store.path)["processedUrls"] == ["u1"]


def test_merge_is_commutative(tmp_path: Path) -> None:
    first = ProgressStore(tmp_path / "a.json")
    second = ProgressStore(tmp_path / "b.json")

    first.merge(["x"])
    first.merge(["y", "z"])
    second.merge(["y", "z"])
    second.merge(["x"])

    assert set(_read(first.path)["processedUrls"]) == set(_read(second.path)["processedUrls"]) == {"x", "y", "z"}


def test_new_store_resumes_from_file(tmp_path: Path) -> None:
    path = tmp_path / "progress.json"
    ProgressStore(path).merge(["u1", "u2"])

    reopened = ProgressStore(path)

    assert reopened.load_or_initialize() == {"u1", "u2"}
    reopened.merge(["u3"])
    assert _read(path)["processedUrls"] == ["u1", "u2", "u3"]


def test_corrupt_file_falls_back_without_losing_urls(tmp_path: Path) -> None:
    path = tmp_path / "progress.json"
    store = ProgressStore(path)
    store.merge(["u1"])

    path.write_text("{not json", encoding="utf-8")
    state = store.merge(["u2"])

    assert state is not None
    assert state.error
    data = _read(path)
    assert data["processedUrls"] == ["u1", "u2"]
    assert "error" in data


def test_load_of_corrupt_file_returns_known_urls(tmp_path: Path) -> None:
    path = tmp_path / "progress.json"
    path.write_text("[[[", encoding="utf-8")

    assert ProgressStore(path).load() == set()


def test_concurrent_merges_keep_every_url(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.json")
    urls = [f"https://a.test/{i}" for i in range(40)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda url: store.merge([url]), urls))

    data = _read(store.path)
    assert set(data["processedUrls"]) == set(urls)
    assert data["totalProcessed"] == 40
