"""Tests for repopulse.github.batch."""

from __future__ import annotations

import threading
from unittest.mock import patch

from repopulse.analysis.models import TreeEntry
from repopulse.errors import FetchError
from repopulse.github.batch import fetch_in_batches, filter_analyzable


def _entry(path: str, size: int = 100, kind: str = "file") -> TreeEntry:
    return TreeEntry(path=path, size=size, kind=kind)


class TestFilterAnalyzable:
    def test_keeps_source_files(self):
        entries = [_entry("src/app.js"), _entry("lib/mod.py"), _entry("README.md")]
        assert [e.path for e in filter_analyzable(entries)] == ["src/app.js", "lib/mod.py"]

    def test_skips_directories(self):
        assert filter_analyzable([_entry("src.js", kind="tree")]) == []

    def test_skips_excluded_paths(self):
        entries = [
            _entry("node_modules/left-pad/index.js"),
            _entry("web/dist/bundle.js"),
            _entry("pkg/__pycache__/mod.py"),
            _entry("src/index.js"),
        ]
        assert [e.path for e in filter_analyzable(entries)] == ["src/index.js"]

    def test_size_ceiling_is_exclusive(self):
        entries = [_entry("a.js", size=1024 * 1024), _entry("b.js", size=1024 * 1024 - 1)]
        assert [e.path for e in filter_analyzable(entries)] == ["b.js"]

    def test_custom_rules(self):
        entries = [_entry("gen/a.go"), _entry("src/b.go"), _entry("src/c.js")]
        kept = filter_analyzable(entries, excluded_paths=["gen/"], extensions=[".go"], max_size=500)
        assert [e.path for e in kept] == ["src/b.go"]


class TestFetchInBatches:
    def test_batches_in_order(self):
        entries = [_entry(f"f{i}.js") for i in range(25)]
        batches = list(fetch_in_batches(entries, lambda path: f"// {path}", batch_size=10, delay=0))
        assert [len(b) for b in batches] == [10, 10, 5]
        assert batches[0][0].path == "f0.js"
        assert batches[2][-1].content == "// f24.js"

    def test_failed_file_is_skipped(self):
        entries = [_entry(f"f{i}.js") for i in range(10)]

        def fetch(path: str) -> str:
            if path == "f3.js":
                raise FetchError("500 Server Error", path=path)
            return "x = 1"

        batches = list(fetch_in_batches(entries, fetch, batch_size=10, delay=0))
        assert len(batches) == 1
        assert len(batches[0]) == 9
        assert "f3.js" not in {f.path for f in batches[0]}

    def test_unexpected_error_is_skipped(self):
        def fetch(path: str) -> str:
            raise RuntimeError("boom")

        batches = list(fetch_in_batches([_entry("a.js")], fetch, delay=0))
        assert batches == [[]]

    def test_missing_content_is_skipped(self):
        batches = list(fetch_in_batches([_entry("a.js")], lambda path: None, delay=0))
        assert batches == [[]]

    def test_files_in_a_batch_are_fetched_concurrently(self):
        barrier = threading.Barrier(3, timeout=5)

        def fetch(path: str) -> str:
            barrier.wait()
            return ""

        entries = [_entry(f"f{i}.js") for i in range(3)]
        batches = list(fetch_in_batches(entries, fetch, batch_size=3, delay=0))
        assert len(batches[0]) == 3

    def test_pauses_only_between_batches(self):
        entries = [_entry(f"f{i}.js") for i in range(5)]
        with patch("repopulse.github.batch.time.sleep") as sleep:
            list(fetch_in_batches(entries, lambda path: "", batch_size=2, delay=0.25))
        assert sleep.call_count == 2
        sleep.assert_called_with(0.25)

    def test_empty_listing(self):
        assert list(fetch_in_batches([], lambda path: "")) == []
