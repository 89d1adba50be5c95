"""Tests for repopulse.report."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

import pytest

from repopulse.report import export_tasks, priority_band, write_export

TASKS = [
    {
        "title": "SECURITY: sanitize input",
        "description": "sanitize input",
        "category": "SECURITY",
        "priority_score": 22.0,
        "status": "open",
        "repo": "acme/webapp",
        "file_path": "src/api.js",
        "line_number": 4,
        "suggested_next_steps": "Address the security vulnerability immediately",
    },
    {
        "title": "TODO: add paging, sorting",
        "description": "add paging, sorting",
        "category": "TODO",
        "priority_score": 0.5,
        "status": "open",
        "repo": "acme/webapp",
        "file_path": "src/app.js",
        "line_number": 2,
    },
]


class TestPriorityBand:
    @pytest.mark.parametrize(
        ("score", "band"),
        [(25, "Critical"), (20, "Critical"), (10, "High"), (9.9, "Medium"), (5, "Medium"), (0, "Low")],
    )
    def test_bands(self, score: float, band: str):
        assert priority_band(score) == band


class TestExportTasks:
    def test_json(self):
        assert json.loads(export_tasks(TASKS, "json")) == TASKS

    def test_csv(self):
        rows = list(csv.reader(io.StringIO(export_tasks(TASKS, "csv"))))
        assert rows[0][:4] == ["Title", "Description", "Category", "Priority Score"]
        assert len(rows) == 3
        assert rows[2][0] == "TODO: add paging, sorting"
        # created_at is missing from the input dicts
        assert rows[1][-1] == ""

    def test_markdown_groups_by_band(self):
        text = export_tasks(TASKS, "markdown")
        assert text.startswith("# repopulse Tasks Export")
        assert "Total Tasks: 2" in text
        assert "### Critical (1)" in text
        assert "### Low (1)" in text
        assert "### High" not in text
        assert "src/api.js:4" in text
        assert text.index("### Critical") < text.index("### Low")

    def test_md_alias_and_case(self):
        assert "### Critical (1)" in export_tasks(TASKS, "MD")
        assert "Total Tasks: 0" in export_tasks([], "md")

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown export format"):
            export_tasks(TASKS, "xml")

    def test_write_export(self, tmp_path: Path):
        out = write_export(TASKS, tmp_path / "tasks.csv", "csv")
        assert out.read_text().startswith("Title,")
