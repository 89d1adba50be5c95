"""Shared test fixtures for repopulse."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from repopulse.analysis.models import (
    AnalysisRun,
    CommitData,
    FileAnalysis,
    GeneratedTask,
    HealthMetrics,
    IssueData,
    PriorityFactors,
    PRData,
    RepoMeta,
    RunStats,
    TaskCategory,
    TreeEntry,
)
from repopulse.errors import FetchError
from repopulse.storage.db import get_connection
from repopulse.storage.repository import RunStore

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeSource:
    """In-memory stand-in for the GitHub fetcher."""

    def __init__(
        self,
        files: dict[str, str] | None = None,
        meta: RepoMeta | None = None,
        commits: list[CommitData] | None = None,
        failing_paths: set[str] | None = None,
        fail_metadata: bool = False,
        fail_activity: bool = False,
    ) -> None:
        self.files = files or {}
        self.meta = meta or RepoMeta(full_name="acme/webapp", default_branch="main", open_issues=0)
        self.commits = commits or []
        self.failing_paths = failing_paths or set()
        self.fail_metadata = fail_metadata
        self.fail_activity = fail_activity
        self.fetched: list[str] = []
        self.tree_refs: list[str] = []

    def get_repository_metadata(self) -> RepoMeta:
        if self.fail_metadata:
            raise FetchError("404 Not Found")
        return self.meta

    def get_tree(self, ref: str) -> list[TreeEntry]:
        self.tree_refs.append(ref)
        return [
            TreeEntry(path=path, size=len(content.encode("utf-8")), kind="file")
            for path, content in self.files.items()
        ]

    def get_file_content(self, path: str, ref: str) -> str | None:
        self.fetched.append(path)
        if path in self.failing_paths:
            raise FetchError(f"500 while fetching {path}", path=path)
        return self.files.get(path)

    def get_recent_commits(self, limit: int = 10) -> list[CommitData]:
        if self.fail_activity:
            raise FetchError("rate limited")
        return self.commits[:limit]

    def get_open_issues(self) -> list[IssueData]:
        if self.fail_activity:
            raise FetchError("rate limited")
        return [IssueData(number=7, title="Crash on login", url="https://github.com/acme/webapp/issues/7")]

    def get_open_pull_requests(self) -> list[PRData]:
        if self.fail_activity:
            raise FetchError("rate limited")
        return []


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def db_conn(db_path: Path) -> sqlite3.Connection:
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def store(db_conn: sqlite3.Connection) -> RunStore:
    return RunStore(db_conn)


@pytest.fixture
def repo_meta() -> RepoMeta:
    return RepoMeta(
        full_name="acme/webapp",
        default_branch="main",
        open_issues=0,
        last_commit_at=None,
    )


@pytest.fixture
def plain_analysis() -> FileAnalysis:
    return FileAnalysis(path="src/app.js", size=120, language="javascript", line_count=10)


def make_task(
    title: str = "TODO: fix this",
    category: TaskCategory = TaskCategory.TODO,
    score: float = 1.0,
    file_path: str = "src/app.js",
    line_number: int = 1,
) -> GeneratedTask:
    return GeneratedTask(
        title=title,
        description=title.split(": ", 1)[-1],
        category=category,
        priority_score=score,
        priority_factors=PriorityFactors(),
        file_path=file_path,
        line_number=line_number,
        code_snippet=f"Line {line_number} in {file_path}",
        suggested_next_steps="Review and address the flagged code",
        tags=[category.value.lower(), "javascript"],
    )


@pytest.fixture
def sample_health() -> HealthMetrics:
    return HealthMetrics(
        code_coverage=35,
        technical_debt_ratio=20,
        dependency_freshness=100,
        documentation_completeness=50,
        test_reliability=85,
        overall_health=69,
        grade="D",
    )


@pytest.fixture
def sample_run(sample_health: HealthMetrics) -> AnalysisRun:
    return AnalysisRun(
        repo="acme/webapp",
        success=True,
        stats=RunStats(files_analyzed=2, lines_analyzed=40, tasks_found=3, duration_ms=120),
        tasks=[
            make_task("SECURITY: sanitize input", TaskCategory.SECURITY, 12.0, "src/api.js", 4),
            make_task("FIXME: handle timeout", TaskCategory.FIXME, 3.0, "src/app.js", 9),
            make_task("TODO: add paging", TaskCategory.TODO, 0.5, "src/app.js", 2),
        ],
        health_metrics=sample_health,
        last_commit=CommitData(sha="abc123", message="Fix login", author="Dana", date=NOW),
        started_at=datetime(2024, 6, 15, 12, 0, 0),
        completed_at=datetime(2024, 6, 15, 12, 0, 1),
    )


@pytest.fixture
def task_factory():
    return make_task


@pytest.fixture
def fake_source_factory():
    return FakeSource
