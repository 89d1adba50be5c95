"""Runs the full analysis pipeline for one repository snapshot.

metadata -> tree -> filter -> batched fetch + extract -> tasks ->
concurrent commits/issues/PRs -> health -> AnalysisRun

Any failure is converted into a failed AnalysisRun; analyze() never raises.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Protocol

from repopulse.analysis.extractor import analyze_file
from repopulse.analysis.health import calculate_health
from repopulse.analysis.models import (
    AnalysisRun,
    CommitData,
    FileAnalysis,
    IssueData,
    PRData,
    RepoMeta,
    RunStats,
    TreeEntry,
)
from repopulse.analysis.tasks import generate_tasks
from repopulse.config import AnalysisSettings
from repopulse.errors import FetchError, PipelineError
from repopulse.github.batch import fetch_in_batches, filter_analyzable

logger = logging.getLogger(__name__)

RECENT_COMMIT_LIMIT = 10


class SourceClient(Protocol):
    def get_repository_metadata(self) -> RepoMeta: ...

    def get_tree(self, ref: str) -> list[TreeEntry]: ...

    def get_file_content(self, path: str, ref: str) -> str | None: ...

    def get_recent_commits(self, limit: int = 10) -> list[CommitData]: ...

    def get_open_issues(self) -> list[IssueData]: ...

    def get_open_pull_requests(self) -> list[PRData]: ...


class RepositoryAnalyzer:
    """Sequences fetching, extraction, task synthesis and health scoring.

    Settings are validated on construction, so a ConfigError reaches the
    caller before any run starts.
    """

    def __init__(
        self,
        source: SourceClient,
        repo: str,
        settings: AnalysisSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source
        self._repo = repo
        self._settings = settings or AnalysisSettings()
        self._settings.validate()
        self._clock = clock

    @property
    def repo(self) -> str:
        return self._repo

    def analyze(self) -> AnalysisRun:
        started = time.monotonic()
        run = AnalysisRun(repo=self._repo, success=False)
        logger.info(f"Starting analysis for repository: {self._repo}")

        try:
            self._run_pipeline(run)
        except Exception as e:
            error = e if isinstance(e, (PipelineError, FetchError)) else PipelineError(str(e))
            logger.error(f"Error analyzing repository {self._repo}: {error}")
            run.success = False
            run.error = str(error) or type(e).__name__
            run.tasks = []
            run.health_metrics = None
        else:
            run.success = True

        run.stats.duration_ms = int((time.monotonic() - started) * 1000)
        run.completed_at = datetime.now()
        if run.success:
            logger.info(f"Analysis completed for {self._repo} in {run.stats.duration_ms}ms")
        return run

    def _run_pipeline(self, run: AnalysisRun) -> None:
        settings = self._settings
        now = self._clock() if self._clock else None

        meta = self._source.get_repository_metadata()
        ref = meta.default_branch or "main"
        tree = self._source.get_tree(ref)

        files = filter_analyzable(
            tree,
            excluded_paths=settings.excluded_paths,
            extensions=settings.extensions,
            max_size=settings.max_file_size,
        )
        logger.info(f"Found {len(files)} files to analyze")

        analyses: list[FileAnalysis] = []
        batches = fetch_in_batches(
            files,
            lambda path: self._source.get_file_content(path, ref),
            batch_size=settings.batch_size,
            delay=settings.batch_delay,
        )
        for batch in batches:
            for fetched in batch:
                analysis = analyze_file(
                    fetched.content, fetched.path, settings.keywords, size=fetched.entry.size
                )
                analyses.append(analysis)
                run.stats.files_analyzed += 1
                run.stats.lines_analyzed += analysis.line_count

        tasks = generate_tasks(analyses, meta, settings.weights, now=now)
        run.stats.tasks_found = len(tasks)

        commits, issues, pulls = self._fetch_activity()
        logger.debug(
            f"{self._repo}: {len(commits)} recent commits, {len(issues)} open issues, "
            f"{len(pulls)} open pull requests"
        )

        run.tasks = tasks
        run.health_metrics = calculate_health(analyses, tasks, commits, meta, now=now)
        run.last_commit = commits[0] if commits else None

    def _fetch_activity(self) -> tuple[list[CommitData], list[IssueData], list[PRData]]:
        """Fetch commits, issues and PRs concurrently; a failed call yields []."""
        with ThreadPoolExecutor(max_workers=3) as pool:
            commits = pool.submit(self._source.get_recent_commits, RECENT_COMMIT_LIMIT)
            issues = pool.submit(self._source.get_open_issues)
            pulls = pool.submit(self._source.get_open_pull_requests)
            return (
                _result_or_empty(commits, "commits"),
                _result_or_empty(issues, "issues"),
                _result_or_empty(pulls, "pull requests"),
            )


def _result_or_empty(future, label: str) -> list:
    try:
        return future.result()
    except FetchError as e:
        logger.warning(f"Could not fetch {label}: {e}")
        return []
