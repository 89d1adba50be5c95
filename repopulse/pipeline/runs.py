"""Background analysis runs with an observable lifecycle.

    tracker = RunTracker()
    run_id = tracker.start(analyzer)       # returns immediately
    record = tracker.wait(run_id)          # or poll tracker.get(run_id)

Each record moves pending -> running -> completed | failed exactly once and
carries the terminal AnalysisRun when it gets there.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from repopulse.analysis.models import AnalysisRun, RunStatus

logger = logging.getLogger(__name__)


@dataclass
class RunRecord:
    id: str
    repo: str
    status: RunStatus = RunStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    result: AnalysisRun | None = None
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def finished(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.FAILED)

    def _start(self) -> None:
        if self.status != RunStatus.PENDING:
            raise RuntimeError(f"Run {self.id} cannot start from {self.status.value}")
        self.status = RunStatus.RUNNING

    def _finish(self, result: AnalysisRun) -> None:
        if self.status != RunStatus.RUNNING:
            raise RuntimeError(f"Run {self.id} cannot finish from {self.status.value}")
        self.result = result
        self.status = RunStatus.COMPLETED if result.success else RunStatus.FAILED
        self._done.set()


class RunTracker:
    """Starts analyses on background threads and keeps their records."""

    def __init__(self) -> None:
        self._runs: dict[str, RunRecord] = {}
        self._lock = threading.Lock()

    def start(
        self,
        analyzer,
        on_complete: Callable[[RunRecord], None] | None = None,
    ) -> str:
        """Start analyzer.analyze() in the background and return the run id."""
        record = RunRecord(id=str(uuid.uuid4()), repo=analyzer.repo)
        with self._lock:
            self._runs[record.id] = record

        thread = threading.Thread(
            target=self._execute,
            args=(record, analyzer, on_complete),
            name=f"repopulse-run-{record.id[:8]}",
            daemon=True,
        )
        thread.start()
        return record.id

    def get(self, run_id: str) -> RunRecord | None:
        with self._lock:
            return self._runs.get(run_id)

    def wait(self, run_id: str, timeout: float | None = None) -> RunRecord:
        """Block until the run reaches a terminal state (or timeout expires)."""
        record = self.get(run_id)
        if record is None:
            raise KeyError(run_id)
        record._done.wait(timeout)
        return record

    def list_runs(self) -> list[RunRecord]:
        with self._lock:
            return sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)

    def _execute(
        self,
        record: RunRecord,
        analyzer,
        on_complete: Callable[[RunRecord], None] | None,
    ) -> None:
        record._start()
        try:
            result = analyzer.analyze()
        except Exception as e:
            # analyze() converts its own failures; this covers a broken analyzer
            logger.error(f"Run {record.id} crashed: {e}")
            result = AnalysisRun(repo=record.repo, success=False, error=str(e))
        record._finish(result)

        if on_complete is not None:
            try:
                on_complete(record)
            except Exception as e:
                logger.error(f"Completion callback for run {record.id} failed: {e}")
