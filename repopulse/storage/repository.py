"""CRUD operations for analysis runs and their tasks."""

from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import asdict
from datetime import datetime

from repopulse.analysis.models import AnalysisRun, RunStatus, TaskStatus

LATEST_COMPLETED_SQL = """
    SELECT a.id FROM analyses a
    WHERE a.status = 'completed'
      AND a.started_at = (
          SELECT MAX(b.started_at) FROM analyses b
          WHERE b.repo = a.repo AND b.status = 'completed'
      )
"""


class RunStore:
    """Data access layer for the repopulse SQLite database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def save_run(self, run: AnalysisRun, run_id: str | None = None) -> str:
        """Insert a finished run and its tasks in one transaction. Returns the run id."""
        run_id = run_id or str(uuid.uuid4())
        status = RunStatus.COMPLETED if run.success else RunStatus.FAILED

        with self._conn:
            self._conn.execute(
                """INSERT OR REPLACE INTO analyses
                (id, repo, status, started_at, completed_at, duration_ms, files_analyzed,
                 lines_analyzed, tasks_found, error_message, health_metrics, last_commit)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    run_id,
                    run.repo,
                    status.value,
                    run.started_at.isoformat(),
                    run.completed_at.isoformat() if run.completed_at else None,
                    run.stats.duration_ms,
                    run.stats.files_analyzed,
                    run.stats.lines_analyzed,
                    run.stats.tasks_found,
                    run.error,
                    json.dumps(asdict(run.health_metrics)) if run.health_metrics else None,
                    json.dumps(asdict(run.last_commit), default=str) if run.last_commit else None,
                ),
            )

            # Clear existing tasks for this run (in case of re-save)
            self._conn.execute("DELETE FROM tasks WHERE analysis_id = ?", (run_id,))

            created_at = (run.completed_at or datetime.now()).isoformat()
            for task in run.tasks:
                self._conn.execute(
                    """INSERT INTO tasks
                    (id, analysis_id, repo, title, description, category, priority_score,
                     priority_factors, file_path, line_number, code_snippet,
                     suggested_next_steps, status, tags, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        str(uuid.uuid4()),
                        run_id,
                        run.repo,
                        task.title,
                        task.description,
                        task.category.value,
                        task.priority_score,
                        json.dumps(asdict(task.priority_factors)),
                        task.file_path,
                        task.line_number,
                        task.code_snippet,
                        task.suggested_next_steps,
                        task.status.value,
                        json.dumps(task.tags),
                        created_at,
                    ),
                )

        return run_id

    def get_run(self, run_id: str) -> dict | None:
        row = self._conn.execute("SELECT * FROM analyses WHERE id = ?", (run_id,)).fetchone()
        return self._row_to_run_dict(row) if row else None

    def list_runs(self, repo: str | None = None, limit: int = 20) -> list[dict]:
        query = "SELECT * FROM analyses WHERE 1=1"
        params: list = []
        if repo:
            query += " AND repo = ?"
            params.append(repo)
        query += " ORDER BY started_at DESC LIMIT ?"
        params.append(limit)

        rows = self._conn.execute(query, params).fetchall()
        return [self._row_to_run_dict(row) for row in rows]

    def get_tasks(
        self,
        repo: str | None = None,
        category: str | None = None,
        status: str | None = None,
        min_priority: float | None = None,
        limit: int = 100,
    ) -> list[dict]:
        """Tasks from the latest completed run of each repository, highest priority first."""
        query = f"SELECT * FROM tasks WHERE analysis_id IN ({LATEST_COMPLETED_SQL})"
        params: list = []

        if repo:
            query += " AND repo = ?"
            params.append(repo)
        if category:
            query += " AND category = ?"
            params.append(category.upper())
        if status:
            query += " AND status = ?"
            params.append(status)
        if min_priority is not None:
            query += " AND priority_score >= ?"
            params.append(min_priority)

        query += " ORDER BY priority_score DESC, rowid ASC LIMIT ?"
        params.append(limit)

        rows = self._conn.execute(query, params).fetchall()
        return [self._row_to_task_dict(row) for row in rows]

    def update_task_status(self, task_id: str, status: str) -> bool:
        """Set a task's status. Returns False if the task does not exist."""
        try:
            value = TaskStatus(status).value
        except ValueError:
            raise ValueError(
                f"Invalid status '{status}'. Expected one of: "
                + ", ".join(s.value for s in TaskStatus)
            ) from None
        with self._conn:
            cursor = self._conn.execute(
                "UPDATE tasks SET status = ? WHERE id = ?", (value, task_id)
            )
        return cursor.rowcount > 0

    def get_latest_health(self, repo: str) -> dict | None:
        row = self._conn.execute(
            """SELECT * FROM analyses
            WHERE repo = ? AND status = 'completed'
            ORDER BY started_at DESC LIMIT 1""",
            (repo,),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_run_dict(row)

    def get_stats(self) -> dict:
        """Get summary statistics about stored runs and tasks."""
        total_runs = self._conn.execute("SELECT COUNT(*) FROM analyses").fetchone()[0]
        failed_runs = self._conn.execute(
            "SELECT COUNT(*) FROM analyses WHERE status = 'failed'"
        ).fetchone()[0]
        repos = self._conn.execute("SELECT COUNT(DISTINCT repo) FROM analyses").fetchone()[0]
        open_tasks = self._conn.execute(
            f"SELECT COUNT(*) FROM tasks WHERE status = 'open' AND analysis_id IN ({LATEST_COMPLETED_SQL})"
        ).fetchone()[0]
        by_category = self._conn.execute(
            f"""SELECT category, COUNT(*) as task_count FROM tasks
            WHERE analysis_id IN ({LATEST_COMPLETED_SQL})
            GROUP BY category ORDER BY task_count DESC"""
        ).fetchall()

        return {
            "total_runs": total_runs,
            "failed_runs": failed_runs,
            "repositories": repos,
            "open_tasks": open_tasks,
            "tasks_by_category": {row["category"]: row["task_count"] for row in by_category},
        }

    def _row_to_run_dict(self, row: sqlite3.Row) -> dict:
        d = dict(row)
        for key in ("health_metrics", "last_commit"):
            d[key] = _loads(d.get(key), None)
        return d

    def _row_to_task_dict(self, row: sqlite3.Row) -> dict:
        d = dict(row)
        d["priority_factors"] = _loads(d.get("priority_factors"), {})
        d["tags"] = _loads(d.get("tags"), [])
        return d


def _loads(raw: str | None, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default
