"""CLI entry point for repopulse."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from repopulse.activity import read_activity_log, summarize_activity
from repopulse.config import Config, load_settings
from repopulse.errors import ConfigError
from repopulse.github.client import GitHubClient
from repopulse.github.fetcher import Fetcher
from repopulse.pipeline.orchestrator import RepositoryAnalyzer
from repopulse.pipeline.runs import RunTracker
from repopulse.report import FORMATS, write_export
from repopulse.storage.db import get_connection
from repopulse.storage.repository import RunStore

app = typer.Typer(help="Turn a GitHub repository into a prioritized task backlog and a health score.")
console = Console()

GRADE_COLORS = {"A": "green", "B": "green", "C": "yellow", "D": "yellow", "F": "red"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _connect(db_path: str, must_exist: bool = True) -> sqlite3.Connection:
    db = Path(db_path)
    if must_exist and not db.exists():
        rprint(f"[red]Database not found at {db}. Run 'repopulse analyze' first.[/red]")
        raise typer.Exit(1)
    return get_connection(db)


@app.command()
def analyze(
    repo: str = typer.Argument(None, help="GitHub repository (owner/repo); defaults to REPOPULSE_REPO"),
    settings: Path = typer.Option(
        None, "--settings", "-s", help="JSON file with keyword/weight overrides"
    ),
    db_path: str = typer.Option("repopulse.db", envvar="REPOPULSE_DB_PATH", help="Database file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Analyze a repository and store its tasks and health score."""
    _configure_logging(verbose)

    config = Config.load()
    if repo:
        config.repo = repo
    issues = config.validate()
    if issues:
        for issue in issues:
            rprint(f"[red]Config error: {issue}[/red]")
        raise typer.Exit(1)

    try:
        analysis_settings = load_settings(settings or config.settings_path)
    except ConfigError as e:
        rprint(f"[red]Config error: {e}[/red]")
        raise typer.Exit(1)

    conn = _connect(db_path, must_exist=False)
    store = RunStore(conn)
    client = GitHubClient(token=config.github_token, repo=config.repo)
    analyzer = RepositoryAnalyzer(Fetcher(client), config.repo, analysis_settings)
    tracker = RunTracker()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(f"Analyzing {config.repo}...", total=None)
            run_id = tracker.start(analyzer)
            record = tracker.wait(run_id)

        run = record.result
        store.save_run(run, run_id=run_id)

        if not run.success:
            rprint(f"[red]Analysis failed: {run.error}[/red]")
            raise typer.Exit(1)

        stats = run.stats
        rprint(f"\n[bold]Analysis complete for {config.repo}:[/bold]")
        rprint(f"  Files analyzed: {stats.files_analyzed}")
        rprint(f"  Lines analyzed: {stats.lines_analyzed}")
        rprint(f"  Tasks found:    {stats.tasks_found}")
        rprint(f"  Duration:       {stats.duration_ms}ms")
        if run.health_metrics:
            health = run.health_metrics
            color = GRADE_COLORS.get(health.grade, "white")
            rprint(f"  Health:         [{color}]{health.overall_health}/100 ({health.grade})[/{color}]")

        if run.tasks:
            rprint("\n[bold]Top tasks:[/bold]")
            for task in run.tasks[:10]:
                rprint(f"  [{task.priority_score:>5}] {escape(task.title)}  ({task.file_path}:{task.line_number})")
            rprint("\nSee all with [bold]repopulse tasks[/bold]")
    finally:
        client.close()
        conn.close()


@app.command()
def tasks(
    repo: str = typer.Option(None, help="Only tasks of this repository"),
    category: str = typer.Option(None, "--category", "-c", help="Only this category, e.g. TODO"),
    status: str = typer.Option(None, help="Only tasks with this status"),
    min_priority: float = typer.Option(None, help="Minimum priority score"),
    limit: int = typer.Option(50, help="Maximum number of tasks"),
    db_path: str = typer.Option("repopulse.db", envvar="REPOPULSE_DB_PATH", help="Database file path"),
) -> None:
    """List stored tasks, highest priority first."""
    conn = _connect(db_path)
    store = RunStore(conn)
    try:
        rows = store.get_tasks(
            repo=repo, category=category, status=status, min_priority=min_priority, limit=limit
        )
        if not rows:
            rprint("[yellow]No tasks found.[/yellow]")
            return

        table = Table(title=f"{len(rows)} task(s)")
        table.add_column("Priority", justify="right")
        table.add_column("Category")
        table.add_column("Title")
        table.add_column("Location")
        table.add_column("Status")
        table.add_column("ID", overflow="fold")
        for row in rows:
            table.add_row(
                str(row["priority_score"]),
                row["category"],
                escape(row["title"]),
                f"{row['file_path']}:{row['line_number']}",
                row["status"],
                row["id"][:8],
            )
        console.print(table)
    finally:
        conn.close()


@app.command("set-status")
def set_status(
    task_id: str = typer.Argument(help="Task id"),
    status: str = typer.Argument(help="open, in_progress, completed, snoozed or cancelled"),
    db_path: str = typer.Option("repopulse.db", envvar="REPOPULSE_DB_PATH", help="Database file path"),
) -> None:
    """Change the status of a stored task."""
    conn = _connect(db_path)
    store = RunStore(conn)
    try:
        if not store.update_task_status(task_id, status):
            rprint(f"[red]Task {task_id} not found.[/red]")
            raise typer.Exit(1)
        rprint(f"[green]Task {task_id} set to {status}[/green]")
    except ValueError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        conn.close()


@app.command()
def health(
    repo: str = typer.Argument(None, help="GitHub repository (owner/repo); defaults to REPOPULSE_REPO"),
    db_path: str = typer.Option("repopulse.db", envvar="REPOPULSE_DB_PATH", help="Database file path"),
) -> None:
    """Show the latest health score of a repository."""
    repo = repo or Config.load().repo
    if not repo:
        rprint("[red]Repository not set (argument or REPOPULSE_REPO)[/red]")
        raise typer.Exit(1)

    conn = _connect(db_path)
    store = RunStore(conn)
    try:
        run = store.get_latest_health(repo)
        if run is None or not run["health_metrics"]:
            rprint(f"[yellow]No completed analysis for {repo}.[/yellow]")
            raise typer.Exit(1)

        metrics = run["health_metrics"]
        color = GRADE_COLORS.get(metrics["grade"], "white")
        rprint(f"[bold]{repo}[/bold] analyzed {run['completed_at']}")
        rprint(f"  Overall health:             [{color}]{metrics['overall_health']}/100 ({metrics['grade']})[/{color}]")
        rprint(f"  Code coverage (est.):       {metrics['code_coverage']}")
        rprint(f"  Technical debt ratio:       {metrics['technical_debt_ratio']}")
        rprint(f"  Dependency freshness:       {metrics['dependency_freshness']}")
        rprint(f"  Documentation completeness: {metrics['documentation_completeness']}")
        rprint(f"  Test reliability:           {metrics['test_reliability']}")
    finally:
        conn.close()


@app.command()
def runs(
    repo: str = typer.Option(None, help="Only runs of this repository"),
    limit: int = typer.Option(20, help="Maximum number of runs"),
    db_path: str = typer.Option("repopulse.db", envvar="REPOPULSE_DB_PATH", help="Database file path"),
) -> None:
    """Show past analysis runs and overall statistics."""
    conn = _connect(db_path)
    store = RunStore(conn)
    try:
        for run in store.list_runs(repo=repo, limit=limit):
            marker = "[green]ok[/green]" if run["status"] == "completed" else "[red]failed[/red]"
            line = (
                f"  {run['started_at']}  {run['repo']}  {marker}  "
                f"{run['files_analyzed']} files, {run['tasks_found']} tasks, {run['duration_ms']}ms"
            )
            if run["error_message"]:
                line += f"  ({run['error_message']})"
            rprint(line)

        s = store.get_stats()
        rprint("\n[bold]repopulse statistics:[/bold]")
        rprint(f"  Runs:         {s['total_runs']} ({s['failed_runs']} failed)")
        rprint(f"  Repositories: {s['repositories']}")
        rprint(f"  Open tasks:   {s['open_tasks']}")
        for category, count in s["tasks_by_category"].items():
            rprint(f"    {category}: {count}")
    finally:
        conn.close()


@app.command()
def export(
    output: str = typer.Option("tasks.json", "--output", "-o", help="Output file path"),
    format: str = typer.Option("json", "--format", "-f", help="Format: json, markdown or csv"),
    repo: str = typer.Option(None, help="Only tasks of this repository"),
    limit: int = typer.Option(1000, help="Maximum number of tasks"),
    db_path: str = typer.Option("repopulse.db", envvar="REPOPULSE_DB_PATH", help="Database file path"),
) -> None:
    """Export stored tasks to a file."""
    if format.lower() not in FORMATS:
        rprint(f"[red]Unknown format '{format}'. Expected one of: {', '.join(FORMATS)}[/red]")
        raise typer.Exit(1)

    conn = _connect(db_path)
    store = RunStore(conn)
    try:
        rows = store.get_tasks(repo=repo, limit=limit)
        out_path = write_export(rows, Path(output), format)
        rprint(f"[green]Exported {len(rows)} task(s) to {out_path}[/green]")
    finally:
        conn.close()


@app.command()
def activity(
    limit: int = typer.Option(20, help="Number of entries to show"),
    tool: str = typer.Option(None, help="Only calls to this MCP tool"),
) -> None:
    """Show recent MCP tool calls made by coding agents."""
    entries = read_activity_log(limit=limit, tool_name=tool)
    if not entries:
        rprint("[yellow]No activity recorded yet.[/yellow]")
        return
    for entry in entries:
        status = f"[red]{entry['error']}[/red]" if entry.get("error") else "[green]ok[/green]"
        rprint(f"  {entry['timestamp']}  {entry['tool_name']}  {status}  {entry['duration_ms']}ms")

    summary = summarize_activity(entries)
    counts = ", ".join(f"{name} x{count}" for name, count in summary["by_tool"].items())
    rprint(f"\n{summary['calls']} call(s), {summary['errors']} failed: {counts}")


@app.command()
def serve() -> None:
    """Start the MCP server (called by Claude Code / Cursor automatically)."""
    import asyncio
    from repopulse.mcp_server import main as mcp_main
    asyncio.run(mcp_main())


if __name__ == "__main__":
    app()
