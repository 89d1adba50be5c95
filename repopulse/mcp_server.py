"""MCP server for repopulse.

Serves the stored task backlog and health scores to coding agents over
stdio, so an agent can ask what is broken or unfinished in a repository
before it starts editing. It only reads the database written by
`repopulse analyze`; it never talks to GitHub itself.

Start it with `repopulse serve`, or register it in an MCP client:

    {"mcpServers": {"repopulse": {"command": "repopulse", "args": ["serve"],
                                  "env": {"REPOPULSE_DB_PATH": "/path/to/repopulse.db"}}}}
"""

from __future__ import annotations

import json
import os
import sys
import time
from pathlib import Path

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server

from repopulse.activity import log_tool_call
from repopulse.analysis.models import TaskCategory, TaskStatus
from repopulse.storage.db import get_connection
from repopulse.storage.repository import RunStore

DEFAULT_TASK_LIMIT = 25


def _resolve_db_path(argv: list[str] | None = None) -> Path:
    """--db argument, then REPOPULSE_DB_PATH, then ./repopulse.db."""
    argv = sys.argv if argv is None else argv
    if "--db" in argv[:-1]:
        return Path(argv[argv.index("--db") + 1])
    return Path(os.getenv("REPOPULSE_DB_PATH") or "repopulse.db")


DB_PATH = _resolve_db_path()

server = Server("repopulse")


def _get_store() -> RunStore:
    if not DB_PATH.exists():
        raise FileNotFoundError(
            f"Database not found at {DB_PATH}. "
            "Run 'repopulse analyze' first, or set REPOPULSE_DB_PATH."
        )
    return RunStore(get_connection(DB_PATH))


@server.list_tools()
async def list_tools() -> list[types.Tool]:
    return [
        types.Tool(
            name="list_tasks",
            description=(
                "List the prioritized task backlog found in analyzed repositories: "
                "TODO/FIXME/BUG comments, incomplete code and security issues, "
                "highest priority first. Use this to pick what to work on next "
                "or to check for known problems in a file before editing it."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "repo": {
                        "type": "string",
                        "description": "Optional: repository as owner/repo",
                    },
                    "category": {
                        "type": "string",
                        "enum": [c.value for c in TaskCategory],
                        "description": "Optional: only tasks of this category",
                    },
                    "status": {
                        "type": "string",
                        "enum": [s.value for s in TaskStatus],
                        "description": "Optional: only tasks with this status",
                    },
                    "min_priority": {
                        "type": "number",
                        "description": "Optional: minimum priority score",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of tasks (default 25)",
                    },
                },
            },
        ),
        types.Tool(
            name="get_health",
            description=(
                "Get the latest health score of a repository: overall 0-100 score, "
                "letter grade, and the coverage, technical debt, freshness, "
                "documentation and test reliability sub-scores."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "repo": {
                        "type": "string",
                        "description": "Repository as owner/repo",
                    },
                },
                "required": ["repo"],
            },
        ),
        types.Tool(
            name="get_analysis_stats",
            description=(
                "Summary of stored analysis runs: how many runs and repositories, "
                "failed runs, open tasks and tasks per category."
            ),
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    start = time.time()
    result: list[types.TextContent] = []
    error: str | None = None
    try:
        result = _dispatch_tool(name, arguments or {})
        return result
    except FileNotFoundError as e:
        error = str(e)
        result = [types.TextContent(type="text", text=f"Setup required: {e}")]
        return result
    except Exception as e:
        error = str(e)
        result = [types.TextContent(type="text", text=f"Error: {e}")]
        return result
    finally:
        duration_ms = int((time.time() - start) * 1000)
        result_text = result[0].text if result else ""
        log_tool_call(name, arguments, result_text, error, duration_ms)


def _dispatch_tool(name: str, arguments: dict) -> list[types.TextContent]:
    """Route a tool call to the appropriate handler."""
    if name == "list_tasks":
        return _handle_list_tasks(arguments)
    elif name == "get_health":
        return _handle_get_health(arguments["repo"])
    elif name == "get_analysis_stats":
        return _handle_stats()
    else:
        return [types.TextContent(type="text", text=f"Unknown tool: {name}")]


def _handle_list_tasks(arguments: dict) -> list[types.TextContent]:
    store = _get_store()
    tasks = store.get_tasks(
        repo=arguments.get("repo"),
        category=arguments.get("category"),
        status=arguments.get("status"),
        min_priority=arguments.get("min_priority"),
        limit=int(arguments.get("limit", DEFAULT_TASK_LIMIT)),
    )
    if not tasks:
        return [types.TextContent(type="text", text="No tasks found.")]

    result = {"count": len(tasks), "tasks": tasks}
    return [types.TextContent(type="text", text=json.dumps(result, indent=2, default=str))]


def _handle_get_health(repo: str) -> list[types.TextContent]:
    store = _get_store()
    run = store.get_latest_health(repo)
    if run is None:
        return [types.TextContent(
            type="text",
            text=f"No completed analysis for '{repo}'. Run 'repopulse analyze {repo}' first.",
        )]

    result = {
        "repo": repo,
        "analyzed_at": run["completed_at"],
        "health_metrics": run["health_metrics"],
        "files_analyzed": run["files_analyzed"],
        "tasks_found": run["tasks_found"],
    }
    return [types.TextContent(type="text", text=json.dumps(result, indent=2, default=str))]


def _handle_stats() -> list[types.TextContent]:
    store = _get_store()
    return [types.TextContent(type="text", text=json.dumps(store.get_stats(), indent=2))]


async def main() -> None:
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
