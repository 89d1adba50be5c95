"""JSONL audit trail of MCP tool calls.

Coding agents read the backlog and health scores through the MCP server;
each call is appended here as one JSON line so a person can check which
tasks the agent was shown. The file sits next to repopulse.db unless
REPOPULSE_LOG_PATH points elsewhere.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_FILENAME = "repopulse-activity.jsonl"
RESULT_PREVIEW_LIMIT = 500


@dataclass
class ToolCall:
    tool_name: str
    arguments: dict
    result_preview: str
    error: str | None
    duration_ms: int
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


def activity_log_path() -> Path:
    override = os.getenv("REPOPULSE_LOG_PATH")
    if override:
        return Path(override)
    return Path(os.getenv("REPOPULSE_DB_PATH", "repopulse.db")).parent / LOG_FILENAME


def log_tool_call(
    tool_name: str,
    arguments: dict,
    result_text: str,
    error: str | None,
    duration_ms: int,
) -> None:
    """Append one call to the log. Write failures are logged, not raised."""
    call = ToolCall(
        tool_name=tool_name,
        arguments=arguments,
        result_preview=(result_text or "")[:RESULT_PREVIEW_LIMIT],
        error=error,
        duration_ms=duration_ms,
    )
    path = activity_log_path()
    try:
        with path.open("a") as f:
            f.write(json.dumps(asdict(call), default=str) + "\n")
    except OSError as e:
        logger.debug(f"Could not append to activity log {path}: {e}")


def read_activity_log(
    limit: int = 20,
    tool_name: str | None = None,
    log_path: Path | None = None,
) -> list[dict]:
    """Newest entries first. Lines that are not valid JSON are skipped."""
    path = log_path or activity_log_path()
    if not path.exists():
        return []

    entries = [
        entry
        for entry in map(_parse_line, path.read_text().splitlines())
        if entry is not None and (tool_name is None or entry.get("tool_name") == tool_name)
    ]
    return entries[::-1][:limit]


def summarize_activity(entries: list[dict]) -> dict:
    """Call counts per tool and the number of failed calls."""
    return {
        "calls": len(entries),
        "errors": sum(1 for e in entries if e.get("error")),
        "by_tool": dict(Counter(e.get("tool_name", "?") for e in entries).most_common()),
    }


def _parse_line(line: str) -> dict | None:
    if not line.strip():
        return None
    try:
        return json.loads(line)
    except json.JSONDecodeError:
        return None
