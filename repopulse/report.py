"""Export task lists as JSON, Markdown or CSV.

Tasks are plain dicts, either rows from RunStore.get_tasks() or
GeneratedTask.to_dict() output.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from pathlib import Path

FORMATS = ("json", "markdown", "md", "csv")

# (label, minimum priority score), highest first
PRIORITY_BANDS = (("Critical", 20.0), ("High", 10.0), ("Medium", 5.0), ("Low", float("-inf")))

CSV_COLUMNS = [
    ("Title", "title"),
    ("Description", "description"),
    ("Category", "category"),
    ("Priority Score", "priority_score"),
    ("Status", "status"),
    ("Repository", "repo"),
    ("File Path", "file_path"),
    ("Line Number", "line_number"),
    ("Created At", "created_at"),
]


def export_tasks(tasks: list[dict], fmt: str = "json") -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(tasks, indent=2, default=str)
    if fmt in ("markdown", "md"):
        return _to_markdown(tasks)
    if fmt == "csv":
        return _to_csv(tasks)
    raise ValueError(f"Unknown export format '{fmt}'. Expected one of: {', '.join(FORMATS)}")


def write_export(tasks: list[dict], output: Path, fmt: str = "json") -> Path:
    output.write_text(export_tasks(tasks, fmt))
    return output


def priority_band(score: float) -> str:
    for label, floor in PRIORITY_BANDS:
        if score >= floor:
            return label
    return PRIORITY_BANDS[-1][0]


def _to_csv(tasks: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([header for header, _ in CSV_COLUMNS])
    for task in tasks:
        writer.writerow([_cell(task.get(key)) for _, key in CSV_COLUMNS])
    return buffer.getvalue()


def _cell(value) -> str:
    return "" if value is None else str(value)


def _to_markdown(tasks: list[dict]) -> str:
    lines = [
        "# repopulse Tasks Export",
        "",
        f"Generated: {datetime.now().isoformat(timespec='seconds')}",
        f"Total Tasks: {len(tasks)}",
        "",
        "## Tasks by Priority",
        "",
    ]

    bands: dict[str, list[dict]] = {label: [] for label, _ in PRIORITY_BANDS}
    for task in tasks:
        bands[priority_band(task.get("priority_score") or 0)].append(task)

    for label, _ in PRIORITY_BANDS:
        band = bands[label]
        if not band:
            continue

        lines.append(f"### {label} ({len(band)})")
        lines.append("")
        for task in band:
            location = task.get("file_path") or ""
            if task.get("line_number"):
                location += f":{task['line_number']}"
            lines.append(f"- **[{task.get('category', '')}]** {task.get('title', '')}")
            lines.append(f"  - **Priority**: {task.get('priority_score', 0)}")
            lines.append(f"  - **Status**: {task.get('status', 'open')}")
            lines.append(f"  - **Repository**: {task.get('repo') or 'N/A'}")
            lines.append(f"  - **Location**: {location}")
            if task.get("description"):
                lines.append(f"  - **Description**: {task['description']}")
            if task.get("suggested_next_steps"):
                lines.append(f"  - **Next steps**: {task['suggested_next_steps']}")
            lines.append("")

    return "\n".join(lines)
