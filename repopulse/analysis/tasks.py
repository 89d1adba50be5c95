"""Task synthesis: findings from every analyzed file become scored tasks.

Every task marker, incomplete-code finding and security finding yields a
candidate task. Candidates are scored from six weighted priority factors,
deduplicated on (file_path, line_number, category) keeping the highest
score, and returned highest priority first.
"""

from __future__ import annotations

import logging
from datetime import datetime

from repopulse.analysis.models import (
    FileAnalysis,
    Finding,
    FindingType,
    GeneratedTask,
    PriorityFactors,
    RepoMeta,
    TaskCategory,
    TaskMarker,
)
from repopulse.analysis.scoring import days_since, round_half_up
from repopulse.config import DEFAULT_WEIGHTS

logger = logging.getLogger(__name__)

CRITICAL_CATEGORIES = frozenset({TaskCategory.SECURITY, TaskCategory.BUG, TaskCategory.FIXME})

MARKER_BONUS = 0
INCOMPLETE_CODE_BONUS = 2
SECURITY_BONUS = 5

TITLE_LIMIT = 60

GENERIC_NEXT_STEPS = "Review and address the flagged code"

CATEGORY_NEXT_STEPS: dict[TaskCategory, str] = {
    TaskCategory.TODO: "Review the TODO comment and implement the required functionality",
    TaskCategory.FIXME: "Investigate the issue described and apply the necessary fix",
    TaskCategory.BUG: "Debug and resolve the reported bug",
    TaskCategory.SECURITY: "Address the security vulnerability immediately",
    TaskCategory.OPTIMIZE: "Profile the code and implement performance improvements",
    TaskCategory.REVIEW: "Conduct a code review of the flagged section",
    TaskCategory.REFACTOR: "Refactor the code to improve maintainability",
    TaskCategory.DOCUMENTATION: "Add or update documentation for this code section",
}

FINDING_NEXT_STEPS: dict[FindingType, str] = {
    FindingType.UNIMPLEMENTED: "Complete the implementation of this function or class",
    FindingType.SYNTAX_ERROR: "Complete the implementation of this function or class",
    FindingType.EMPTY_IMPLEMENTATION: "Complete the implementation of this function or class",
    FindingType.NOT_IMPLEMENTED: "Complete the implementation of this function or class",
    FindingType.EVAL_USAGE: "Review and fix this security vulnerability immediately",
}


def generate_tasks(
    analyses: list[FileAnalysis],
    repo_meta: RepoMeta,
    weights: dict[str, float] | None = None,
    now: datetime | None = None,
) -> list[GeneratedTask]:
    """Build the deduplicated, priority-ordered task list for one run."""
    weights = {**DEFAULT_WEIGHTS, **(weights or {})}
    candidates: list[GeneratedTask] = []

    for analysis in analyses:
        for marker in analysis.markers:
            candidates.append(_task_from_marker(marker, analysis, repo_meta, weights, now))
        for finding in analysis.incomplete_code:
            candidates.append(
                _task_from_finding(
                    finding, TaskCategory.INCOMPLETE_CODE, analysis, repo_meta, weights, now
                )
            )
        for finding in analysis.security_issues:
            candidates.append(
                _task_from_finding(
                    finding, TaskCategory.SECURITY, analysis, repo_meta, weights, now
                )
            )

    tasks = deduplicate(candidates)
    # sorted() is stable, so ties keep discovery order
    tasks = sorted(tasks, key=lambda t: t.priority_score, reverse=True)

    logger.info(f"Generated {len(tasks)} tasks for repository {repo_meta.full_name}")
    return tasks


def priority_factors(
    category: TaskCategory,
    analysis: FileAnalysis,
    repo_meta: RepoMeta,
    bonus: float = 0,
    now: datetime | None = None,
) -> PriorityFactors:
    critical = 1 if category in CRITICAL_CATEGORIES else 0
    days = days_since(repo_meta.last_commit_at, now) if repo_meta.last_commit_at else 0

    return PriorityFactors(
        critical_comments=critical + (1 if bonus > 3 else 0),
        days_since_commit=min(days / 30, 10),
        open_issues=min(max(repo_meta.open_issues, 0) / 10, 10),
        code_complexity=min(analysis.complexity / 20, 10),
        security_vulnerability=1 if category == TaskCategory.SECURITY else 0,
        custom_priority=bonus,
    )


def priority_score(factors: PriorityFactors, weights: dict[str, float]) -> float:
    """Weighted sum of the six factors, rounded to one decimal place."""
    merged = {**DEFAULT_WEIGHTS, **weights}
    score = sum(getattr(factors, name) * merged[name] for name in DEFAULT_WEIGHTS)
    return round_half_up(score, 1)


def deduplicate(tasks: list[GeneratedTask]) -> list[GeneratedTask]:
    """Keep one task per (file_path, line_number, category), the highest scored.

    On equal scores the first one seen is kept.
    """
    seen: dict[tuple, GeneratedTask] = {}
    for task in tasks:
        existing = seen.get(task.key)
        if existing is None or task.priority_score > existing.priority_score:
            seen[task.key] = task
    return list(seen.values())


def next_steps_for(category: TaskCategory) -> str:
    return CATEGORY_NEXT_STEPS.get(category, GENERIC_NEXT_STEPS)


def _task_from_marker(
    marker: TaskMarker,
    analysis: FileAnalysis,
    repo_meta: RepoMeta,
    weights: dict[str, float],
    now: datetime | None,
) -> GeneratedTask:
    factors = priority_factors(marker.category, analysis, repo_meta, MARKER_BONUS, now)
    return GeneratedTask(
        title=_marker_title(marker),
        description=marker.description,
        category=marker.category,
        priority_score=priority_score(factors, weights),
        priority_factors=factors,
        file_path=analysis.path,
        line_number=marker.line_number,
        code_snippet=_snippet_ref(analysis, marker.line_number),
        suggested_next_steps=next_steps_for(marker.category),
        tags=[marker.category.value.lower(), analysis.language],
    )


def _task_from_finding(
    finding: Finding,
    category: TaskCategory,
    analysis: FileAnalysis,
    repo_meta: RepoMeta,
    weights: dict[str, float],
    now: datetime | None,
) -> GeneratedTask:
    is_security = category == TaskCategory.SECURITY
    bonus = SECURITY_BONUS if is_security else INCOMPLETE_CODE_BONUS
    factors = priority_factors(category, analysis, repo_meta, bonus, now)
    kind = finding.type.value.replace("_", " ")
    line_number = finding.line_number or 0

    if is_security:
        title = f"Security Issue: {kind}"
        tags = ["security", "critical", analysis.language]
    else:
        title = f"Incomplete Code: {kind}"
        tags = ["incomplete", analysis.language, finding.type.value]

    return GeneratedTask(
        title=title,
        description=finding.description or "Code implementation is incomplete",
        category=category,
        priority_score=priority_score(factors, weights),
        priority_factors=factors,
        file_path=analysis.path,
        line_number=line_number,
        code_snippet=_snippet_ref(analysis, line_number),
        suggested_next_steps=FINDING_NEXT_STEPS[finding.type],
        tags=tags,
    )


def _marker_title(marker: TaskMarker) -> str:
    description = marker.description
    suffix = "..." if len(description) > TITLE_LIMIT else ""
    return f"{marker.category.value}: {description[:TITLE_LIMIT]}{suffix}"


def _snippet_ref(analysis: FileAnalysis, line_number: int | None) -> str:
    return f"Line {line_number or 0} in {analysis.path}"
