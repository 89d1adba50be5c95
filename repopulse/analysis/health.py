"""Repository health metrics.

Five 0-100 sub-scores are combined into a weighted overall score and a
letter grade. Every function here is total: empty input yields defaulted
metrics instead of an error.
"""

from __future__ import annotations

from datetime import datetime

from repopulse.analysis.models import (
    CommitData,
    FileAnalysis,
    GeneratedTask,
    HealthMetrics,
    RepoMeta,
    TaskCategory,
)
from repopulse.analysis.scoring import days_since, round_half_up

DEBT_CATEGORIES = frozenset({
    TaskCategory.TODO,
    TaskCategory.FIXME,
    TaskCategory.HACK,
    TaskCategory.XXX,
    TaskCategory.INCOMPLETE_CODE,
})

OVERALL_WEIGHTS = {
    "code_coverage": 0.25,
    "technical_debt_ratio": 0.25,  # applied to (100 - ratio)
    "dependency_freshness": 0.20,
    "documentation_completeness": 0.15,
    "test_reliability": 0.15,
}

# (max days exclusive, score), checked in order
FRESHNESS_STEPS = ((7, 100), (30, 80), (90, 60), (180, 40), (365, 20))
STALE_FRESHNESS = 10
UNKNOWN_FRESHNESS = 50

GRADE_THRESHOLDS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


def calculate_health(
    analyses: list[FileAnalysis],
    tasks: list[GeneratedTask],
    commits: list[CommitData],
    repo_meta: RepoMeta | None = None,
    now: datetime | None = None,
) -> HealthMetrics:
    code_coverage = estimate_code_coverage(analyses)
    debt = technical_debt_ratio(tasks, analyses)
    freshness = dependency_freshness(_latest_commit_date(commits, repo_meta), now)
    documentation = documentation_completeness(analyses)
    reliability = estimate_test_reliability(analyses)

    overall = int(round_half_up(
        code_coverage * OVERALL_WEIGHTS["code_coverage"]
        + (100 - debt) * OVERALL_WEIGHTS["technical_debt_ratio"]
        + freshness * OVERALL_WEIGHTS["dependency_freshness"]
        + documentation * OVERALL_WEIGHTS["documentation_completeness"]
        + reliability * OVERALL_WEIGHTS["test_reliability"]
    ))

    return HealthMetrics(
        code_coverage=code_coverage,
        technical_debt_ratio=debt,
        dependency_freshness=freshness,
        documentation_completeness=documentation,
        test_reliability=reliability,
        overall_health=overall,
        grade=health_grade(overall),
    )


def estimate_code_coverage(analyses: list[FileAnalysis]) -> int:
    """Files with tests are assumed to be roughly 70% covered."""
    if not analyses:
        return 0
    ratio = _tested_ratio(analyses)
    return int(min(round_half_up(ratio * 70), 100))


def technical_debt_ratio(tasks: list[GeneratedTask], analyses: list[FileAnalysis]) -> int:
    """Debt markers per 1000 lines, scaled by 10 and capped at 100 (lower is better)."""
    if not analyses:
        return 0
    total_lines = sum(a.line_count for a in analyses)
    if total_lines == 0:
        return 0
    markers = sum(1 for t in tasks if t.category in DEBT_CATEGORIES)
    ratio = markers / total_lines * 1000
    return int(min(round_half_up(ratio * 10), 100))


def dependency_freshness(last_commit: datetime | None, now: datetime | None = None) -> int:
    if last_commit is None:
        return UNKNOWN_FRESHNESS
    days = days_since(last_commit, now)
    for limit, score in FRESHNESS_STEPS:
        if days < limit:
            return score
    return STALE_FRESHNESS


def documentation_completeness(analyses: list[FileAnalysis]) -> int:
    if not analyses:
        return 0
    documented = sum(1 for a in analyses if a.has_documentation)
    return int(round_half_up(documented / len(analyses) * 100))


def estimate_test_reliability(analyses: list[FileAnalysis]) -> int:
    """70 once any tests exist, plus up to 30 for the share of tested files."""
    if not analyses:
        return 0
    ratio = _tested_ratio(analyses)
    if ratio == 0:
        return 0
    return int(min(round_half_up(70 + ratio * 30), 100))


def health_grade(score: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def _tested_ratio(analyses: list[FileAnalysis]) -> float:
    return sum(1 for a in analyses if a.has_tests) / len(analyses)


def _latest_commit_date(
    commits: list[CommitData], repo_meta: RepoMeta | None
) -> datetime | None:
    dates = [c.date for c in commits if c.date is not None]
    if dates:
        return max(dates)
    if repo_meta is not None:
        return repo_meta.last_commit_at
    return None
