"""Tests for repopulse.analysis.health."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from repopulse.analysis.health import (
    calculate_health,
    dependency_freshness,
    documentation_completeness,
    estimate_code_coverage,
    estimate_test_reliability,
    health_grade,
    technical_debt_ratio,
)
from repopulse.analysis.models import CommitData, FileAnalysis, RepoMeta, TaskCategory

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _files(count: int, tested: int = 0, documented: int = 0, lines: int = 100) -> list[FileAnalysis]:
    return [
        FileAnalysis(
            path=f"src/f{i}.js",
            size=100,
            language="javascript",
            has_tests=i < tested,
            has_documentation=i < documented,
            line_count=lines,
        )
        for i in range(count)
    ]


class TestCalculateHealth:
    def test_empty_repository(self):
        health = calculate_health([], [], [])
        assert health.code_coverage == 0
        assert health.technical_debt_ratio == 0
        assert health.dependency_freshness == 50
        assert health.documentation_completeness == 0
        assert health.test_reliability == 0
        # 100 * 0.25 + 50 * 0.2
        assert health.overall_health == 35
        assert health.grade == "F"

    def test_untested_files(self):
        health = calculate_health(_files(10), [], [], now=NOW)
        assert health.code_coverage == 0
        assert health.test_reliability == 0
        assert health.technical_debt_ratio == 0

    def test_overall_and_grade(self, task_factory):
        analyses = _files(4, tested=2, documented=2)
        tasks = [task_factory(category=TaskCategory.TODO, line_number=n) for n in range(1, 5)]
        commits = [CommitData(sha="a", message="m", author="x", date=NOW - timedelta(days=2))]

        health = calculate_health(analyses, tasks, commits, now=NOW)

        assert health.code_coverage == 35
        assert health.technical_debt_ratio == 100
        assert health.dependency_freshness == 100
        assert health.documentation_completeness == 50
        assert health.test_reliability == 85
        # 35*.25 + 0*.25 + 100*.2 + 50*.15 + 85*.15 = 49
        assert health.overall_health == 49
        assert health.grade == "F"

    def test_all_sub_scores_in_range(self, task_factory):
        tasks = [task_factory(line_number=n) for n in range(500)]
        health = calculate_health(_files(3, tested=3, documented=3, lines=1), tasks, [], now=NOW)
        for value in (
            health.code_coverage,
            health.technical_debt_ratio,
            health.dependency_freshness,
            health.documentation_completeness,
            health.test_reliability,
            health.overall_health,
        ):
            assert 0 <= value <= 100


class TestFreshness:
    @pytest.mark.parametrize(
        ("days", "expected"),
        [(0, 100), (5, 100), (7, 80), (29, 80), (89, 60), (100, 40), (179, 40), (364, 20), (365, 10), (400, 10)],
    )
    def test_steps(self, days: int, expected: int):
        assert dependency_freshness(NOW - timedelta(days=days), NOW) == expected

    def test_unknown(self):
        assert dependency_freshness(None, NOW) == 50

    def test_falls_back_to_repository_metadata(self):
        meta = RepoMeta(full_name="acme/webapp", last_commit_at=NOW - timedelta(days=100))
        health = calculate_health(_files(1), [], [], meta, now=NOW)
        assert health.dependency_freshness == 40

    def test_newest_commit_wins(self):
        commits = [
            CommitData(sha="old", message="", author="", date=NOW - timedelta(days=400)),
            CommitData(sha="new", message="", author="", date=NOW - timedelta(days=5)),
        ]
        meta = RepoMeta(full_name="acme/webapp", last_commit_at=NOW - timedelta(days=400))
        assert calculate_health([], [], commits, meta, now=NOW).dependency_freshness == 100


class TestSubScores:
    def test_code_coverage(self):
        assert estimate_code_coverage([]) == 0
        assert estimate_code_coverage(_files(10, tested=10)) == 70
        assert estimate_code_coverage(_files(3, tested=1)) == 23

    def test_test_reliability(self):
        assert estimate_test_reliability(_files(4)) == 0
        assert estimate_test_reliability(_files(4, tested=4)) == 100
        assert estimate_test_reliability(_files(10, tested=1)) == 73

    def test_debt_only_counts_debt_categories(self, task_factory):
        analyses = _files(1, lines=1000)
        tasks = [
            task_factory(category=TaskCategory.TODO),
            task_factory(category=TaskCategory.INCOMPLETE_CODE, line_number=2),
            task_factory(category=TaskCategory.SECURITY, line_number=3),
            task_factory(category=TaskCategory.NOTE, line_number=4),
        ]
        assert technical_debt_ratio(tasks, analyses) == 20

    def test_debt_with_no_lines(self, task_factory):
        assert technical_debt_ratio([task_factory()], _files(2, lines=0)) == 0

    def test_documentation(self):
        assert documentation_completeness(_files(3, documented=1)) == 33
        assert documentation_completeness(_files(2, documented=2)) == 100


class TestGrade:
    @pytest.mark.parametrize(
        ("score", "grade"),
        [(100, "A"), (90, "A"), (89, "B"), (80, "B"), (70, "C"), (60, "D"), (59, "F"), (0, "F")],
    )
    def test_thresholds(self, score: int, grade: str):
        assert health_grade(score) == grade
