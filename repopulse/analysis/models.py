"""Core data models for repopulse."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


class TaskCategory(str, Enum):
    TODO = "TODO"
    FIXME = "FIXME"
    BUG = "BUG"
    HACK = "HACK"
    XXX = "XXX"
    NOTE = "NOTE"
    OPTIMIZE = "OPTIMIZE"
    REVIEW = "REVIEW"
    SECURITY = "SECURITY"
    INCOMPLETE_CODE = "INCOMPLETE_CODE"
    FAILING_TEST = "FAILING_TEST"
    OUTDATED_DEPENDENCY = "OUTDATED_DEPENDENCY"
    DOCUMENTATION = "DOCUMENTATION"
    REFACTOR = "REFACTOR"
    OTHER = "OTHER"


class FindingType(str, Enum):
    UNIMPLEMENTED = "unimplemented"
    SYNTAX_ERROR = "syntax_error"
    EMPTY_IMPLEMENTATION = "empty_implementation"
    NOT_IMPLEMENTED = "not_implemented"
    EVAL_USAGE = "eval_usage"


class CommentKind(str, Enum):
    SINGLE_LINE = "single-line"
    MULTI_LINE = "multi-line"


class TaskStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SNOOZED = "snoozed"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TreeEntry:
    path: str
    size: int
    kind: str  # "file" | "tree"


@dataclass(frozen=True)
class TaskMarker:
    category: TaskCategory
    keyword: str  # the literal trigger that matched, e.g. "TODO:"
    description: str
    line_number: int


@dataclass(frozen=True)
class Comment:
    text: str
    line_number: int  # 1-based, first line of the comment
    kind: CommentKind
    markers: tuple[TaskMarker, ...] = ()


@dataclass(frozen=True)
class Finding:
    """An incomplete-code or security pattern found by structural analysis."""

    type: FindingType
    description: str
    line_number: int | None = None


@dataclass(frozen=True)
class FileAnalysis:
    path: str
    size: int
    language: str
    comments: tuple[Comment, ...] = ()
    incomplete_code: tuple[Finding, ...] = ()
    security_issues: tuple[Finding, ...] = ()
    complexity: int = 0
    function_count: int = 0  # only counted by the syntax-tree pass
    has_tests: bool = False
    has_documentation: bool = False
    line_count: int = 0

    @property
    def markers(self) -> list[TaskMarker]:
        return [marker for comment in self.comments for marker in comment.markers]


@dataclass
class RepoMeta:
    """Repository-level facts used for priority and health scoring."""

    full_name: str
    default_branch: str = "main"
    open_issues: int = 0
    last_commit_at: datetime | None = None


@dataclass
class CommitData:
    sha: str
    message: str
    author: str
    date: datetime | None


@dataclass
class IssueData:
    number: int
    title: str
    url: str


@dataclass
class PRData:
    number: int
    title: str
    url: str


@dataclass
class PriorityFactors:
    critical_comments: int = 0
    days_since_commit: float = 0.0
    open_issues: float = 0.0
    code_complexity: float = 0.0
    security_vulnerability: int = 0
    custom_priority: float = 0.0


@dataclass
class GeneratedTask:
    title: str
    description: str
    category: TaskCategory
    priority_score: float
    priority_factors: PriorityFactors
    file_path: str
    line_number: int
    code_snippet: str
    suggested_next_steps: str
    status: TaskStatus = TaskStatus.OPEN
    tags: list[str] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, int, TaskCategory]:
        return (self.file_path, self.line_number, self.category)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["category"] = self.category.value
        d["status"] = self.status.value
        return d


@dataclass
class HealthMetrics:
    code_coverage: int
    technical_debt_ratio: int
    dependency_freshness: int
    documentation_completeness: int
    test_reliability: int
    overall_health: int
    grade: str


@dataclass
class RunStats:
    files_analyzed: int = 0
    lines_analyzed: int = 0
    tasks_found: int = 0
    duration_ms: int = 0


@dataclass
class AnalysisRun:
    """The single result of one pipeline run, successful or not."""

    repo: str
    success: bool
    stats: RunStats = field(default_factory=RunStats)
    tasks: list[GeneratedTask] = field(default_factory=list)
    health_metrics: HealthMetrics | None = None
    error: str | None = None
    last_commit: CommitData | None = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "repo": self.repo,
            "success": self.success,
            "stats": asdict(self.stats),
            "tasks": [task.to_dict() for task in self.tasks],
            "health_metrics": asdict(self.health_metrics) if self.health_metrics else None,
            "error": self.error,
            "last_commit": asdict(self.last_commit) if self.last_commit else None,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)
