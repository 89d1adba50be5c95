"""Configuration loading for repopulse.

Config sources (in priority order):
1. Explicit arguments passed to functions
2. Environment variables (REPOPULSE_GITHUB_TOKEN, etc.)
3. .env file in current directory

Analysis settings (keyword and weight tables) have fixed defaults and can be
partially overridden from a JSON file:

    {"keywords": {"TODO": ["TODO", "@todo"]}, "weights": {"open_issues": 1}}
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from repopulse.analysis.models import TaskCategory
from repopulse.errors import ConfigError

load_dotenv()

DEFAULT_DB_PATH = Path("repopulse.db")

DEFAULT_KEYWORDS: dict[TaskCategory, list[str]] = {
    TaskCategory.TODO: ["TODO", "todo", "@todo", "TODO:"],
    TaskCategory.FIXME: ["FIXME", "fixme", "@fixme", "FIXME:"],
    TaskCategory.BUG: ["BUG", "bug", "@bug", "BUG:"],
    TaskCategory.HACK: ["HACK", "hack", "@hack", "HACK:"],
    TaskCategory.XXX: ["XXX", "xxx", "@xxx", "XXX:"],
    TaskCategory.NOTE: ["NOTE", "note", "@note", "NOTE:"],
    TaskCategory.OPTIMIZE: ["OPTIMIZE", "optimize", "@optimize", "OPTIMIZE:"],
    TaskCategory.REVIEW: ["REVIEW", "review", "@review", "REVIEW:"],
    TaskCategory.SECURITY: ["SECURITY", "security", "@security", "SECURITY:", "FIXME-SECURITY"],
}

DEFAULT_WEIGHTS: dict[str, float] = {
    "critical_comments": 3,
    "days_since_commit": 2,
    "open_issues": 2,
    "code_complexity": 1.5,
    "security_vulnerability": 5,
    "custom_priority": 1,
}

DEFAULT_EXCLUDED_PATHS = [
    "node_modules/",
    "dist/",
    "build/",
    "coverage/",
    ".git/",
    "vendor/",
    "__pycache__/",
    ".next/",
    ".nuxt/",
    "out/",
    "target/",
]

DEFAULT_EXTENSIONS = [
    ".js", ".jsx", ".ts", ".tsx",
    ".py", ".java", ".cpp", ".c", ".h",
    ".rb", ".go", ".rs", ".php",
    ".vue", ".svelte",
]

MAX_FILE_SIZE = 1024 * 1024  # 1 MiB
DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 0.1  # seconds


@dataclass
class Config:
    github_token: str = ""
    repo: str = ""  # "owner/repo"
    db_path: Path = DEFAULT_DB_PATH
    settings_path: Path | None = None

    @classmethod
    def load(cls) -> Config:
        settings = os.getenv("REPOPULSE_SETTINGS_PATH", "")
        return cls(
            github_token=os.getenv("REPOPULSE_GITHUB_TOKEN", ""),
            repo=os.getenv("REPOPULSE_REPO", ""),
            db_path=Path(os.getenv("REPOPULSE_DB_PATH", str(DEFAULT_DB_PATH))),
            settings_path=Path(settings) if settings else None,
        )

    def validate(self) -> list[str]:
        """Return a list of missing config issues."""
        issues = []
        if not self.github_token:
            issues.append("GitHub token not set (REPOPULSE_GITHUB_TOKEN)")
        if not self.repo:
            issues.append("Repository not set (REPOPULSE_REPO)")
        elif self.repo.count("/") != 1:
            issues.append(f"Repository must look like owner/repo, got '{self.repo}'")
        return issues


@dataclass
class AnalysisSettings:
    keywords: dict[TaskCategory, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_KEYWORDS.items()}
    )
    weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_delay: float = DEFAULT_BATCH_DELAY
    max_file_size: int = MAX_FILE_SIZE
    excluded_paths: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_PATHS))
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))

    @classmethod
    def from_overrides(
        cls,
        keywords: dict | None = None,
        weights: dict | None = None,
        **kwargs,
    ) -> AnalysisSettings:
        """Merge partial keyword/weight tables over the defaults.

        Raises ConfigError when either table has the wrong shape.
        """
        settings = cls(**kwargs)
        if keywords is not None:
            settings.keywords.update(_parse_keywords(keywords))
        if weights is not None:
            settings.weights.update(_parse_weights(weights))
        settings.validate()
        return settings

    def validate(self) -> None:
        """Normalize the keyword and weight tables in place.

        Raises ConfigError on the first invalid value.
        """
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.batch_delay < 0:
            raise ConfigError(f"batch_delay must not be negative, got {self.batch_delay}")
        self.keywords = _parse_keywords(self.keywords)
        self.weights = _parse_weights(self.weights)
        missing = set(DEFAULT_WEIGHTS) - set(self.weights)
        if missing:
            raise ConfigError(f"Missing weights: {', '.join(sorted(missing))}")


def load_settings(path: Path | None) -> AnalysisSettings:
    """Load analysis settings from a JSON file, or defaults if path is None."""
    if path is None:
        return AnalysisSettings()
    try:
        raw = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read settings file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a JSON object")
    return AnalysisSettings.from_overrides(
        keywords=raw.get("keywords"),
        weights=raw.get("weights"),
    )


def _parse_keywords(raw: dict) -> dict[TaskCategory, list[str]]:
    if not isinstance(raw, dict):
        raise ConfigError("keywords must map categories to lists of strings")
    parsed: dict[TaskCategory, list[str]] = {}
    for name, triggers in raw.items():
        try:
            category = TaskCategory(name)
        except ValueError:
            raise ConfigError(f"Unknown task category: {name}") from None
        if not isinstance(triggers, list) or not all(
            isinstance(t, str) and t for t in triggers
        ):
            raise ConfigError(f"Keywords for {category.value} must be a list of non-empty strings")
        parsed[category] = list(triggers)
    return parsed


def _parse_weights(raw: dict) -> dict[str, float]:
    if not isinstance(raw, dict):
        raise ConfigError("weights must map factor names to numbers")
    parsed: dict[str, float] = {}
    for name, value in raw.items():
        if name not in DEFAULT_WEIGHTS:
            raise ConfigError(f"Unknown priority weight: {name}")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ConfigError(f"Weight {name} must be a non-negative number, got {value!r}")
        parsed[name] = value
    return parsed
