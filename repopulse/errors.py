"""Error taxonomy for repopulse.

FetchError and ParseError are recovered close to where they happen;
ConfigError is raised before a run starts; PipelineError marks anything
else that escapes a pipeline stage and ends the run as failed.
"""

from __future__ import annotations


class RepopulseError(Exception):
    """Base class for all repopulse errors."""


class FetchError(RepopulseError):
    """A call to the remote source failed (network, not found, rate limit)."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ParseError(RepopulseError):
    """Structural parsing of a source file failed."""


class ConfigError(RepopulseError):
    """Keyword or weight tables have an invalid shape."""


class PipelineError(RepopulseError):
    """Unexpected failure inside an analysis run."""
