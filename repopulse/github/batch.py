"""Filters the tree listing and fetches file contents in rate-limited batches.

Files are fetched in fixed-size batches. Every file in a batch is fetched
in parallel and a short pause separates consecutive batches, which keeps
the number of in-flight API calls and the request rate bounded. A file
that fails to fetch is logged and skipped; it never stops the batch.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from repopulse.analysis.models import TreeEntry
from repopulse.config import (
    DEFAULT_BATCH_DELAY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_EXCLUDED_PATHS,
    DEFAULT_EXTENSIONS,
    MAX_FILE_SIZE,
)
from repopulse.errors import FetchError

logger = logging.getLogger(__name__)

ContentFetcher = Callable[[str], "str | None"]


@dataclass(frozen=True)
class FetchedFile:
    entry: TreeEntry
    content: str

    @property
    def path(self) -> str:
        return self.entry.path


def filter_analyzable(
    entries: list[TreeEntry],
    excluded_paths: list[str] | None = None,
    extensions: list[str] | None = None,
    max_size: int = MAX_FILE_SIZE,
) -> list[TreeEntry]:
    """Keep source files outside excluded directories and under the size ceiling."""
    excluded = DEFAULT_EXCLUDED_PATHS if excluded_paths is None else excluded_paths
    allowed = tuple(DEFAULT_EXTENSIONS if extensions is None else extensions)

    return [
        entry
        for entry in entries
        if entry.kind == "file"
        and not any(part in entry.path for part in excluded)
        and entry.path.endswith(allowed)
        and entry.size < max_size
    ]


def fetch_in_batches(
    entries: list[TreeEntry],
    fetch: ContentFetcher,
    batch_size: int = DEFAULT_BATCH_SIZE,
    delay: float = DEFAULT_BATCH_DELAY,
) -> Iterator[list[FetchedFile]]:
    """Yield the successfully fetched files of each batch, in listing order.

    Order inside a batch follows completion and is not guaranteed.
    """
    for start in range(0, len(entries), batch_size):
        batch = entries[start:start + batch_size]
        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            results = list(pool.map(lambda entry: _fetch_one(entry, fetch), batch))

        yield [result for result in results if result is not None]

        if start + batch_size < len(entries) and delay > 0:
            time.sleep(delay)


def _fetch_one(entry: TreeEntry, fetch: ContentFetcher) -> FetchedFile | None:
    try:
        content = fetch(entry.path)
    except FetchError as e:
        logger.warning(f"Skipping {entry.path}: {e}")
        return None
    except Exception as e:
        logger.error(f"Unexpected error fetching {entry.path}: {e}")
        return None

    if content is None:
        logger.debug(f"Skipping {entry.path}: no file content")
        return None
    return FetchedFile(entry=entry, content=content)
