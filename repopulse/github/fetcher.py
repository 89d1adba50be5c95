"""Fetches repository metadata, the file tree, file contents and activity from GitHub.

Every PyGithub or network failure is translated into FetchError so callers only deal
with one exception type. A file that does not exist is not an error: its
content comes back as None.
"""

from __future__ import annotations

import logging

from github.GithubException import GithubException, UnknownObjectException
from requests.exceptions import RequestException

from repopulse.analysis.models import CommitData, IssueData, PRData, RepoMeta, TreeEntry
from repopulse.errors import FetchError
from repopulse.github.client import GitHubClient

logger = logging.getLogger(__name__)

# PyGithub lets connection errors and timeouts from requests through as-is.
API_ERRORS = (GithubException, RequestException)

TREE_KINDS = {"blob": "file", "tree": "tree"}


class Fetcher:
    """Source collaborator backed by the GitHub REST API."""

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    def get_repository_metadata(self) -> RepoMeta:
        try:
            repo = self._client.repo
            return RepoMeta(
                full_name=repo.full_name,
                default_branch=repo.default_branch or "main",
                open_issues=repo.open_issues_count or 0,
                last_commit_at=repo.pushed_at,
            )
        except API_ERRORS as e:
            raise FetchError(f"Failed to fetch repository {self._client.repo_name}: {e}") from e

    def get_tree(self, ref: str) -> list[TreeEntry]:
        """List every entry of the tree at ref, recursively."""
        try:
            tree = self._client.repo.get_git_tree(ref, recursive=True)
        except API_ERRORS as e:
            raise FetchError(f"Failed to fetch repository tree at {ref}: {e}") from e

        if tree.raw_data.get("truncated"):
            logger.warning(f"Tree listing for {self._client.repo_name}@{ref} was truncated by GitHub")

        return [
            TreeEntry(
                path=element.path,
                size=element.size or 0,
                kind=TREE_KINDS.get(element.type, element.type),
            )
            for element in tree.tree
        ]

    def get_file_content(self, path: str, ref: str) -> str | None:
        """Return the decoded text of a file, or None if it is not a file."""
        try:
            item = self._client.repo.get_contents(path, ref=ref)
        except UnknownObjectException:
            return None
        except API_ERRORS as e:
            raise FetchError(f"Failed to fetch {path}: {e}", path=path) from e

        if isinstance(item, list) or item.type != "file":
            return None
        content = item.decoded_content
        if content is None:
            return None
        return content.decode("utf-8", errors="replace")

    def get_recent_commits(self, limit: int = 10) -> list[CommitData]:
        """Most recent commits on the default branch, newest first."""
        results: list[CommitData] = []
        try:
            for commit in self._client.repo.get_commits():
                if len(results) >= limit:
                    break
                author = commit.commit.author
                results.append(
                    CommitData(
                        sha=commit.sha,
                        message=commit.commit.message or "",
                        author=author.name if author else "",
                        date=author.date if author else None,
                    )
                )
        except API_ERRORS as e:
            raise FetchError(f"Failed to fetch commits: {e}") from e
        return results

    def get_open_issues(self, limit: int = 100) -> list[IssueData]:
        """Open issues, excluding pull requests (GitHub lists both as issues)."""
        results: list[IssueData] = []
        try:
            for issue in self._client.repo.get_issues(state="open"):
                if len(results) >= limit:
                    break
                if issue.pull_request is not None:
                    continue
                results.append(
                    IssueData(number=issue.number, title=issue.title or "", url=issue.html_url)
                )
        except API_ERRORS as e:
            raise FetchError(f"Failed to fetch issues: {e}") from e
        return results

    def get_open_pull_requests(self, limit: int = 100) -> list[PRData]:
        results: list[PRData] = []
        try:
            for pr in self._client.repo.get_pulls(state="open"):
                if len(results) >= limit:
                    break
                results.append(PRData(number=pr.number, title=pr.title or "", url=pr.html_url))
        except API_ERRORS as e:
            raise FetchError(f"Failed to fetch pull requests: {e}") from e
        return results
