"""Authenticated PyGithub session for the repository being analyzed."""

from __future__ import annotations

from github import Auth, Github
from github.Repository import Repository

USER_AGENT = "repopulse/0.1.0"
PER_PAGE = 100


class GitHubClient:
    """One token, one repository. The Repository object is fetched on first use.

        with GitHubClient(token, "owner/repo") as client:
            Fetcher(client).get_repository_metadata()
    """

    def __init__(self, token: str, repo: str) -> None:
        self._gh = Github(auth=Auth.Token(token), user_agent=USER_AGENT, per_page=PER_PAGE)
        self._repo_name = repo
        self._repo: Repository | None = None

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def repo_name(self) -> str:
        return self._repo_name

    @property
    def repo(self) -> Repository:
        if self._repo is None:
            self._repo = self._gh.get_repo(self._repo_name)
        return self._repo

    def close(self) -> None:
        self._gh.close()
