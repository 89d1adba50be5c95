"""Manual verification: fetch metadata, tree and activity from a real repo.

Usage:
    REPOPULSE_GITHUB_TOKEN=ghp_... uv run python scripts/check_github_fetch.py owner/repo
"""

from __future__ import annotations

import sys

from repopulse.config import Config
from repopulse.github.batch import filter_analyzable
from repopulse.github.client import GitHubClient
from repopulse.github.fetcher import Fetcher


def main() -> None:
    config = Config.load()

    repo = sys.argv[1] if len(sys.argv) > 1 else config.repo
    token = config.github_token

    if not token:
        print("ERROR: Set REPOPULSE_GITHUB_TOKEN environment variable")
        sys.exit(1)

    if not repo:
        print("ERROR: Provide repo as argument or set REPOPULSE_REPO")
        sys.exit(1)

    print(f"Connecting to {repo}...")
    with GitHubClient(token=token, repo=repo) as client:
        fetcher = Fetcher(client)

        meta = fetcher.get_repository_metadata()
        print(f"  {meta.full_name} (branch {meta.default_branch}, {meta.open_issues} open issues)")
        print(f"  Last push: {meta.last_commit_at}")

        print("\n--- Tree ---")
        tree = fetcher.get_tree(meta.default_branch)
        files = filter_analyzable(tree)
        print(f"  {len(tree)} entries, {len(files)} analyzable files")
        for entry in files[:10]:
            print(f"    {entry.path} ({entry.size} bytes)")

        if files:
            content = fetcher.get_file_content(files[0].path, meta.default_branch) or ""
            print(f"\n  First file preview: {content[:100]!r}")

        print("\n--- Recent commits ---")
        commits = fetcher.get_recent_commits(limit=5)
        for commit in commits:
            print(f"  {commit.sha[:8]} {commit.date} {commit.message.splitlines()[0] if commit.message else ''}")

        issues = fetcher.get_open_issues()
        pulls = fetcher.get_open_pull_requests()
        print(f"\nSummary: {len(files)} files, {len(commits)} commits, {len(issues)} issues, {len(pulls)} PRs")


if __name__ == "__main__":
    main()
