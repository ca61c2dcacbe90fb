"""Read-only access to commits, changed files and file contents on GitHub."""

from __future__ import annotations

import logging
from datetime import datetime

from github import Github, GithubException

from commitscore_core.errors import TransportFailure
from commitscore_core.models import ChangedFile, ChangeType, CommitInfo

logger = logging.getLogger(__name__)

_CHANGE_TYPES = {
    "added": ChangeType.ADDED,
    "modified": ChangeType.MODIFIED,
    "changed": ChangeType.MODIFIED,
    "removed": ChangeType.REMOVED,
    "renamed": ChangeType.RENAMED,
    "copied": ChangeType.COPIED,
}


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def to_change_type(status: str | None) -> ChangeType:
    return _CHANGE_TYPES.get((status or "").lower(), ChangeType.UNKNOWN)


class GitHubSource:
    """Wraps a PyGithub Repository.

    Every GithubException is re-raised as TransportFailure so the analyzer can
    treat GitHub outages the same way as model outages.
    """

    def __init__(self, repo):
        self.repo = repo
        self._commits: dict = {}

    @property
    def name(self) -> str:
        return self.repo.full_name

    def _commit(self, commit_id: str):
        if commit_id not in self._commits:
            try:
                self._commits[commit_id] = self.repo.get_commit(commit_id)
            except GithubException as e:
                raise TransportFailure(f"could not fetch commit {commit_id}: {e}") from e
        return self._commits[commit_id]

    def _to_info(self, commit) -> CommitInfo:
        git_commit = commit.commit
        author = git_commit.author
        date = author.date.isoformat() if author and author.date else ""
        return CommitInfo(
            id=commit.sha,
            author=(author.name if author else "") or (commit.author.login if commit.author else "unknown"),
            message=git_commit.message or "",
            date=date,
            repository=self.name,
        )

    def get_commit(self, commit_id: str) -> CommitInfo:
        return self._to_info(self._commit(commit_id))

    def get_changed_files(self, commit_id: str) -> list[ChangedFile]:
        commit = self._commit(commit_id)
        try:
            return [
                ChangedFile(
                    path=f.filename,
                    change_type=to_change_type(f.status),
                    additions=f.additions or 0,
                    deletions=f.deletions or 0,
                )
                for f in commit.files
            ]
        except GithubException as e:
            raise TransportFailure(f"could not list files of {commit_id}: {e}") from e

    def get_diff(self, commit_id: str, path: str) -> str:
        try:
            for f in self._commit(commit_id).files:
                if f.filename == path:
                    return f.patch or ""
        except GithubException as e:
            raise TransportFailure(f"could not fetch diff of {path}@{commit_id[:8]}: {e}") from e
        return ""

    def get_file_content(self, commit_id: str, path: str) -> str:
        try:
            contents = self.repo.get_contents(path, ref=commit_id)
        except GithubException as e:
            raise TransportFailure(f"could not fetch {path}@{commit_id[:8]}: {e}") from e
        if isinstance(contents, list):
            raise TransportFailure(f"{path} is a directory")
        return contents.decoded_content.decode("utf-8", errors="replace")

    def list_commits(self, since: datetime | None = None) -> list[CommitInfo]:
        try:
            commits = self.repo.get_commits(since=since) if since else self.repo.get_commits()
            return [self._to_info(c) for c in commits]
        except GithubException as e:
            raise TransportFailure(f"could not list commits of {self.name}: {e}") from e
