"""Abstract store interface.

The analyzer and the CLI depend on BaseStore, not on a concrete backend, so
backends are swappable without touching pipeline code.

Records are keyed by (commit_id, file_path) and are write-once: save() keeps
the first record for a key and reports whether this call was the one that
persisted it. The recommendation list is the only part that may grow later.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commitscore_core.models import CommitAnalysis, FileAnalysis, Recommendation


class BaseStore(ABC):
    """Durable persistence for file and commit analyses."""

    @abstractmethod
    def find_by_commit_and_file(self, commit_id: str, file_path: str) -> FileAnalysis | None:
        """Return the stored analysis for the key, or None."""

    @abstractmethod
    def save(self, analysis: FileAnalysis) -> bool:
        """Persist an analysis unless one already exists for its key.

        Returns True when this call stored the record, False when an earlier
        writer got there first. Never overwrites.
        """

    @abstractmethod
    def find_by_commit(self, commit_id: str) -> list[FileAnalysis]:
        """Return every file analysis of a commit, ordered by file path."""

    @abstractmethod
    def add_recommendation(self, commit_id: str, file_path: str, recommendation: Recommendation) -> bool:
        """Append a recommendation to an existing record. Returns False if the key is unknown."""

    @abstractmethod
    def save_commit_analysis(self, analysis: CommitAnalysis) -> None:
        """Insert or replace the commit-level record."""

    @abstractmethod
    def get_commit_analysis(self, commit_id: str) -> CommitAnalysis | None:
        """Return the commit-level record with its file analyses, or None."""

    @abstractmethod
    def list_commit_analyses(self, repository: str | None = None, limit: int | None = None) -> list[CommitAnalysis]:
        """Return commit-level records, newest analysis first.

        Returns an empty list if nothing is stored; never raises for an unknown repository.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
