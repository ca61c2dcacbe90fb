"""MemoryStore — process-local store for tests, one-off runs and `store: memory`.

Records are deep-copied on the way in and out so callers cannot mutate stored
state behind the store's back.
"""

from __future__ import annotations

import copy
import threading

from commitscore_core.models import CommitAnalysis, FileAnalysis, Recommendation
from commitscore_store.base import BaseStore


class MemoryStore(BaseStore):
    """Nothing is persisted across processes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._files: dict[tuple[str, str], FileAnalysis] = {}
        self._commits: dict[str, CommitAnalysis] = {}

    def find_by_commit_and_file(self, commit_id: str, file_path: str) -> FileAnalysis | None:
        with self._lock:
            found = self._files.get((commit_id, file_path))
            return copy.deepcopy(found) if found else None

    def save(self, analysis: FileAnalysis) -> bool:
        with self._lock:
            if analysis.key in self._files:
                return False
            self._files[analysis.key] = copy.deepcopy(analysis)
            return True

    def find_by_commit(self, commit_id: str) -> list[FileAnalysis]:
        with self._lock:
            found = [fa for key, fa in self._files.items() if key[0] == commit_id]
            return copy.deepcopy(sorted(found, key=lambda fa: fa.file_path))

    def add_recommendation(self, commit_id: str, file_path: str, recommendation: Recommendation) -> bool:
        with self._lock:
            analysis = self._files.get((commit_id, file_path))
            if analysis is None:
                return False
            analysis.add_recommendation(copy.deepcopy(recommendation))
            return True

    def save_commit_analysis(self, analysis: CommitAnalysis) -> None:
        with self._lock:
            self._commits[analysis.commit_id] = copy.deepcopy(analysis)

    def get_commit_analysis(self, commit_id: str) -> CommitAnalysis | None:
        with self._lock:
            found = self._commits.get(commit_id)
            return copy.deepcopy(found) if found else None

    def list_commit_analyses(self, repository: str | None = None, limit: int | None = None) -> list[CommitAnalysis]:
        with self._lock:
            found = [c for c in self._commits.values() if repository is None or c.repository == repository]
            found.sort(key=lambda c: c.analyzed_at, reverse=True)
            if limit is not None:
                found = found[:limit]
            return copy.deepcopy(found)
