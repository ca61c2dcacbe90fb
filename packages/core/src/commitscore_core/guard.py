"""Idempotency guard: at most one persisted analysis per (commit_id, file_path).

Lookup order is the durable store first, then the ephemeral cache. Writes go
through to both. When two workers race on a key, both may compute a result,
but only the first stored write survives; the loser reads the winner back and
returns that instead of its own.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from commitscore_core.models import FileAnalysis

if TYPE_CHECKING:
    from commitscore_store.base import BaseStore
    from commitscore_store.cache import BaseCache

logger = logging.getLogger(__name__)


def cache_key(commit_id: str, file_path: str) -> str:
    return f"analysis:{commit_id}:{file_path}"


class IdempotencyGuard:
    def __init__(self, store: BaseStore, cache: BaseCache | None = None, ttl: float | None = None):
        self.store = store
        self.cache = cache
        self.ttl = ttl

    def lookup(self, commit_id: str, file_path: str) -> FileAnalysis | None:
        """Return an existing analysis for the key, or None if the pipeline must run."""
        existing = self.store.find_by_commit_and_file(commit_id, file_path)
        if existing is not None:
            logger.debug("Store hit for %s@%s", file_path, commit_id[:8])
            return existing
        if self.cache is None:
            return None
        cached = self.cache.get(cache_key(commit_id, file_path))
        if isinstance(cached, FileAnalysis):
            logger.debug("Cache hit for %s@%s", file_path, commit_id[:8])
            return cached
        return None

    def record(self, analysis: FileAnalysis) -> FileAnalysis:
        """Persist a freshly computed analysis and return the record that won.

        The returned value is `analysis` itself when this call stored it, or the
        previously stored record when another writer got there first.
        """
        winner = analysis
        if not self.store.save(analysis):
            existing = self.store.find_by_commit_and_file(analysis.commit_id, analysis.file_path)
            if existing is not None:
                logger.warning(
                    "Analysis for %s@%s was already stored by another worker; discarding this result",
                    analysis.file_path,
                    analysis.commit_id[:8],
                )
                winner = existing
        if self.cache is not None:
            self.cache.set(cache_key(winner.commit_id, winner.file_path), winner, self.ttl)
        return winner
