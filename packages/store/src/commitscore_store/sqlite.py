"""SQLiteStore — local file-based store for analysis history.

Schema:
  file_analyses    — one row per (commit_id, file_path). The UNIQUE constraint
                     plus INSERT OR IGNORE makes the first write win even when
                     two workers race on the same key.
  commit_analyses  — one row per commit, replaced when a commit is re-aggregated.

Scores and recommendations are stored as JSON columns to keep reads free of JOINs.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading

from commitscore_core.models import CommitAnalysis, FileAnalysis, Recommendation
from commitscore_store.base import BaseStore
from commitscore_store.records import (
    failure_from_dict,
    failure_to_dict,
    recommendation_from_dict,
    recommendation_to_dict,
    scores_from_dict,
    scores_to_dict,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS file_analyses (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    commit_id             TEXT NOT NULL,
    file_path             TEXT NOT NULL,
    language              TEXT,
    overall_score         REAL,
    scores_json           TEXT NOT NULL,
    recommendations_json  TEXT DEFAULT '[]',
    segment_count         INTEGER DEFAULT 1,
    analyzed_at           TEXT,
    UNIQUE (commit_id, file_path)
);
CREATE INDEX IF NOT EXISTS idx_file_analyses_commit ON file_analyses (commit_id);

CREATE TABLE IF NOT EXISTS commit_analyses (
    commit_id             TEXT PRIMARY KEY,
    repository            TEXT,
    author                TEXT,
    commit_date           TEXT,
    overall_score         REAL,
    justification         TEXT,
    recommendations_json  TEXT DEFAULT '[]',
    failures_json         TEXT DEFAULT '[]',
    analyzed_at           TEXT
);
CREATE INDEX IF NOT EXISTS idx_commit_analyses_repo ON commit_analyses (repository);
"""


class SQLiteStore(BaseStore):
    """Stores analyses in a local SQLite database file.

    The database file path defaults to `.commitscore.db` in the current working
    directory. Configure via .commitscore.yml: `store_path: /path/to/commitscore.db`.
    The connection is shared between worker threads and serialized by a lock.
    """

    def __init__(self, db_path: str = ".commitscore.db"):
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def find_by_commit_and_file(self, commit_id: str, file_path: str) -> FileAnalysis | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM file_analyses WHERE commit_id=? AND file_path=?",
                (commit_id, file_path),
            ).fetchone()
        return self._row_to_file_analysis(row) if row else None

    def save(self, analysis: FileAnalysis) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                """
                INSERT OR IGNORE INTO file_analyses
                  (commit_id, file_path, language, overall_score, scores_json,
                   recommendations_json, segment_count, analyzed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    analysis.commit_id,
                    analysis.file_path,
                    analysis.language,
                    analysis.overall_score,
                    json.dumps(scores_to_dict(analysis.scores)),
                    json.dumps([recommendation_to_dict(r) for r in analysis.recommendations]),
                    analysis.segment_count,
                    analysis.analyzed_at,
                ),
            )
            self._conn.commit()
        inserted = cursor.rowcount == 1
        if not inserted:
            logger.debug("Analysis for %s@%s already stored; keeping the first write", analysis.file_path, analysis.commit_id)
        return inserted

    def find_by_commit(self, commit_id: str) -> list[FileAnalysis]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM file_analyses WHERE commit_id=? ORDER BY file_path",
                (commit_id,),
            ).fetchall()
        return [self._row_to_file_analysis(r) for r in rows]

    def add_recommendation(self, commit_id: str, file_path: str, recommendation: Recommendation) -> bool:
        if not recommendation.referenced_file:
            recommendation.referenced_file = file_path
        with self._lock:
            row = self._conn.execute(
                "SELECT recommendations_json FROM file_analyses WHERE commit_id=? AND file_path=?",
                (commit_id, file_path),
            ).fetchone()
            if row is None:
                return False
            recommendations = json.loads(row["recommendations_json"] or "[]")
            recommendations.append(recommendation_to_dict(recommendation))
            self._conn.execute(
                "UPDATE file_analyses SET recommendations_json=? WHERE commit_id=? AND file_path=?",
                (json.dumps(recommendations), commit_id, file_path),
            )
            self._conn.commit()
        return True

    def save_commit_analysis(self, analysis: CommitAnalysis) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO commit_analyses
                  (commit_id, repository, author, commit_date, overall_score,
                   justification, recommendations_json, failures_json, analyzed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    analysis.commit_id,
                    analysis.repository,
                    analysis.author,
                    analysis.commit_date,
                    analysis.overall_score,
                    analysis.justification,
                    json.dumps([recommendation_to_dict(r) for r in analysis.recommendations]),
                    json.dumps([failure_to_dict(f) for f in analysis.failures]),
                    analysis.analyzed_at,
                ),
            )
            self._conn.commit()

    def get_commit_analysis(self, commit_id: str) -> CommitAnalysis | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM commit_analyses WHERE commit_id=?", (commit_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_commit_analysis(row, self.find_by_commit(commit_id))

    def list_commit_analyses(self, repository: str | None = None, limit: int | None = None) -> list[CommitAnalysis]:
        query = "SELECT * FROM commit_analyses"
        params: list = []
        if repository is not None:
            query += " WHERE repository=?"
            params.append(repository)
        query += " ORDER BY analyzed_at DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._lock:
            rows = self._conn.execute(query, params).fetchall()
        return [self._row_to_commit_analysis(r, self.find_by_commit(r["commit_id"])) for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @staticmethod
    def _row_to_file_analysis(row: sqlite3.Row) -> FileAnalysis:
        return FileAnalysis(
            commit_id=row["commit_id"],
            file_path=row["file_path"],
            language=row["language"] or "text",
            scores=scores_from_dict(json.loads(row["scores_json"])),
            recommendations=[recommendation_from_dict(r) for r in json.loads(row["recommendations_json"] or "[]")],
            analyzed_at=row["analyzed_at"] or "",
            segment_count=row["segment_count"] or 1,
        )

    @staticmethod
    def _row_to_commit_analysis(row: sqlite3.Row, file_analyses: list[FileAnalysis]) -> CommitAnalysis:
        return CommitAnalysis(
            commit_id=row["commit_id"],
            author=row["author"] or "",
            commit_date=row["commit_date"] or "",
            file_analyses=file_analyses,
            overall_score=row["overall_score"] or 0.0,
            justification=row["justification"] or "",
            recommendations=[recommendation_from_dict(r) for r in json.loads(row["recommendations_json"] or "[]")],
            failures=[failure_from_dict(f) for f in json.loads(row["failures_json"] or "[]")],
            repository=row["repository"] or "",
            analyzed_at=row["analyzed_at"] or "",
        )
