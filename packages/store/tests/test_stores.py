"""Tests for commitscore-store implementations."""

from __future__ import annotations

import threading

import pytest

from commitscore_core.models import (
    DIMENSIONS,
    CommitAnalysis,
    FileAnalysis,
    FileFailure,
    QualityScores,
    Recommendation,
)
from commitscore_store.memory import MemoryStore
from commitscore_store.records import commit_analysis_to_dict
from commitscore_store.sqlite import SQLiteStore

COMMIT = "f" * 40


def _make_analysis(path="src/app.py", score=7, commit_id=COMMIT, reliable=True):
    return FileAnalysis(
        commit_id=commit_id,
        file_path=path,
        language="python",
        scores=QualityScores(
            **{d: score for d in DIMENSIONS},
            justifications={"naming_clarity": "clear names"},
            justification="Readable.",
            reliable=reliable,
        ),
        recommendations=[Recommendation("Extract helper", "Split the loop", priority="high", referenced_file=path)],
        segment_count=2,
    )


def _make_commit(commit_id=COMMIT, repository="owner/repo", analyzed_at="2024-05-01T10:00:00+00:00", files=None):
    files = files if files is not None else [_make_analysis(commit_id=commit_id)]
    return CommitAnalysis(
        commit_id=commit_id,
        author="Dana",
        commit_date="2024-05-01T09:00:00+00:00",
        file_analyses=files,
        overall_score=7.0,
        justification="[src/app.py] Readable.",
        recommendations=[Recommendation("Extract helper", priority="high", referenced_file="src/app.py")],
        failures=[FileFailure("logo.png", "validation", "Unsupported file type: logo.png")],
        repository=repository,
        analyzed_at=analyzed_at,
    )


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = MemoryStore()
    else:
        s = SQLiteStore(db_path=str(tmp_path / "test.db"))
    yield s
    s.close()


# ---------------------------------------------------------------------------
# File analyses: shared contract
# ---------------------------------------------------------------------------


class TestFileAnalyses:
    def test_save_and_find(self, store):
        assert store.save(_make_analysis()) is True

        found = store.find_by_commit_and_file(COMMIT, "src/app.py")
        assert found.overall_score == 7.0
        assert found.language == "python"
        assert found.segment_count == 2
        assert found.scores.justifications == {"naming_clarity": "clear names"}
        assert found.scores.reliable is True
        assert found.recommendations[0].title == "Extract helper"
        assert found.recommendations[0].priority == "high"

    def test_missing_returns_none(self, store):
        assert store.find_by_commit_and_file(COMMIT, "nope.py") is None

    def test_first_write_wins(self, store):
        assert store.save(_make_analysis(score=3)) is True
        assert store.save(_make_analysis(score=9)) is False
        assert store.find_by_commit_and_file(COMMIT, "src/app.py").overall_score == 3.0

    def test_same_path_in_another_commit_is_separate(self, store):
        store.save(_make_analysis())
        assert store.save(_make_analysis(commit_id="e" * 40)) is True

    def test_find_by_commit_sorted_by_path(self, store):
        store.save(_make_analysis("src/b.py"))
        store.save(_make_analysis("src/a.py"))
        store.save(_make_analysis("src/c.py", commit_id="e" * 40))
        assert [fa.file_path for fa in store.find_by_commit(COMMIT)] == ["src/a.py", "src/b.py"]

    def test_unreliable_flag_round_trips(self, store):
        store.save(_make_analysis(reliable=False))
        assert store.find_by_commit_and_file(COMMIT, "src/app.py").reliable is False

    def test_add_recommendation(self, store):
        store.save(_make_analysis())
        assert store.add_recommendation(COMMIT, "src/app.py", Recommendation("Remove dead branch", priority="low"))

        recs = store.find_by_commit_and_file(COMMIT, "src/app.py").recommendations
        assert [r.title for r in recs] == ["Extract helper", "Remove dead branch"]
        assert recs[1].referenced_file == "src/app.py"

    def test_add_recommendation_to_missing_analysis(self, store):
        assert store.add_recommendation(COMMIT, "nope.py", Recommendation("x")) is False

    def test_concurrent_saves_keep_exactly_one(self, store):
        results = []

        def worker(score):
            results.append(store.save(_make_analysis(score=score)))

        threads = [threading.Thread(target=worker, args=(s,)) for s in range(1, 9)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert len(store.find_by_commit(COMMIT)) == 1


# ---------------------------------------------------------------------------
# Commit analyses: shared contract
# ---------------------------------------------------------------------------


class TestCommitAnalyses:
    def test_save_and_get(self, store):
        commit = _make_commit()
        for fa in commit.file_analyses:
            store.save(fa)
        store.save_commit_analysis(commit)

        found = store.get_commit_analysis(COMMIT)
        assert found.overall_score == 7.0
        assert found.author == "Dana"
        assert found.repository == "owner/repo"
        assert [fa.file_path for fa in found.file_analyses] == ["src/app.py"]
        assert found.failures == [FileFailure("logo.png", "validation", "Unsupported file type: logo.png")]
        assert found.recommendations[0].title == "Extract helper"

    def test_get_missing_returns_none(self, store):
        assert store.get_commit_analysis(COMMIT) is None

    def test_save_replaces_previous_commit_result(self, store):
        store.save_commit_analysis(_make_commit(files=[]))
        updated = _make_commit(files=[])
        updated.overall_score = 4.5
        store.save_commit_analysis(updated)

        assert store.get_commit_analysis(COMMIT).overall_score == 4.5
        assert len(store.list_commit_analyses()) == 1

    def test_list_newest_first_with_limit(self, store):
        store.save_commit_analysis(_make_commit("1" * 40, analyzed_at="2024-05-01T10:00:00+00:00", files=[]))
        store.save_commit_analysis(_make_commit("2" * 40, analyzed_at="2024-05-03T10:00:00+00:00", files=[]))
        store.save_commit_analysis(_make_commit("3" * 40, analyzed_at="2024-05-02T10:00:00+00:00", files=[]))

        assert [c.commit_id[0] for c in store.list_commit_analyses()] == ["2", "3", "1"]
        assert [c.commit_id[0] for c in store.list_commit_analyses(limit=2)] == ["2", "3"]

    def test_list_filters_by_repository(self, store):
        store.save_commit_analysis(_make_commit("1" * 40, repository="owner/repo", files=[]))
        store.save_commit_analysis(_make_commit("2" * 40, repository="other/repo", files=[]))

        results = store.list_commit_analyses(repository="other/repo")
        assert [c.repository for c in results] == ["other/repo"]


# ---------------------------------------------------------------------------
# Store-specific
# ---------------------------------------------------------------------------


class TestSQLiteStore:
    def test_data_survives_reopen(self, tmp_path):
        path = str(tmp_path / "test.db")
        store = SQLiteStore(db_path=path)
        store.save(_make_analysis())
        store.close()

        reopened = SQLiteStore(db_path=path)
        assert reopened.find_by_commit_and_file(COMMIT, "src/app.py").overall_score == 7.0
        assert reopened.save(_make_analysis(score=1)) is False
        reopened.close()


class TestMemoryStore:
    def test_returned_records_are_copies(self):
        store = MemoryStore()
        store.save(_make_analysis())

        found = store.find_by_commit_and_file(COMMIT, "src/app.py")
        found.recommendations.clear()

        assert len(store.find_by_commit_and_file(COMMIT, "src/app.py").recommendations) == 1


def test_commit_analysis_to_dict():
    data = commit_analysis_to_dict(_make_commit())
    assert data["commit_id"] == COMMIT
    assert data["overall_score"] == 7.0
    assert data["files"][0]["file_path"] == "src/app.py"
    assert data["failures"][0]["kind"] == "validation"
