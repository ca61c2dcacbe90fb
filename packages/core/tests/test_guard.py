"""Tests for IdempotencyGuard."""

from commitscore_core.guard import IdempotencyGuard, cache_key
from commitscore_core.models import DIMENSIONS, FileAnalysis, QualityScores
from commitscore_store.cache import MemoryCache
from commitscore_store.memory import MemoryStore


def make_analysis(score=7, path="src/app.py", commit_id="c1"):
    return FileAnalysis(
        commit_id=commit_id,
        file_path=path,
        language="python",
        scores=QualityScores(**{d: score for d in DIMENSIONS}),
    )


class TestLookup:
    def test_miss_returns_none(self):
        guard = IdempotencyGuard(MemoryStore(), MemoryCache())
        assert guard.lookup("c1", "src/app.py") is None

    def test_store_hit(self):
        store = MemoryStore()
        store.save(make_analysis(6))
        found = IdempotencyGuard(store).lookup("c1", "src/app.py")
        assert found.overall_score == 6.0

    def test_cache_hit_when_store_misses(self):
        cache = MemoryCache()
        cache.set(cache_key("c1", "src/app.py"), make_analysis(9))
        found = IdempotencyGuard(MemoryStore(), cache).lookup("c1", "src/app.py")
        assert found.overall_score == 9.0

    def test_foreign_cache_values_are_ignored(self):
        cache = MemoryCache()
        cache.set(cache_key("c1", "src/app.py"), {"not": "an analysis"})
        assert IdempotencyGuard(MemoryStore(), cache).lookup("c1", "src/app.py") is None


class TestRecord:
    def test_first_write_is_stored_and_cached(self):
        store, cache = MemoryStore(), MemoryCache()
        analysis = make_analysis(7)
        winner = IdempotencyGuard(store, cache).record(analysis)

        assert winner is analysis
        assert store.find_by_commit_and_file("c1", "src/app.py").overall_score == 7.0
        assert cache.get(cache_key("c1", "src/app.py")) is analysis

    def test_second_writer_gets_the_first_record(self):
        store, cache = MemoryStore(), MemoryCache()
        guard = IdempotencyGuard(store, cache)
        guard.record(make_analysis(3))

        winner = guard.record(make_analysis(9))

        assert winner.overall_score == 3.0
        assert store.find_by_commit_and_file("c1", "src/app.py").overall_score == 3.0
        assert cache.get(cache_key("c1", "src/app.py")).overall_score == 3.0

    def test_ttl_is_passed_to_the_cache(self, mocker):
        cache = mocker.MagicMock()
        analysis = make_analysis()
        IdempotencyGuard(MemoryStore(), cache, ttl=60).record(analysis)
        cache.set.assert_called_once_with(cache_key("c1", "src/app.py"), analysis, 60)

    def test_cache_key_format(self):
        assert cache_key("abc", "src/a.py") == "analysis:abc:src/a.py"
