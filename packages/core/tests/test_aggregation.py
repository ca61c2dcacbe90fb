"""Tests for segment and commit aggregation."""

import pytest

from commitscore_core.aggregation import (
    MAX_COMMIT_RECOMMENDATIONS,
    TRUNCATION_MARKER,
    aggregate_commit,
    aggregate_scores,
    dedupe_recommendations,
    join_labeled,
    truncate,
)
from commitscore_core.errors import AggregationFailure
from commitscore_core.models import DIMENSIONS, FileAnalysis, FileFailure, QualityScores, Recommendation


def uniform(score, justification="", reliable=True):
    return QualityScores(
        **{d: score for d in DIMENSIONS},
        justifications={d: f"{d} at {score}" for d in DIMENSIONS},
        justification=justification,
        reliable=reliable,
    )


def file_analysis(path, score, recommendations=None, commit_id="c1"):
    return FileAnalysis(
        commit_id=commit_id,
        file_path=path,
        language="python",
        scores=uniform(score, justification=f"{path} summary"),
        recommendations=list(recommendations or []),
    )


# ---------------------------------------------------------------------------
# aggregate_scores
# ---------------------------------------------------------------------------


class TestAggregateScores:
    def test_mean_of_two_segments(self):
        result = aggregate_scores([uniform(5), uniform(7)])
        assert result.as_dict() == {d: 6 for d in DIMENSIONS}
        assert result.overall == 6.0

    def test_half_is_rounded_up(self):
        result = aggregate_scores([uniform(6), uniform(7)])
        assert all(result.score(d) == 7 for d in DIMENSIONS)

    def test_empty_raises(self):
        with pytest.raises(AggregationFailure):
            aggregate_scores([])

    def test_single_result_is_labeled_by_default(self):
        result = aggregate_scores([uniform(8, justification="fine")])
        assert result.as_dict() == {d: 8 for d in DIMENSIONS}
        assert result.justification == "[segment 1] fine"
        assert result.justifications["function_size"] == "[segment 1] function_size at 8"
        assert result.reliable is True

    def test_unscored_inputs_make_the_result_unreliable(self):
        result = aggregate_scores(
            [uniform(8, "good part")], labels=["segment 1"], unscored=["segment 2", "segment 3"]
        )
        assert result.overall == 8.0
        assert result.reliable is False
        assert result.justification == "[unreliable] Not scored: segment 2, segment 3.\n[segment 1] good part"

    def test_justifications_are_labeled_in_order(self):
        result = aggregate_scores(
            [uniform(5, "first part"), uniform(7, "second part")], labels=["segment 1", "segment 2"]
        )
        assert result.justification == "[segment 1] first part\n[segment 2] second part"
        assert result.justifications["naming_clarity"].startswith("[segment 1] naming_clarity at 5")

    def test_justification_budget_is_applied(self):
        result = aggregate_scores([uniform(5, "x" * 500), uniform(7, "y" * 500)], budget=100)
        assert len(result.justification) == 100
        assert result.justification.endswith(TRUNCATION_MARKER)

    def test_any_unreliable_input_marks_result_unreliable(self):
        result = aggregate_scores([uniform(5), uniform(5, reliable=False)])
        assert result.reliable is False


class TestHelpers:
    def test_truncate_keeps_short_text(self):
        assert truncate("short", 100) == "short"

    def test_join_labeled_skips_blank_parts(self):
        assert join_labeled([("a", "one"), ("b", "  "), ("c", "three")]) == "[a] one\n[c] three"

    def test_dedupe_is_case_insensitive_and_keeps_first(self):
        recs = [Recommendation("Rename x", "first"), Recommendation("rename X ", "second"), Recommendation("Other")]
        unique = dedupe_recommendations(recs)
        assert [r.description for r in unique] == ["first", ""]


# ---------------------------------------------------------------------------
# aggregate_commit
# ---------------------------------------------------------------------------


class TestAggregateCommit:
    def test_overall_is_mean_of_file_overalls(self, commit):
        result = aggregate_commit(commit, [file_analysis("a.py", 4), file_analysis("b.py", 8)])
        assert result.overall_score == 6.0
        assert result.commit_id == commit.id
        assert result.author == "Dana"
        assert result.repository == "owner/repo"
        assert result.justification == "[a.py] a.py summary\n[b.py] b.py summary"

    def test_empty_raises(self, commit):
        with pytest.raises(AggregationFailure):
            aggregate_commit(commit, [])

    def test_recommendations_sorted_by_priority_and_capped(self, commit):
        low = [Recommendation(f"low {i}", priority="low") for i in range(8)]
        high = [Recommendation(f"high {i}", priority="high") for i in range(4)]
        result = aggregate_commit(
            commit, [file_analysis("a.py", 5, low), file_analysis("b.py", 5, high)]
        )
        titles = [r.title for r in result.recommendations]
        assert len(titles) == MAX_COMMIT_RECOMMENDATIONS
        assert titles[:4] == ["high 0", "high 1", "high 2", "high 3"]
        assert titles[4:] == [f"low {i}" for i in range(6)]

    def test_failures_are_carried(self, commit):
        failure = FileFailure("logo.png", "validation", "Unsupported file type: logo.png")
        result = aggregate_commit(commit, [file_analysis("a.py", 5)], [failure])
        assert result.failures == [failure]

    def test_unreliable_file_makes_commit_unreliable(self, commit):
        degraded = file_analysis("a.py", 5)
        degraded.scores = uniform(5, reliable=False)
        result = aggregate_commit(commit, [degraded, file_analysis("b.py", 7)])
        assert result.reliable is False
