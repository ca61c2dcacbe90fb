"""Combine per-segment scores into a file result, and per-file results into a commit result."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from commitscore_core.errors import AggregationFailure
from commitscore_core.models import (
    DIMENSIONS,
    CommitAnalysis,
    CommitInfo,
    FileAnalysis,
    FileFailure,
    QualityScores,
    Recommendation,
    round_half_up,
)

logger = logging.getLogger(__name__)

DEFAULT_JUSTIFICATION_BUDGET = 2000
MAX_COMMIT_RECOMMENDATIONS = 10
TRUNCATION_MARKER = " ... [truncated]"


def truncate(text: str, budget: int) -> str:
    if len(text) <= budget:
        return text
    keep = max(0, budget - len(TRUNCATION_MARKER))
    return text[:keep].rstrip() + TRUNCATION_MARKER


def join_labeled(parts: Iterable[tuple[str, str]], budget: int = DEFAULT_JUSTIFICATION_BUDGET) -> str:
    """Concatenate "[label] text" entries in order, cut to budget with a marker."""
    text = "\n".join(f"[{label}] {body.strip()}" for label, body in parts if body and body.strip())
    return truncate(text, budget)


def aggregate_scores(
    results: Sequence[QualityScores],
    labels: Sequence[str] | None = None,
    budget: int = DEFAULT_JUSTIFICATION_BUDGET,
    unscored: Sequence[str] = (),
) -> QualityScores:
    """Mean of each dimension, rounded half-up.

    Every justification is prefixed with the label of its source ("segment N"
    unless labels are given). `unscored` names inputs that were left out of the
    mean; the result is then unreliable and its justification says which.

    Raises AggregationFailure for an empty list so the caller can mark the file
    unanalyzed instead of scoring it.
    """
    if not results:
        raise AggregationFailure("no segment results to aggregate")
    if labels is None:
        labels = [f"segment {i + 1}" for i in range(len(results))]

    dims = {d: round_half_up(sum(r.score(d) for r in results) / len(results)) for d in DIMENSIONS}
    justifications = {
        d: join_labeled(((label, r.justifications.get(d, "")) for label, r in zip(labels, results)), budget)
        for d in DIMENSIONS
    }
    parts = [(label, r.justification) for label, r in zip(labels, results)]
    if unscored:
        parts.insert(0, ("unreliable", f"Not scored: {', '.join(unscored)}."))
    return QualityScores(
        **dims,
        justifications=justifications,
        justification=join_labeled(parts, budget),
        reliable=all(r.reliable for r in results) and not unscored,
    )


def dedupe_recommendations(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    seen: set[str] = set()
    unique = []
    for rec in recommendations:
        key = rec.title.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(rec)
    return unique


def aggregate_commit(
    commit: CommitInfo,
    file_analyses: Sequence[FileAnalysis],
    failures: Sequence[FileFailure] = (),
    budget: int = DEFAULT_JUSTIFICATION_BUDGET,
) -> CommitAnalysis:
    if not file_analyses:
        raise AggregationFailure(f"commit {commit.short_id} has no analyzed files")

    overall = sum(fa.overall_score for fa in file_analyses) / len(file_analyses)
    justification = join_labeled(((fa.file_path, fa.scores.justification) for fa in file_analyses), budget)

    recommendations = [rec for fa in file_analyses for rec in fa.recommendations]
    # sorted() is stable, so file order is kept within a priority.
    recommendations = sorted(recommendations, key=lambda r: r.priority_rank)[:MAX_COMMIT_RECOMMENDATIONS]

    logger.debug(
        "Aggregated commit %s over %d file(s): %.2f", commit.short_id, len(file_analyses), overall
    )
    return CommitAnalysis(
        commit_id=commit.id,
        author=commit.author,
        commit_date=commit.date,
        file_analyses=list(file_analyses),
        overall_score=overall,
        justification=justification,
        recommendations=recommendations,
        failures=list(failures),
        repository=commit.repository,
    )
