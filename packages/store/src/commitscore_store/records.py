"""Conversion between analysis models and plain JSON-compatible dicts.

Shared by the SQLite backend (JSON columns) and the CLI's --json output.
"""

from __future__ import annotations

from typing import Any

from commitscore_core.models import (
    DIMENSIONS,
    CommitAnalysis,
    FileAnalysis,
    FileFailure,
    QualityScores,
    Recommendation,
)


def recommendation_to_dict(rec: Recommendation) -> dict[str, Any]:
    return {
        "title": rec.title,
        "description": rec.description,
        "example": rec.example,
        "priority": rec.priority,
        "category": rec.category,
        "referenced_file": rec.referenced_file,
    }


def recommendation_from_dict(data: dict[str, Any]) -> Recommendation:
    return Recommendation(
        title=data.get("title", ""),
        description=data.get("description", ""),
        example=data.get("example", ""),
        priority=data.get("priority", "medium"),
        category=data.get("category", ""),
        referenced_file=data.get("referenced_file", ""),
    )


def scores_to_dict(scores: QualityScores) -> dict[str, Any]:
    data: dict[str, Any] = scores.as_dict()
    data["justifications"] = dict(scores.justifications)
    data["justification"] = scores.justification
    data["reliable"] = scores.reliable
    return data


def scores_from_dict(data: dict[str, Any]) -> QualityScores:
    return QualityScores(
        **{d: int(data.get(d, 0)) for d in DIMENSIONS},
        justifications=dict(data.get("justifications") or {}),
        justification=data.get("justification", ""),
        reliable=bool(data.get("reliable", True)),
    )


def file_analysis_to_dict(analysis: FileAnalysis) -> dict[str, Any]:
    return {
        "commit_id": analysis.commit_id,
        "file_path": analysis.file_path,
        "language": analysis.language,
        "scores": scores_to_dict(analysis.scores),
        "overall_score": analysis.overall_score,
        "recommendations": [recommendation_to_dict(r) for r in analysis.recommendations],
        "analyzed_at": analysis.analyzed_at,
        "segment_count": analysis.segment_count,
    }


def file_analysis_from_dict(data: dict[str, Any]) -> FileAnalysis:
    return FileAnalysis(
        commit_id=data["commit_id"],
        file_path=data["file_path"],
        language=data.get("language", "text"),
        scores=scores_from_dict(data.get("scores") or {}),
        recommendations=[recommendation_from_dict(r) for r in data.get("recommendations") or []],
        analyzed_at=data.get("analyzed_at", ""),
        segment_count=int(data.get("segment_count", 1)),
    )


def failure_to_dict(failure: FileFailure) -> dict[str, str]:
    return {"file_path": failure.file_path, "kind": failure.kind, "reason": failure.reason}


def failure_from_dict(data: dict[str, Any]) -> FileFailure:
    return FileFailure(file_path=data.get("file_path", ""), kind=data.get("kind", "error"), reason=data.get("reason", ""))


def commit_analysis_to_dict(analysis: CommitAnalysis) -> dict[str, Any]:
    return {
        "commit_id": analysis.commit_id,
        "repository": analysis.repository,
        "author": analysis.author,
        "commit_date": analysis.commit_date,
        "overall_score": analysis.overall_score,
        "justification": analysis.justification,
        "reliable": analysis.reliable,
        "analyzed_at": analysis.analyzed_at,
        "files": [file_analysis_to_dict(fa) for fa in analysis.file_analyses],
        "recommendations": [recommendation_to_dict(r) for r in analysis.recommendations],
        "failures": [failure_to_dict(f) for f in analysis.failures],
    }
