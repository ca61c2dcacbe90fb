"""Domain models shared by the pipeline, the stores and the CLI.

QualityScores, FileAnalysis and CommitAnalysis are the persisted records.
Segment, CommitInfo and ChangedFile are transient values that only live for the
duration of one analysis run.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Order matters: prompts, parsing, storage and reports all iterate in this order.
DIMENSIONS = (
    "naming_clarity",
    "function_size",
    "comment_usefulness",
    "method_cohesion",
    "dead_code_avoidance",
)

DIMENSION_LABELS = {
    "naming_clarity": "Naming clarity",
    "function_size": "Function size",
    "comment_usefulness": "Comment usefulness",
    "method_cohesion": "Method cohesion",
    "dead_code_avoidance": "Dead-code avoidance",
}

PRIORITIES = ("high", "medium", "low")

MIN_SCORE = 0
MAX_SCORE = 10


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (round() would use banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(value)))


def quality_level(score: float) -> str:
    if score >= 9.0:
        return "Excellent"
    if score >= 7.5:
        return "Very good"
    if score >= 6.0:
        return "Good"
    if score >= 5.0:
        return "Acceptable"
    if score >= 3.5:
        return "Needs improvement"
    return "Problematic"


class ChangeType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"
    COPIED = "copied"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CommitInfo:
    id: str
    author: str
    message: str
    date: str  # ISO-8601
    repository: str = ""

    @property
    def short_id(self) -> str:
        return self.id[:8]


@dataclass(frozen=True)
class ChangedFile:
    path: str
    change_type: ChangeType = ChangeType.MODIFIED
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class Segment:
    """A bounded slice of one file. Concatenating a file's segments rebuilds the file."""

    index: int
    content: str
    boundary_description: str
    start_line: int = 1
    end_line: int = 1


@dataclass(frozen=True)
class QualityScores:
    naming_clarity: int
    function_size: int
    comment_usefulness: int
    method_cohesion: int
    dead_code_avoidance: int
    justifications: dict[str, str] = field(default_factory=dict)
    justification: str = ""
    # False when the model output could not be parsed and defaults were used,
    # or when some of the combined inputs were themselves unreliable.
    reliable: bool = True

    def score(self, dimension: str) -> int:
        if dimension not in DIMENSIONS:
            raise KeyError(dimension)
        return getattr(self, dimension)

    def as_dict(self) -> dict[str, int]:
        return {d: self.score(d) for d in DIMENSIONS}

    @property
    def overall(self) -> float:
        return sum(self.score(d) for d in DIMENSIONS) / len(DIMENSIONS)

    @property
    def quality_level(self) -> str:
        return quality_level(self.overall)


@dataclass
class Recommendation:
    title: str
    description: str = ""
    example: str = ""
    priority: str = "medium"
    category: str = ""
    referenced_file: str = ""

    @property
    def priority_rank(self) -> int:
        return PRIORITIES.index(self.priority) if self.priority in PRIORITIES else 1


@dataclass
class FileAnalysis:
    """Analysis of one file in one commit. Unique per (commit_id, file_path).

    Only the recommendations list may change after creation; use
    add_recommendation rather than mutating other fields.
    """

    commit_id: str
    file_path: str
    language: str
    scores: QualityScores
    recommendations: list[Recommendation] = field(default_factory=list)
    analyzed_at: str = field(default_factory=utc_now)
    segment_count: int = 1

    @property
    def key(self) -> tuple[str, str]:
        return (self.commit_id, self.file_path)

    @property
    def overall_score(self) -> float:
        return self.scores.overall

    @property
    def reliable(self) -> bool:
        return self.scores.reliable

    def add_recommendation(self, recommendation: Recommendation) -> None:
        if not recommendation.referenced_file:
            recommendation.referenced_file = self.file_path
        self.recommendations.append(recommendation)


@dataclass(frozen=True)
class FileFailure:
    file_path: str
    kind: str  # "validation" | "transport" | "aggregation" | "error"
    reason: str


@dataclass
class CommitAnalysis:
    commit_id: str
    author: str
    commit_date: str
    file_analyses: list[FileAnalysis]
    overall_score: float
    justification: str
    recommendations: list[Recommendation] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)
    repository: str = ""
    analyzed_at: str = field(default_factory=utc_now)

    @property
    def reliable(self) -> bool:
        return all(f.reliable for f in self.file_analyses)
