"""Failure taxonomy for the analysis pipeline.

Every failure that can happen while analysing one file maps to exactly one of
these classes, so the commit loop can report each file's outcome without
inspecting messages. Unparseable model output is not an exception at all: it
produces a degraded QualityScores value (reliable=False).
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for failures isolated to a single file or commit."""

    kind = "error"


class TransportFailure(AnalysisError):
    """The model endpoint, the VCS source or the store could not be reached."""

    kind = "transport"


class ValidationFailure(AnalysisError):
    """The file is not analysable: empty, binary, excluded, too large or unsupported."""

    kind = "validation"


class AggregationFailure(AnalysisError):
    """There were no usable segment or file results to combine."""

    kind = "aggregation"


class AnalysisCancelled(Exception):
    """The caller's cancellation signal was observed between segments or files.

    Not an AnalysisError: per-file isolation must let this propagate.
    """
