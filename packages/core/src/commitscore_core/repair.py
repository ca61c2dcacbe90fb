"""Turn an extracted payload into a QualityScores value, repairing it if needed.

The repair loop is a small state machine:

    EXTRACTED ──parse ok──────────────────────────────▶ PARSED
        │
        └─parse fails─▶ PARSE_FAILED ─▶ REPAIRING(n) ──▶ REPAIRED
                                           │   ▲
                                           └───┘ n < max_attempts
                                           │
                                           └─ n == max_attempts ─▶ EXHAUSTED

Each REPAIRING attempt first applies purely syntactic normalization locally
(no model call). Only when that still fails is the model asked to fix its own
output, and the reply goes back through the extractor. EXHAUSTED is not an
error: the caller receives degraded_scores(), explicitly marked unreliable.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from commitscore_core.extraction import extract_payload
from commitscore_core.models import (
    DIMENSIONS,
    PRIORITIES,
    QualityScores,
    Recommendation,
    clamp_score,
)
from commitscore_core.prompts import PromptComposer

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_SCORE = 5
UNRELIABLE_MARKER = "[unreliable] The model response could not be parsed; default mid-range scores were used."

_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_SINGLE_QUOTED_KEY_RE = re.compile(r"'([^'\"\n]*)'(\s*:)")
_SINGLE_QUOTED_VALUE_RE = re.compile(r"([:\[,]\s*)'((?:[^'\\\n]|\\.)*)'(?=\s*[,}\]])")
_NUMERIC_STRING_RE = re.compile(r'(:\s*)"(-?\d+(?:\.\d+)?)"')
_LINE_COMMENT_RE = re.compile(r'^\s*//.*$|(?<=[,{\[])\s*//[^"\n]*$', re.MULTILINE)
_PY_LITERALS = {"True": "true", "False": "false", "None": "null"}
_PY_LITERAL_RE = re.compile(r"(?<=[:\[,\s])(True|False|None)(?=\s*[,}\]])")

# Accepted spellings of each dimension, compared after _normalize_key.
_ALIASES = {
    "naming_clarity": ("namingclarity", "naming", "variablenaming", "namingconventions", "nomenclature"),
    "function_size": ("functionsize", "functionlength", "methodsize", "functions"),
    "comment_usefulness": ("commentusefulness", "comments", "commentquality", "usefulcomments"),
    "method_cohesion": ("methodcohesion", "cohesion", "classcohesion"),
    "dead_code_avoidance": ("deadcodeavoidance", "deadcode", "nodeadcode", "unusedcode"),
}
_SCORE_KEYS = ("score", "value", "rating", "grade")
_JUSTIFICATION_KEYS = ("justification", "comment", "reason", "explanation")


class RepairState(str, Enum):
    EXTRACTED = "extracted"
    PARSED = "parsed"
    PARSE_FAILED = "parse_failed"
    REPAIRING = "repairing"
    REPAIRED = "repaired"
    EXHAUSTED = "exhausted"


@dataclass
class SegmentResult:
    scores: QualityScores
    recommendations: list[Recommendation] = field(default_factory=list)


@dataclass
class RepairOutcome:
    state: RepairState
    result: SegmentResult
    attempts: int = 0
    model_calls: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def reliable(self) -> bool:
        return self.state != RepairState.EXHAUSTED


def normalize_payload(payload: str) -> str:
    """Fix the syntax errors models make most often, without changing meaning.

    - trailing commas before } and ]
    - single-quoted keys and string values
    - numbers sent as strings ("7" becomes 7)
    - // line comments and Python literals (True/False/None)
    """
    text = payload.strip()
    text = _LINE_COMMENT_RE.sub("", text)
    text = _SINGLE_QUOTED_KEY_RE.sub(lambda m: '"' + m.group(1) + '"' + m.group(2), text)
    text = _SINGLE_QUOTED_VALUE_RE.sub(
        lambda m: m.group(1) + '"' + m.group(2).replace("\\'", "'").replace('"', '\\"') + '"', text
    )
    text = _PY_LITERAL_RE.sub(lambda m: _PY_LITERALS[m.group(1)], text)
    text = _TRAILING_COMMA_RE.sub(r"\1", text)
    text = _NUMERIC_STRING_RE.sub(r"\1\2", text)
    return text


def _normalize_key(key: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(key).lower())


def _find(mapping: dict, *names: str) -> Any:
    wanted = {_normalize_key(n) for n in names}
    for key, value in mapping.items():
        if _normalize_key(key) in wanted:
            return value
    return None


def _as_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"field {field_name!r} must be a number, got a boolean")
    number = None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        match = re.search(r"-?\d+(?:\.\d+)?", value)
        if match:
            number = match.group(0)
    if number is None:
        raise ValueError(f"field {field_name!r} must be a number, got {value!r}")
    try:
        number = float(number)
    except OverflowError:
        number = math.inf
    # json.loads accepts Infinity, NaN and 1e999.
    if not math.isfinite(number):
        raise ValueError(f"field {field_name!r} must be a finite number, got {value!r}")
    return number


def _dimension(data: dict, dim: str) -> tuple[int, str]:
    raw = _find(data, dim, *_ALIASES[dim])
    if raw is None:
        # Some models nest the dimensions one level down, e.g. {"analysis": {...}}.
        for value in data.values():
            if isinstance(value, dict):
                raw = _find(value, dim, *_ALIASES[dim])
                if raw is not None:
                    break
    if raw is None:
        raise ValueError(f"missing field {dim!r}")
    if isinstance(raw, dict):
        score = _find(raw, *_SCORE_KEYS)
        if score is None:
            raise ValueError(f"field {dim!r} has no score")
        justification = _find(raw, *_JUSTIFICATION_KEYS) or ""
        return clamp_score(_as_number(score, dim)), str(justification).strip()
    return clamp_score(_as_number(raw, dim)), ""


def _recommendations(data: dict) -> list[Recommendation]:
    raw = _find(data, "recommendations", "suggestions", "refactoring")
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    result = []
    for item in raw:
        if isinstance(item, str) and item.strip():
            result.append(Recommendation(title=item.strip()[:120], description=item.strip()))
            continue
        if not isinstance(item, dict):
            continue
        title = str(_find(item, "title", "name") or "").strip()
        description = str(_find(item, "description", "details") or "").strip()
        if not title and not description:
            continue
        priority = str(_find(item, "priority") or "medium").strip().lower()
        result.append(
            Recommendation(
                title=title or description[:120],
                description=description,
                example=str(_find(item, "example", "code") or "").strip(),
                priority=priority if priority in PRIORITIES else "medium",
                category=str(_find(item, "category", "type") or "").strip(),
            )
        )
    return result


def parse_quality_payload(payload: str) -> SegmentResult:
    """Strictly parse a payload in the OUTPUT_SCHEMA shape.

    Raises ValueError (json.JSONDecodeError is a subclass) with a message meant
    to be shown back to the model in a repair prompt.
    """
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")

    scores: dict[str, int] = {}
    justifications: dict[str, str] = {}
    for dim in DIMENSIONS:
        scores[dim], justifications[dim] = _dimension(data, dim)

    summary = _find(data, "justification", "summary", "comment", "overall_comment")
    return SegmentResult(
        scores=QualityScores(
            **scores,
            justifications=justifications,
            justification=str(summary or "").strip(),
        ),
        recommendations=_recommendations(data),
    )


def degraded_scores(reason: str = "") -> QualityScores:
    justification = UNRELIABLE_MARKER + (f" Last error: {reason}" if reason else "")
    return QualityScores(
        **{dim: DEFAULT_SCORE for dim in DIMENSIONS},
        justifications={dim: "unreliable: could not parse" for dim in DIMENSIONS},
        justification=justification,
        reliable=False,
    )


class ResponseRepairer:
    """Bounded repair loop around parse_quality_payload.

    model_call receives a repair prompt and returns the model's raw reply, or
    None when the call failed. It is only invoked after local normalization has
    failed.
    """

    def __init__(
        self,
        model_call: Callable[[str], str | None] | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        composer: PromptComposer | None = None,
        parse: Callable[[str], SegmentResult] = parse_quality_payload,
    ):
        self.model_call = model_call
        self.max_attempts = max_attempts
        self.composer = composer or PromptComposer()
        self.parse = parse

    def _try_parse(self, payload: str) -> tuple[SegmentResult | None, str]:
        if not payload:
            return None, "empty payload: no JSON object found in the response"
        try:
            return self.parse(payload), ""
        except ValueError as e:
            return None, str(e)

    def repair(self, payload: str) -> RepairOutcome:
        state = RepairState.EXTRACTED
        result, error = self._try_parse(payload)
        if result is not None:
            return RepairOutcome(RepairState.PARSED, result)

        state = RepairState.PARSE_FAILED
        errors = [error]
        current = payload
        model_calls = 0
        attempt = 0
        logger.debug("Payload failed to parse (%s); entering repair loop", error)

        while attempt < self.max_attempts:
            attempt += 1
            state = RepairState.REPAIRING

            normalized = normalize_payload(current) if current else current
            result, error = self._try_parse(normalized)
            if result is not None:
                logger.debug("Payload repaired by local normalization on attempt %d", attempt)
                return RepairOutcome(RepairState.REPAIRED, result, attempt, model_calls, errors)
            errors.append(error)

            if self.model_call is None:
                continue
            model_calls += 1
            reply = self.model_call(self.composer.compose_repair(normalized or "(empty)", error))
            candidate = extract_payload(reply)
            if not candidate:
                errors.append("repair reply contained no JSON object")
                continue
            current = candidate
            result, error = self._try_parse(current)
            if result is not None:
                logger.info("Payload repaired by the model on attempt %d", attempt)
                return RepairOutcome(RepairState.REPAIRED, result, attempt, model_calls, errors)
            errors.append(error)

        logger.warning(
            "Could not repair model payload after %d attempt(s) (state %s); using degraded scores",
            attempt,
            state.value,
        )
        return RepairOutcome(
            RepairState.EXHAUSTED,
            SegmentResult(scores=degraded_scores(errors[-1] if errors else "")),
            attempt,
            model_calls,
            errors,
        )
