"""Prompt rendering for quality analysis and JSON repair.

Rendering is deterministic: the same context always yields the same string.
The output schema is generated from models.DIMENSIONS, which the response
parser in repair.py also reads, so renaming a field changes both sides at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from commitscore_core.models import DIMENSION_LABELS, DIMENSIONS, Segment
from commitscore_core.utils.languages import Language, detect_language

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROMPT_CHARS = 12_000

_DIFF_TRUNCATED = "\n... [diff truncated]"
_CODE_TRUNCATED = "\n... [code truncated]"

RUBRIC = {
    "naming_clarity": "Are variables, functions and types named so their purpose is obvious without reading the body?",
    "function_size": "Are functions short and focused on a single task?",
    "comment_usefulness": "Do comments explain intent and constraints instead of restating the code?",
    "method_cohesion": "Do the methods of a type work on the same data and serve one responsibility?",
    "dead_code_avoidance": "Is the code free of unused variables, unreachable branches and commented-out code?",
}


def render_output_schema() -> str:
    """The JSON shape the model must return. Shared contract with repair.parse_quality_payload."""
    lines = ["{"]
    for dim in DIMENSIONS:
        lines.append(f'  "{dim}": {{"score": <integer 0-10>, "justification": "<one or two sentences>"}},')
    lines.append('  "overall_score": <mean of the five scores above, as a decimal>,')
    lines.append('  "justification": "<short overall assessment of the code quality>",')
    lines.append('  "recommendations": [')
    lines.append("    {")
    lines.append('      "title": "<short title>",')
    lines.append('      "description": "<what to change and why>",')
    lines.append('      "example": "<small before/after code example, may be empty>",')
    lines.append('      "priority": "<high|medium|low>",')
    lines.append('      "category": "<one of: ' + ", ".join(DIMENSIONS) + '>"')
    lines.append("    }")
    lines.append("  ]")
    lines.append("}")
    return "\n".join(lines)


OUTPUT_SCHEMA = render_output_schema()


@dataclass(frozen=True)
class PromptContext:
    commit_id: str
    author: str
    message: str
    date: str
    file_path: str
    code: str
    diff: str = ""
    language: Language | None = None

    @property
    def fence(self) -> str:
        return (self.language or detect_language(self.file_path)).fence


def _hunk_new_range(header: str) -> tuple[int, int] | None:
    """Return the (first, last) new-file lines covered by an @@ hunk header."""
    try:
        new_file_range = header.split("+")[1].split(" ")[0]
        parts = new_file_range.split(",")
        first = int(parts[0])
        count = int(parts[1]) if len(parts) > 1 else 1
    except (IndexError, ValueError):
        return None
    return first, first + max(count, 1) - 1


def diff_for_range(patch: str, start_line: int, end_line: int) -> str:
    """Keep only the hunks of a unified diff that touch new-file lines start_line..end_line.

    Lines before the first hunk header (---/+++ file headers) are kept when at
    least one hunk matches.
    """
    if not patch:
        return ""
    preamble: list[str] = []
    hunks: list[list[str]] = []
    for line in patch.splitlines():
        if line.startswith("@@"):
            hunks.append([line])
        elif hunks:
            hunks[-1].append(line)
        else:
            preamble.append(line)

    if not hunks:
        return patch

    selected = []
    for hunk in hunks:
        span = _hunk_new_range(hunk[0])
        if span is None or (span[0] <= end_line and span[1] >= start_line):
            selected.append("\n".join(hunk))
    if not selected:
        return ""
    return "\n".join(preamble + selected)


class PromptComposer:
    """Builds the instruction strings sent to the model."""

    def __init__(self, max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS):
        self.max_prompt_chars = max_prompt_chars

    def compose(self, ctx: PromptContext, segment: Segment | None = None, total_segments: int = 1) -> str:
        """Render the analysis prompt for a whole file or for one of its segments."""
        fragment = segment is not None and total_segments > 1
        code = segment.content if segment is not None else ctx.code
        diff = ctx.diff
        if fragment:
            diff = diff_for_range(ctx.diff, segment.start_line, segment.end_line)

        def render(code_text: str, diff_text: str) -> str:
            return self._render(ctx, code_text, diff_text, segment if fragment else None, total_segments)

        prompt = render(code, diff)
        if len(prompt) <= self.max_prompt_chars:
            return prompt

        # Over budget: shrink the diff first, then the code itself.
        overflow = len(prompt) - self.max_prompt_chars
        if diff:
            keep = max(0, len(diff) - overflow - len(_DIFF_TRUNCATED))
            diff = diff[:keep] + _DIFF_TRUNCATED
            prompt = render(code, diff)
            overflow = len(prompt) - self.max_prompt_chars
        if overflow > 0:
            keep = max(0, len(code) - overflow - len(_CODE_TRUNCATED))
            code = code[:keep] + _CODE_TRUNCATED
            prompt = render(code, diff)
        logger.debug("Prompt for %s truncated to %d chars", ctx.file_path, len(prompt))
        return prompt

    def _render(
        self,
        ctx: PromptContext,
        code: str,
        diff: str,
        segment: Segment | None,
        total_segments: int,
    ) -> str:
        rubric = "\n".join(f"- {dim} ({DIMENSION_LABELS[dim]}): {RUBRIC[dim]}" for dim in DIMENSIONS)

        scope = ""
        if segment is not None:
            scope = (
                f"\nIMPORTANT: only a fragment of the file is shown: segment {segment.index + 1} of "
                f"{total_segments} ({segment.boundary_description}, lines {segment.start_line}-{segment.end_line}). "
                "Code outside this fragment exists but is not shown. Do not penalise the fragment for "
                "missing imports, unclosed braces, or references to code that is not visible.\n"
            )

        diff_section = diff if diff.strip() else "(no changes in this part of the file)"
        message = ctx.message.strip() or "(no commit message)"

        return f"""You are an expert reviewer of clean code. Evaluate the code below strictly from a clean-code perspective.

## Commit
- id: {ctx.commit_id}
- author: {ctx.author}
- date: {ctx.date}
- message: {message}

## File
`{ctx.file_path}`
{scope}
## Code
```{ctx.fence}
{code}
```

## Changes in this commit
```diff
{diff_section}
```

## Scoring rubric
Score each dimension with an integer from 0 (very poor) to 10 (excellent):
{rubric}

### Output Format:
Respond with **only** a valid JSON object with exactly these fields:

{OUTPUT_SCHEMA}

The overall_score must be the arithmetic mean of the five dimension scores.
Do not return any text, explanation or markdown outside the JSON object."""

    def compose_repair(self, payload: str, error: str) -> str:
        """Ask the model to turn a broken payload into valid JSON of the same shape."""
        return f"""The following text was supposed to be a JSON object but it could not be parsed.

Parser error: {error}

Broken payload:
{payload}

The corrected JSON must have this shape:

{OUTPUT_SCHEMA}

Return ONLY the corrected JSON object. Use ASCII characters only, double quotes for every key and
string, integers for every score, and no trailing commas. Do not add any explanation or prose."""
