"""Locate the JSON payload inside a model's free-form reply.

Candidates are tried in priority order:
  1. a fenced block tagged ```json
  2. any fenced block
  3. the span from the first "{" to the last "}" of the whole reply

Control tokens that some models leak into their output are removed first, and
runs of whitespace are collapsed at the end. Strict JSON parsers reject raw
newlines inside strings, so the collapse often turns an unparseable reply into
a valid one.
"""

from __future__ import annotations

import re

# Reasoning models wrap their scratchpad in <think> tags; the scratchpad often
# contains braces of its own.
_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_UNCLOSED_THINK_RE = re.compile(r"^.*?</think>", re.DOTALL | re.IGNORECASE)

_SENTINEL_PATTERNS = [
    re.compile(r"<\|[^|<>]{1,40}\|>"),  # <|im_end|>, <|endoftext|>, <|eot_id|>
    re.compile(r"<｜[^｜<>]{1,40}｜>"),  # <｜end▁of▁sentence｜>
    re.compile(r"</?s>"),
    re.compile(r"\[/?INST\]"),
    re.compile(r"<</?SYS>>"),
    re.compile(r"<(?:end_of_turn|start_of_turn)>"),
]

_TAGGED_FENCE_RE = re.compile(r"```[ \t]*json[ \t]*\n?", re.IGNORECASE)
_ANY_FENCE_RE = re.compile(r"```[ \t]*[\w+-]*[ \t]*\n?")
_FENCE = "```"
_WHITESPACE_RE = re.compile(r"\s+")


def strip_sentinels(text: str) -> str:
    text = _THINK_BLOCK_RE.sub("", text)
    if "</think>" in text.lower():
        text = _UNCLOSED_THINK_RE.sub("", text, count=1)
    for pattern in _SENTINEL_PATTERNS:
        text = pattern.sub("", text)
    return text


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _brace_span(text: str) -> str:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return ""
    return text[start : end + 1]


def _closing_fence(text: str, start: int) -> int:
    """Index of the first fence at or after ``start`` that is not inside a JSON string, or -1."""
    in_string = False
    escaped = False
    i = start
    while i < len(text):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif text.startswith(_FENCE, i):
            return i
        i += 1
    return -1


def _fenced(text: str, opening: re.Pattern) -> str:
    """Payload between the first matching opening fence and its closing fence.

    Fences inside JSON string values do not close the block, so code examples
    embedded in the payload stay intact while fenced blocks after it are left
    out. The payload is narrowed to its brace span when it has one, which drops
    prose that slipped in before or after the object.
    """
    match = opening.search(text)
    if not match:
        return ""
    body_start = match.end()
    close = _closing_fence(text, body_start)
    body = text[body_start:close] if close != -1 else text[body_start:]
    return _brace_span(body) or body.strip()


def extract_payload(reply: str | None) -> str:
    """Return the best-guess JSON substring of a model reply, or "" when there is none."""
    if not reply:
        return ""
    text = strip_sentinels(reply)

    for candidate in (_fenced(text, _TAGGED_FENCE_RE), _fenced(text, _ANY_FENCE_RE), _brace_span(text)):
        candidate = collapse_whitespace(candidate)
        if candidate:
            return candidate
    return ""
