"""Split oversized source files into bounded segments.

Most files fit in a single prompt and take the fast path. Larger files are cut
along declaration boundaries found with per-language regular expressions:

    file → header + one chunk per top-level type (or function)
         → oversized chunk → its members, packed back together up to the limit
         → oversized member → fixed-size windows

Languages without recognisable markers fall back to evenly sized line windows.
Boundary detection is heuristic by nature; nothing here parses a syntax tree.

Every split is a partition of the file's lines: joining the segment contents
in order gives back the original text byte for byte.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from commitscore_core.models import Segment
from commitscore_core.utils.languages import LANGUAGES, extension_of

logger = logging.getLogger(__name__)

DEFAULT_MAX_SEGMENT_CHARS = 2_500

# Lines directly above a declaration that belong to it: attributes, annotations,
# decorators and doc comments.
_LEADING_DECORATION = ("@", "[", "//", "/*", "*", "#")


@dataclass
class _Piece:
    lines: list[str]
    start: int  # 0-based index of the first line within the file
    label: str

    @property
    def text(self) -> str:
        return "".join(self.lines)

    @property
    def size(self) -> int:
        return sum(len(line) for line in self.lines)


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _slice(piece: _Piece, max_chars: int) -> list[_Piece]:
    """Cut a piece into consecutive windows of at most max_chars.

    Windows break at line ends; a single line longer than the limit is cut
    mid-line.
    """
    windows: list[_Piece] = []
    current: list[str] = []
    current_start = piece.start
    current_size = 0

    def flush():
        nonlocal current, current_size
        if current:
            windows.append(_Piece(current, current_start, piece.label))
        current = []
        current_size = 0

    for offset, line in enumerate(piece.lines):
        line_no = piece.start + offset
        if len(line) > max_chars:
            flush()
            for i in range(0, len(line), max_chars):
                windows.append(_Piece([line[i : i + max_chars]], line_no, piece.label))
            current_start = line_no + 1
            continue
        if current_size + len(line) > max_chars:
            flush()
            current_start = line_no
        current.append(line)
        current_size += len(line)
    flush()

    if len(windows) > 1:
        total = len(windows)
        for n, window in enumerate(windows, 1):
            window.label = f"{piece.label} (window {n}/{total})"
    return windows


def _pack(pieces: list[_Piece], max_chars: int) -> list[_Piece]:
    """Merge adjacent pieces while the merged size stays within max_chars."""
    packed: list[_Piece] = []
    group: list[_Piece] = []

    def flush():
        if not group:
            return
        if len(group) == 1:
            packed.append(group[0])
        else:
            label = f"{group[0].label} .. {group[-1].label}"
            lines = [line for p in group for line in p.lines]
            packed.append(_Piece(lines, group[0].start, label))
        group.clear()

    for piece in pieces:
        if piece.size > max_chars:
            flush()
            packed.append(piece)
            continue
        if group and sum(p.size for p in group) + piece.size > max_chars:
            flush()
        group.append(piece)
    flush()
    return packed


class SegmentationStrategy:
    """Splits the lines of one oversized file into pieces."""

    name = "base"

    def split(self, lines: list[str], max_chars: int) -> list[_Piece]:
        raise NotImplementedError


class LineWindowStrategy(SegmentationStrategy):
    """Evenly sized line windows: total size / limit windows, rounded up."""

    name = "by-line"

    def split(self, lines: list[str], max_chars: int) -> list[_Piece]:
        total_size = sum(len(line) for line in lines)
        window_count = max(1, math.ceil(total_size / max_chars))
        lines_per_window = max(1, math.ceil(len(lines) / window_count))

        pieces: list[_Piece] = []
        for start in range(0, len(lines), lines_per_window):
            chunk = lines[start : start + lines_per_window]
            piece = _Piece(chunk, start, f"lines {start + 1}-{start + len(chunk)}")
            # A single huge line (minified code) cannot be windowed by lines.
            if len(chunk) == 1 and piece.size > max_chars:
                pieces.extend(_slice(piece, max_chars))
            else:
                pieces.append(piece)
        return pieces


class BoundaryStrategy(SegmentationStrategy):
    """Split at declaration boundaries, one regular expression per nesting level.

    Level 0 finds the outermost declarations (types or functions). Any chunk
    still over the limit is split again with the level 1 pattern, ignoring the
    chunk's own first line. Only the least-indented matches at each level are
    used, so nested declarations stay with their parent.
    """

    name = "by-boundary"
    kind = "declaration"

    def __init__(self, outer: str, inner: str | None = None):
        self.levels = [re.compile(outer)]
        self.levels.append(re.compile(inner) if inner else self.levels[0])

    def split(self, lines: list[str], max_chars: int) -> list[_Piece]:
        pieces = self._split_level(_Piece(lines, 0, "file"), 0, max_chars)
        if pieces is None:
            logger.debug("No %s boundaries found; falling back to line windows", self.kind)
            return LineWindowStrategy().split(lines, max_chars)
        return pieces

    def _boundaries(self, piece: _Piece, level: int) -> list[tuple[int, str]]:
        pattern = self.levels[level]
        first = 1 if level > 0 else 0
        candidates = []
        for i in range(first, len(piece.lines)):
            match = pattern.match(piece.lines[i])
            if match:
                name = next((v for v in match.groupdict().values() if v), None) or piece.lines[i].strip()[:40]
                candidates.append((i, name))
        if not candidates:
            return []

        top = min(_indent(piece.lines[i]) for i, _ in candidates)
        boundaries = []
        floor = first
        for i, name in candidates:
            if _indent(piece.lines[i]) != top:
                continue
            start = i
            while start - 1 >= floor and piece.lines[start - 1].strip().startswith(_LEADING_DECORATION):
                start -= 1
            boundaries.append((start, name))
            floor = i + 1
        return boundaries

    def _label(self, parent: _Piece, level: int, name: str) -> str:
        if level == 0:
            return f"{self.kind} {name}"
        return f"{parent.label} > {name}"

    def _split_level(self, piece: _Piece, level: int, max_chars: int) -> list[_Piece] | None:
        boundaries = self._boundaries(piece, level)
        if not boundaries:
            return None

        chunks: list[_Piece] = []
        first_start = boundaries[0][0]
        if first_start > 0:
            head_label = "file header" if level == 0 else f"{piece.label} (declaration)"
            chunks.append(_Piece(piece.lines[:first_start], piece.start, head_label))
        for n, (start, name) in enumerate(boundaries):
            end = boundaries[n + 1][0] if n + 1 < len(boundaries) else len(piece.lines)
            chunks.append(_Piece(piece.lines[start:end], piece.start + start, self._label(piece, level, name)))

        # A blank header carries nothing worth a model call; keep it with the next chunk.
        if len(chunks) > 1 and not chunks[0].text.strip():
            head, nxt = chunks[0], chunks[1]
            chunks[1] = _Piece(head.lines + nxt.lines, head.start, nxt.label)
            chunks.pop(0)

        if level > 0:
            chunks = _pack(chunks, max_chars)

        result: list[_Piece] = []
        for chunk in chunks:
            if chunk.size <= max_chars:
                result.append(chunk)
                continue
            deeper = self._split_level(chunk, level + 1, max_chars) if level + 1 < len(self.levels) else None
            result.extend(deeper if deeper is not None else _slice(chunk, max_chars))
        return result


class TypeBoundaryStrategy(BoundaryStrategy):
    name = "by-type"
    kind = "type"


class FunctionBoundaryStrategy(BoundaryStrategy):
    name = "by-function"
    kind = "function"


_NAME = r"(?P<name>[A-Za-z_]\w*)"

_CSHARP = TypeBoundaryStrategy(
    r"^[ \t]*(?:(?:public|private|protected|internal|static|abstract|sealed|partial|readonly|unsafe|new|file)\s+)*"
    r"(?:class|struct|record(?:\s+(?:class|struct))?|interface|enum)\s+" + _NAME,
    r"^[ \t]*(?:(?:public|private|protected|internal|static|virtual|override|abstract|async|sealed|extern|unsafe|"
    r"new|partial|readonly)\s+)+[\w<>\[\],.?]+(?:\s*<[^>]*>)?\s+" + _NAME + r"\s*(?:<[^>]*>)?\s*\(",
)
_JAVA = TypeBoundaryStrategy(
    r"^[ \t]*(?:(?:public|private|protected|static|abstract|final|sealed|non-sealed|strictfp)\s+)*"
    r"(?:class|interface|enum|record|@interface)\s+" + _NAME,
    r"^[ \t]*(?:(?:public|private|protected|static|abstract|final|synchronized|native|default)\s+)+"
    r"(?:<[^>]*>\s+)?[\w<>\[\],.?]+\s+" + _NAME + r"\s*\(",
)
_KOTLIN = TypeBoundaryStrategy(
    r"^[ \t]*(?:(?:public|private|protected|internal|abstract|open|final|sealed|data|enum|inner|annotation|value)\s+)*"
    r"(?:class|interface|object)\s+" + _NAME,
    r"^[ \t]*(?:(?:public|private|protected|internal|override|open|abstract|suspend|inline|operator|infix)\s+)*"
    r"fun\s+(?:<[^>]*>\s*)?(?:\w+\.)?" + _NAME,
)
_SCALA = TypeBoundaryStrategy(
    r"^[ \t]*(?:(?:private|protected|final|sealed|abstract|implicit|case)\s+)*(?:class|trait|object)\s+" + _NAME,
    r"^[ \t]*(?:(?:private|protected|override|final|implicit)\s+)*def\s+" + _NAME,
)
_SWIFT = TypeBoundaryStrategy(
    r"^[ \t]*(?:(?:public|private|fileprivate|internal|open|final)\s+)*(?:class|struct|enum|protocol|extension|actor)\s+"
    + _NAME,
    r"^[ \t]*(?:(?:public|private|fileprivate|internal|open|override|static|class|mutating|final)\s+)*func\s+" + _NAME,
)
_CPP = TypeBoundaryStrategy(
    r"^[ \t]*(?:template\s*<[^>]*>\s*)?(?:class|struct)\s+(?:\w+\s+)?" + _NAME + r"[^;]*$",
    r"^[ \t]*(?:(?:virtual|static|inline|explicit|constexpr)\s+)*(?!return\b|if\b|for\b|while\b|switch\b)"
    r"[\w:<>*&~]+(?:\s+[\w:<>*&~]+)*\s+[*&]*(?P<name>~?[A-Za-z_][\w:]*)\s*\([^;]*$",
)
_TYPESCRIPT = TypeBoundaryStrategy(
    r"^[ \t]*(?:export\s+)?(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?(?:class|interface|enum)\s+" + _NAME,
    r"^[ \t]*(?:(?:public|private|protected|static|async|readonly|abstract|override|get|set)\s+)*"
    r"(?!if\b|for\b|while\b|switch\b|catch\b|return\b|function\b)" + _NAME + r"\s*(?:<[^>]*>)?\s*\(",
)
_PYTHON = TypeBoundaryStrategy(
    r"^(?:class|def|async\s+def)\s+" + _NAME,
    r"^[ \t]+(?:async\s+)?def\s+" + _NAME,
)

_GO = FunctionBoundaryStrategy(r"^func\s+(?:\([^)]*\)\s*)?" + _NAME)
_C = FunctionBoundaryStrategy(
    r"^(?!return\b|if\b|else\b|for\b|while\b|switch\b|typedef\b|#)[A-Za-z_][\w \t*]*?[\s*]" + _NAME + r"\s*\([^;]*$"
)
_JAVASCRIPT = FunctionBoundaryStrategy(
    r"^[ \t]*(?:export\s+)?(?:default\s+)?(?:async\s+)?(?:function\s*\*?\s*" + _NAME + r"|class\s+(?P<cls>\w+))"
    r"|^[ \t]*(?:export\s+)?(?:const|let|var)\s+(?P<var>\w+)\s*=\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*=>|\w+\s*=>)",
    r"^[ \t]*(?:(?:static|async|get|set)\s+)*(?!if\b|for\b|while\b|switch\b|catch\b|return\b)"
    + _NAME
    + r"\s*\([^)]*\)\s*\{",
)
_RUST = FunctionBoundaryStrategy(
    r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?(?:(?:async|unsafe|const|extern)\s+)*fn\s+" + _NAME
    + r"|^[ \t]*impl\b(?:<[^>]*>)?\s*(?P<impl>[\w:]+)"
)
_RUBY = FunctionBoundaryStrategy(r"^[ \t]*(?:def\s+(?:self\.)?(?P<name>[\w?!=]+)|class\s+(?P<cls>\w+)|module\s+\w+)")
_PHP = FunctionBoundaryStrategy(
    r"^[ \t]*(?:(?:public|private|protected|static|abstract|final)\s+)*(?:function\s+" + _NAME + r"|class\s+\w+)"
)

DEFAULT_STRATEGIES: dict[str, SegmentationStrategy] = {
    ".cs": _CSHARP,
    ".java": _JAVA,
    ".kt": _KOTLIN,
    ".kts": _KOTLIN,
    ".scala": _SCALA,
    ".swift": _SWIFT,
    ".cpp": _CPP,
    ".cc": _CPP,
    ".cxx": _CPP,
    ".hpp": _CPP,
    ".ts": _TYPESCRIPT,
    ".tsx": _TYPESCRIPT,
    ".py": _PYTHON,
    ".go": _GO,
    ".c": _C,
    ".h": _C,
    ".js": _JAVASCRIPT,
    ".jsx": _JAVASCRIPT,
    ".mjs": _JAVASCRIPT,
    ".rs": _RUST,
    ".rb": _RUBY,
    ".php": _PHP,
}


class SourceSegmenter:
    """Splits source text into ordered segments no larger than max_segment_chars.

    Strategies are looked up by file extension; register_strategy() adds or
    replaces one without touching the defaults shared by other instances.
    """

    def __init__(
        self,
        max_segment_chars: int = DEFAULT_MAX_SEGMENT_CHARS,
        strategies: dict[str, SegmentationStrategy] | None = None,
    ):
        if max_segment_chars <= 0:
            raise ValueError("max_segment_chars must be positive")
        self.max_segment_chars = max_segment_chars
        self._strategies = dict(DEFAULT_STRATEGIES if strategies is None else strategies)
        self._fallback = LineWindowStrategy()

    def register_strategy(self, extension: str, strategy: SegmentationStrategy) -> None:
        self._strategies[extension.lower()] = strategy

    def strategy_for(self, language_hint: str) -> SegmentationStrategy:
        """Resolve a strategy from a path, an extension ('.cs') or a language name ('csharp')."""
        hint = (language_hint or "").strip().lower()
        if not hint:
            return self._fallback
        ext = hint if hint.startswith(".") else extension_of(hint)
        if ext in self._strategies:
            return self._strategies[ext]
        for extension, language in LANGUAGES.items():
            if language.name == hint and extension in self._strategies:
                return self._strategies[extension]
        return self._fallback

    def split(self, source: str, language_hint: str = "", max_chars: int | None = None) -> list[Segment]:
        if not source:
            return []

        limit = max_chars or self.max_segment_chars
        lines = source.splitlines(keepends=True)
        if len(source) <= limit:
            return [Segment(0, source, "entire file", 1, max(1, len(lines)))]

        strategy = self.strategy_for(language_hint)
        pieces = strategy.split(lines, limit)
        logger.debug(
            "Split %d chars into %d segment(s) using %s strategy",
            len(source),
            len(pieces),
            strategy.name,
        )
        return [
            Segment(
                index=i,
                content=piece.text,
                boundary_description=piece.label,
                start_line=piece.start + 1,
                end_line=piece.start + max(1, len(piece.lines)),
            )
            for i, piece in enumerate(pieces)
        ]
