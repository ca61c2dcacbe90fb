"""File eligibility checks applied before any model call.

Path checks run first (no content fetch needed), content checks second. Both
raise ValidationFailure with a human-readable reason; the commit loop records
the reason and moves on to the next file.
"""

from __future__ import annotations

import fnmatch

from commitscore_core.errors import ValidationFailure
from commitscore_core.models import ChangedFile, ChangeType

NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".avi",
    ".mov",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
    ".exe",
    ".dll",
    ".bin",
    ".obj",
    ".pdb",
    ".so",
    ".class",
    ".jar",
    ".pyc",
    ".lock",  # e.g. package-lock.json, Pipfile.lock
}

# Generated sources and build output: the author did not write these by hand.
_GENERATED_PATTERNS = (
    "*.g.cs",
    "*.designer.cs",
    "*.generated.*",
    "*AssemblyInfo.cs",
    "*.min.js",
    "*.min.css",
    "*_pb2.py",
)
_BUILD_DIRECTORIES = ("bin", "obj", "node_modules", "dist", "build", "__pycache__")

# Above this share of control characters the text is almost certainly binary.
_BINARY_CONTROL_RATIO = 0.05


def is_code_file(file_name: str) -> bool:
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def is_generated(file_name: str) -> bool:
    normalized = file_name.replace("\\", "/")
    basename = normalized.rsplit("/", 1)[-1]
    if any(fnmatch.fnmatch(basename, p) for p in _GENERATED_PATTERNS):
        return True
    parts = normalized.split("/")[:-1]
    return any(part in _BUILD_DIRECTORIES for part in parts)


def is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def looks_binary(content: str) -> bool:
    if not content:
        return False
    if "\x00" in content:
        return True
    control = sum(1 for c in content if ord(c) < 32 and c not in "\t\n\r")
    return control > len(content) * _BINARY_CONTROL_RATIO


def validate_path(changed: ChangedFile, exclude: list[str] | None = None) -> None:
    """Reject a changed file on path and change type alone."""
    path = changed.path
    if not path or not path.strip():
        raise ValidationFailure("File path is empty")
    if changed.change_type == ChangeType.REMOVED:
        raise ValidationFailure(f"File was removed in this commit: {path}")
    if exclude and is_excluded(path, exclude):
        raise ValidationFailure(f"File matches an exclude pattern: {path}")
    if not is_code_file(path):
        raise ValidationFailure(f"Unsupported file type: {path}")
    if is_generated(path):
        raise ValidationFailure(f"Generated or build output file: {path}")


def validate_content(path: str, content: str | None, max_chars: int) -> None:
    if content is None or not content.strip():
        raise ValidationFailure(f"File content is empty: {path}")
    if looks_binary(content):
        raise ValidationFailure(f"File content looks binary: {path}")
    if len(content) > max_chars:
        raise ValidationFailure(f"File too large to analyze: {len(content)} chars (limit {max_chars}): {path}")
