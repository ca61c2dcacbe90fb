from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath


@dataclass(frozen=True)
class Language:
    name: str
    fence: str  # tag used on the fenced code block in prompts


TEXT = Language("text", "text")

LANGUAGES: dict[str, Language] = {
    ".cs": Language("csharp", "csharp"),
    ".java": Language("java", "java"),
    ".kt": Language("kotlin", "kotlin"),
    ".kts": Language("kotlin", "kotlin"),
    ".scala": Language("scala", "scala"),
    ".swift": Language("swift", "swift"),
    ".cpp": Language("cpp", "cpp"),
    ".cc": Language("cpp", "cpp"),
    ".cxx": Language("cpp", "cpp"),
    ".hpp": Language("cpp", "cpp"),
    ".ts": Language("typescript", "typescript"),
    ".tsx": Language("typescript", "tsx"),
    ".js": Language("javascript", "javascript"),
    ".jsx": Language("javascript", "jsx"),
    ".mjs": Language("javascript", "javascript"),
    ".py": Language("python", "python"),
    ".go": Language("go", "go"),
    ".c": Language("c", "c"),
    ".h": Language("c", "c"),
    ".rs": Language("rust", "rust"),
    ".rb": Language("ruby", "ruby"),
    ".php": Language("php", "php"),
}


def extension_of(path: str) -> str:
    return PurePosixPath(path.replace("\\", "/")).suffix.lower()


def detect_language(path: str) -> Language:
    return LANGUAGES.get(extension_of(path), TEXT)
