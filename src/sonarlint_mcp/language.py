"""Language detection from file extensions and mapping to backend language ids."""

from __future__ import annotations

from pathlib import Path

UNKNOWN_LANGUAGE = "unknown"

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".go": "go",
    ".php": "php",
    ".rb": "ruby",
    ".html": "html",
    ".css": "css",
    ".xml": "xml",
}

# Language names understood by the backend's Language enum
LANGUAGE_TO_BACKEND: dict[str, str] = {
    "javascript": "JS",
    "typescript": "TS",
    "python": "PYTHON",
    "java": "JAVA",
    "go": "GO",
    "php": "PHP",
    "ruby": "RUBY",
    "html": "HTML",
    "css": "CSS",
    "xml": "XML",
}


def detect_language(file_path: str | Path) -> str:
    """Return the language for a file path, or ``"unknown"``."""
    return EXTENSION_TO_LANGUAGE.get(Path(file_path).suffix.lower(), UNKNOWN_LANGUAGE)


def language_to_backend(language: str) -> str:
    """Map a language name to the backend's language id."""
    return LANGUAGE_TO_BACKEND.get(language, language.upper())


def supported_extensions() -> list[str]:
    return sorted(EXTENSION_TO_LANGUAGE)


def extension_for(language: str) -> str | None:
    """First known extension for a language name, or None."""
    for extension, name in EXTENSION_TO_LANGUAGE.items():
        if name == language.lower():
            return extension
    return None
