"""Language detection and language-family lookup."""

from __future__ import annotations

from enum import Enum

UNKNOWN = "unknown"

EXTENSION_LANGUAGES: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "c": "c",
    "h": "c",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "vue": "vue",
    "svelte": "svelte",
}


class LanguageFamily(str, Enum):
    C_FAMILY = "c-family"
    INDENTATION = "indentation-block"
    NONE = "none"


# Languages that get a structural pass; everything else is comments only.
LANGUAGE_FAMILIES: dict[str, LanguageFamily] = {
    "javascript": LanguageFamily.C_FAMILY,
    "typescript": LanguageFamily.C_FAMILY,
    "python": LanguageFamily.INDENTATION,
}


def detect_language(path: str) -> str:
    """Map a file path to a language tag by its extension."""
    ext = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return EXTENSION_LANGUAGES.get(ext, UNKNOWN)


def language_family(language: str) -> LanguageFamily:
    return LANGUAGE_FAMILIES.get(language, LanguageFamily.NONE)
