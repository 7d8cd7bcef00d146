"""Language detection, grammar loading, and extractor registry."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import LanguageExtractor

# Single source of truth for extension -> tree-sitter grammar name
EXTENSION_MAP: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

_SUPPORTED_LANGUAGES = frozenset(EXTENSION_MAP.values())


def get_language_for_file(path: str) -> str | None:
    """Determine the language for a file based on its extension.

    Returns the language name string, or None if unsupported.
    """
    _, ext = os.path.splitext(path)
    return EXTENSION_MAP.get(ext.lower())


def get_ts_parser(language: str):
    """Get a tree-sitter Parser for *language*.

    Parsers are not shared between threads, so a fresh one is returned per
    call; grammar loading itself is cached by the language pack.
    """
    if language not in _SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")

    from tree_sitter_language_pack import get_parser

    return get_parser(language)


@lru_cache(maxsize=None)
def _create_extractor(language: str) -> "LanguageExtractor":
    """Create and cache an extractor instance for a language."""
    if language == "javascript":
        from .javascript_lang import JavaScriptExtractor

        return JavaScriptExtractor()
    elif language in ("typescript", "tsx"):
        from .typescript_lang import TypeScriptExtractor

        return TypeScriptExtractor()
    raise ValueError(f"Unsupported language: {language}")


def get_extractor(language: str) -> "LanguageExtractor":
    """Get the (stateless, shared) extractor instance for a language.

    Raises:
        ValueError: If the language is not supported.
    """
    if language not in _SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    return _create_extractor(language)

