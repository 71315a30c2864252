"""Tree-sitter parsing for the JavaScript family of languages."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from tree_sitter_language_pack import get_parser

log = logging.getLogger(__name__)

# Extension -> language name. Only languages that can hold Convex queries.
EXTENSION_MAP: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

# Language name -> tree-sitter grammar name, where they differ.
GRAMMAR_ALIASES: dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
}

SUPPORTED_LANGUAGES = frozenset(EXTENSION_MAP.values())


def detect_language(file_path: str | Path) -> str | None:
    """Return the language for *file_path* based on its extension, or None."""
    _, ext = os.path.splitext(str(file_path))
    return EXTENSION_MAP.get(ext.lower())


@lru_cache(maxsize=None)
def _parser_for(grammar: str):
    return get_parser(grammar)


def parse_source(source: bytes, language: str):
    """Parse *source* bytes with the grammar for *language*."""
    grammar = GRAMMAR_ALIASES.get(language, language)
    if grammar not in SUPPORTED_LANGUAGES:
        raise ValueError(f"unsupported language: {language}")
    return _parser_for(grammar).parse(source)


def parse_file(path: str | Path, language: str | None = None):
    """Read and parse a file.

    Returns ``(tree, source, language)``. ``tree`` and ``source`` are None
    when the file cannot be read or its language is not supported.
    """
    lang = language or detect_language(path)
    if lang is None:
        log.debug("skipping %s: unsupported extension", path)
        return None, None, None

    try:
        source = Path(path).read_bytes()
    except OSError as exc:
        log.warning("cannot read %s: %s", path, exc)
        return None, None, lang

    return parse_source(source, lang), source, lang
