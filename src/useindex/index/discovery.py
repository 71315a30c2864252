"""File discovery using git ls-files with fallback to os.walk."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
import subprocess
from pathlib import Path

from useindex.index.parser import EXTENSION_MAP

log = logging.getLogger(__name__)

# Bundled or generated output that never contains hand-written queries
SKIP_SUFFIXES = (".min.js", ".bundle.js", ".d.ts")

# Directories to skip during os.walk fallback
SKIP_DIRS = frozenset({
    ".git", ".hg", ".svn", "node_modules", "__pycache__",
    "venv", ".venv",
    "dist", "build", "coverage",
    ".next", ".nuxt", ".output", ".turbo", ".vercel",
})

MAX_FILE_SIZE = 1_000_000  # 1MB


def matches_glob(file_path: str, pattern: str) -> bool:
    """Check if a file path matches a glob pattern.

    Supports ``**`` for matching zero or more directories, unlike plain
    ``fnmatch`` which treats ``*`` as matching everything including ``/``.
    """
    norm = file_path.replace("\\", "/")
    pat = pattern.replace("\\", "/")

    if "**" not in pat:
        return fnmatch.fnmatch(norm, pat)

    parts: list[str] = []
    i = 0
    while i < len(pat):
        c = pat[i]
        if c == "*":
            if i + 1 < len(pat) and pat[i + 1] == "*":
                if i + 2 < len(pat) and pat[i + 2] == "/":
                    parts.append("(?:.+/)?")
                    i += 3
                    continue
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
            i += 1
        elif c == "?":
            parts.append("[^/]")
            i += 1
        elif c in r".+^${}()|[]":
            parts.append("\\" + c)
            i += 1
        else:
            parts.append(c)
            i += 1

    return re.match("^" + "".join(parts) + "$", norm) is not None


def is_lintable(rel_path: str) -> bool:
    """True when the path has a supported extension and is not generated output."""
    name = os.path.basename(rel_path).lower()
    if name.endswith(SKIP_SUFFIXES):
        return False
    _, ext = os.path.splitext(name)
    return ext in EXTENSION_MAP


def _git_ls_files(root: Path) -> list[str] | None:
    """Try to list files using git ls-files. Returns None if git unavailable."""
    try:
        result = subprocess.run(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard"],
            cwd=str(root),
            capture_output=True,
            text=True,
            timeout=30,
        )
        if result.returncode != 0:
            return None
        return [p.strip() for p in result.stdout.splitlines() if p.strip()]
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _walk_files(root: Path) -> list[str]:
    """Fallback file discovery using os.walk, respecting common ignore dirs."""
    result = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [
            d for d in dirnames
            if d not in SKIP_DIRS and not d.startswith(".")
        ]
        for fname in filenames:
            full = os.path.join(dirpath, fname)
            try:
                rel = os.path.relpath(full, root).replace("\\", "/")
            except (ValueError, OSError):
                continue
            result.append(rel)
    return result


def _filter_files(paths: list[str], root: Path) -> list[str]:
    """Keep lintable files below the size cap and outside skipped directories."""
    kept = []
    for rel_path in paths:
        parts = rel_path.split("/")
        if any(p in SKIP_DIRS for p in parts[:-1]):
            continue
        if not is_lintable(rel_path):
            continue
        try:
            if (root / rel_path).stat().st_size > MAX_FILE_SIZE:
                log.info("skipping %s: larger than %d bytes", rel_path, MAX_FILE_SIZE)
                continue
        except OSError:
            continue
        kept.append(rel_path)
    return kept


def discover_files(root: str | Path) -> list[str]:
    """Discover lintable source files in a project directory.

    Uses git ls-files when available, falls back to os.walk.
    Returns a sorted list of relative paths using forward slashes.
    """
    root = Path(root).resolve()
    raw = _git_ls_files(root)
    if raw is None:
        log.debug("git unavailable for %s, walking the tree", root)
        raw = _walk_files(root)

    raw = [p.replace("\\", "/") for p in raw]

    filtered = _filter_files(raw, root)
    filtered.sort()
    return filtered


def expand_paths(paths, root: str | Path, ignore: list[str] | None = None) -> list[Path]:
    """Turn CLI path arguments into a sorted, de-duplicated list of files.

    Explicit files are kept even when their extension is unknown so that the
    linter can report them as skipped. Directories are expanded with
    :func:`discover_files`. *ignore* globs are matched against paths
    relative to *root*.
    """
    root = Path(root).resolve()
    ignore = ignore or []
    seen: set[Path] = set()
    files: list[Path] = []

    def _add(path: Path) -> None:
        path = path.resolve()
        if path in seen:
            return
        try:
            rel = path.relative_to(root).as_posix()
        except ValueError:
            rel = path.as_posix()
        if any(matches_glob(rel, pat) for pat in ignore):
            log.debug("ignoring %s", rel)
            return
        seen.add(path)
        files.append(path)

    for raw in paths:
        path = Path(raw)
        if not path.is_absolute():
            path = root / path
        if path.is_dir():
            for rel in discover_files(path):
                _add(path / rel)
        elif path.exists():
            _add(path)
        else:
            log.warning("path does not exist: %s", raw)

    files.sort()
    return files
