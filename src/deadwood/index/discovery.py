"""File discovery using git ls-files with fallback to os.walk.

This is the directory walker the analysis consumes: it applies every
exclusion rule and hands over ``(path, content, mtime)`` records for the
JavaScript/TypeScript sources of a project.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Iterator, NamedTuple

from deadwood.config import DEFAULT_DIR
from deadwood.languages.registry import get_language_for_file

log = logging.getLogger(__name__)

# Generated or bundled JavaScript that is never hand-maintained
SKIP_SUFFIXES = (".min.js", ".bundle.js", ".d.ts", ".d.mts", ".d.cts")

# Directories to skip during os.walk fallback (and in git output)
SKIP_DIRS = frozenset({
    ".git", ".hg", ".svn", "node_modules", "bower_components",
    "dist", "build", "coverage", "out",
    ".next", ".nuxt", ".output", ".turbo", ".cache",
    DEFAULT_DIR,
})

MAX_FILE_SIZE = 1_000_000  # 1MB


class SourceFile(NamedTuple):
    path: str  # root-relative, forward slashes
    content: bytes
    mtime: float


def _is_skippable(rel_path: str) -> bool:
    """Check whether a relative path should be skipped."""
    parts = rel_path.split("/")
    if any(p in SKIP_DIRS or p.startswith(".") for p in parts[:-1]):
        return True
    name = parts[-1].lower()
    if name.endswith(SKIP_SUFFIXES):
        return True
    return get_language_for_file(name) is None


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
        # Filter out skippable directories in place
        dirnames[:] = [d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")]
        for fname in filenames:
            full = os.path.join(dirpath, fname)
            try:
                rel = os.path.relpath(full, root).replace("\\", "/")
            except (ValueError, OSError):
                continue
            result.append(rel)
    return result


def discover_files(root: Path) -> list[str]:
    """Discover JavaScript/TypeScript source files in a project directory.

    Uses git ls-files when available, falls back to os.walk.
    Returns a sorted list of relative paths using forward slashes.
    """
    root = Path(root).resolve()
    raw = _git_ls_files(root)
    if raw is None:
        raw = _walk_files(root)

    kept = []
    for rel_path in raw:
        rel_path = rel_path.replace("\\", "/")
        if _is_skippable(rel_path):
            continue
        try:
            size = (root / rel_path).stat().st_size
        except OSError:
            # Listed by git but deleted from the worktree
            continue
        if size > MAX_FILE_SIZE:
            log.debug("Skipping oversized file %s (%d bytes)", rel_path, size)
            continue
        kept.append(rel_path)
    kept.sort()
    return kept


def iter_source_files(root: Path) -> Iterator[SourceFile]:
    """Yield every discovered source file with its bytes and mtime, by path."""
    root = Path(root).resolve()
    for rel_path in discover_files(root):
        full = root / rel_path
        try:
            content = full.read_bytes()
            mtime = full.stat().st_mtime
        except OSError as exc:
            log.warning("Cannot read %s: %s", rel_path, exc)
            continue
        yield SourceFile(rel_path, content, mtime)
