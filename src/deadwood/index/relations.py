"""Import specifier resolution against the analysed file set."""

from __future__ import annotations

import fnmatch
import posixpath
from typing import Iterable, Mapping

# Extension inference order for extensionless specifiers
RESOLVE_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")

# TS sources are imported with the extension of their compiled output
_COMPILED_TO_SOURCE = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}


def _alias_order(aliases: Mapping[str, str]) -> list[tuple[str, str]]:
    # Longest prefix wins
    return sorted(aliases.items(), key=lambda kv: (-len(kv[0]), kv[0]))


def is_external(specifier: str, aliases: Mapping[str, str]) -> bool:
    """True for bare package specifiers (``react``, ``@scope/pkg``, ``node:fs``)."""
    if specifier.startswith(("./", "../", "/")) or specifier in (".", ".."):
        return False
    return not any(specifier.startswith(prefix) for prefix, _ in _alias_order(aliases))


def _candidate_path(specifier: str, importer: str, aliases: Mapping[str, str]) -> str | None:
    """Root-relative path a local specifier points at, before extension inference."""
    if specifier.startswith(("./", "../")) or specifier in (".", ".."):
        candidate = posixpath.join(posixpath.dirname(importer), specifier)
    elif specifier.startswith("/"):
        candidate = specifier.lstrip("/")
    else:
        for prefix, target in _alias_order(aliases):
            if specifier.startswith(prefix):
                candidate = posixpath.join(target, specifier[len(prefix):])
                break
        else:
            return None
    candidate = posixpath.normpath(candidate) if candidate else "."
    if candidate == ".." or candidate.startswith("../"):
        return None  # escapes the analysis root
    return "" if candidate == "." else candidate


def resolve_path(candidate: str, known: Iterable[str] | set[str]) -> str | None:
    """Resolve a root-relative module path to one of the *known* files.

    Tries, in order: the exact path, a TS source for a compiled ``.js``-style
    extension, each of :data:`RESOLVE_EXTENSIONS` appended, then
    ``<path>/index.<ext>``.
    """
    if not isinstance(known, (set, frozenset, dict)):
        known = set(known)
    if candidate and candidate in known:
        return candidate
    stem, ext = posixpath.splitext(candidate)
    for alt in _COMPILED_TO_SOURCE.get(ext, ()):
        if stem + alt in known:
            return stem + alt
    if candidate:
        for ext in RESOLVE_EXTENSIONS:
            if candidate + ext in known:
                return candidate + ext
    for ext in RESOLVE_EXTENSIONS:
        index = posixpath.join(candidate, "index" + ext) if candidate else "index" + ext
        if index in known:
            return index
    return None


def resolve_specifier(
    specifier: str,
    importer: str,
    known: set[str],
    aliases: Mapping[str, str],
) -> str | None:
    """Resolve an import specifier written in *importer* to a known file path.

    Returns None for external packages and for local paths that do not
    exist in *known*; callers distinguish the two with :func:`is_external`.
    """
    if not specifier:
        return None
    candidate = _candidate_path(specifier, importer, aliases)
    if candidate is None:
        return None
    return resolve_path(candidate, known)


def match_import_glob(
    pattern: str,
    importer: str,
    known: Iterable[str],
    aliases: Mapping[str, str],
) -> list[str]:
    """Files a template-built import path (``*`` for substitutions) could load.

    Returns sorted root-relative paths; an empty list when nothing matches or
    the pattern is not a local path.
    """
    candidate = _candidate_path(pattern, importer, aliases)
    if candidate is None or not candidate:
        return []
    stem, ext = posixpath.splitext(candidate)
    globs = [candidate]
    globs.extend(stem + alt for alt in _COMPILED_TO_SOURCE.get(ext, ()))
    globs.extend(candidate + e for e in RESOLVE_EXTENSIONS)
    globs.extend(posixpath.join(candidate, "index" + e) for e in RESOLVE_EXTENSIONS)
    return sorted(
        path for path in known if any(fnmatch.fnmatchcase(path, g) for g in globs)
    )
