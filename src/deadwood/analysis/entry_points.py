"""Entry point detection: the nodes that are reachable unconditionally.

Roots come from three places only:

- entry files (manifest targets, configured globs, conventional
  ``main.*``/``index.*``): their module node, i.e. their top-level code;
- test files: their module node plus every symbol they import;
- in library mode, every symbol the public entry files export.

Nothing is rooted because it merely *looks* used; that is the confidence
scorer's job.
"""

from __future__ import annotations

import fnmatch
import logging
import posixpath
from dataclasses import dataclass, field

from deadwood.config import DeadCodeConfig
from deadwood.graph.symbol_graph import SymbolGraph
from deadwood.index.manifest import Manifest, source_candidates
from deadwood.index.relations import resolve_path
from deadwood.index.test_conventions import is_test_file

log = logging.getLogger(__name__)

ENTRY_FILE = "entry-file"
TEST_FILE = "test-file"
TEST_IMPORT = "test-import"
PUBLIC_API = "public-api"

_CONVENTIONAL_STEMS = frozenset({"main", "index"})
_CONVENTIONAL_DIRS = frozenset({"", "src", "app", "bin"})


@dataclass
class EntryPointSet:
    # node id -> reasons, in the order they were found
    roots: dict[int, list[str]] = field(default_factory=dict)
    entry_files: list[str] = field(default_factory=list)
    test_files: list[str] = field(default_factory=list)
    public_files: list[str] = field(default_factory=list)
    library_mode: bool = False

    def add(self, node_id: int, reason: str) -> None:
        reasons = self.roots.setdefault(node_id, [])
        if reason not in reasons:
            reasons.append(reason)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self.roots

    def __len__(self) -> int:
        return len(self.roots)

    def ids(self) -> frozenset[int]:
        return frozenset(self.roots)


def is_conventional_entry(path: str) -> bool:
    """``main.*`` or ``index.*`` at the root or directly under src/, app/ or bin/."""
    directory, name = posixpath.split(path)
    stem = posixpath.splitext(name)[0]
    return stem in _CONVENTIONAL_STEMS and directory in _CONVENTIONAL_DIRS


def _resolve_manifest_targets(targets, known) -> list[str]:
    found = []
    for target in targets:
        for candidate in source_candidates(target):
            resolved = resolve_path(candidate, known)
            if resolved is not None:
                found.append(resolved)
                break
        else:
            log.debug("Manifest entry %s does not map to an analysed file", target)
    return found


def public_symbols(graph: SymbolGraph, path: str, seen: set[str] | None = None) -> set[int]:
    """Every symbol *path* exports, including members of ``export * as ns`` namespaces."""
    seen = set() if seen is None else seen
    if path in seen:
        return set()
    seen.add(path)
    found = set(graph.exports.get(path, {}).values())
    for target in graph.namespace_exports.get(path, {}).values():
        found |= public_symbols(graph, target, seen)
    return found


def find_entry_files(
    known: list[str] | set[str],
    manifest: Manifest | None,
    config: DeadCodeConfig,
) -> list[str]:
    """Entry files among *known*, sorted."""
    known = set(known)
    found: set[str] = set()
    if manifest is not None:
        found.update(_resolve_manifest_targets(manifest.entries, known))
    for pattern in config.entry_files:
        found.update(p for p in known if fnmatch.fnmatchcase(p, pattern))
    found.update(p for p in known if is_conventional_entry(p))
    return sorted(found)


def detect_entry_points(
    graph: SymbolGraph,
    manifest: Manifest | None = None,
    config: DeadCodeConfig | None = None,
) -> EntryPointSet:
    config = config or DeadCodeConfig()
    known = set(graph.modules)
    entry = EntryPointSet()

    entry.entry_files = find_entry_files(known, manifest, config)
    for path in entry.entry_files:
        entry.add(graph.modules[path], ENTRY_FILE)

    for path in sorted(known):
        if not is_test_file(path):
            continue
        entry.test_files.append(path)
        module_id = graph.modules[path]
        entry.add(module_id, TEST_FILE)
        for sid in sorted(graph.imported_symbols.get(module_id, ())):
            entry.add(sid, TEST_IMPORT)

    if manifest is not None and manifest.is_library:
        entry.library_mode = True
        entry.public_files = sorted(set(_resolve_manifest_targets(manifest.public_entries, known)))
        for path in entry.public_files:
            for sid in sorted(public_symbols(graph, path)):
                entry.add(sid, PUBLIC_API)

    log.debug(
        "Entry points: %d roots (%d entry files, %d test files, library=%s)",
        len(entry),
        len(entry.entry_files),
        len(entry.test_files),
        entry.library_mode,
    )
    return entry
