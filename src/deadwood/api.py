"""Public entry point: ``analyze_dead_code``.

Pipeline: walk -> fingerprint and cache lookup -> parallel extraction of
misses -> sequential graph merge -> entry points -> reachability ->
confidence -> ``min_confidence`` filter.  The filter runs last and never
touches the cache, so cached contents do not depend on any threshold.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from deadwood.analysis.confidence import score_dead_symbols
from deadwood.analysis.entry_points import EntryPointSet, detect_entry_points
from deadwood.analysis.results import AnalysisStats, DeadCodeResult, assemble_result
from deadwood.config import DeadCodeConfig, load_config
from deadwood.db.cache import GraphCache, fingerprint
from deadwood.db.connection import get_db_path
from deadwood.exit_codes import AnalysisCancelledError, InvalidRootError, InvalidThresholdError
from deadwood.graph.builder import build_symbol_graph
from deadwood.graph.reachability import compute_reachable, dead_symbols
from deadwood.graph.symbol_graph import SymbolGraph
from deadwood.index.discovery import SourceFile, iter_source_files
from deadwood.index.manifest import Manifest, read_manifest
from deadwood.index.symbols import extract_file

log = logging.getLogger(__name__)


@dataclass
class PreparedGraph:
    """Everything up to (and including) entry-point detection."""

    graph: SymbolGraph
    entry_points: EntryPointSet
    mtimes: dict[str, float]
    stats: AnalysisStats


def validate_min_confidence(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidThresholdError(value)
    if math.isnan(value) or not 0 <= value <= 100:
        raise InvalidThresholdError(value)
    return value


def validate_root(root) -> Path:
    path = Path(root)
    if not path.is_dir():
        raise InvalidRootError(root)
    return path.resolve()


def _check_cancel(cancel: threading.Event | None, stage: str) -> None:
    if cancel is not None and cancel.is_set():
        raise AnalysisCancelledError(stage)


def extract_all(
    files: list[SourceFile],
    *,
    cache: GraphCache | None = None,
    cancel: threading.Event | None = None,
    max_workers: int | None = None,
) -> tuple[list[dict], AnalysisStats]:
    """Extraction results for *files*, from the cache where fingerprints match.

    Misses are extracted in parallel and staged in *cache*; nothing is
    written until the caller commits.  Results are sorted by path.
    """
    fingerprints = {f.path: fingerprint(f.content) for f in files}
    cached = cache.lookup(fingerprints) if cache is not None else {}
    misses = [f for f in files if f.path not in cached]
    log.debug("Cache: %d hits, %d misses", len(cached), len(misses))

    results = dict(cached)
    if misses:
        pool = ThreadPoolExecutor(max_workers=max_workers)
        try:
            futures = {pool.submit(extract_file, f.path, f.content): f.path for f in misses}
            for future in as_completed(futures):
                if cancel is not None and cancel.is_set():
                    pool.shutdown(wait=True, cancel_futures=True)
                    raise AnalysisCancelledError("extraction")
                path = futures[future]
                results[path] = future.result()
                if cache is not None:
                    cache.stage(path, fingerprints[path], results[path])
        finally:
            pool.shutdown(wait=True)

    stats = AnalysisStats(files_analyzed=len(files), cache_hits=len(cached), cache_misses=len(misses))
    return [results[p] for p in sorted(results)], stats


def prepare_graph(
    files: Iterable[SourceFile],
    *,
    manifest: Manifest | None = None,
    config: DeadCodeConfig | None = None,
    cache: GraphCache | None = None,
    cancel: threading.Event | None = None,
) -> PreparedGraph:
    """Extract, merge and detect entry points for a stream of source files."""
    config = config or DeadCodeConfig()
    files = list(files)
    _check_cancel(cancel, "discovery")

    extractions, stats = extract_all(
        files, cache=cache, cancel=cancel, max_workers=config.max_workers
    )
    graph = build_symbol_graph(extractions, config.path_aliases)
    _check_cancel(cancel, "graph merge")

    entry = detect_entry_points(graph, manifest, config)
    return PreparedGraph(graph, entry, {f.path: f.mtime for f in files}, stats)


def run_analysis(
    files: Iterable[SourceFile],
    min_confidence: float,
    *,
    manifest: Manifest | None = None,
    config: DeadCodeConfig | None = None,
    cache: GraphCache | None = None,
    cancel: threading.Event | None = None,
    now: float | None = None,
) -> DeadCodeResult:
    """Analyse an already-walked file set. *cache*, when given, must be open."""
    min_confidence = validate_min_confidence(min_confidence)
    config = config or DeadCodeConfig()
    now = time.time() if now is None else now
    files = list(files)

    try:
        prepared = prepare_graph(files, manifest=manifest, config=config, cache=cache, cancel=cancel)
        _check_cancel(cancel, "cache commit")
    except AnalysisCancelledError:
        if cache is not None:
            cache.discard()
        raise
    if cache is not None:
        cache.commit({f.path for f in files})

    graph = prepared.graph
    reachable = compute_reachable(graph, prepared.entry_points.ids())
    dead = dead_symbols(graph, reachable)
    records = score_dead_symbols(graph, dead, mtimes=prepared.mtimes, now=now, config=config)
    result = assemble_result(graph, records, min_confidence, prepared.stats)
    log.info(
        "Analysed %d files: %d of %d symbols dead at confidence >= %s",
        prepared.stats.files_analyzed,
        result.summary.dead_symbols,
        result.summary.total_symbols,
        min_confidence,
    )
    return result


def analyze_dead_code(
    root,
    min_confidence: float,
    *,
    config: DeadCodeConfig | None = None,
    use_cache: bool = True,
    cancel: threading.Event | None = None,
    now: float | None = None,
) -> DeadCodeResult:
    """Find unreachable symbols under *root* scoring at least *min_confidence*.

    Args:
        root: Project directory.
        min_confidence: Threshold in [0, 100]; validated before any work.
        config: Explicit configuration; defaults to ``.deadwood/config.json``.
        use_cache: Read and update the on-disk extraction cache.
        cancel: Set this event from another thread to abort the run; a
            cancelled run raises :class:`AnalysisCancelledError` and leaves
            the cache untouched.
        now: Reference timestamp for the recency signal (defaults to now).

    Raises:
        InvalidThresholdError: *min_confidence* is not a number in [0, 100].
        InvalidRootError: *root* is missing or not a directory.
    """
    validate_min_confidence(min_confidence)
    root_path = validate_root(root)
    config = config or load_config(root_path)
    manifest = read_manifest(root_path)
    files = list(iter_source_files(root_path))

    if not use_cache:
        return run_analysis(files, min_confidence, manifest=manifest, config=config, cancel=cancel, now=now)
    with GraphCache(get_db_path(root_path, config)) as cache:
        return run_analysis(
            files, min_confidence, manifest=manifest, config=config, cache=cache, cancel=cancel, now=now
        )


def load_graph(
    root,
    *,
    config: DeadCodeConfig | None = None,
    use_cache: bool = True,
) -> PreparedGraph:
    """Build the graph and entry points for *root* without scoring."""
    root_path = validate_root(root)
    config = config or load_config(root_path)
    manifest = read_manifest(root_path)
    files = list(iter_source_files(root_path))
    if not use_cache:
        return prepare_graph(files, manifest=manifest, config=config)
    with GraphCache(get_db_path(root_path, config)) as cache:
        prepared = prepare_graph(files, manifest=manifest, config=config, cache=cache)
        cache.commit({f.path for f in files})
        return prepared
