"""Deletion-safety scoring for unreached symbols.

Every dead symbol starts at 100 (certainly safe to delete) and loses points
for each signal that it might be used in a way static analysis cannot see:

========================  =========  =====================================
signal                    deduction  reason code(s)
========================  =========  =====================================
public surface            30         ``exported``, ``transitively-dead``
dynamic access            50         ``dynamic-access``
dispatch-style name       40         ``dynamic-name`` (exported only, and
                                     only without ``dynamic-access``)
recent modification       0..20      ``recently-modified``
========================  =========  =====================================

Being exported and being imported by other dead code share one 30-point
deduction; a symbol showing both signals lists both reasons but is not
penalised twice.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from typing import Mapping

from deadwood.config import DeadCodeConfig
from deadwood.graph.symbol_graph import DYNAMIC, USAGE_EDGES, Symbol, SymbolGraph

BASE_SCORE = 100
PUBLIC_SURFACE_PENALTY = 30
DYNAMIC_ACCESS_PENALTY = 50
DYNAMIC_NAME_PENALTY = 40
RECENCY_MAX_PENALTY = 20

EXPORTED = "exported"
TRANSITIVELY_DEAD = "transitively-dead"
DYNAMIC_ACCESS = "dynamic-access"
DYNAMIC_NAME = "dynamic-name"
RECENTLY_MODIFIED = "recently-modified"

_SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class ConfidenceRecord:
    symbol_id: int
    score: int
    reasons: tuple[str, ...] = ()


def matches_dynamic_pattern(name: str, patterns) -> bool:
    return any(fnmatch.fnmatchcase(name, p) for p in patterns)


def recency_penalty(mtime: float | None, now: float, window_days: int) -> int:
    """Linear penalty: 20 for a file modified *now*, 0 at the window edge."""
    if mtime is None or window_days <= 0:
        return 0
    age_days = max(0.0, (now - mtime) / _SECONDS_PER_DAY)
    if age_days >= window_days:
        return 0
    return round(RECENCY_MAX_PENALTY * (1.0 - age_days / window_days))


def score_symbol(
    symbol: Symbol,
    *,
    transitively_dead: bool,
    dynamic_access: bool,
    mtime: float | None,
    now: float,
    config: DeadCodeConfig,
) -> ConfidenceRecord:
    score = BASE_SCORE
    reasons: list[str] = []

    if symbol.is_exported:
        reasons.append(EXPORTED)
    if transitively_dead:
        reasons.append(TRANSITIVELY_DEAD)
    if reasons:
        score -= PUBLIC_SURFACE_PENALTY

    if dynamic_access:
        score -= DYNAMIC_ACCESS_PENALTY
        reasons.append(DYNAMIC_ACCESS)
    elif symbol.is_exported and matches_dynamic_pattern(symbol.name, config.dynamic_patterns):
        score -= DYNAMIC_NAME_PENALTY
        reasons.append(DYNAMIC_NAME)

    penalty = recency_penalty(mtime, now, config.recency_window_days)
    if penalty:
        score -= penalty
        reasons.append(RECENTLY_MODIFIED)

    return ConfidenceRecord(symbol.id, max(0, min(BASE_SCORE, score)), tuple(reasons))


def score_dead_symbols(
    graph: SymbolGraph,
    dead_ids,
    *,
    mtimes: Mapping[str, float],
    now: float,
    config: DeadCodeConfig,
) -> dict[int, ConfidenceRecord]:
    """Score every id in *dead_ids*; pure apart from reading the graph."""
    records = {}
    for sid in dead_ids:
        symbol = graph[sid]
        records[sid] = score_symbol(
            symbol,
            transitively_dead=graph.has_incoming(sid, USAGE_EDGES),
            dynamic_access=graph.has_incoming(sid, (DYNAMIC,)),
            mtime=mtimes.get(symbol.file_path),
            now=now,
            config=config,
        )
    return records
