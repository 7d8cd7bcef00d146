"""The analysis result model and its JSON shape."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from deadwood.analysis.confidence import ConfidenceRecord
from deadwood.graph.symbol_graph import Diagnostic, SymbolGraph


@dataclass(frozen=True)
class DeadSymbol:
    name: str
    kind: str
    line: int
    confidence: int
    reasons: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind,
            "line": self.line,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class FileDeadCode:
    path: str
    dead_symbols: tuple[DeadSymbol, ...]

    def to_dict(self) -> dict:
        return {"path": self.path, "deadSymbols": [s.to_dict() for s in self.dead_symbols]}


@dataclass(frozen=True)
class DeadCodeSummary:
    total_symbols: int
    dead_symbols: int
    dead_code_ratio: float

    def to_dict(self) -> dict:
        return {
            "totalSymbols": self.total_symbols,
            "deadSymbols": self.dead_symbols,
            "deadCodeRatio": self.dead_code_ratio,
        }


@dataclass(frozen=True)
class AnalysisStats:
    files_analyzed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0


@dataclass(frozen=True)
class DeadCodeResult:
    summary: DeadCodeSummary
    files: tuple[FileDeadCode, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    # Run bookkeeping; two runs over the same tree compare equal regardless
    stats: AnalysisStats = field(default_factory=AnalysisStats, compare=False)

    def to_dict(self) -> dict:
        return {
            "summary": self.summary.to_dict(),
            "files": [f.to_dict() for f in self.files],
        }

    def iter_dead_symbols(self) -> Iterator[tuple[str, DeadSymbol]]:
        for f in self.files:
            for sym in f.dead_symbols:
                yield f.path, sym

    def find(self, name: str, path: str | None = None) -> DeadSymbol | None:
        """First reported dead symbol called *name* (optionally in *path*)."""
        for file_path, sym in self.iter_dead_symbols():
            if sym.name == name and (path is None or file_path == path):
                return sym
        return None


def assemble_result(
    graph: SymbolGraph,
    records: dict[int, ConfidenceRecord],
    min_confidence: float,
    stats: AnalysisStats | None = None,
) -> DeadCodeResult:
    """Apply the *min_confidence* filter and shape the final result.

    ``deadSymbols`` and ``deadCodeRatio`` count only the symbols that pass
    the filter; ``totalSymbols`` counts every declared symbol.
    """
    total = sum(1 for _ in graph.declared_symbols())
    by_file: dict[str, list[DeadSymbol]] = {}
    for sid, record in records.items():
        if record.score < min_confidence:
            continue
        sym = graph[sid]
        by_file.setdefault(sym.file_path, []).append(
            DeadSymbol(sym.name, sym.kind, sym.line_start, record.score, record.reasons)
        )

    files = tuple(
        FileDeadCode(path, tuple(sorted(syms, key=lambda s: (s.line, s.name))))
        for path, syms in sorted(by_file.items())
    )
    dead = sum(len(f.dead_symbols) for f in files)
    summary = DeadCodeSummary(
        total_symbols=total,
        dead_symbols=dead,
        dead_code_ratio=dead / total if total else 0.0,
    )
    return DeadCodeResult(
        summary=summary,
        files=files,
        diagnostics=tuple(graph.diagnostics),
        stats=stats or AnalysisStats(),
    )
