"""The symbol arena: integer-addressed symbols plus a kind-keyed edge store."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, Iterator

import networkx as nx

# Edge kinds (MultiDiGraph edge keys)
DECLARES = "declares"
REFERENCES = "references"
IMPORTS = "imports"
DYNAMIC = "dynamic"

EDGE_KINDS = (DECLARES, REFERENCES, IMPORTS, DYNAMIC)
# DynamicCandidate edges never establish reachability
REACHABILITY_EDGES = frozenset({DECLARES, REFERENCES, IMPORTS})
# Cross-file bindings that make an unreached export "used by dead code";
# same-file references from dead code leave a private helper at full confidence
USAGE_EDGES = frozenset({IMPORTS})

MODULE_KIND = "module"


@dataclass(frozen=True)
class Diagnostic:
    path: str
    severity: str  # "warning" | "info"
    code: str
    message: str
    line: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Diagnostic":
        return cls(
            path=data["path"],
            severity=data["severity"],
            code=data["code"],
            message=data["message"],
            line=data.get("line"),
        )


@dataclass
class Symbol:
    id: int
    name: str
    kind: str
    file_path: str
    line_start: int
    line_end: int
    is_exported: bool = False
    is_default_export: bool = False

    @property
    def is_module(self) -> bool:
        return self.kind == MODULE_KIND


class SymbolGraph:
    """Arena of symbols addressed by integer id.

    Every file owns one ``module`` node standing for its top-level code; it
    lives in the arena like any other node but is not a declared symbol.
    Adjacency is a :class:`networkx.MultiDiGraph` whose edge keys are the
    edge kinds, so at most one edge of each kind joins two nodes.
    """

    def __init__(self):
        self.symbols: list[Symbol] = []
        self.graph = nx.MultiDiGraph()
        self.modules: dict[str, int] = {}
        self.file_symbols: dict[str, list[int]] = {}
        # module id -> symbol ids its import bindings resolved to
        self.imported_symbols: dict[int, set[int]] = {}
        # file path -> exported name -> symbol id, re-exports resolved
        self.exports: dict[str, dict[str, int]] = {}
        # file path -> exported name -> file path, for `export * as name`
        self.namespace_exports: dict[str, dict[str, str]] = {}
        self.diagnostics: list[Diagnostic] = []

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _allocate(self, name, kind, file_path, line_start, line_end, **flags) -> int:
        sid = len(self.symbols)
        self.symbols.append(Symbol(sid, name, kind, file_path, line_start, line_end, **flags))
        self.graph.add_node(sid)
        return sid

    def add_module(self, file_path: str) -> int:
        if file_path in self.modules:
            return self.modules[file_path]
        mid = self._allocate(file_path, MODULE_KIND, file_path, 1, 1)
        self.modules[file_path] = mid
        self.file_symbols[file_path] = []
        return mid

    def add_symbol(
        self,
        file_path: str,
        name: str,
        kind: str,
        line_start: int,
        line_end: int,
        is_exported: bool = False,
        is_default_export: bool = False,
    ) -> int:
        module_id = self.add_module(file_path)
        sid = self._allocate(
            name,
            kind,
            file_path,
            line_start,
            line_end,
            is_exported=is_exported,
            is_default_export=is_default_export,
        )
        self.file_symbols[file_path].append(sid)
        self.add_edge(sid, module_id, DECLARES)
        return sid

    def add_edge(self, source: int, target: int, kind: str) -> None:
        if kind not in EDGE_KINDS:
            raise ValueError(f"Unknown edge kind: {kind}")
        if source == target:
            return
        if not self.graph.has_edge(source, target, key=kind):
            self.graph.add_edge(source, target, key=kind)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.symbols)

    def __getitem__(self, symbol_id: int) -> Symbol:
        return self.symbols[symbol_id]

    def module_of(self, symbol_id: int) -> int:
        return self.modules[self.symbols[symbol_id].file_path]

    def declared_symbols(self) -> Iterator[Symbol]:
        """All real symbols (module nodes excluded), in id order."""
        return (s for s in self.symbols if not s.is_module)

    def successors(self, node_id: int, kinds: Iterable[str] = REACHABILITY_EDGES) -> list[int]:
        """Targets of outgoing edges of the given kinds, ascending by id."""
        kinds = frozenset(kinds)
        return sorted(
            {target for _, target, key in self.graph.out_edges(node_id, keys=True) if key in kinds}
        )

    def predecessors(self, node_id: int, kinds: Iterable[str] = REACHABILITY_EDGES) -> list[int]:
        """Sources of incoming edges of the given kinds, ascending by id."""
        kinds = frozenset(kinds)
        return sorted(
            {source for source, _, key in self.graph.in_edges(node_id, keys=True) if key in kinds}
        )

    def has_incoming(self, node_id: int, kinds: Iterable[str]) -> bool:
        kinds = frozenset(kinds)
        return any(key in kinds for _, _, key in self.graph.in_edges(node_id, keys=True))

    def edges(self, kind: str | None = None) -> list[tuple[int, int, str]]:
        """All edges as ``(source, target, kind)``, sorted."""
        return sorted(
            (s, t, k) for s, t, k in self.graph.edges(keys=True) if kind is None or k == kind
        )
