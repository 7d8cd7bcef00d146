"""Symbol graph construction and traversal."""

from deadwood.graph.builder import build_symbol_graph
from deadwood.graph.reachability import compute_reachable, dead_symbols
from deadwood.graph.symbol_graph import (
    DECLARES,
    DYNAMIC,
    IMPORTS,
    REFERENCES,
    Diagnostic,
    Symbol,
    SymbolGraph,
)

__all__ = [
    "build_symbol_graph",
    "compute_reachable",
    "dead_symbols",
    "Diagnostic",
    "Symbol",
    "SymbolGraph",
    "DECLARES",
    "REFERENCES",
    "IMPORTS",
    "DYNAMIC",
]
