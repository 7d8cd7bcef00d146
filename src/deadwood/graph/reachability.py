"""Reachability from the entry-point set."""

from __future__ import annotations

from typing import Iterable

from deadwood.graph.symbol_graph import REACHABILITY_EDGES, SymbolGraph


def compute_reachable(graph: SymbolGraph, roots: Iterable[int]) -> frozenset[int]:
    """Return every node id reachable from *roots*.

    Iterative depth-first search over ``declares``, ``references`` and
    ``imports`` edges; ``dynamic`` edges are never followed.  Roots are
    expanded in ascending id order and each node's successors likewise, so
    a given graph always produces the same visit sequence.  The visited set
    makes traversal terminate on cyclic graphs.
    """
    visited: set[int] = set()
    for root in sorted(set(roots)):
        if root in visited:
            continue
        visited.add(root)
        stack = [root]
        while stack:
            node = stack.pop()
            # Reversed so the smallest successor is expanded first
            for succ in reversed(graph.successors(node, REACHABILITY_EDGES)):
                if succ not in visited:
                    visited.add(succ)
                    stack.append(succ)
    return frozenset(visited)


def dead_symbols(graph: SymbolGraph, reachable: frozenset[int]) -> list[int]:
    """Declared symbols absent from *reachable*, ascending by id."""
    return [s.id for s in graph.declared_symbols() if s.id not in reachable]
