"""Merge per-file extraction results into one :class:`SymbolGraph`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from deadwood.config import DEFAULT_PATH_ALIASES
from deadwood.graph.symbol_graph import DYNAMIC, IMPORTS, REFERENCES, Diagnostic, SymbolGraph
from deadwood.index.relations import is_external, match_import_glob, resolve_specifier

log = logging.getLogger(__name__)

_MODULE_LOADING_REFS = frozenset({"import", "side_effect_import", "reexport"})


@dataclass(frozen=True)
class Resolution:
    """What an imported or exported name stands for.

    Exactly one of ``symbol`` (a symbol id) and ``namespace`` (a file path
    whose whole export table the name denotes) is set.  ``via`` lists the
    module ids of re-exporting files passed through on the way.
    """

    symbol: int | None = None
    namespace: str | None = None
    via: tuple[int, ...] = ()

    def through(self, module_id: int) -> "Resolution":
        return Resolution(self.symbol, self.namespace, (module_id,) + self.via)


class _Builder:
    def __init__(self, extractions: list[dict], path_aliases: Mapping[str, str]):
        self.extractions = sorted(extractions, key=lambda e: e["path"])
        self.aliases = dict(path_aliases)
        self.known = {e["path"] for e in self.extractions}
        self.graph = SymbolGraph()

        self.locals: dict[str, dict[str, int]] = {}
        self.local_exports: dict[str, dict[str, int]] = {}
        # exported name -> (specifier, remote name or "*")
        self.named_reexports: dict[str, dict[str, tuple[str, str]]] = {}
        self.star_reexports: dict[str, list[str]] = {}
        # local binding -> (specifier, remote name | "default" | "*")
        self.bindings: dict[str, dict[str, tuple[str, str]]] = {}

        self._resolved: dict[tuple[str, str], str | None] = {}
        self._diag_keys: set[tuple] = set()
        self._export_cache: dict[str, dict[str, Resolution]] = {}

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def build(self) -> SymbolGraph:
        for ext in self.extractions:
            self._allocate(ext)
        for ext in self.extractions:
            self._index_bindings(ext)
        for ext in self.extractions:
            self._index_exports(ext)
        for ext in self.extractions:
            self._link_modules(ext)
        for ext in self.extractions:
            self._link_references(ext)
        for path in sorted(self.known):
            table = self.export_table(path)
            self.graph.exports[path] = {name: res.symbol for name, res in table.items() if res.symbol is not None}
            self.graph.namespace_exports[path] = {
                name: res.namespace for name, res in table.items() if res.namespace is not None
            }
        self.graph.diagnostics.sort(key=lambda d: (d.path, d.line or 0, d.code, d.message))
        log.debug(
            "Built symbol graph: %d nodes, %d edges, %d diagnostics",
            len(self.graph),
            self.graph.graph.number_of_edges(),
            len(self.graph.diagnostics),
        )
        return self.graph

    # ------------------------------------------------------------------
    # Phase 1: allocation and per-file tables
    # ------------------------------------------------------------------

    def _allocate(self, ext: dict) -> None:
        path = ext["path"]
        self.graph.add_module(path)
        names = self.locals.setdefault(path, {})
        exports = self.local_exports.setdefault(path, {})
        for sym in ext.get("symbols", []):
            sid = self.graph.add_symbol(
                path,
                sym["name"],
                sym["kind"],
                sym["line_start"],
                sym["line_end"],
                is_exported=sym["is_exported"],
                is_default_export=sym["is_default_export"],
            )
            # First declaration wins on redeclared names
            names.setdefault(sym["name"], sid)
            if sym["is_default_export"]:
                exports.setdefault("default", sid)
            elif sym["is_exported"]:
                exports.setdefault(sym["name"], sid)
        for diag in ext.get("diagnostics", []):
            self.graph.diagnostics.append(Diagnostic.from_dict(diag))

    def _index_bindings(self, ext: dict) -> None:
        path = ext["path"]
        bindings = self.bindings.setdefault(path, {})
        named = self.named_reexports.setdefault(path, {})
        stars = self.star_reexports.setdefault(path, [])
        for ref in ext.get("references", []):
            kind = ref["kind"]
            if kind == "import":
                bindings[ref["target_name"]] = (ref["import_path"], ref["imported_name"])
            elif kind == "reexport":
                if ref["target_name"] == "*":
                    stars.append(ref["import_path"])
                else:
                    named[ref["target_name"]] = (ref["import_path"], ref["imported_name"])

    def _index_exports(self, ext: dict) -> None:
        """Apply local ``export { a as b }`` clauses."""
        path = ext["path"]
        names = self.locals[path]
        exports = self.local_exports[path]
        bindings = self.bindings[path]
        named = self.named_reexports[path]
        for ref in ext.get("references", []):
            if ref["kind"] != "export":
                continue
            local, exported_as = ref["target_name"], ref["member"] or ref["target_name"]
            if local in names:
                sid = names[local]
                exports[exported_as] = sid
                self.graph[sid].is_exported = True
                if exported_as == "default":
                    self.graph[sid].is_default_export = True
            elif local in bindings:
                # import { x } from './a'; export { x }
                named.setdefault(exported_as, bindings[local])
            else:
                self._diagnose(path, "unresolved-export", f"exported name '{local}' is not declared", ref["line"])

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    def _diagnose(self, path: str, code: str, message: str, line: int | None = None) -> None:
        key = (path, code, message)
        if key in self._diag_keys:
            return
        self._diag_keys.add(key)
        self.graph.diagnostics.append(Diagnostic(path, "info", code, message, line))

    def _resolve(self, specifier: str | None, importer: str) -> str | None:
        if not specifier:
            return None
        key = (specifier, importer)
        if key not in self._resolved:
            self._resolved[key] = resolve_specifier(specifier, importer, self.known, self.aliases)
        return self._resolved[key]

    def _resolve_export(self, path: str, name: str, seen: frozenset = frozenset()) -> Resolution | None:
        """Follow *path*'s export of *name* through re-export chains."""
        if (path, name) in seen:
            return None  # re-export cycle
        seen = seen | {(path, name)}

        sid = self.local_exports.get(path, {}).get(name)
        if sid is not None:
            return Resolution(symbol=sid)

        reexport = self.named_reexports.get(path, {}).get(name)
        if reexport is not None:
            spec, remote = reexport
            target = self._resolve(spec, path)
            if target is None:
                return None
            if remote == "*":
                return Resolution(namespace=target).through(self.graph.modules[target])
            res = self._resolve_export(target, remote, seen)
            return res.through(self.graph.modules[target]) if res else None

        # export * never forwards the default export
        if name != "default":
            for spec in self.star_reexports.get(path, []):
                target = self._resolve(spec, path)
                if target is None:
                    continue
                res = self._resolve_export(target, name, seen)
                if res is not None:
                    return res.through(self.graph.modules[target])
        return None

    def export_table(self, path: str, seen: frozenset = frozenset()) -> dict[str, Resolution]:
        """Every name *path* exports, resolved."""
        if path in self._export_cache:
            return self._export_cache[path]
        if path in seen:
            return {}
        seen = seen | {path}
        table: dict[str, Resolution] = {}
        for name, sid in self.local_exports.get(path, {}).items():
            table[name] = Resolution(symbol=sid)
        for name in self.named_reexports.get(path, {}):
            res = self._resolve_export(path, name)
            if res is not None:
                table.setdefault(name, res)
        for spec in self.star_reexports.get(path, []):
            target = self._resolve(spec, path)
            if target is None:
                continue
            module_id = self.graph.modules[target]
            for name, res in self.export_table(target, seen).items():
                if name != "default":
                    table.setdefault(name, res.through(module_id))
        if not seen - {path}:
            self._export_cache[path] = table
        return table

    def _export_symbols(self, path: str) -> list[int]:
        return sorted({r.symbol for r in self.export_table(path).values() if r.symbol is not None})

    def _binding(self, path: str, local: str) -> Resolution | None:
        spec, remote = self.bindings[path][local]
        target = self._resolve(spec, path)
        if target is None:
            return None
        if remote == "*":
            return Resolution(namespace=target)
        res = self._resolve_export(target, remote)
        if res is None:
            return None
        if res.via:
            res = res.through(self.graph.modules[target])
        return res

    # ------------------------------------------------------------------
    # Phase 2: module-level import edges
    # ------------------------------------------------------------------

    def _link_modules(self, ext: dict) -> None:
        path = ext["path"]
        module_id = self.graph.modules[path]
        for ref in ext.get("references", []):
            if ref["kind"] not in _MODULE_LOADING_REFS:
                continue
            spec = ref["import_path"]
            target = self._resolve(spec, path)
            if target is None:
                if spec and not is_external(spec, self.aliases):
                    self._diagnose(path, "unresolved-import", f"cannot resolve '{spec}'", ref["line"])
                continue
            self.graph.add_edge(module_id, self.graph.modules[target], IMPORTS)

            remote = ref["imported_name"]
            if ref["kind"] == "import" and remote != "*":
                res = self._resolve_export(target, remote)
                if res is None:
                    self._diagnose(
                        path, "unresolved-name", f"'{target}' has no export named '{remote}'", ref["line"]
                    )
                elif res.symbol is not None:
                    self.graph.imported_symbols.setdefault(module_id, set()).add(res.symbol)
            elif ref["kind"] == "reexport" and remote != "*":
                if self._resolve_export(target, remote) is None:
                    self._diagnose(
                        path, "unresolved-name", f"'{target}' has no export named '{remote}'", ref["line"]
                    )

    # ------------------------------------------------------------------
    # Phase 3: use sites
    # ------------------------------------------------------------------

    def _link_references(self, ext: dict) -> None:
        path = ext["path"]
        module_id = self.graph.modules[path]
        names = self.locals[path]
        bindings = self.bindings[path]

        for ref in ext.get("references", []):
            kind = ref["kind"]
            owner = ref["source_name"]
            node = names.get(owner, module_id) if owner else module_id
            target = ref["target_name"]

            if kind == "reference":
                if target in names:
                    self.graph.add_edge(node, names[target], REFERENCES)
                elif target in bindings:
                    res = self._binding(path, target)
                    if res is not None:
                        self._use(node, res)
            elif kind == "member":
                if target in names:
                    self.graph.add_edge(node, names[target], REFERENCES)
                elif target in bindings:
                    res = self._binding(path, target)
                    if res is None:
                        continue
                    if res.namespace is not None and ref["member"]:
                        self._use_namespace_member(node, res, ref["member"], dynamic=False)
                    else:
                        self._use(node, res)
            elif kind == "dynamic_member":
                key = ref["member"]
                if not target:
                    if key and key in names:
                        self.graph.add_edge(node, names[key], DYNAMIC)
                elif target in names:
                    self.graph.add_edge(node, names[target], REFERENCES)
                elif target in bindings:
                    res = self._binding(path, target)
                    if res is None:
                        continue
                    if res.namespace is not None and key:
                        self._use_namespace_member(node, res, key, dynamic=True)
                    else:
                        self._use(node, res)
            elif kind == "string":
                self._link_string(node, path, target)
            elif kind == "dynamic_import":
                self._link_dynamic_import(node, path, ref)

    def _use(self, node: int, res: Resolution) -> None:
        """Record that *node* uses whatever *res* names."""
        for module_id in res.via:
            self.graph.add_edge(node, module_id, IMPORTS)
        if res.symbol is not None:
            self.graph.add_edge(node, res.symbol, IMPORTS)
            return
        # A namespace object: loading its module is certain, member use is not
        self.graph.add_edge(node, self.graph.modules[res.namespace], IMPORTS)
        for sid in self._export_symbols(res.namespace):
            self.graph.add_edge(node, sid, DYNAMIC)

    def _use_namespace_member(self, node: int, res: Resolution, member: str, dynamic: bool) -> None:
        for module_id in res.via:
            self.graph.add_edge(node, module_id, IMPORTS)
        ns_module = self.graph.modules[res.namespace]
        self.graph.add_edge(node, ns_module, IMPORTS)
        member_res = self._resolve_export(res.namespace, member)
        if member_res is None:
            return
        if dynamic:
            if member_res.symbol is not None:
                self.graph.add_edge(node, member_res.symbol, DYNAMIC)
            return
        self._use(node, member_res.through(ns_module))

    def _link_string(self, node: int, path: str, value: str) -> None:
        names = self.locals[path]
        if value in names:
            self.graph.add_edge(node, names[value], DYNAMIC)
        for local, (_, remote) in sorted(self.bindings[path].items()):
            if remote != "*":
                continue
            res = self._binding(path, local)
            if res is None:
                continue
            member = self.export_table(res.namespace).get(value)
            if member is not None and member.symbol is not None:
                self.graph.add_edge(node, member.symbol, DYNAMIC)

    def _link_dynamic_import(self, node: int, path: str, ref: dict) -> None:
        spec = ref["import_path"]
        if spec is None:
            self._diagnose(path, "dynamic-import", "import() with a computed path cannot be resolved", ref["line"])
            return
        if "*" in spec:
            if is_external(spec, self.aliases):
                return
            matches = match_import_glob(spec, path, self.known, self.aliases)
            if not matches:
                self._diagnose(path, "unresolved-import", f"no files match '{spec}'", ref["line"])
            for target in matches:
                for sid in self._export_symbols(target):
                    self.graph.add_edge(node, sid, DYNAMIC)
            return
        target = self._resolve(spec, path)
        if target is None:
            if not is_external(spec, self.aliases):
                self._diagnose(path, "unresolved-import", f"cannot resolve '{spec}'", ref["line"])
            return
        self.graph.add_edge(node, self.graph.modules[target], IMPORTS)
        for sid in self._export_symbols(target):
            self.graph.add_edge(node, sid, DYNAMIC)


def build_symbol_graph(
    extractions: list[dict],
    path_aliases: Mapping[str, str] | None = None,
) -> SymbolGraph:
    """Build the whole-program graph from per-file extraction dicts.

    Deterministic: ids are allocated in sorted path order, so the same set of
    extractions always yields the same graph regardless of input order.
    """
    aliases = DEFAULT_PATH_ALIASES if path_aliases is None else path_aliases
    return _Builder(extractions, aliases).build()
