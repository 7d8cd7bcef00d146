from __future__ import annotations

import re

from .base import LanguageExtractor

_FUNCTION_DECLARATIONS = frozenset({"function_declaration", "generator_function_declaration"})
_VARIABLE_DECLARATIONS = frozenset({"lexical_declaration", "variable_declaration"})
# "function" is the pre-0.21 grammar name for function_expression
_FUNCTION_VALUES = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function", "generator_function_expression"}
)
_CLASS_VALUES = frozenset({"class", "class_expression"})

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
_TEMPLATE_SUB_RE = re.compile(r"\$\{[^}]*\}")


class JavaScriptExtractor(LanguageExtractor):
    """Top-level symbol and reference extraction for ES module JavaScript."""

    # Declarations whose ``name`` field is a definition, not a reference
    _named_declaration_types = frozenset(
        {
            "function_declaration",
            "generator_function_declaration",
            "class_declaration",
            "function_expression",
            "function",
            "generator_function",
            "class",
            "method_definition",
        }
    )
    _class_declaration_types = frozenset({"class_declaration"})
    _reference_types = frozenset({"identifier", "shorthand_property_identifier"})
    _wrapper_types = frozenset({"parenthesized_expression"})

    @property
    def language_name(self) -> str:
        return "javascript"

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def extract_symbols(self, tree, source: bytes, file_path: str) -> list[dict]:
        symbols: list[dict] = []
        root = tree.root_node
        clause_names = self._clause_exports(root, source)
        for child in root.named_children:
            if child.type == "export_statement":
                self._extract_export_symbols(child, source, symbols)
            else:
                self._extract_declaration(
                    child, child, source, symbols, exported=False, default=False, clause_names=clause_names
                )
        self._apply_export_clauses(symbols, clause_names)
        return symbols

    def _extract_export_symbols(self, node, source, symbols):
        if node.child_by_field_name("source") is not None:
            return  # re-export, declares nothing locally
        is_default = self._has_token(node, "default")
        decl = node.child_by_field_name("declaration")
        if decl is not None:
            self._extract_declaration(decl, node, source, symbols, exported=True, default=is_default)
            return
        value = self._unwrap(node.child_by_field_name("value"))
        if is_default and value is not None and value.type != "identifier":
            name = self._default_value_name(value, source)
            kind = "default_export"
            if name != "default":
                kind = "class" if value.type in _CLASS_VALUES else "function"
            symbols.append(
                self._make_symbol(
                    name=name,
                    kind=kind,
                    line_start=node.start_point[0] + 1,
                    line_end=node.end_point[0] + 1,
                    is_exported=True,
                    is_default_export=True,
                )
            )

    def _extract_declaration(self, decl, outer, source, symbols, exported, default, clause_names=None):
        line_start = outer.start_point[0] + 1
        if decl.type in _FUNCTION_DECLARATIONS or decl.type in self._class_declaration_types:
            name_node = decl.child_by_field_name("name")
            if name_node is None:
                return
            kind = "function" if decl.type in _FUNCTION_DECLARATIONS else "class"
            symbols.append(
                self._make_symbol(
                    name=self.node_text(name_node, source),
                    kind=kind,
                    line_start=line_start,
                    line_end=decl.end_point[0] + 1,
                    is_exported=exported,
                    is_default_export=default,
                )
            )
        elif decl.type in _VARIABLE_DECLARATIONS:
            first = True
            for declarator in decl.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier":
                    first = False
                    continue
                name = self.node_text(name_node, source)
                kind = self._variable_kind(declarator, exported or name in (clause_names or {}))
                if kind is not None:
                    symbols.append(
                        self._make_symbol(
                            name=name,
                            kind=kind,
                            line_start=line_start if first else declarator.start_point[0] + 1,
                            line_end=declarator.end_point[0] + 1,
                            is_exported=exported,
                        )
                    )
                first = False

    def _variable_kind(self, declarator, exported: bool) -> str | None:
        value = self._unwrap(declarator.child_by_field_name("value"))
        if value is not None and value.type in _FUNCTION_VALUES:
            return "closure"
        if value is not None and value.type in _CLASS_VALUES:
            return "class"
        if exported:
            return "variable"
        return None

    def _clause_exports(self, root, source) -> dict[str, set[str]]:
        """Local name -> names it is exported under by ``export { ... }`` / ``export default a``."""
        names: dict[str, set[str]] = {}
        for node in root.named_children:
            if node.type != "export_statement" or node.child_by_field_name("source") is not None:
                continue
            for local, exported_as in self._local_exports(node, source):
                names.setdefault(local, set()).add(exported_as)
        return names

    def _apply_export_clauses(self, symbols, clause_names):
        """Mark symbols that ``export { a }`` exports under their own name.

        Aliased and default clauses (``export { a as b }``, ``export default a``)
        leave the flags alone; they arrive as ``export`` references and the
        graph builder registers the extra names.
        """
        for sym in symbols:
            if sym["name"] in clause_names.get(sym["name"], ()):
                sym["is_exported"] = True

    def _local_exports(self, node, source) -> list[tuple[str, str]]:
        """(local name, exported name) pairs of a local export statement."""
        pairs = []
        if self._has_token(node, "default"):
            value = self._unwrap(node.child_by_field_name("value"))
            if value is not None and value.type == "identifier":
                pairs.append((self.node_text(value, source), "default"))
            return pairs
        for clause in node.named_children:
            if clause.type != "export_clause":
                continue
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name = self._module_export_name(spec.child_by_field_name("name"), source)
                alias = self._module_export_name(spec.child_by_field_name("alias"), source)
                if name:
                    pairs.append((name, alias or name))
        return pairs

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def extract_references(self, tree, source: bytes, file_path: str) -> list[dict]:
        refs: list[dict] = []
        for child in tree.root_node.named_children:
            t = child.type
            if t == "import_statement":
                self._import_references(child, source, refs)
            elif t == "export_statement":
                self._export_references(child, source, refs)
            else:
                self._declaration_references(child, source, refs)
        return refs

    def _import_references(self, node, source, refs):
        path = self._literal_string(node.child_by_field_name("source"), source)
        if path is None:
            return
        line = node.start_point[0] + 1
        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        if clause is None:
            refs.append(self._make_reference("", "side_effect_import", line, import_path=path))
            return
        for child in clause.named_children:
            if child.type == "identifier":
                refs.append(
                    self._make_reference(
                        self.node_text(child, source), "import", line, import_path=path, imported_name="default"
                    )
                )
            elif child.type == "namespace_import":
                ident = next((c for c in child.named_children if c.type == "identifier"), None)
                if ident is not None:
                    refs.append(
                        self._make_reference(
                            self.node_text(ident, source), "import", line, import_path=path, imported_name="*"
                        )
                    )
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name = self._module_export_name(spec.child_by_field_name("name"), source)
                    alias = spec.child_by_field_name("alias")
                    local = self.node_text(alias, source) if alias is not None else name
                    if name and local:
                        refs.append(
                            self._make_reference(local, "import", line, import_path=path, imported_name=name)
                        )

    def _export_references(self, node, source, refs):
        line = node.start_point[0] + 1
        src = node.child_by_field_name("source")
        if src is not None:
            path = self._literal_string(src, source)
            if path is None:
                return
            ns = next((c for c in node.named_children if c.type == "namespace_export"), None)
            clause = next((c for c in node.named_children if c.type == "export_clause"), None)
            if ns is not None:
                name_node = ns.named_children[-1] if ns.named_children else None
                name = self._module_export_name(name_node, source)
                if name:
                    refs.append(self._make_reference(name, "reexport", line, import_path=path, imported_name="*"))
            elif clause is not None:
                for spec in clause.named_children:
                    if spec.type != "export_specifier":
                        continue
                    name = self._module_export_name(spec.child_by_field_name("name"), source)
                    alias = self._module_export_name(spec.child_by_field_name("alias"), source)
                    if name:
                        refs.append(
                            self._make_reference(
                                alias or name, "reexport", line, import_path=path, imported_name=name
                            )
                        )
            else:
                refs.append(self._make_reference("*", "reexport", line, import_path=path, imported_name="*"))
            return

        decl = node.child_by_field_name("declaration")
        if decl is not None:
            self._declaration_references(decl, source, refs)
            return
        for local, exported_as in self._local_exports(node, source):
            refs.append(self._make_reference(local, "export", line, member=exported_as))
        value = node.child_by_field_name("value")
        unwrapped = self._unwrap(value)
        if value is not None and unwrapped is not None and unwrapped.type != "identifier":
            self._visit(value, source, refs, self._default_value_name(unwrapped, source))

    def _declaration_references(self, node, source, refs):
        t = node.type
        if t in _FUNCTION_DECLARATIONS or t in self._class_declaration_types:
            name_node = node.child_by_field_name("name")
            owner = self.node_text(name_node, source) if name_node is not None else None
            self._visit(node, source, refs, owner)
        elif t in _VARIABLE_DECLARATIONS:
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    self._visit(declarator, source, refs, None)
                    continue
                name_node = declarator.child_by_field_name("name")
                value = declarator.child_by_field_name("value")
                unwrapped = self._unwrap(value)
                # Function and class bodies run when the binding is used;
                # any other initializer runs when the module loads.
                owner = None
                if (
                    name_node is not None
                    and name_node.type == "identifier"
                    and unwrapped is not None
                    and (unwrapped.type in _FUNCTION_VALUES or unwrapped.type in _CLASS_VALUES)
                ):
                    owner = self.node_text(name_node, source)
                if name_node is not None and name_node.type != "identifier":
                    # Destructuring defaults are expressions too
                    self._visit_pattern_defaults(name_node, source, refs, owner)
                if value is not None:
                    self._visit(value, source, refs, owner)
        else:
            self._visit(node, source, refs, None)

    def _visit_pattern_defaults(self, pattern, source, refs, owner):
        stack = [pattern]
        while stack:
            n = stack.pop()
            if n.type in ("assignment_pattern", "object_assignment_pattern"):
                right = n.child_by_field_name("right")
                if right is not None:
                    self._visit(right, source, refs, owner)
                continue
            stack.extend(n.named_children)

    def _visit(self, node, source, refs, owner):
        """Walk *node* iteratively, recording references attributed to *owner*."""
        stack = [node]
        while stack:
            n = stack.pop()
            t = n.type
            line = n.start_point[0] + 1

            if t in self._reference_types:
                refs.append(self._make_reference(self.node_text(n, source), "reference", line, source_name=owner))
            elif t == "member_expression":
                obj = self._unwrap(n.child_by_field_name("object"))
                prop = n.child_by_field_name("property")
                if obj is not None and obj.type == "identifier":
                    refs.append(
                        self._make_reference(
                            self.node_text(obj, source),
                            "member",
                            line,
                            source_name=owner,
                            member=self.node_text(prop, source) if prop is not None else None,
                        )
                    )
                elif obj is not None:
                    stack.append(obj)
            elif t == "subscript_expression":
                obj = self._unwrap(n.child_by_field_name("object"))
                index = n.child_by_field_name("index")
                key = self._literal_string(index, source)
                if obj is not None and obj.type == "identifier":
                    refs.append(
                        self._make_reference(
                            self.node_text(obj, source), "dynamic_member", line, source_name=owner, member=key
                        )
                    )
                else:
                    if obj is not None:
                        stack.append(obj)
                    if key is not None:
                        refs.append(self._make_reference("", "dynamic_member", line, source_name=owner, member=key))
                if index is not None and key is None:
                    stack.append(index)
            elif t == "call_expression" and self._is_dynamic_import(n):
                args = n.child_by_field_name("arguments")
                self._dynamic_import_reference(args, source, refs, owner, line)
                if args is not None:
                    for arg in args.named_children:
                        if arg.type == "template_string":
                            stack.append(arg)
                        elif arg.type != "string":
                            stack.append(arg)
            elif t == "string":
                value = self._literal_string(n, source)
                if value and _IDENTIFIER_RE.match(value):
                    refs.append(self._make_reference(value, "string", line, source_name=owner))
            elif t == "template_string":
                stack.extend(c for c in n.named_children if c.type == "template_substitution")
            elif t == "formal_parameters":
                stack.extend(self._parameter_expressions(n))
            elif t == "arrow_function":
                param = n.child_by_field_name("parameter")
                stack.extend(c for c in n.named_children if param is None or c != param)
            elif t in self._named_declaration_types:
                name_node = n.child_by_field_name("name")
                stack.extend(c for c in n.named_children if name_node is None or c != name_node)
            elif t == "variable_declarator":
                name_node = n.child_by_field_name("name")
                if name_node is not None and name_node.type != "identifier":
                    self._visit_pattern_defaults(name_node, source, refs, owner)
                value = n.child_by_field_name("value")
                if value is not None:
                    stack.append(value)
            elif t in ("import_statement", "comment"):
                continue
            else:
                stack.extend(n.named_children)

    def _parameter_expressions(self, params) -> list:
        """Default values inside a parameter list (the names are bindings)."""
        out = []
        for p in params.named_children:
            if p.type == "assignment_pattern":
                right = p.child_by_field_name("right")
                if right is not None:
                    out.append(right)
        return out

    def _is_dynamic_import(self, call) -> bool:
        fn = call.child_by_field_name("function")
        return fn is not None and fn.type == "import"

    def _dynamic_import_reference(self, args, source, refs, owner, line):
        first = args.named_children[0] if args is not None and args.named_children else None
        path = None
        if first is not None and first.type == "string":
            path = self._literal_string(first, source)
        elif first is not None and first.type == "template_string":
            text = self.node_text(first, source)[1:-1]
            path = _TEMPLATE_SUB_RE.sub("*", text)
        refs.append(self._make_reference("", "dynamic_import", line, source_name=owner, import_path=path))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _unwrap(self, node):
        while node is not None and node.type in self._wrapper_types:
            inner = [c for c in node.named_children if c.type != "comment"]
            node = inner[0] if inner else None
        return node

    def _default_value_name(self, value, source) -> str:
        """``export default function foo() {}`` keeps the name ``foo``."""
        if value.type in _FUNCTION_VALUES or value.type in _CLASS_VALUES:
            name_node = value.child_by_field_name("name")
            if name_node is not None:
                return self.node_text(name_node, source)
        return "default"

    def _has_token(self, node, token: str) -> bool:
        return any(not c.is_named and c.type == token for c in node.children)

    def _literal_string(self, node, source) -> str | None:
        """Value of a string literal (or substitution-free template), else None."""
        if node is None:
            return None
        if node.type == "string":
            return self.node_text(node, source)[1:-1]
        if node.type == "template_string" and not any(
            c.type == "template_substitution" for c in node.named_children
        ):
            return self.node_text(node, source)[1:-1]
        return None

    def _module_export_name(self, node, source) -> str | None:
        if node is None:
            return None
        if node.type == "string":
            return self._literal_string(node, source)
        return self.node_text(node, source)
