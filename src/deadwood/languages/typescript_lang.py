from __future__ import annotations

from .javascript_lang import JavaScriptExtractor


class TypeScriptExtractor(JavaScriptExtractor):
    """TypeScript extractor extending JavaScript with TS-specific constructs.

    Interfaces, type aliases and enums are not tracked as symbols, but type
    annotations count as references so a class used only as a type stays live.
    """

    _named_declaration_types = JavaScriptExtractor._named_declaration_types | frozenset(
        {
            "abstract_class_declaration",
            "interface_declaration",
            "type_alias_declaration",
            "enum_declaration",
            "abstract_method_signature",
        }
    )
    _class_declaration_types = frozenset({"class_declaration", "abstract_class_declaration"})
    _reference_types = JavaScriptExtractor._reference_types | frozenset({"type_identifier"})
    _wrapper_types = frozenset(
        {
            "parenthesized_expression",
            "as_expression",
            "satisfies_expression",
            "non_null_expression",
        }
    )

    @property
    def language_name(self) -> str:
        return "typescript"

    def _unwrap(self, node):
        while node is not None:
            if node.type == "type_assertion":
                # <T>expr puts the type first
                inner = [c for c in node.named_children if c.type != "type_arguments"]
                node = inner[-1] if inner else None
            elif node.type in self._wrapper_types:
                inner = [c for c in node.named_children if c.type != "comment"]
                node = inner[0] if inner else None
            else:
                break
        return node

    def _parameter_expressions(self, params) -> list:
        out = super()._parameter_expressions(params)
        for p in params.named_children:
            if p.type not in ("required_parameter", "optional_parameter"):
                continue
            for field_name in ("type", "value"):
                child = p.child_by_field_name(field_name)
                if child is not None:
                    out.append(child)
        return out
