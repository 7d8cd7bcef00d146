from __future__ import annotations

from abc import ABC, abstractmethod


class LanguageExtractor(ABC):
    """Base class for language-specific symbol extraction."""

    @property
    @abstractmethod
    def language_name(self) -> str: ...

    @abstractmethod
    def extract_symbols(self, tree, source: bytes, file_path: str) -> list[dict]:
        """Extract top-level symbols from a parsed tree.

        Each dict must contain:
            name, kind, line_start, line_end, is_exported, is_default_export
        """
        ...

    @abstractmethod
    def extract_references(self, tree, source: bytes, file_path: str) -> list[dict]:
        """Extract references (mentions, imports, exports) from a parsed tree.

        Each dict must contain:
            source_name, target_name, kind, line, import_path,
            imported_name, member
        """
        ...

    def node_text(self, node, source: bytes) -> str:
        if node is None:
            return ""
        return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def _make_symbol(
        self,
        name: str,
        kind: str,
        line_start: int,
        line_end: int,
        *,
        is_exported: bool = False,
        is_default_export: bool = False,
    ) -> dict:
        return {
            "name": name,
            "kind": kind,
            "line_start": line_start,
            "line_end": line_end,
            "is_exported": is_exported,
            "is_default_export": is_default_export,
        }

    def _make_reference(
        self,
        target_name: str,
        kind: str,
        line: int,
        *,
        source_name: str | None = None,
        import_path: str | None = None,
        imported_name: str | None = None,
        member: str | None = None,
    ) -> dict:
        return {
            "source_name": source_name,
            "target_name": target_name,
            "kind": kind,
            "line": line,
            "import_path": import_path,
            "imported_name": imported_name,
            "member": member,
        }
