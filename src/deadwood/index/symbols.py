"""Per-file extraction: parse one file and return its symbols and references.

The result of :func:`extract_file` is a plain JSON-ready dict so it can be
cached verbatim and merged by the graph builder without further conversion.
"""

from __future__ import annotations

import logging

from deadwood.languages.registry import get_extractor, get_language_for_file, get_ts_parser

log = logging.getLogger(__name__)

# Bump whenever extraction output changes shape or meaning; cached entries
# written by another version are discarded.
EXTRACTOR_VERSION = 2


def extract_symbols(tree, source: bytes, file_path: str, extractor) -> list[dict]:
    """Extract top-level symbol definitions from a parsed AST.

    Each returned dict has:
        name, kind, line_start, line_end, is_exported, is_default_export
    """
    normalised = []
    for sym in extractor.extract_symbols(tree, source, file_path):
        normalised.append(
            {
                "name": sym.get("name", ""),
                "kind": sym.get("kind", "function"),
                "line_start": sym.get("line_start"),
                "line_end": sym.get("line_end"),
                "is_exported": bool(sym.get("is_exported", False)),
                "is_default_export": bool(sym.get("is_default_export", False)),
            }
        )
    return normalised


def extract_references(tree, source: bytes, file_path: str, extractor) -> list[dict]:
    """Extract references (mentions, imports, exports) from a parsed AST.

    Each returned dict has:
        source_name, target_name, kind, line, import_path, imported_name, member
    """
    normalised = []
    for ref in extractor.extract_references(tree, source, file_path):
        normalised.append(
            {
                "source_name": ref.get("source_name"),
                "target_name": ref.get("target_name", ""),
                "kind": ref.get("kind", "reference"),
                "line": ref.get("line"),
                "import_path": ref.get("import_path"),
                "imported_name": ref.get("imported_name"),
                "member": ref.get("member"),
            }
        )
    return normalised


def _diagnostic(path: str, message: str, line: int | None = None) -> dict:
    return {
        "path": path,
        "severity": "warning",
        "code": "parse-error",
        "message": message,
        "line": line,
    }


def _first_error_line(node) -> int | None:
    stack = [node]
    while stack:
        n = stack.pop()
        if n.type == "ERROR" or n.is_missing:
            return n.start_point[0] + 1
        if n.has_error:
            stack.extend(reversed(n.children))
    return None


def extract_file(path: str, content: bytes) -> dict:
    """Parse *content* as the file at *path* (root-relative, forward slashes).

    Never raises for bad input: a file that fails to decode or parse yields
    no symbols or references and a single ``parse-error`` diagnostic.
    """
    result = {
        "path": path,
        "language": get_language_for_file(path),
        "symbols": [],
        "references": [],
        "diagnostics": [],
    }
    language = result["language"]
    if language is None:
        result["diagnostics"].append(_diagnostic(path, "unsupported file type"))
        return result

    try:
        content.decode("utf-8")
    except UnicodeDecodeError as exc:
        result["diagnostics"].append(_diagnostic(path, f"file is not valid UTF-8: {exc.reason}"))
        return result

    try:
        tree = get_ts_parser(language).parse(content)
    except Exception as exc:
        log.debug("Parser failed on %s", path, exc_info=True)
        result["diagnostics"].append(_diagnostic(path, f"parser failed: {exc}"))
        return result

    if tree.root_node.has_error:
        line = _first_error_line(tree.root_node)
        result["diagnostics"].append(_diagnostic(path, "syntax error", line))
        return result

    extractor = get_extractor(language)
    try:
        symbols = extract_symbols(tree, content, path, extractor)
        references = extract_references(tree, content, path, extractor)
    except Exception as exc:
        log.warning("Extraction failed for %s: %s", path, exc)
        result["diagnostics"].append(_diagnostic(path, f"extraction failed: {exc}"))
        return result

    result["symbols"] = symbols
    result["references"] = references
    return result
