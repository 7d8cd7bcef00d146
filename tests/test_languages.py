"""Tests for the tree-sitter based JavaScript/TypeScript extractors.

Covers:
- Symbol kinds and export flags (functions, classes, closures, variables,
  default exports, local export clauses)
- Import, re-export and side-effect import references
- Reference ownership (enclosing symbol vs module scope)
- Member, bracket-notation, string and dynamic import() references
- Parse failure isolation
- Language registry lookups
"""

from __future__ import annotations

import pytest
from conftest import extract, refs_of_kind

from deadwood.languages.registry import get_extractor, get_language_for_file


def _symbols(result):
    return {s["name"]: s for s in result["symbols"]}


def _targets(refs):
    return [r["target_name"] for r in refs]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    @pytest.mark.parametrize(
        "path,language",
        [
            ("src/a.js", "javascript"),
            ("src/a.jsx", "javascript"),
            ("src/a.mjs", "javascript"),
            ("src/a.cjs", "javascript"),
            ("src/a.ts", "typescript"),
            ("src/a.mts", "typescript"),
            ("src/a.cts", "typescript"),
            ("src/a.tsx", "tsx"),
            ("src/a.TS", "typescript"),
        ],
    )
    def test_language_for_file(self, path, language):
        assert get_language_for_file(path) == language

    def test_unsupported_extension(self):
        assert get_language_for_file("README.md") is None

    def test_tsx_shares_typescript_extractor(self):
        assert type(get_extractor("tsx")) is type(get_extractor("typescript"))
        assert get_extractor("tsx").language_name == "typescript"

    def test_unknown_language_raises(self):
        with pytest.raises(ValueError):
            get_extractor("python")


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------


class TestSymbols:
    def test_declaration_kinds(self):
        result = extract(
            "src/kinds.ts",
            "export function a() {}\n"
            "function* gen() {}\n"
            "export class B {}\n"
            "abstract class C {}\n"
            "const d = () => 1;\n"
            "export const e = function () {};\n"
            "export const F = class {};\n"
            "export const VALUE = 42;\n"
            "const local = 1;\n"
            "interface I {}\n"
            "type T = string;\n",
        )
        assert result["diagnostics"] == []
        syms = _symbols(result)
        assert syms["a"]["kind"] == "function"
        assert syms["gen"]["kind"] == "function"
        assert syms["B"]["kind"] == "class"
        assert syms["C"]["kind"] == "class"
        assert syms["d"]["kind"] == "closure"
        assert syms["e"]["kind"] == "closure"
        assert syms["F"]["kind"] == "class"
        assert syms["VALUE"]["kind"] == "variable"
        assert "local" not in syms
        assert "I" not in syms and "T" not in syms

    def test_export_flags(self):
        syms = _symbols(extract("a.ts", "export function pub() {}\nfunction priv() {}\n"))
        assert syms["pub"]["is_exported"] is True
        assert syms["priv"]["is_exported"] is False
        assert syms["pub"]["is_default_export"] is False

    def test_line_range_is_one_based(self):
        syms = _symbols(extract("a.js", "\n\nfunction f() {\n  return 1;\n}\n"))
        assert syms["f"]["line_start"] == 3
        assert syms["f"]["line_end"] == 5

    def test_named_default_export_keeps_its_name(self):
        syms = _symbols(extract("a.ts", "export default function unusedDefault() {}\n"))
        assert syms["unusedDefault"]["is_default_export"] is True
        assert syms["unusedDefault"]["is_exported"] is True
        assert syms["unusedDefault"]["kind"] == "function"

    def test_anonymous_default_export(self):
        syms = _symbols(extract("a.js", "export default { key: 1 };\n"))
        assert syms["default"]["kind"] == "default_export"
        assert syms["default"]["is_default_export"] is True

    def test_default_export_of_identifier_is_an_export_reference(self):
        result = extract("a.js", "function app() {}\nexport default app;\n")
        syms = _symbols(result)
        assert set(syms) == {"app"}
        assert syms["app"]["is_default_export"] is False
        assert {(r["target_name"], r["member"]) for r in refs_of_kind(result, "export")} == {("app", "default")}

    def test_named_and_default_export_keeps_named_flag(self):
        syms = _symbols(extract("a.ts", "export const Button = () => 1;\nexport default Button;\n"))
        assert syms["Button"]["is_exported"] is True
        assert syms["Button"]["is_default_export"] is False

    def test_clause_exported_value_is_a_variable(self):
        syms = _symbols(extract("a.ts", "const LIMIT = 5;\nconst hidden = 6;\nexport { LIMIT };\n"))
        assert syms["LIMIT"]["kind"] == "variable"
        assert syms["LIMIT"]["is_exported"] is True
        assert "hidden" not in syms

    def test_aliased_clause_value_is_a_variable(self):
        syms = _symbols(extract("a.ts", "const x = 5;\nexport { x as y };\n"))
        assert syms["x"]["kind"] == "variable"
        assert syms["x"]["is_exported"] is False

    def test_export_clause_marks_locals(self):
        result = extract(
            "a.js",
            "function foo() {}\nfunction bar() {}\nfunction keep() {}\nexport { foo, bar as baz };\n",
        )
        syms = _symbols(result)
        assert syms["foo"]["is_exported"] is True
        # Only exported as "baz"; the graph builder registers the alias
        assert syms["bar"]["is_exported"] is False
        assert not syms["keep"]["is_exported"]
        exports = {(r["target_name"], r["member"]) for r in refs_of_kind(result, "export")}
        assert exports == {("foo", "foo"), ("bar", "baz")}

    def test_reexport_declares_nothing(self):
        result = extract("index.ts", "export { a } from './a';\nexport * from './b';\n")
        assert result["symbols"] == []


# ---------------------------------------------------------------------------
# Imports and re-exports
# ---------------------------------------------------------------------------


class TestImports:
    def test_import_bindings(self):
        result = extract(
            "src/app.js",
            "import def, { x, y as z } from './m';\n"
            "import * as ns from './n';\n"
            "import './side';\n",
        )
        imports = {(r["target_name"], r["import_path"], r["imported_name"]) for r in refs_of_kind(result, "import")}
        assert imports == {
            ("def", "./m", "default"),
            ("x", "./m", "x"),
            ("z", "./m", "y"),
            ("ns", "./n", "*"),
        }
        side = refs_of_kind(result, "side_effect_import")
        assert [r["import_path"] for r in side] == ["./side"]

    def test_reexports(self):
        result = extract(
            "src/index.js",
            "export * from './all';\n"
            "export * as grouped from './g';\n"
            "export { q as r } from './q';\n",
        )
        reexports = {(r["target_name"], r["import_path"], r["imported_name"]) for r in refs_of_kind(result, "reexport")}
        assert reexports == {
            ("*", "./all", "*"),
            ("grouped", "./g", "*"),
            ("r", "./q", "q"),
        }

    def test_import_line_numbers(self):
        result = extract("a.js", "// header\nimport { x } from './x';\n")
        assert refs_of_kind(result, "import")[0]["line"] == 2


# ---------------------------------------------------------------------------
# Use-site references
# ---------------------------------------------------------------------------


class TestReferences:
    def test_owner_attribution(self):
        result = extract(
            "a.js",
            "import { helper } from './h';\n"
            "export function run() { helper(); }\n"
            "const cfg = helper();\n"
            "const later = () => helper();\n"
            "run();\n",
        )
        owners = {(r["source_name"], r["target_name"]) for r in refs_of_kind(result, "reference")}
        assert ("run", "helper") in owners
        assert (None, "helper") in owners
        assert ("later", "helper") in owners
        assert (None, "run") in owners

    def test_parameters_are_not_references(self):
        result = extract("a.js", "function f(a, b = dflt) {}\n")
        assert _targets(refs_of_kind(result, "reference")) == ["dflt"]

    def test_declaration_names_are_not_references(self):
        result = extract("a.js", "function f() {}\nclass K {}\n")
        assert refs_of_kind(result, "reference") == []

    def test_member_and_bracket_access(self):
        result = extract(
            "a.js",
            "import * as api from './api';\n"
            "api.load();\n"
            "api['save']();\n"
            "api[key]();\n",
        )
        members = [(r["target_name"], r["member"]) for r in refs_of_kind(result, "member")]
        assert members == [("api", "load")]
        dynamic = {(r["target_name"], r["member"]) for r in refs_of_kind(result, "dynamic_member")}
        assert dynamic == {("api", "save"), ("api", None)}
        assert "key" in _targets(refs_of_kind(result, "reference"))

    def test_identifier_like_strings(self):
        result = extract("a.js", "const names = ['loadAll', 'not a name', './path'];\n")
        assert _targets(refs_of_kind(result, "string")) == ["loadAll"]

    def test_dynamic_imports(self):
        result = extract(
            "src/a.js",
            "const a = import('./lazy');\n"
            "const b = import(`./locales/${lang}.js`);\n"
            "const c = import(name);\n",
        )
        paths = [r["import_path"] for r in refs_of_kind(result, "dynamic_import")]
        assert paths == ["./lazy", "./locales/*.js", None]
        refs = _targets(refs_of_kind(result, "reference"))
        assert "lang" in refs and "name" in refs

    def test_typescript_wrappers_unwrapped(self):
        result = extract(
            "main.ts",
            "import * as handlers from './handlers';\n"
            "const fn = (handlers as any)['handleUser'];\n",
        )
        dynamic = [(r["target_name"], r["member"]) for r in refs_of_kind(result, "dynamic_member")]
        assert dynamic == [("handlers", "handleUser")]

    def test_type_annotations_are_references(self):
        result = extract(
            "a.ts",
            "class Model {}\n"
            "export function make(input: Input): Model { return null as any; }\n",
        )
        refs = {(r["source_name"], r["target_name"]) for r in refs_of_kind(result, "reference")}
        assert ("make", "Model") in refs
        assert ("make", "Input") in refs
        assert ("make", "input") not in refs

    def test_jsx_components(self):
        result = extract(
            "src/App.tsx",
            "import { Button } from './Button';\n"
            "export function App() { return <Button label=\"x\" />; }\n",
        )
        assert result["diagnostics"] == []
        assert ("App", "Button") in {
            (r["source_name"], r["target_name"]) for r in refs_of_kind(result, "reference")
        }


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestParseFailures:
    def test_syntax_error_yields_diagnostic_only(self):
        result = extract("broken.ts", "export function ok() {}\nfunction (\n")
        assert result["symbols"] == []
        assert result["references"] == []
        [diag] = result["diagnostics"]
        assert diag["severity"] == "warning"
        assert diag["code"] == "parse-error"
        assert diag["path"] == "broken.ts"

    def test_invalid_utf8(self):
        from deadwood.index.symbols import extract_file

        result = extract_file("bad.js", b"const x = '\xff\xfe';\n")
        assert result["symbols"] == []
        assert result["diagnostics"][0]["code"] == "parse-error"

    def test_unsupported_file(self):
        result = extract("notes.md", "# hi\n")
        assert result["language"] is None
        assert result["diagnostics"][0]["message"] == "unsupported file type"

    def test_result_shape(self):
        result = extract("a.js", "export const x = 1;\n")
        assert set(result) == {"path", "language", "symbols", "references", "diagnostics"}
        assert set(result["symbols"][0]) == {
            "name", "kind", "line_start", "line_end", "is_exported", "is_default_export",
        }
