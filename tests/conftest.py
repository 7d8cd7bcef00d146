"""Shared test fixtures and helpers for deadwood tests.

Provides:
- Git helper: git_init()
- CliRunner fixtures: cli_runner, invoke_cli()
- Factory fixture: project_factory for custom file combinations
- Extraction helpers: extract(), graph_of()
- JSON validation helpers: parse_json_output(), assert_json_envelope()
- sample_project: the reference fixture repository used by end-to-end tests
"""

from __future__ import annotations

import json
import os
import subprocess
import time

import pytest
from click.testing import CliRunner

# Files written by project_factory look this old, so the recency signal
# never applies unless a test sets a newer mtime itself.
OLD_AGE_SECONDS = 400 * 86400


# ===========================================================================
# Git helpers
# ===========================================================================


def git_init(path):
    """Initialize a git repo, add all files, and commit."""
    subprocess.run(["git", "init"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "user.email", "t@t.com"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "user.name", "Test"], cwd=path, capture_output=True)
    subprocess.run(["git", "add", "."], cwd=path, capture_output=True)
    subprocess.run(["git", "commit", "-m", "init"], cwd=path, capture_output=True)


# ===========================================================================
# Extraction helpers
# ===========================================================================


def extract(path, source):
    """Run per-file extraction on an in-memory source string."""
    from deadwood.index.symbols import extract_file

    return extract_file(path, source.encode("utf-8"))


def graph_of(files, path_aliases=None):
    """Extract every ``{path: source}`` pair and build the symbol graph."""
    from deadwood.graph.builder import build_symbol_graph

    return build_symbol_graph([extract(p, s) for p, s in files.items()], path_aliases)


def symbol_id(graph, path, name):
    """Id of the declared symbol *name* in *path* (fails the test if absent)."""
    for sid in graph.file_symbols.get(path, []):
        if graph[sid].name == name:
            return sid
    pytest.fail(f"No symbol {name!r} in {path}; have {[graph[s].name for s in graph.file_symbols.get(path, [])]}")


def refs_of_kind(extraction, kind):
    return [r for r in extraction["references"] if r["kind"] == kind]


# ===========================================================================
# CliRunner helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


def invoke_cli(runner, args, cwd=None, json_mode=False):
    """Invoke the deadwood CLI via CliRunner.

    Args:
        runner: CliRunner instance
        args: list of CLI arguments (e.g. ["dead"])
        cwd: directory to run in
        json_mode: if True, prepend --json flag
    Returns:
        click.testing.Result
    """
    from deadwood.cli import cli

    full_args = []
    if json_mode:
        full_args.append("--json")
    full_args.extend(args)

    old_cwd = os.getcwd()
    try:
        if cwd:
            os.chdir(str(cwd))
        result = runner.invoke(cli, full_args, catch_exceptions=False)
    finally:
        os.chdir(old_cwd)

    return result


# ===========================================================================
# JSON validation helpers
# ===========================================================================


def parse_json_output(result, command=None):
    """Parse JSON from a CliRunner result.

    Raises:
        AssertionError with context on parse failure
    """
    assert result.exit_code == 0, f"Command {command or '?'} failed (exit {result.exit_code}):\n{result.output}"
    try:
        return json.loads(result.output)
    except json.JSONDecodeError as e:
        pytest.fail(f"Invalid JSON from {command or '?'}: {e}\nOutput was:\n{result.output[:500]}")


def assert_json_envelope(data, command=None):
    """Validate that a parsed JSON dict follows the deadwood envelope contract."""
    assert isinstance(data, dict), f"Expected dict, got {type(data)}"
    for key in ("schema", "command", "version", "summary"):
        assert key in data, f"Missing {key!r} key in envelope"
    assert "timestamp" in data.get("_meta", {}), "Missing 'timestamp' in _meta"
    if command:
        assert data["command"] == command, f"Expected command={command}, got {data['command']}"
    assert isinstance(data["summary"], dict), f"summary should be dict, got {type(data['summary'])}"


# ===========================================================================
# Project fixtures
# ===========================================================================


def write_files(root, files, age_seconds=OLD_AGE_SECONDS):
    """Write ``{relative_path: content}`` under *root* with an old mtime."""
    stamp = time.time() - age_seconds
    for rel_path, content in files.items():
        fp = root / rel_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            fp.write_bytes(content)
        else:
            fp.write_text(content, encoding="utf-8")
        os.utime(fp, (stamp, stamp))


@pytest.fixture
def project_factory(tmp_path_factory):
    """Factory fixture for creating custom project layouts.

    Usage:
        def test_something(project_factory):
            proj = project_factory({
                "src/main.ts": "import { a } from './a';\\na();\\n",
                "src/a.ts": "export function a() {}\\n",
            })

    Returns a callable that accepts a dict of {relative_path: content}
    and returns the project path. Pass ``git=True`` to commit the files.
    """

    def _create(files, *, git=False, package_json=None):
        proj = tmp_path_factory.mktemp("project")
        (proj / ".gitignore").write_text(".deadwood/\n")
        if package_json is not None:
            (proj / "package.json").write_text(json.dumps(package_json))
        write_files(proj, files)
        if git:
            git_init(proj)
        return proj

    return _create


SAMPLE_FILES = {
    "package.json": json.dumps({"name": "sample-app", "private": True, "main": "src/main.ts"}),
    "src/main.ts": (
        "import { activeFunction, processData } from './used';\n"
        "import { publicApi } from './utils/exported';\n"
        "import { setupApp } from './utils';\n"
        "\n"
        "export function main() {\n"
        "  setupApp();\n"
        "  const result = activeFunction();\n"
        "  return processData(result, publicApi());\n"
        "}\n"
        "\n"
        "main();\n"
    ),
    "src/used.ts": (
        "export function activeFunction() {\n"
        "  return internalUsedHelper();\n"
        "}\n"
        "\n"
        "export function processData(value: number, extra: number) {\n"
        "  return value + extra;\n"
        "}\n"
        "\n"
        "function internalUsedHelper() {\n"
        "  return 42;\n"
        "}\n"
        "\n"
        "export function testableFunction(n: number) {\n"
        "  return n * 2;\n"
        "}\n"
    ),
    "src/dead.ts": (
        "import { helperForDeadCode } from './helpers';\n"
        "\n"
        "export function unusedExportedFunction() {\n"
        "  return helperForDeadCode() + onlyUsedByDeadCode();\n"
        "}\n"
        "\n"
        "export class UnusedClass {\n"
        "  run() { return 1; }\n"
        "}\n"
        "\n"
        "export async function deadAsyncFunction() {\n"
        "  return 2;\n"
        "}\n"
        "\n"
        "function completelyUnused() {\n"
        "  return 3;\n"
        "}\n"
        "\n"
        "function anotherUnusedFunction() {\n"
        "  return 4;\n"
        "}\n"
        "\n"
        "export function onlyUsedByDeadCode() {\n"
        "  return 5;\n"
        "}\n"
        "\n"
        "export default function unusedDefault() {\n"
        "  return 6;\n"
        "}\n"
    ),
    "src/helpers.ts": (
        "export function helperForDeadCode() {\n"
        "  return 7;\n"
        "}\n"
    ),
    "src/utils/exported.ts": (
        "export function publicApi() {\n"
        "  return internalHelper();\n"
        "}\n"
        "\n"
        "function internalHelper() {\n"
        "  return 8;\n"
        "}\n"
        "\n"
        "export function unusedUtility() {\n"
        "  return 9;\n"
        "}\n"
        "\n"
        "function privateUnusedHelper() {\n"
        "  return 10;\n"
        "}\n"
    ),
    "src/utils/index.ts": (
        "export function setupApp() {\n"
        "  return true;\n"
        "}\n"
        "\n"
        "export function indexFunction() {\n"
        "  return false;\n"
        "}\n"
    ),
    "src/circular-a.ts": (
        "import { functionB } from './circular-b';\n"
        "\n"
        "export function functionA() {\n"
        "  return helperA() + functionB();\n"
        "}\n"
        "\n"
        "function helperA() {\n"
        "  return 1;\n"
        "}\n"
    ),
    "src/circular-b.ts": (
        "import { functionA } from './circular-a';\n"
        "\n"
        "export function functionB() {\n"
        "  return helperB() + functionA();\n"
        "}\n"
        "\n"
        "function helperB() {\n"
        "  return 2;\n"
        "}\n"
    ),
    "tests/used.test.ts": (
        "import { testableFunction } from '../src/used';\n"
        "\n"
        "function testTestableFunction() {\n"
        "  return testableFunction(2) === 4;\n"
        "}\n"
        "\n"
        "function unusedTestHelper() {\n"
        "  return null;\n"
        "}\n"
        "\n"
        "testTestableFunction();\n"
    ),
}


@pytest.fixture
def sample_project(project_factory):
    """A small TypeScript application with live, dead and circular code."""
    return project_factory(SAMPLE_FILES)
