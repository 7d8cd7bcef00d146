"""CLI tests: output formats, exit codes and the clean command."""

from __future__ import annotations

import pytest
from conftest import assert_json_envelope, invoke_cli, parse_json_output

from deadwood.db.connection import get_db_path


@pytest.fixture(autouse=True)
def _default_cache_location(monkeypatch):
    monkeypatch.delenv("DEADWOOD_CACHE_DIR", raising=False)


class TestDead:
    def test_json(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["dead"], cwd=sample_project, json_mode=True)
        data = parse_json_output(result, "dead")
        assert_json_envelope(data, "dead")
        assert data["summary"] == {"totalSymbols": 25, "deadSymbols": 16, "deadCodeRatio": 0.64}
        assert data["diagnostics"] == []
        assert data["stats"]["filesAnalyzed"] == 9
        paths = [f["path"] for f in data["files"]]
        assert paths == sorted(paths)

    def test_json_min_confidence(self, cli_runner, sample_project):
        result = invoke_cli(
            cli_runner, ["dead", "--min-confidence", "80"], cwd=sample_project, json_mode=True
        )
        data = parse_json_output(result, "dead")
        names = {s["name"] for f in data["files"] for s in f["deadSymbols"]}
        assert "helperA" in names
        assert "functionA" not in names
        assert all(s["confidence"] >= 80 for f in data["files"] for s in f["deadSymbols"])

    def test_explicit_root_argument(self, cli_runner, sample_project, tmp_path):
        result = invoke_cli(cli_runner, ["dead", str(sample_project)], cwd=tmp_path, json_mode=True)
        assert parse_json_output(result, "dead")["summary"]["deadSymbols"] == 16

    def test_text(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["dead"], cwd=sample_project)
        assert result.exit_code == 0
        assert "=== Dead Code (16 of 25 symbols, 64.0%) ===" in result.output
        assert "src/dead.ts:3" in result.output
        assert "transitively-dead" in result.output

    def test_text_diagnostics(self, cli_runner, project_factory):
        proj = project_factory({
            "src/main.ts": "import { gone } from './missing';\ngone();\n",
        })
        result = invoke_cli(cli_runner, ["dead", "--diagnostics"], cwd=proj)
        assert result.exit_code == 0
        assert "=== Diagnostics (1) ===" in result.output
        assert "unresolved-import" in result.output

    def test_no_cache_leaves_no_database(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["dead", "--no-cache"], cwd=sample_project)
        assert result.exit_code == 0
        assert not get_db_path(sample_project).exists()

    def test_fail_on_dead(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["dead", "--fail-on-dead"], cwd=sample_project)
        assert result.exit_code == 5

    def test_fail_on_dead_clean_project(self, cli_runner, project_factory):
        proj = project_factory({"src/main.ts": "console.log('ok');\n"})
        result = invoke_cli(cli_runner, ["dead", "--fail-on-dead"], cwd=proj)
        assert result.exit_code == 0

    def test_threshold_out_of_range(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["dead", "--min-confidence", "150"], cwd=sample_project)
        assert result.exit_code == 2

    def test_threshold_not_a_number(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["dead", "--min-confidence", "lots"], cwd=sample_project)
        assert result.exit_code == 2

    def test_missing_root(self, cli_runner, tmp_path):
        result = invoke_cli(cli_runner, ["dead", str(tmp_path / "nope")], cwd=tmp_path)
        assert result.exit_code == 3


class TestEntryPoints:
    def test_json(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["entry-points"], cwd=sample_project, json_mode=True)
        data = parse_json_output(result, "entry-points")
        assert_json_envelope(data, "entry-points")
        assert data["summary"] == {"roots": 3, "entryFiles": 1, "testFiles": 1, "libraryMode": False}
        assert data["entry_files"] == ["src/main.ts"]
        assert data["test_files"] == ["tests/used.test.ts"]
        by_name = {r["name"]: r for r in data["roots"]}
        assert by_name["testableFunction"]["reasons"] == ["test-import"]
        assert by_name["testableFunction"]["path"] == "src/used.ts"

    def test_text(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["entry-points", "--no-cache"], cwd=sample_project)
        assert result.exit_code == 0
        assert "application mode" in result.output
        assert "testableFunction" in result.output


class TestClean:
    def test_removes_cache(self, cli_runner, sample_project):
        invoke_cli(cli_runner, ["dead"], cwd=sample_project)
        db_path = get_db_path(sample_project)
        assert db_path.exists()

        result = invoke_cli(cli_runner, ["clean"], cwd=sample_project, json_mode=True)
        data = parse_json_output(result, "clean")
        assert_json_envelope(data, "clean")
        assert data["summary"] == {"removed": True}
        assert not db_path.exists()

    def test_nothing_to_remove(self, cli_runner, sample_project):
        result = invoke_cli(cli_runner, ["clean"], cwd=sample_project)
        assert result.exit_code == 0
        assert "No cache at" in result.output


class TestGroup:
    def test_help_lists_exit_codes(self, cli_runner):
        result = invoke_cli(cli_runner, ["--help"])
        assert result.exit_code == 0
        assert "Exit codes:" in result.output
        for command in ("dead", "entry-points", "clean"):
            assert command in result.output

    def test_unknown_command(self, cli_runner):
        result = invoke_cli(cli_runner, ["bogus"])
        assert result.exit_code == 2
