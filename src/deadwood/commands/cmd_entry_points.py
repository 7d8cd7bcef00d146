"""List the reachability roots and why each one is a root."""

from __future__ import annotations

import click

from deadwood.api import load_graph
from deadwood.output.formatter import abbrev_kind, format_table, json_envelope, loc, section, to_json


@click.command("entry-points")
@click.argument("root", default=".", type=click.Path())
@click.option("--no-cache", "no_cache", is_flag=True, help="Ignore and do not update the extraction cache")
@click.pass_context
def entry_points(ctx, root, no_cache):
    """Show entry files, test files and public API roots."""
    json_mode = ctx.obj.get('json') if ctx.obj else False

    prepared = load_graph(root, use_cache=not no_cache)
    graph, entry = prepared.graph, prepared.entry_points

    roots = []
    for node_id in sorted(entry.roots):
        sym = graph[node_id]
        roots.append({
            "name": sym.name,
            "kind": sym.kind,
            "path": sym.file_path,
            "line": None if sym.is_module else sym.line_start,
            "reasons": list(entry.roots[node_id]),
        })

    if json_mode:
        click.echo(to_json(json_envelope(
            "entry-points",
            summary={
                "roots": len(roots),
                "entryFiles": len(entry.entry_files),
                "testFiles": len(entry.test_files),
                "libraryMode": entry.library_mode,
            },
            entry_files=entry.entry_files,
            test_files=entry.test_files,
            public_files=entry.public_files,
            roots=roots,
        )))
        return

    mode = "library" if entry.library_mode else "application"
    click.echo(f"=== Entry Points ({len(roots)} roots, {mode} mode) ===")
    click.echo(section("Entry files:", [f"  {p}" for p in entry.entry_files] or ["  (none)"]))
    click.echo(section("Test files:", [f"  {p}" for p in entry.test_files] or ["  (none)"], budget=20))
    symbol_rows = [
        [abbrev_kind(r["kind"]), r["name"], loc(r["path"], r["line"]), ", ".join(r["reasons"])]
        for r in roots
        if r["kind"] != "module"
    ]
    click.echo("\nRooted symbols:")
    click.echo(format_table(["kind", "name", "location", "reasons"], symbol_rows))
