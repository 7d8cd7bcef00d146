"""Show unreachable symbols with their deletion-safety confidence."""

from __future__ import annotations

import click

from deadwood.api import analyze_dead_code
from deadwood.exit_codes import GateFailureError
from deadwood.output.formatter import abbrev_kind, format_table, json_envelope, loc, to_json


@click.command()
@click.argument("root", default=".", type=click.Path())
@click.option("--min-confidence", "min_confidence", type=float, default=0.0, show_default=True,
              help="Only report symbols scoring at least this confidence (0-100)")
@click.option("--no-cache", "no_cache", is_flag=True, help="Ignore and do not update the extraction cache")
@click.option("--fail-on-dead", "fail_on_dead", is_flag=True,
              help="Exit with code 5 when any dead symbol is reported")
@click.option("--diagnostics", "show_diagnostics", is_flag=True,
              help="Also list parse warnings and unresolved imports")
@click.pass_context
def dead(ctx, root, min_confidence, no_cache, fail_on_dead, show_diagnostics):
    """Report symbols no entry point can reach."""
    json_mode = ctx.obj.get('json') if ctx.obj else False

    result = analyze_dead_code(root, min_confidence, use_cache=not no_cache)
    summary = result.summary

    if json_mode:
        payload = result.to_dict()
        click.echo(to_json(json_envelope(
            "dead",
            summary=payload["summary"],
            files=payload["files"],
            diagnostics=[d.to_dict() for d in result.diagnostics],
            stats={
                "filesAnalyzed": result.stats.files_analyzed,
                "cacheHits": result.stats.cache_hits,
                "cacheMisses": result.stats.cache_misses,
            },
        )))
    else:
        click.echo(
            f"=== Dead Code ({summary.dead_symbols} of {summary.total_symbols} symbols, "
            f"{summary.dead_code_ratio:.1%}) ==="
        )
        rows = [
            [str(sym.confidence), abbrev_kind(sym.kind), sym.name, loc(path, sym.line), ", ".join(sym.reasons)]
            for path, sym in result.iter_dead_symbols()
        ]
        click.echo(format_table(["conf", "kind", "name", "location", "reasons"], rows))
        if show_diagnostics and result.diagnostics:
            click.echo(f"\n=== Diagnostics ({len(result.diagnostics)}) ===")
            click.echo(format_table(
                ["severity", "code", "location", "message"],
                [[d.severity, d.code, loc(d.path, d.line), d.message] for d in result.diagnostics],
            ))

    if fail_on_dead and summary.dead_symbols:
        raise GateFailureError(f"{summary.dead_symbols} dead symbol(s) found")
