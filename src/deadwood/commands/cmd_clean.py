"""Remove the extraction cache."""

from __future__ import annotations

import click

from deadwood.api import validate_root
from deadwood.config import load_config
from deadwood.db.cache import GraphCache
from deadwood.db.connection import db_exists, get_db_path
from deadwood.output.formatter import json_envelope, to_json


@click.command()
@click.argument("root", default=".", type=click.Path())
@click.pass_context
def clean(ctx, root):
    """Delete the cached extraction database for ROOT."""
    json_mode = ctx.obj.get('json') if ctx.obj else False

    root_path = validate_root(root)
    config = load_config(root_path)
    db_path = get_db_path(root_path, config)
    existed = db_exists(root_path, config)
    if existed:
        GraphCache(db_path).clear()

    if json_mode:
        click.echo(to_json(json_envelope(
            "clean",
            summary={"removed": existed},
            path=str(db_path),
        )))
    elif existed:
        click.echo(f"Removed cache {db_path}")
    else:
        click.echo(f"No cache at {db_path}")
