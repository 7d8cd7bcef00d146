"""Click CLI entry point with lazy-loaded subcommands."""

import logging
import os
import sys

# Fix Unicode output on Windows consoles (cp1253, cp1252, etc.)
if sys.platform == "win32" and not os.environ.get("PYTHONIOENCODING"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click

from deadwood.exit_codes import DESCRIPTIONS

# Lazy-loading command group: imports command modules only when invoked.
# This avoids importing networkx and the tree-sitter grammars for --help.
_COMMANDS = {
    "dead":         ("deadwood.commands.cmd_dead",         "dead"),
    "entry-points": ("deadwood.commands.cmd_entry_points", "entry_points"),
    "clean":        ("deadwood.commands.cmd_clean",        "clean"),
}


class LazyGroup(click.Group):
    """A Click group that lazy-loads command modules on first access."""

    def list_commands(self, ctx):
        return sorted(_COMMANDS.keys())

    def get_command(self, ctx, cmd_name):
        if cmd_name not in _COMMANDS:
            return None
        module_path, attr_name = _COMMANDS[cmd_name]
        import importlib
        mod = importlib.import_module(module_path)
        return getattr(mod, attr_name)

    def format_epilog(self, ctx, formatter):
        formatter.write("\n  Exit codes:\n")
        for code, text in sorted(DESCRIPTIONS.items()):
            formatter.write(f"    {code}  {text}\n")


@click.group(cls=LazyGroup)
@click.version_option(package_name="deadwood-code")
@click.option('--json', 'json_mode', is_flag=True, help='Output in JSON format')
@click.option('-v', '--verbose', count=True, help='Log progress to stderr (-vv for debug)')
@click.pass_context
def cli(ctx, json_mode, verbose):
    """Deadwood: find unreachable code in JavaScript/TypeScript projects."""
    ctx.ensure_object(dict)
    ctx.obj['json'] = json_mode
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
