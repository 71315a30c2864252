"""Click CLI entry point with lazy-loaded subcommands."""

import logging
import os
import sys

# Fix Unicode output on Windows consoles (cp1253, cp1252, etc.)
if sys.platform == "win32" and not os.environ.get("PYTHONIOENCODING"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click


# Lazy-loading command group: imports command modules only when invoked.
# This keeps tree-sitter grammars out of `useindex --help`.
_COMMANDS = {
    "check": ("useindex.commands.cmd_check", "check"),
    "rules": ("useindex.commands.cmd_rules", "rules"),
    "init":  ("useindex.commands.cmd_init",  "init"),
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


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("useindex").setLevel(level)


@click.group(cls=LazyGroup)
@click.version_option(package_name="convex-useindex")
@click.option('--json', 'json_mode', is_flag=True, help='Output in JSON format')
@click.option('--sarif', 'sarif_mode', is_flag=True, help='Output SARIF 2.1.0 (check only)')
@click.option('-v', '--verbose', count=True, help='Log progress to stderr (-vv for debug)')
@click.pass_context
def cli(ctx, json_mode, sarif_mode, verbose):
    """useindex: catch Convex queries that scan whole tables."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj['json'] = json_mode
    ctx.obj['sarif'] = sarif_mode
