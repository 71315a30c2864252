"""Lint JavaScript/TypeScript sources for Convex queries without an index.

Runs every enabled rule over the given files and directories. Rules and
their options come from `.useindex.yml` (or the recommended preset when no
config exists); the ``--allowed-table``, ``--max-take-size`` and
``--allow-first`` flags override options of ``no-unindexed-queries``.
"""

from __future__ import annotations

from pathlib import Path

import click

from useindex.config import apply_rule_overrides, load_config
from useindex.exit_codes import EXIT_LINT_FAILURE, EXIT_SUCCESS
from useindex.index.discovery import expand_paths
from useindex.linter import lint_paths
from useindex.output.formatter import format_problem_line, json_envelope, plural, to_json
from useindex.plugins import load_plugins
from useindex.rules import PLUGIN_NAME, no_unindexed_queries

RULE_ID = f"{PLUGIN_NAME}/{no_unindexed_queries.NAME}"


# ---------------------------------------------------------------------------
# Option overrides
# ---------------------------------------------------------------------------


def _build_overrides(config, allowed_tables, max_take_size, allow_first) -> dict:
    """Translate CLI flags into option overrides for no-unindexed-queries."""
    overrides: dict = {}
    if allowed_tables:
        setting = config.rules.get(RULE_ID)
        current = []
        if setting is not None and setting.options and isinstance(setting.options[0], dict):
            current = list(setting.options[0].get("allowedTables") or [])
        overrides["allowedTables"] = current + [t for t in allowed_tables if t not in current]
    if max_take_size is not None:
        overrides["maxTakeSize"] = int(max_take_size) if float(max_take_size).is_integer() else max_take_size
    if allow_first is not None:
        overrides["allowFirst"] = allow_first
    return overrides


# ---------------------------------------------------------------------------
# Verdict calculation
# ---------------------------------------------------------------------------


def _calculate_verdict(results: list) -> tuple[str, int]:
    """Return (verdict_string, exit_code).

    PASS = 0, WARN = 0, FAIL = EXIT_LINT_FAILURE
    """
    errors = sum(r.error_count for r in results)
    warnings = sum(r.warning_count for r in results)
    files_with_problems = sum(1 for r in results if r.messages)

    if errors:
        verdict = "FAIL - {} error(s), {} warning(s) in {}".format(
            errors, warnings, plural(files_with_problems, "file")
        )
        return verdict, EXIT_LINT_FAILURE
    if warnings:
        verdict = "WARN - {} warning(s) in {}".format(warnings, plural(files_with_problems, "file"))
        return verdict, EXIT_SUCCESS
    return "PASS - {} checked, no unindexed queries".format(plural(len(results), "file")), EXIT_SUCCESS


def _errors_only(results: list) -> None:
    for r in results:
        r.messages = [m for m in r.messages if m.severity == "error"]


# ---------------------------------------------------------------------------
# CLI command
# ---------------------------------------------------------------------------


@click.command("check")
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to .useindex.yml (default: search upward from the working directory).",
)
@click.option(
    "--allowed-table",
    "allowed_tables",
    multiple=True,
    help="Table exempt from the index check (repeatable, adds to the config list).",
)
@click.option(
    "--max-take-size",
    default=None,
    type=click.FloatRange(min=1),
    help="Largest .take(n) tolerated without an index.",
)
@click.option(
    "--allow-first/--no-allow-first",
    default=None,
    help="Tolerate .first() without an index.",
)
@click.option("--quiet", is_flag=True, help="Report errors only, hide warnings.")
@click.pass_context
def check(ctx, paths, config_path, allowed_tables, max_take_size, allow_first, quiet):
    """Check files or directories for Convex queries without .withIndex().

    With no PATHS the working directory is scanned. Exit code 5 when any
    error-severity problem is found (CI-friendly).
    """
    json_mode = ctx.obj.get("json") if ctx.obj else False
    sarif_mode = ctx.obj.get("sarif") if ctx.obj else False

    api = load_plugins()
    config = load_config(config_path, api)
    overrides = _build_overrides(config, allowed_tables, max_take_size, allow_first)
    config = apply_rule_overrides(config, RULE_ID, overrides, api)

    root = Path.cwd()
    files = expand_paths(paths or (".",), root, config.ignore)
    results = lint_paths(files, config, api, root)
    if quiet:
        _errors_only(results)

    verdict, exit_code = _calculate_verdict(results)

    # --- SARIF output ---
    if sarif_mode:
        from useindex.output.sarif import lint_results_to_sarif, write_sarif

        click.echo(write_sarif(lint_results_to_sarif(results, api.rules)))
        if exit_code != 0:
            ctx.exit(exit_code)
        return

    # --- JSON output ---
    if json_mode:
        envelope = json_envelope(
            "check",
            summary={
                "verdict": verdict,
                "files": len(results),
                "errors": sum(r.error_count for r in results),
                "warnings": sum(r.warning_count for r in results),
                "parse_errors": sum(1 for r in results if r.parse_error),
            },
            config=config.path,
            results=[r.to_dict() for r in results],
        )
        click.echo(to_json(envelope))
        if exit_code != 0:
            ctx.exit(exit_code)
        return

    # --- Text output ---
    for r in results:
        if not r.messages:
            continue
        click.echo(r.file)
        for m in r.messages:
            click.echo(format_problem_line(m))
        click.echo()

    click.echo("VERDICT: {}".format(verdict))

    if exit_code != 0:
        ctx.exit(exit_code)
