"""Write a starter `.useindex.yml` for a Convex project."""

from __future__ import annotations

from pathlib import Path

import click

from useindex.config import CONFIG_NAMES, DEFAULT_EXTENDS
from useindex.exit_codes import UseIndexError
from useindex.rules import PLUGIN_NAME, no_unindexed_queries

_TEMPLATE = """\
# convex-useindex configuration
extends: {extends}

rules:
  {rule_id}:
    - error
    - allowedTables: []   # small admin tables, e.g. [namespaces]
      maxTakeSize: 1      # allow .take(1) without an index
      allowFirst: true    # allow .first() without an index

ignore:
  - "convex/_generated/**"
"""


def render_config() -> str:
    return _TEMPLATE.format(
        extends=DEFAULT_EXTENDS,
        rule_id=f"{PLUGIN_NAME}/{no_unindexed_queries.NAME}",
    )


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.option(
    "--path",
    "target_dir",
    default=".",
    type=click.Path(file_okay=False),
    help="Directory to write the config into.",
)
def init(force, target_dir):
    """Create .useindex.yml with the recommended preset."""
    target = Path(target_dir) / CONFIG_NAMES[0]
    if target.exists() and not force:
        raise UseIndexError("{} already exists (use --force to overwrite)".format(target))

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_config(), encoding="utf-8")
    click.echo("Wrote {}".format(target))
