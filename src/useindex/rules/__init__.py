"""Built-in ``convex-useindex`` plugin: rules and bundled presets."""

from __future__ import annotations

from useindex.rules import no_unindexed_queries

PLUGIN_NAME = "convex-useindex"

RECOMMENDED = {
    "plugins": [PLUGIN_NAME],
    "rules": {
        f"{PLUGIN_NAME}/{no_unindexed_queries.NAME}": "error",
    },
}


def register(api) -> None:
    """Register the built-in rule and the ``recommended`` preset on *api*."""
    api.register_rule(f"{PLUGIN_NAME}/{no_unindexed_queries.NAME}", no_unindexed_queries)
    api.register_config(f"{PLUGIN_NAME}/recommended", RECOMMENDED)
