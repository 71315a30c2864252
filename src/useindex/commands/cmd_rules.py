"""List registered rules and show their metadata."""

from __future__ import annotations

import click

from useindex.output.formatter import json_envelope, to_json
from useindex.plugins import load_plugins


def _rule_summary(rule_id: str, rule) -> dict:
    meta = rule.META
    docs = meta.get("docs", {})
    schema = meta.get("schema", [])
    option_names: list[str] = []
    for item in schema:
        option_names.extend(sorted(item.get("properties", {})))
    return {
        "id": rule_id,
        "type": meta.get("type"),
        "description": docs.get("description", ""),
        "category": docs.get("category"),
        "recommended": bool(docs.get("recommended")),
        "url": docs.get("url"),
        "messages": dict(meta.get("messages", {})),
        "options": option_names,
        "schema": schema,
    }


def _echo_rule_detail(info: dict) -> None:
    click.echo("{}  [{}]".format(info["id"], info["type"] or "?"))
    click.echo("  {}".format(info["description"]))
    if info["category"]:
        click.echo("  category: {}".format(info["category"]))
    if info["url"]:
        click.echo("  docs:     {}".format(info["url"]))
    click.echo()
    click.echo("  Messages:")
    for message_id, text in info["messages"].items():
        click.echo("    {:12s} {}".format(message_id, text))
    if info["schema"]:
        click.echo()
        click.echo("  Options:")
        for item in info["schema"]:
            for name, prop in item.get("properties", {}).items():
                kind = prop.get("type", "any")
                if kind == "array" and "items" in prop:
                    kind = "{}[]".format(prop["items"].get("type", "any"))
                bound = " (>= {})".format(prop["minimum"]) if "minimum" in prop else ""
                click.echo("    {:14s} {:9s} {}{}".format(name, kind, prop.get("description", ""), bound))


@click.command("rules")
@click.argument("rule_id", required=False)
@click.pass_context
def rules(ctx, rule_id):
    """List available rules, or show details for RULE_ID."""
    json_mode = ctx.obj.get("json") if ctx.obj else False

    api = load_plugins()
    infos = [_rule_summary(rid, api.rules[rid]) for rid in sorted(api.rules)]

    if rule_id is not None:
        infos = [i for i in infos if i["id"] == rule_id or i["id"].split("/", 1)[-1] == rule_id]
        if not infos:
            raise click.BadParameter(
                "unknown rule {!r} (known: {})".format(rule_id, ", ".join(sorted(api.rules))),
                param_hint="RULE_ID",
            )

    if json_mode:
        click.echo(
            to_json(
                json_envelope(
                    "rules",
                    summary={"count": len(infos), "plugin_errors": len(api.errors)},
                    rules=infos,
                    presets=sorted(api.configs),
                )
            )
        )
        return

    if rule_id is not None:
        _echo_rule_detail(infos[0])
        return

    click.echo("Rules ({}):".format(len(infos)))
    for info in infos:
        flag = "*" if info["recommended"] else " "
        click.echo("  {} {:40s} {}".format(flag, info["id"], info["description"]))
    click.echo()
    click.echo("Presets: {}".format(", ".join(sorted(api.configs)) or "(none)"))
    click.echo("(* = enabled by the recommended preset)")
    for err in api.errors:
        click.echo("WARNING: plugin {}".format(err), err=True)
