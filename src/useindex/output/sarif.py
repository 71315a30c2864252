"""SARIF 2.1.0 output for GitHub code scanning integration.

Converts lint results into Static Analysis Results Interchange Format
(SARIF) for consumption by GitHub Advanced Security, VS Code SARIF Viewer,
and other SARIF-aware tools.

Usage::

    from useindex.output.sarif import lint_results_to_sarif, write_sarif

    sarif = lint_results_to_sarif(results, api.rules)
    write_sarif(sarif, "useindex.sarif")
"""

from __future__ import annotations

import hashlib as _hashlib
import json as _json
from pathlib import Path

from useindex.linter import interpolate

_SARIF_VERSION = "2.1.0"
_SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/sarif-2.1/schema/sarif-schema-2.1.0.json"
_TOOL_NAME = "convex-useindex"


def _get_version() -> str:
    from useindex import __version__

    return __version__


# ── Severity mapping ─────────────────────────────────────────────────

_LEVEL_MAP = {
    "ERROR": "error",
    "WARNING": "warning",
    "WARN": "warning",
}


def _to_level(severity: str) -> str:
    """Map a lint severity string to a SARIF level."""
    return _LEVEL_MAP.get(severity.upper(), "note")


# ── Location helpers ─────────────────────────────────────────────────


def _physical_location(file_path: str, line: int | None = None, column: int | None = None) -> dict:
    """Build a SARIF physicalLocation object.

    *file_path* is stored as a forward-slash URI-style path so that
    SARIF viewers can render it correctly on any platform.
    """
    uri = file_path.replace("\\", "/")
    loc: dict = {
        "artifactLocation": {"uri": uri},
    }
    if line is not None and line > 0:
        region: dict = {"startLine": line}
        if column is not None and column > 0:
            region["startColumn"] = column
        loc["region"] = region
    return loc


def _location(file_path: str, line: int | None = None, column: int | None = None) -> dict:
    """Build a single SARIF location entry."""
    return {"physicalLocation": _physical_location(file_path, line, column)}


# ── Core builder ─────────────────────────────────────────────────────


def to_sarif(
    tool_name: str,
    version: str,
    rules: list[dict],
    results: list[dict],
) -> dict:
    """Build a complete SARIF 2.1.0 JSON document.

    Parameters
    ----------
    tool_name:
        Display name of the analysis tool.
    version:
        Semantic version of the tool.
    rules:
        List of rule definitions.  Each dict must contain ``id`` and
        ``shortDescription``; ``fullDescription``, ``help``, ``helpUri``
        and ``defaultLevel`` are optional.
    results:
        List of SARIF result objects.

    Returns
    -------
    dict
        A complete SARIF 2.1.0 envelope ready for ``json.dumps``.
    """
    driver: dict = {
        "name": tool_name,
        "version": version,
        "rules": [_build_rule(r) for r in rules],
    }

    return {
        "$schema": _SARIF_SCHEMA,
        "version": _SARIF_VERSION,
        "runs": [
            {
                "tool": {"driver": driver},
                "results": results,
            }
        ],
    }


def _build_rule(rule: dict) -> dict:
    """Normalise a rule dict into the SARIF rule schema."""
    out: dict = {
        "id": rule["id"],
        "shortDescription": {"text": rule["shortDescription"]},
    }
    if "fullDescription" in rule:
        out["fullDescription"] = {"text": rule["fullDescription"]}
    if "help" in rule:
        out["help"] = {"text": rule["help"]}
    if "helpUri" in rule:
        out["helpUri"] = rule["helpUri"]
    if "defaultLevel" in rule:
        out["defaultConfiguration"] = {"level": rule["defaultLevel"]}
    return out


def write_sarif(data: dict, output_path: str | Path | None = None) -> str:
    """Serialise *data* to JSON and optionally write it to *output_path*.

    Returns the JSON string in all cases.
    """
    text = _json.dumps(data, indent=2, default=str)
    if output_path is not None:
        Path(output_path).write_text(text, encoding="utf-8")
    return text


# ── Lint results ─────────────────────────────────────────────────────


def _rule_descriptor(rule_id: str, rule, level: str) -> dict:
    meta = getattr(rule, "META", {}) or {}
    docs = meta.get("docs", {})
    messages = meta.get("messages", {})
    descriptor = {
        "id": rule_id,
        "shortDescription": docs.get("description", rule_id),
        "defaultLevel": level,
    }
    if "performance" in messages:
        descriptor["fullDescription"] = messages["performance"]
    if "suggestion" in messages:
        descriptor["help"] = interpolate(messages["suggestion"], {"operation": "the terminal call"})
    if docs.get("url"):
        descriptor["helpUri"] = docs["url"]
    return descriptor


def _fingerprint(message) -> str:
    payload = "|".join(
        [
            message.rule_id,
            message.file,
            str(message.line),
            str(message.column),
            message.message,
        ]
    )
    return _hashlib.sha1(payload.encode("utf-8")).hexdigest()


def lint_results_to_sarif(lint_results: list, rules: dict) -> dict:
    """Convert :class:`~useindex.linter.LintResult` objects to SARIF.

    *rules* maps rule ids to rule objects (``PluginAPI.rules``) and is used
    for rule descriptions and help links.
    """
    seen_rules: dict[str, dict] = {}
    results: list[dict] = []

    for lint_result in lint_results:
        for m in lint_result.messages:
            level = _to_level(m.severity)
            if m.rule_id not in seen_rules:
                seen_rules[m.rule_id] = _rule_descriptor(m.rule_id, rules.get(m.rule_id), level)

            results.append(
                {
                    "ruleId": m.rule_id,
                    "level": level,
                    "message": {"text": m.message},
                    "locations": [_location(lint_result.file, m.line, m.column)],
                    "partialFingerprints": {"primaryLocationLineHash": _fingerprint(m)},
                }
            )

    return to_sarif(
        _TOOL_NAME,
        _get_version(),
        list(seen_rules.values()),
        results,
    )
