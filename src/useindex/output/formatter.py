"""Plain-text and JSON formatting for lint results."""

from __future__ import annotations

import json as _json
import os
from datetime import datetime, timezone

# Envelope schema versioning (semver: major.minor.patch)
ENVELOPE_SCHEMA_VERSION = "1.0.0"
ENVELOPE_SCHEMA_NAME = "useindex-envelope-v1"

_SEVERITY_LABEL = {
    "error": "error",
    "warning": "warn",
}


def _get_version() -> str:
    from useindex import __version__

    return __version__


def plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_problem_line(message, width: int = 8) -> str:
    """One indented problem line: position, severity, message, rule id."""
    position = f"{message.line}:{message.column}"
    label = _SEVERITY_LABEL.get(message.severity, message.severity)
    return f"  {position:<{width}s} {label:<5s}  {message.message}  {message.rule_id}"


def to_json(data) -> str:
    """Serialize data to a JSON string with deterministic key ordering."""
    return _json.dumps(data, indent=2, default=str, sort_keys=True)


def json_envelope(command: str, summary: dict | None = None, **payload) -> dict:
    """Wrap command output in a self-describing envelope.

    Non-deterministic metadata (``timestamp``) lives in ``_meta`` so the
    content keys stay byte-identical across runs on the same input::

        {
            "schema":   "useindex-envelope-v1",
            "command":  "check",
            "version":  "<current>",
            "project":  "<cwd name>",
            "summary":  { ... },
            "_meta":    {"timestamp": "2026-02-12T14:30:00Z"},
            ...payload
        }
    """
    ts = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

    out: dict = {
        "schema": ENVELOPE_SCHEMA_NAME,
        "schema_version": ENVELOPE_SCHEMA_VERSION,
        "command": command,
        "version": _get_version(),
        "project": os.path.basename(os.getcwd()),
        "summary": summary or {},
    }
    out.update(payload)
    out["_meta"] = {"timestamp": ts}
    return out
