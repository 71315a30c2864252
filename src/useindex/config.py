"""Lint configuration: `.useindex.yml` loading, preset merging, option validation.

Config shape::

    extends: convex-useindex/recommended      # str or list, default recommended
    rules:
      convex-useindex/no-unindexed-queries:
        - error
        - allowedTables: [namespaces]
          maxTakeSize: 1
          allowFirst: true
    ignore:
      - "convex/_generated/**"

A rule entry is a severity (``off``/``warn``/``error`` or ``0``/``1``/``2``)
or a list ``[severity, *options]``. A severity-only entry keeps the options
inherited from the preset.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from useindex.exit_codes import ConfigError
from useindex.rules.schema import SchemaError, validate_options

log = logging.getLogger(__name__)

CONFIG_NAMES = (".useindex.yml", ".useindex.yaml")
DEFAULT_EXTENDS = "convex-useindex/recommended"

_ALLOWED_KEYS = {"extends", "rules", "ignore"}

_SEVERITY_ALIASES = {
    "off": "off",
    "warn": "warning",
    "warning": "warning",
    "error": "error",
    0: "off",
    1: "warning",
    2: "error",
}


@dataclass(frozen=True)
class RuleSetting:
    severity: str
    options: list = field(default_factory=list)


@dataclass
class LintConfig:
    rules: dict[str, RuleSetting] = field(default_factory=dict)
    ignore: list[str] = field(default_factory=list)
    path: str | None = None

    def enabled_rules(self) -> dict[str, RuleSetting]:
        return {rid: s for rid, s in self.rules.items() if s.severity != "off"}


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def find_config_path(start: str | Path | None = None) -> Path | None:
    """Search *start* and its parents for a config file."""
    current = Path(start or Path.cwd()).resolve()
    for directory in [current, *current.parents]:
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def load_raw_config(path: str | Path) -> dict:
    """Load and parse a YAML config file into a raw dict."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


# ---------------------------------------------------------------------------
# Rule entries
# ---------------------------------------------------------------------------


def normalize_severity(value, where: str) -> str:
    # YAML 1.1 loads a bare `off` as false
    if value is False:
        return "off"
    key = value.strip().lower() if isinstance(value, str) else value
    if isinstance(key, bool) or not isinstance(key, (str, int)) or key not in _SEVERITY_ALIASES:
        raise ConfigError(f"{where}: invalid severity {value!r} (use off, warn or error)")
    return _SEVERITY_ALIASES[key]


def parse_rule_entry(entry, where: str) -> tuple[str, list | None]:
    """Return ``(severity, options)``; options is None for a severity-only entry."""
    if isinstance(entry, list):
        if not entry:
            raise ConfigError(f"{where}: rule entry list must start with a severity")
        return normalize_severity(entry[0], where), list(entry[1:])
    return normalize_severity(entry, where), None


def _validate_rule_options(rule_id: str, options: list, api) -> None:
    rule = api.rules[rule_id]
    try:
        validate_options(rule.META.get("schema", []), options)
    except SchemaError as exc:
        raise ConfigError(f"{rule_id}: {exc}") from exc


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _preset_names(raw_extends) -> list[str]:
    if raw_extends is None:
        return [DEFAULT_EXTENDS]
    if isinstance(raw_extends, str):
        raw_extends = [raw_extends]
    if not isinstance(raw_extends, list) or not all(isinstance(x, str) for x in raw_extends):
        raise ConfigError("extends: must be a preset name or a list of names")
    return [name.removeprefix("plugin:") for name in raw_extends]


def _merge_rules(target: dict[str, RuleSetting], rules, source: str, api) -> None:
    if not isinstance(rules, dict):
        raise ConfigError(f"{source}: rules must be a mapping of rule id to severity")
    for rule_id, entry in rules.items():
        where = f"{source}: {rule_id}"
        if rule_id not in api.rules:
            raise ConfigError(f"{where}: unknown rule (known: {', '.join(sorted(api.rules))})")
        severity, options = parse_rule_entry(entry, where)
        if options is None:
            inherited = target.get(rule_id)
            options = copy.deepcopy(inherited.options) if inherited else []
        _validate_rule_options(rule_id, options, api)
        target[rule_id] = RuleSetting(severity=severity, options=options)


def resolve_config(raw: dict, api, path: str | None = None) -> LintConfig:
    """Merge presets and user rules into a validated :class:`LintConfig`."""
    source = path or "<config>"
    unknown = set(raw) - _ALLOWED_KEYS
    if unknown:
        raise ConfigError(f"{source}: unknown key(s): {', '.join(sorted(unknown))}")

    rules: dict[str, RuleSetting] = {}
    for name in _preset_names(raw.get("extends")):
        preset = api.configs.get(name)
        if preset is None:
            raise ConfigError(f"{source}: unknown preset {name!r} (known: {', '.join(sorted(api.configs))})")
        _merge_rules(rules, preset.get("rules", {}), f"preset {name}", api)

    if "rules" in raw:
        _merge_rules(rules, raw["rules"] or {}, source, api)

    ignore = raw.get("ignore") or []
    if not isinstance(ignore, list) or not all(isinstance(p, str) for p in ignore):
        raise ConfigError(f"{source}: ignore must be a list of glob patterns")

    return LintConfig(rules=rules, ignore=list(ignore), path=path)


def apply_rule_overrides(config: LintConfig, rule_id: str, overrides: dict, api) -> LintConfig:
    """Merge command-line option *overrides* into the first option of *rule_id*."""
    if not overrides:
        return config
    setting = config.rules.get(rule_id)
    if setting is None:
        setting = RuleSetting(severity="error", options=[])

    options = copy.deepcopy(setting.options) or [{}]
    if not isinstance(options[0], dict):
        raise ConfigError(f"{rule_id}: cannot merge overrides into non-object options")
    options[0].update(overrides)
    _validate_rule_options(rule_id, options, api)

    rules = dict(config.rules)
    rules[rule_id] = RuleSetting(severity=setting.severity, options=options)
    return LintConfig(rules=rules, ignore=list(config.ignore), path=config.path)


def load_config(config_path: str | Path | None, api, *, cwd: str | Path | None = None) -> LintConfig:
    """Locate, read and resolve the lint config.

    Without a config file the recommended preset applies.
    """
    path = Path(config_path) if config_path is not None else find_config_path(cwd)
    if path is None:
        log.info("no config file found, using %s", DEFAULT_EXTENDS)
        return resolve_config({}, api)

    log.info("using config %s", path)
    return resolve_config(load_raw_config(path), api, str(path))
