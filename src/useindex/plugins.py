"""Plugin discovery and rule registration for convex-useindex.

Rules come from three places, registered in this order:
1) the built-in ``convex-useindex`` plugin (:mod:`useindex.rules`)
2) Python entry points under group ``useindex.plugins``
3) Environment variable ``USEINDEX_PLUGIN_MODULES`` (comma-separated modules)

Each plugin should expose either:
- a callable that accepts ``PluginAPI``, or
- an object/module with a callable ``register(api)`` function.

A rule is any object with a ``META`` dict and a ``create(context)``
callable returning node-type visitors.
"""

from __future__ import annotations

import importlib
import logging
import os
from importlib import metadata as importlib_metadata
from typing import Any

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "useindex.plugins"
ENV_VAR = "USEINDEX_PLUGIN_MODULES"


class PluginAPI:
    """Registration surface handed to each plugin's ``register(api)``."""

    def __init__(self) -> None:
        self.rules: dict[str, Any] = {}
        self.configs: dict[str, dict] = {}
        self.errors: list[str] = []

    def register_rule(self, rule_id: str, rule: Any) -> None:
        rid = (rule_id or "").strip()
        if not rid:
            raise ValueError("rule id must be non-empty")
        if "/" not in rid:
            raise ValueError(f"rule id must be namespaced as <plugin>/<rule>: {rid}")
        if rid in self.rules:
            raise ValueError(f"duplicate rule: {rid}")
        if not isinstance(getattr(rule, "META", None), dict):
            raise TypeError(f"rule {rid} must expose a META dict")
        if not callable(getattr(rule, "create", None)):
            raise TypeError(f"rule {rid} must expose create(context)")
        self.rules[rid] = rule

    def register_config(self, name: str, config: dict) -> None:
        key = (name or "").strip()
        if not key:
            raise ValueError("config name must be non-empty")
        if key in self.configs:
            raise ValueError(f"duplicate config: {key}")
        if not isinstance(config, dict):
            raise TypeError(f"config {key} must be a dict")
        self.configs[key] = config


def _register_target(target: Any, source_label: str, api: PluginAPI) -> None:
    try:
        if callable(target):
            target(api)
            return

        register_fn = getattr(target, "register", None)
        if callable(register_fn):
            register_fn(api)
            return

        raise TypeError("plugin target must be callable or expose register(api)")
    except Exception as exc:
        api.errors.append(f"{source_label}: {exc}")
        log.warning("plugin %s failed to register: %s", source_label, exc)


def _discover_env_modules(api: PluginAPI, modules_raw: str) -> None:
    for module_name in [m.strip() for m in modules_raw.split(",") if m.strip()]:
        try:
            module = importlib.import_module(module_name)
        except Exception as exc:
            api.errors.append(f"module:{module_name}: import failed: {exc}")
            log.warning("plugin module %s failed to import: %s", module_name, exc)
            continue
        _register_target(module, f"module:{module_name}", api)


def _entry_points_for_group(group: str):
    eps = importlib_metadata.entry_points()
    if hasattr(eps, "select"):
        return list(eps.select(group=group))
    if isinstance(eps, dict):
        return list(eps.get(group, []))
    return []


def _discover_entry_points(api: PluginAPI) -> None:
    try:
        entries = _entry_points_for_group(ENTRY_POINT_GROUP)
    except Exception as exc:
        api.errors.append(f"entry_points: discovery failed: {exc}")
        return

    for ep in entries:
        try:
            target = ep.load()
        except Exception as exc:
            api.errors.append(f"entry_point:{ep.name}: load failed: {exc}")
            log.warning("plugin entry point %s failed to load: %s", ep.name, exc)
            continue
        _register_target(target, f"entry_point:{ep.name}", api)


def load_plugins(*, discover: bool = True, env: dict | None = None) -> PluginAPI:
    """Build a registry with the built-in plugin and any discovered plugins.

    Each call returns a fresh :class:`PluginAPI`; nothing is cached at
    module level. Pass ``discover=False`` for the built-in rules only.
    """
    from useindex import rules as builtin

    api = PluginAPI()
    builtin.register(api)
    if not discover:
        return api

    _discover_entry_points(api)
    environ = os.environ if env is None else env
    modules_raw = environ.get(ENV_VAR, "")
    if modules_raw:
        _discover_env_modules(api, modules_raw)
    return api
