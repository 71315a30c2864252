"""Plugin registration and discovery tests."""

from __future__ import annotations

import types
from pathlib import Path

import pytest

from conftest import invoke_cli
from useindex import plugins
from useindex.config import resolve_config
from useindex.linter import lint_source
from useindex.plugins import ENV_VAR, PluginAPI, load_plugins

RULE_ID = "convex-useindex/no-unindexed-queries"


def _write_test_plugin(tmp_path: Path, module_name: str = "useindex_test_plugin") -> str:
    plugin_path = tmp_path / f"{module_name}.py"
    plugin_path.write_text(
        "from useindex.rules.syntax import as_call, method_name\n"
        "\n"
        "class NoEval:\n"
        "    META = {\n"
        "        'type': 'problem',\n"
        "        'docs': {'description': 'Disallow ctx.db.eval()'},\n"
        "        'schema': [],\n"
        "        'messages': {'noEval': 'do not call .{{name}}()'},\n"
        "    }\n"
        "\n"
        "    @staticmethod\n"
        "    def create(context):\n"
        "        class Hit:\n"
        "            def __init__(self, node):\n"
        "                self.node = node\n"
        "                self.message_id = 'noEval'\n"
        "                self.data = {'name': 'eval'}\n"
        "\n"
        "        def visit(node):\n"
        "            if method_name(as_call(node), context.source) == 'eval':\n"
        "                context.report(Hit(node))\n"
        "\n"
        "        return {'call_expression': visit}\n"
        "\n"
        "def register(api):\n"
        "    api.register_rule('demo/no-eval', NoEval)\n"
        "    api.register_config('demo/all', {'rules': {'demo/no-eval': 'warn'}})\n",
        encoding="utf-8",
    )
    return module_name


# ===========================================================================
# PluginAPI
# ===========================================================================


class TestPluginAPI:
    def _rule(self):
        return types.SimpleNamespace(META={"messages": {}}, create=lambda context: {})

    def test_builtin_registration(self):
        api = load_plugins(discover=False)
        assert set(api.rules) == {RULE_ID}
        assert set(api.configs) == {"convex-useindex/recommended"}
        assert api.configs["convex-useindex/recommended"]["rules"] == {RULE_ID: "error"}
        assert api.errors == []

    def test_each_load_is_independent(self):
        first = load_plugins(discover=False)
        first.register_rule("demo/x", self._rule())
        assert "demo/x" not in load_plugins(discover=False).rules

    def test_rule_id_must_be_namespaced(self):
        with pytest.raises(ValueError, match="namespaced"):
            PluginAPI().register_rule("no-namespace", self._rule())

    def test_empty_rule_id(self):
        with pytest.raises(ValueError):
            PluginAPI().register_rule("  ", self._rule())

    def test_duplicate_rule(self):
        api = PluginAPI()
        api.register_rule("demo/x", self._rule())
        with pytest.raises(ValueError, match="duplicate"):
            api.register_rule("demo/x", self._rule())

    def test_rule_shape_is_checked(self):
        api = PluginAPI()
        with pytest.raises(TypeError, match="META"):
            api.register_rule("demo/a", types.SimpleNamespace(create=lambda c: {}))
        with pytest.raises(TypeError, match="create"):
            api.register_rule("demo/b", types.SimpleNamespace(META={}))

    def test_duplicate_config(self):
        api = PluginAPI()
        api.register_config("demo/c", {})
        with pytest.raises(ValueError, match="duplicate"):
            api.register_config("demo/c", {})


# ===========================================================================
# Discovery
# ===========================================================================


class TestDiscovery:
    def test_env_module_plugin(self, monkeypatch, tmp_path):
        module_name = _write_test_plugin(tmp_path)
        monkeypatch.syspath_prepend(str(tmp_path))
        monkeypatch.setattr(plugins, "_entry_points_for_group", lambda group: [])

        api = load_plugins(env={ENV_VAR: f" {module_name} , "})
        assert "demo/no-eval" in api.rules
        assert "demo/all" in api.configs
        assert api.errors == []

        config = resolve_config({"extends": ["demo/all"]}, api)
        result = lint_source("ctx.db.eval();", "javascript", config, api)
        assert [(m.rule_id, m.severity, m.message) for m in result.messages] == [
            ("demo/no-eval", "warning", "do not call .eval()")
        ]

    def test_missing_module_is_recorded(self, monkeypatch):
        monkeypatch.setattr(plugins, "_entry_points_for_group", lambda group: [])
        api = load_plugins(env={ENV_VAR: "useindex_no_such_plugin"})
        assert RULE_ID in api.rules
        assert len(api.errors) == 1
        assert "import failed" in api.errors[0]

    def test_plugin_that_fails_to_register(self, monkeypatch):
        def broken(api):
            raise RuntimeError("boom")

        ep = types.SimpleNamespace(name="broken", load=lambda: broken)
        monkeypatch.setattr(plugins, "_entry_points_for_group", lambda group: [ep])
        api = load_plugins(env={})
        assert api.errors == ["entry_point:broken: boom"]

    def test_entry_point_that_fails_to_load(self, monkeypatch):
        def load():
            raise ImportError("nope")

        ep = types.SimpleNamespace(name="gone", load=load)
        monkeypatch.setattr(plugins, "_entry_points_for_group", lambda group: [ep])
        api = load_plugins(env={})
        assert api.errors == ["entry_point:gone: load failed: nope"]

    def test_target_without_register(self, monkeypatch):
        ep = types.SimpleNamespace(name="inert", load=lambda: object())
        monkeypatch.setattr(plugins, "_entry_points_for_group", lambda group: [ep])
        api = load_plugins(env={})
        assert "register(api)" in api.errors[0]

    def test_plugin_cannot_replace_builtin_rule(self, monkeypatch):
        def hijack(api):
            api.register_rule(RULE_ID, types.SimpleNamespace(META={}, create=lambda c: {}))

        ep = types.SimpleNamespace(name="hijack", load=lambda: hijack)
        monkeypatch.setattr(plugins, "_entry_points_for_group", lambda group: [ep])
        api = load_plugins(env={})
        assert "duplicate rule" in api.errors[0]
        assert api.rules[RULE_ID].__name__ == "useindex.rules.no_unindexed_queries"

    def test_plugin_rules_listed_by_cli(self, cli_runner, monkeypatch, tmp_path):
        module_name = _write_test_plugin(tmp_path)
        monkeypatch.syspath_prepend(str(tmp_path))
        monkeypatch.setenv(ENV_VAR, module_name)
        monkeypatch.setattr(plugins, "_entry_points_for_group", lambda group: [])

        result = invoke_cli(cli_runner, ["rules"], cwd=tmp_path)
        assert result.exit_code == 0
        assert "demo/no-eval" in result.output
        assert "demo/all" in result.output
