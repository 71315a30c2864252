"""Shared test fixtures and helpers for useindex tests.

Provides:
- Parsing helpers: parse_js(), find_call() for unit tests on raw nodes
- Git helper: git_init()
- CliRunner fixtures: cli_runner, invoke_cli()
- Factory fixture: project_factory for custom file combinations
- JSON validation helpers: parse_json_output(), assert_json_envelope()
"""

from __future__ import annotations

import json
import os
import subprocess

import pytest
from click.testing import CliRunner

from useindex.index.parser import parse_source
from useindex.rules.syntax import as_call, method_name

# ===========================================================================
# Parsing helpers
# ===========================================================================


def parse_js(code: str, language: str = "javascript"):
    """Parse *code* and return ``(tree, source)``."""
    source = code.encode("utf-8")
    return parse_source(source, language), source


def iter_calls(tree):
    """All call_expression nodes in pre-order."""
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "call_expression":
            yield node
        stack.extend(reversed(node.named_children))


def find_call(code: str, method: str, language: str = "javascript", index: int = 0):
    """Parse *code* and return ``(node, source)`` for the *index*-th ``.method(...)`` call."""
    tree, source = parse_js(code, language)
    matches = [n for n in iter_calls(tree) if method_name(as_call(n), source) == method]
    assert len(matches) > index, f"no .{method}() call #{index} in {code!r}"
    return matches[index], source


# ===========================================================================
# Git helpers
# ===========================================================================


def git_init(path):
    """Initialize a git repo, add all files, and commit."""
    subprocess.run(["git", "init"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "user.email", "t@t.com"], cwd=path, capture_output=True)
    subprocess.run(["git", "config", "user.name", "Test"], cwd=path, capture_output=True)
    subprocess.run(["git", "add", "."], cwd=path, capture_output=True)
    subprocess.run(["git", "commit", "-m", "init"], cwd=path, capture_output=True)


# ===========================================================================
# CliRunner helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


def invoke_cli(runner, args, cwd=None, json_mode=False):
    """Invoke the useindex CLI via CliRunner.

    Args:
        runner: CliRunner instance
        args: list of CLI arguments (e.g. ["check", "convex"])
        cwd: directory to run in
        json_mode: if True, prepend --json flag
    Returns:
        click.testing.Result
    """
    from useindex.cli import cli

    full_args = []
    if json_mode:
        full_args.append("--json")
    full_args.extend(args)

    old_cwd = os.getcwd()
    try:
        if cwd:
            os.chdir(str(cwd))
        result = runner.invoke(cli, full_args, catch_exceptions=False)
    finally:
        os.chdir(old_cwd)

    return result


# ===========================================================================
# JSON validation helpers
# ===========================================================================


def parse_json_output(result, command=None, expected_exit=0):
    """Parse JSON from a CliRunner result's stdout."""
    assert result.exit_code == expected_exit, (
        f"Command {command or '?'} exited {result.exit_code}, expected {expected_exit}:\n{result.output}"
    )
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        pytest.fail(f"Invalid JSON from {command or '?'}: {e}\nOutput was:\n{result.stdout[:500]}")


def assert_json_envelope(data, command=None):
    """Validate that a parsed JSON dict follows the useindex envelope contract."""
    assert isinstance(data, dict), f"Expected dict, got {type(data)}"
    assert data.get("schema") == "useindex-envelope-v1"
    assert "command" in data, "Missing 'command' key in envelope"
    assert "version" in data, "Missing 'version' key in envelope"
    assert "summary" in data, "Missing 'summary' key in envelope"
    assert "timestamp" in data.get("_meta", {}), "Missing 'timestamp' in _meta"
    if command:
        assert data["command"] == command, f"Expected command={command}, got {data['command']}"
    assert isinstance(data["summary"], dict)


# ===========================================================================
# Project fixtures
# ===========================================================================


CONVEX_QUERIES = """\
import { query } from "./_generated/server";

// BAD: full table scan
export const getAllMembers = query({
  args: {},
  handler: async (ctx) => {
    return await ctx.db.query("members").collect();
  },
});

// BAD: paginate without index
export const paginateUsers = query({
  args: { paginationOpts: {} },
  handler: async (ctx, args) => {
    return await ctx.db.query("users").paginate(args.paginationOpts);
  },
});

// BAD: large take
export const getManyMessages = query({
  args: {},
  handler: async (ctx) => {
    return await ctx.db.query("messages").take(10);
  },
});

// BAD: filter and order do not select an index
export const getPublishedPosts = query({
  args: {},
  handler: async (ctx) => {
    return await ctx.db
      .query("posts")
      .filter((q) => q.eq(q.field("published"), true))
      .order("desc")
      .collect();
  },
});

// GOOD: indexed
export const getMembersByNamespace = query({
  args: { namespace: "" },
  handler: async (ctx, args) => {
    return await ctx.db
      .query("members")
      .withIndex("byNamespace", (q) => q.eq("namespace", args.namespace))
      .collect();
  },
});

// GOOD: point lookup
export const getUserById = query({
  args: { id: "" },
  handler: async (ctx, args) => {
    return await ctx.db.get(args.id);
  },
});

// GOOD: take(1) is within the default bound
export const getLatestMessage = query({
  args: {},
  handler: async (ctx) => {
    return await ctx.db.query("messages").take(1);
  },
});

// GOOD: first() is allowed by default
export const getFirstConfig = query({
  args: {},
  handler: async (ctx) => {
    return await ctx.db.query("config").first();
  },
});
"""


@pytest.fixture
def project_factory(tmp_path_factory):
    """Factory fixture for creating custom project layouts.

    Usage:
        def test_something(project_factory):
            proj = project_factory({
                "convex/queries.ts": 'export const q = ...',
                ".useindex.yml": "rules: {}",
            })

    Returns a callable that accepts a dict of {relative_path: content}
    and returns the project path.
    """

    def _create(files, *, git=False):
        proj = tmp_path_factory.mktemp("project")
        for rel_path, content in files.items():
            fp = proj / rel_path
            fp.parent.mkdir(parents=True, exist_ok=True)
            fp.write_text(content, encoding="utf-8")
        if git:
            git_init(proj)
        return proj

    return _create


@pytest.fixture
def convex_project(project_factory):
    """A project with one queries file holding four unindexed queries."""
    return project_factory({"convex/queries.js": CONVEX_QUERIES})
