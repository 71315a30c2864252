"""Property-based tests for the no-unindexed-queries check.

Generates Convex query chains from a small grammar and checks invariants
of the verdict rather than specific input/output pairs.
"""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import iter_calls, parse_js
from useindex.config import resolve_config
from useindex.linter import lint_source
from useindex.plugins import load_plugins
from useindex.rules.no_unindexed_queries import OPERATIONS, RuleOptions, evaluate

RULE_ID = "convex-useindex/no-unindexed-queries"

_API = load_plugins(discover=False)

tables = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=12)
middle_steps = st.lists(
    st.sampled_from(['.filter((q) => q.eq(q.field("x"), 1))', '.order("desc")', '.order("asc")']),
    max_size=4,
)
terminals = st.one_of(
    st.sampled_from([".collect()", ".paginate(opts)", ".first()"]),
    st.integers(min_value=1, max_value=500).map(lambda n: f".take({n})"),
)


@st.composite
def chains(draw, with_index=None):
    table = draw(tables)
    steps = draw(middle_steps)
    indexed = draw(st.booleans()) if with_index is None else with_index
    if indexed:
        position = draw(st.integers(min_value=0, max_value=len(steps)))
        steps = steps[:position] + ['.withIndex("by_x", (q) => q.eq("x", 1))'] + steps[position:]
    terminal = draw(terminals)
    return table, f'ctx.db.query("{table}"){"".join(steps)}{terminal};', indexed, terminal


options_st = st.builds(
    lambda tables, size, first: {"allowedTables": tables, "maxTakeSize": size, "allowFirst": first},
    st.lists(tables, max_size=3),
    st.integers(min_value=1, max_value=100),
    st.booleans(),
)


def _diagnostics(code: str, options: dict):
    tree, source = parse_js(code)
    opts = RuleOptions.from_options([options])
    return [d for d in (evaluate(n, source, opts) for n in iter_calls(tree)) if d is not None]


@settings(max_examples=60, deadline=None)
@given(chains(with_index=True), options_st)
def test_indexed_chains_are_never_flagged(chain, options):
    _, code, _, _ = chain
    assert _diagnostics(code, options) == []


@settings(max_examples=60, deadline=None)
@given(chains(), options_st)
def test_allowed_tables_are_never_flagged(chain, options):
    table, code, _, _ = chain
    options["allowedTables"] = options["allowedTables"] + [table]
    assert _diagnostics(code, options) == []


@settings(max_examples=60, deadline=None)
@given(chains(with_index=False))
def test_unindexed_chain_verdict_follows_operation_policy(chain):
    table, code, _, terminal = chain
    diags = _diagnostics(code, {})
    name = terminal[1 : terminal.index("(")]
    expected = {
        "collect": True,
        "paginate": True,
        "first": False,
        "take": name == "take" and int(terminal[6:-1]) > 1,
    }[name]
    assert (len(diags) == 1) is expected
    if diags:
        assert diags[0].data["tableName"] == table
        assert diags[0].data["operation"].startswith(f".{name}(")


@settings(max_examples=60, deadline=None)
@given(st.integers(min_value=1, max_value=1000), st.integers(min_value=1, max_value=1000))
def test_take_threshold_is_strictly_greater(size, bound):
    diags = _diagnostics(f'ctx.db.query("t").take({size});', {"maxTakeSize": bound})
    assert bool(diags) is (size > bound)


@settings(max_examples=30, deadline=None)
@given(st.lists(chains(), min_size=1, max_size=5))
def test_linting_is_deterministic_and_one_per_chain(chain_list):
    code = "\n".join(c[1] for c in chain_list)
    config = resolve_config({}, _API)
    first = lint_source(code, "javascript", config, _API)
    second = lint_source(code, "javascript", config, _API)
    assert first.messages == second.messages
    assert len(first.messages) <= len(chain_list)
    assert {m.line for m in first.messages} <= set(range(1, len(chain_list) + 1))
    assert len({m.line for m in first.messages}) == len(first.messages)
    assert all(m.data["operation"][1:].split("(")[0] in OPERATIONS for m in first.messages)
