"""Flag Convex queries that execute without selecting an index.

``ctx.db.query("table").collect()`` scans the whole table. Every terminal
operation listed in :data:`OPERATIONS` is checked for a ``.withIndex()``
step between it and the ``query("table")`` root. Chains whose table name
or ``take`` size is not a literal are skipped.

Options (all optional)::

    allowedTables: [str]   tables exempt from the check (small admin tables)
    maxTakeSize:   number  largest .take(n) tolerated without an index (default 1)
    allowFirst:    bool    tolerate .first() without an index (default true)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from useindex.rules.chain import chain_has_index_selector, locate_chain_root
from useindex.rules.syntax import as_call, as_literal, method_name

NAME = "no-unindexed-queries"

META = {
    "type": "problem",
    "docs": {
        "description": "Prevent Convex queries without proper index usage",
        "category": "Performance",
        "recommended": True,
        "url": "https://docs.convex.dev/database/indexes",
    },
    "fixable": None,
    "schema": [
        {
            "type": "object",
            "properties": {
                "allowedTables": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Table names that are allowed to have unindexed queries (small admin tables)",
                },
                "maxTakeSize": {
                    "type": "number",
                    "minimum": 1,
                    "description": "Maximum size for .take(n) without requiring an index",
                },
                "allowFirst": {
                    "type": "boolean",
                    "description": "Whether to allow .first() without an index",
                },
            },
            "additionalProperties": False,
        }
    ],
    "messages": {
        "noIndex": (
            "Convex query on '{{tableName}}' without index may cause performance issues. "
            "Use .withIndex() before {{operation}}."
        ),
        "suggestion": "Consider adding .withIndex('indexName', (q) => q.eq('field', value)) before {{operation}}",
        "performance": "Full table scans cause high bandwidth usage and slow queries as data grows.",
    },
}


@dataclass(frozen=True)
class RuleOptions:
    allowed_tables: frozenset = field(default_factory=frozenset)
    max_take_size: float = 1
    allow_first: bool = True

    @classmethod
    def from_options(cls, options: list | None) -> RuleOptions:
        """Build options from the rule's positional options list."""
        raw = (options or [{}])[0] or {}
        return cls(
            allowed_tables=frozenset(raw.get("allowedTables") or ()),
            max_take_size=raw.get("maxTakeSize") or 1,
            allow_first=raw.get("allowFirst") is not False,
        )


@dataclass(frozen=True)
class Diagnostic:
    node: object
    message_id: str
    data: dict


# ---------------------------------------------------------------------------
# Operation policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Operation:
    """How one terminal method is recognized and rendered.

    ``extract`` pulls the literal arguments the policy needs from the call
    (None means the call is out of scope); ``triggers`` decides from those
    values and the options whether the call needs an index.
    """

    name: str
    extract: Callable[[object, bytes], tuple | None]
    triggers: Callable[[tuple, RuleOptions], bool]

    def render(self, data: tuple) -> str:
        return ".{}({})".format(self.name, ", ".join(_format_number(v) for v in data))


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _no_arguments(call, source: bytes) -> tuple:
    return ()


def _take_size(call, source: bytes) -> tuple | None:
    if not call.arguments:
        return None
    literal = as_literal(call.arguments[0], source)
    if literal is None or isinstance(literal.value, bool) or not isinstance(literal.value, (int, float)):
        return None
    return (literal.value,)


OPERATIONS: dict[str, Operation] = {
    "collect": Operation("collect", _no_arguments, lambda data, opts: True),
    "paginate": Operation("paginate", _no_arguments, lambda data, opts: True),
    "take": Operation("take", _take_size, lambda data, opts: data[0] > opts.max_take_size),
    "first": Operation("first", _no_arguments, lambda data, opts: not opts.allow_first),
}


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------


def evaluate(node, source: bytes, options: RuleOptions) -> Diagnostic | None:
    """Return a diagnostic if the call *node* runs an unindexed query."""
    call = as_call(node)
    if call is None:
        return None

    operation = OPERATIONS.get(method_name(call, source))
    if operation is None:
        return None

    data = operation.extract(call, source)
    if data is None or not operation.triggers(data, options):
        return None

    table = locate_chain_root(call.node, source)
    if table is None or table in options.allowed_tables:
        return None

    if chain_has_index_selector(call.node, source):
        return None

    return Diagnostic(
        node=call.node,
        message_id="noIndex",
        data={"tableName": table, "operation": operation.render(data)},
    )


def create(context) -> dict:
    """Return the node visitors for one file."""
    options = RuleOptions.from_options(context.options)

    def call_expression(node) -> None:
        diagnostic = evaluate(node, context.source, options)
        if diagnostic is not None:
            context.report(diagnostic)

    return {"call_expression": call_expression}
