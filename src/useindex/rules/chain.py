"""Query-chain walks over the object/callee spine of a fluent call chain.

A Convex query reads right to left::

    ctx.db.query("messages").withIndex("by_author", ...).order("desc").collect()
    ^^^^^^^^^^^^^^^^^^^^^^^^ root                                     ^^^^^^^^^ inspected call

Both walks start at the inspected call and descend through each call's
callee object until they find what they look for or leave the chain.
"""

from __future__ import annotations

from useindex.rules.syntax import as_call, as_literal, as_member, method_name

QUERY_METHOD = "query"
INDEX_METHOD = "withIndex"


def _table_name(call, source: bytes) -> str | None:
    """Return the literal table name if *call* is ``<x>.query("<table>")``."""
    if method_name(call, source) != QUERY_METHOD or not call.arguments:
        return None
    literal = as_literal(call.arguments[0], source)
    if literal is None or not isinstance(literal.value, str) or not literal.value:
        return None
    return literal.value


def locate_chain_root(node, source: bytes) -> str | None:
    """Walk from *node* to the query root and return the queried table.

    Calls and bare member accesses are both stepped through. Returns None
    when the spine ends without a ``query("<literal>")`` call, which covers
    computed table names and chains that are not queries at all.
    """
    current = node
    while current is not None:
        call = as_call(current)
        if call is not None:
            table = _table_name(call, source)
            if table is not None:
                return table
            member = as_member(call.callee, source)
            if member is None:
                return None
            current = member.object
            continue

        member = as_member(current, source)
        if member is None:
            return None
        current = member.object
    return None


def chain_has_index_selector(node, source: bytes) -> bool:
    """True if any call between *node* and the chain root is ``withIndex(...)``.

    Only the call spine is followed; a bare member access ends the walk.
    """
    current = node
    while current is not None:
        call = as_call(current)
        if call is None:
            return False
        member = as_member(call.callee, source)
        if member is None:
            return False
        if member.property == INDEX_METHOD:
            return True
        current = member.object
    return False
