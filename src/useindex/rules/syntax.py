"""Read-only views over tree-sitter nodes used by the chain analysis.

The query-chain walk only needs three node shapes: calls, member accesses
and literals. Each helper returns a small frozen view, or None when the
node has a different shape. Parenthesized expressions are transparent,
so ``(ctx.db.query("t")).collect()`` reads the same as the unwrapped form.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass

_SKIPPED_CHILD_TYPES = {"comment"}


@dataclass(frozen=True)
class Call:
    node: object
    callee: object
    arguments: tuple


@dataclass(frozen=True)
class MemberAccess:
    node: object
    object: object
    property: str | None


@dataclass(frozen=True)
class Literal:
    node: object
    value: object


def node_text(node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _named_children(node) -> list:
    return [child for child in node.named_children if child.type not in _SKIPPED_CHILD_TYPES]


def unwrap(node):
    """Strip redundant parentheses around an expression."""
    while node is not None and node.type == "parenthesized_expression":
        children = _named_children(node)
        if len(children) != 1:
            break
        node = children[0]
    return node


def as_call(node) -> Call | None:
    node = unwrap(node)
    if node is None or node.type != "call_expression":
        return None
    callee = unwrap(node.child_by_field_name("function"))
    if callee is None:
        return None
    args_node = node.child_by_field_name("arguments")
    # Tagged templates carry a template_string instead of an argument list.
    if args_node is None or args_node.type != "arguments":
        arguments: tuple = ()
    else:
        arguments = tuple(_named_children(args_node))
    return Call(node=node, callee=callee, arguments=arguments)


def as_member(node, source: bytes) -> MemberAccess | None:
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "member_expression":
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        name = node_text(prop, source) if prop is not None else None
        return MemberAccess(node=node, object=unwrap(obj), property=name)
    if node.type == "subscript_expression":
        # Computed access: the walk may hop through it but it never names a method.
        obj = node.child_by_field_name("object")
        return MemberAccess(node=node, object=unwrap(obj), property=None)
    return None


def _string_value(node, source: bytes) -> str:
    parts: list[str] = []
    for child in node.named_children:
        text = node_text(child, source)
        if child.type == "escape_sequence":
            try:
                text = codecs.decode(text, "unicode_escape")
            except UnicodeDecodeError:
                pass
        parts.append(text)
    return "".join(parts)


def _number_value(text: str) -> int | float | None:
    text = text.replace("_", "")
    if text.endswith("n"):
        # BigInt literals are not JS numbers.
        return None
    try:
        return int(text, 0)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return None


def as_literal(node, source: bytes) -> Literal | None:
    node = unwrap(node)
    if node is None:
        return None
    kind = node.type
    if kind == "string":
        return Literal(node=node, value=_string_value(node, source))
    if kind == "number":
        value = _number_value(node_text(node, source))
        if value is None:
            return None
        return Literal(node=node, value=value)
    if kind == "true":
        return Literal(node=node, value=True)
    if kind == "false":
        return Literal(node=node, value=False)
    if kind == "null":
        return Literal(node=node, value=None)
    return None


def method_name(call: Call, source: bytes) -> str | None:
    """Property name of a call's member-access callee, e.g. ``collect`` in ``q.collect()``."""
    member = as_member(call.callee, source)
    if member is None:
        return None
    return member.property
