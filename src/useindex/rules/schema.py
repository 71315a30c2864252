"""Validation of rule options against the JSON-schema subset rules declare.

Rules describe their options the way ESLint rules do: ``META["schema"]`` is
a list with one schema per positional option. Supported keywords are
``type``, ``properties``, ``additionalProperties``, ``items`` and
``minimum``, which is all the bundled rules use.
"""

from __future__ import annotations

_TYPE_CHECKS = {
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
    "string": lambda v: isinstance(v, str),
    "boolean": lambda v: isinstance(v, bool),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
}


class SchemaError(ValueError):
    """An options value does not conform to the rule schema."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


def _validate(value, schema: dict, path: str) -> None:
    expected = schema.get("type")
    if expected is not None:
        check = _TYPE_CHECKS.get(expected)
        if check is None:
            raise SchemaError(path, f"unsupported schema type {expected!r}")
        if not check(value):
            raise SchemaError(path, f"must be {expected}, got {type(value).__name__}")

    minimum = schema.get("minimum")
    if minimum is not None and value < minimum:
        raise SchemaError(path, f"must be >= {minimum}")

    if isinstance(value, dict):
        properties = schema.get("properties", {})
        for key, item in value.items():
            if key in properties:
                _validate(item, properties[key], f"{path}.{key}")
            elif schema.get("additionalProperties", True) is False:
                raise SchemaError(path, f"unexpected property {key!r}")

    items = schema.get("items")
    if isinstance(value, list) and items is not None:
        for i, item in enumerate(value):
            _validate(item, items, f"{path}[{i}]")


def validate_options(schema: list[dict], options: list) -> None:
    """Validate positional rule *options* against a rule's *schema* list.

    Raises :class:`SchemaError` naming the first offending value.
    """
    if len(options) > len(schema):
        raise SchemaError("options", f"expected at most {len(schema)} value(s), got {len(options)}")
    for i, (value, item_schema) in enumerate(zip(options, schema)):
        _validate(value, item_schema, f"options[{i}]")
