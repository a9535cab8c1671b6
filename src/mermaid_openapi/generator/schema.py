"""Infer OpenAPI schemas from example JSON values.

A string value may instead be a shorthand declaration such as
"integer, required, min:1" or "string, format:email". Everything else is
inferred from the literal: the schema type follows the value and the value
becomes the example.

Nested objects and arrays are expanded with an explicit work list, so body
depth is not limited by the interpreter's recursion limit.
"""

import math
from typing import Any, NamedTuple

SCHEMA_TYPES = ("string", "integer", "number", "boolean", "array", "object")


class InferredSchema(NamedTuple):
    schema: dict[str, Any]
    is_required: bool


# (value, holder, key): infer a schema for value and store it at holder[key]
_Pending = list[tuple[Any, dict[str, Any], str]]


def parse_schema_from_value(value: Any) -> InferredSchema:
    """Schema for a single value.

    A plain object yields `{"type": "object"}` only; generate_schema()
    enumerates its fields.
    """
    pending: _Pending = []
    inferred = _describe(value, pending)
    _drain(pending)
    return inferred


def generate_schema(obj: dict[str, Any]) -> dict[str, Any]:
    """Object schema listing every field of obj, nested objects included."""
    pending: _Pending = []
    schema = _object_schema(obj, pending)
    _drain(pending)
    return schema


def parse_shorthand(value: str) -> InferredSchema | None:
    """Read a shorthand declaration, or None when value is a plain example."""
    parts = [part.strip() for part in value.split(",")]
    explicit_type = parts[0] if parts[0] in SCHEMA_TYPES else None
    if not explicit_type and not any(p == "required" or ":" in p for p in parts):
        return None

    schema: dict[str, Any] = {"type": explicit_type or "string"}
    is_required = False
    for part in parts:
        if part == "required":
            is_required = True
        elif part.startswith("min:"):
            bound = _number(part[len("min:"):])
            if bound is not None:
                schema["minLength" if schema["type"] == "string" else "minimum"] = bound
        elif part.startswith("max:"):
            bound = _number(part[len("max:"):])
            if bound is not None:
                schema["maxLength" if schema["type"] == "string" else "maximum"] = bound
        elif part.startswith("format:"):
            schema["format"] = part[len("format:"):]
        elif part.startswith("example:"):
            schema["example"] = part[len("example:"):]
    return InferredSchema(schema, is_required)


def _number(text: str) -> int | float | None:
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return int(number) if number.is_integer() else number


def _describe(value: Any, pending: _Pending) -> InferredSchema:
    if isinstance(value, str):
        shorthand = parse_shorthand(value)
        if shorthand is not None:
            return shorthand

    if value is None:
        return InferredSchema({"type": "string"}, False)
    if isinstance(value, bool):
        return InferredSchema({"type": "boolean", "example": value}, False)
    if isinstance(value, int):
        return InferredSchema({"type": "integer", "example": value}, False)
    if isinstance(value, float):
        if not math.isfinite(value):
            # 1e400 decodes to inf, which JSON cannot carry as an example
            return InferredSchema({"type": "number"}, False)
        kind = "integer" if value.is_integer() else "number"
        return InferredSchema({"type": kind, "example": value}, False)
    if isinstance(value, list):
        schema: dict[str, Any] = {"type": "array", "items": {"type": "string"}}
        if value:
            pending.append((value[0], schema, "items"))
        if _all_finite(value):
            schema["example"] = value
        return InferredSchema(schema, False)
    if isinstance(value, dict):
        return InferredSchema({"type": "object"}, False)
    return InferredSchema({"type": "string", "example": value}, False)


def _all_finite(value: Any) -> bool:
    stack = [value]
    while stack:
        node = stack.pop()
        if isinstance(node, float) and not math.isfinite(node):
            return False
        if isinstance(node, list):
            stack.extend(node)
        elif isinstance(node, dict):
            stack.extend(node.values())
    return True


def _object_schema(obj: dict[str, Any], pending: _Pending) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, value in obj.items():
        if isinstance(value, dict):
            properties[name] = {}
            pending.append((value, properties, name))
            continue
        schema, is_required = _describe(value, pending)
        properties[name] = schema
        if is_required:
            required.append(name)

    result: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        result["required"] = required
    return result


def _drain(pending: _Pending) -> None:
    while pending:
        value, holder, key = pending.pop()
        if isinstance(value, dict):
            holder[key] = _object_schema(value, pending)
        else:
            holder[key] = _describe(value, pending).schema
