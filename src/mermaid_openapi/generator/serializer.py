"""Render OpenAPI documents as YAML or JSON text.

Both emitters walk the document with an explicit stack, so arbitrarily
deep schemas and examples render without hitting the recursion limit.
Output depends only on the document (dict insertion order), so the same
document always renders to the same text.
"""

import json
import re
from typing import Any

FORMATS = ("yaml", "json")

# Keys that YAML would not read back as the same plain string.
_UNSAFE_KEY_START = tuple("-?:,[]{}#&*!|>'\"%@`")
_RESERVED_KEYS = {"", "~", "<<", "=", "null", "true", "false", "yes", "no", "on", "off", "y", "n"}
_UNSAFE_KEY = re.compile(r": |\s#|^[0-9]{4}-[0-9]{1,2}-[0-9]{1,2}|[\x00-\x1f\x7f-\x9f\u2028\u2029\ufffe\uffff]")
# Characters YAML readers reject or fold inside double-quoted scalars.
_YAML_ESCAPE = re.compile(r"[\x7f-\x9f\u2028\u2029\ufffe\uffff]")


def render(doc: Any, fmt: str = "yaml") -> str:
    """Render doc in the given format ("yaml" or "json")."""
    if fmt == "yaml":
        return to_yaml(doc)
    if fmt == "json":
        return to_json(doc)
    raise ValueError(f"Unknown output format: {fmt!r} (expected one of {', '.join(FORMATS)})")


def _scalar(value: Any) -> str:
    # NaN and infinities have no JSON spelling; json.dumps raises ValueError
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


def _yaml_scalar(value: Any) -> str:
    text = _scalar(value)
    if isinstance(value, float) and text[-1].isdigit() and "." not in text and "e" in text:
        # YAML 1.1 floats need a dot: 1e+16 -> 1.0e+16
        mantissa, _, exponent = text.partition("e")
        text = f"{mantissa}.0e{exponent}"
    elif isinstance(value, str):
        text = _YAML_ESCAPE.sub(lambda m: f"\\u{ord(m.group()):04x}", text)
    return text


def yaml_key(key: Any) -> str:
    """Plain key when it reads back unchanged, JSON-quoted otherwise."""
    text = str(key)
    if (
        text.lower() in _RESERVED_KEYS
        or text != text.strip()
        or text.startswith(_UNSAFE_KEY_START)
        or text.endswith(":")
        or _UNSAFE_KEY.search(text)
    ):
        return _yaml_scalar(text)
    return text


def to_yaml(value: Any) -> str:
    """Block-style YAML with JSON-quoted scalars and two-space indents.

    Sequence items that are mappings put their first key on the `- ` line;
    the remaining keys line up under it. Raises ValueError for NaN and
    infinite floats.
    """
    if not isinstance(value, (dict, list)):
        return _yaml_scalar(value) + "\n"

    lines: list[str] = []
    # Columns of sequence items whose `- ` marker goes on the next line.
    markers: list[int] = []

    def emit(column: int, text: str) -> None:
        prefix = ""
        cursor = 0
        for marker in markers:
            prefix += " " * (marker - cursor) + "- "
            cursor = marker + 2
        markers.clear()
        lines.append(prefix + " " * (column - cursor) + text)

    # ("block", value, column) | ("item", value, column) | ("line", text, column)
    stack: list[tuple[str, Any, int]] = [("block", value, 0)]
    while stack:
        kind, item, column = stack.pop()

        if kind == "line":
            emit(column, item)
        elif kind == "item":
            markers.append(column)
            stack.append(("block", item, column + 2))
        elif isinstance(item, dict) and item:
            for key, child in reversed(list(item.items())):
                label = yaml_key(key)
                if isinstance(child, dict) and child:
                    stack.append(("block", child, column + 2))
                    stack.append(("line", f"{label}:", column))
                elif isinstance(child, list) and child:
                    stack.append(("block", child, column + 2))
                    stack.append(("line", f"{label}:", column))
                elif isinstance(child, dict):
                    stack.append(("line", f"{label}: {{}}", column))
                elif isinstance(child, list):
                    stack.append(("line", f"{label}: []", column))
                else:
                    stack.append(("line", f"{label}: {_yaml_scalar(child)}", column))
        elif isinstance(item, list) and item:
            for child in reversed(item):
                stack.append(("item", child, column))
        elif isinstance(item, dict):
            stack.append(("line", "{}", column))
        elif isinstance(item, list):
            stack.append(("line", "[]", column))
        else:
            stack.append(("line", _yaml_scalar(item), column))

    return "\n".join(lines) + "\n"


def to_json(value: Any, indent: int = 2) -> str:
    """Same text as json.dumps(value, indent=indent, ensure_ascii=False, allow_nan=False).

    Raises ValueError for NaN and infinite floats.
    """
    parts: list[str] = []
    # ("value", value, depth) | ("text", text, 0)
    stack: list[tuple[str, Any, int]] = [("value", value, 0)]
    while stack:
        kind, item, depth = stack.pop()
        if kind == "text":
            parts.append(item)
            continue

        if isinstance(item, dict) and item:
            inner = "\n" + " " * (indent * (depth + 1))
            parts.append("{")
            stack.append(("text", "\n" + " " * (indent * depth) + "}", 0))
            entries = list(item.items())
            for position in range(len(entries) - 1, -1, -1):
                key, child = entries[position]
                if position < len(entries) - 1:
                    stack.append(("text", ",", 0))
                stack.append(("value", child, depth + 1))
                stack.append(("text", inner + _scalar(_json_key(key)) + ": ", 0))
        elif isinstance(item, (list, tuple)) and item:
            inner = "\n" + " " * (indent * (depth + 1))
            parts.append("[")
            stack.append(("text", "\n" + " " * (indent * depth) + "]", 0))
            for position in range(len(item) - 1, -1, -1):
                if position < len(item) - 1:
                    stack.append(("text", ",", 0))
                stack.append(("value", item[position], depth + 1))
                stack.append(("text", inner, 0))
        elif isinstance(item, dict):
            parts.append("{}")
        elif isinstance(item, (list, tuple)):
            parts.append("[]")
        else:
            parts.append(_scalar(item))

    return "".join(parts)


def _json_key(key: Any) -> str:
    # json.dumps converts these key types the same way
    if isinstance(key, str):
        return key
    if key is True:
        return "true"
    if key is False:
        return "false"
    if key is None:
        return "null"
    return _scalar(key)
