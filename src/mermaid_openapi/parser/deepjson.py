"""Stack-based JSON decoding for documents nested past `json.loads`' limit.

The stdlib decoder recurses once per container and gives up with
RecursionError around a thousand levels. This decoder keeps open containers
on an explicit stack and borrows the stdlib's string and number scanners, so
it accepts exactly what `json.loads` accepts apart from the NaN and Infinity
constants, which it rejects.
"""

import re
from json.decoder import JSONDecodeError, scanstring
from json.scanner import NUMBER_RE
from typing import Any

_WHITESPACE = re.compile(r"[ \t\n\r]*")

_LITERALS = (("true", True), ("false", False), ("null", None))


def _skip(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()


def _key(text: str, pos: int) -> tuple[str, int]:
    if not text.startswith('"', pos):
        raise JSONDecodeError("Expecting property name enclosed in double quotes", text, pos)
    key, pos = scanstring(text, pos + 1)
    pos = _skip(text, pos)
    if not text.startswith(":", pos):
        raise JSONDecodeError("Expecting ':' delimiter", text, pos)
    return key, _skip(text, pos + 1)


def _scalar(text: str, pos: int) -> tuple[Any, int]:
    if text.startswith('"', pos):
        return scanstring(text, pos + 1)
    match = NUMBER_RE.match(text, pos)
    if match:
        integer, frac, exp = match.groups()
        if frac or exp:
            return float(integer + (frac or "") + (exp or "")), match.end()
        return int(integer), match.end()
    for word, value in _LITERALS:
        if text.startswith(word, pos):
            return value, pos + len(word)
    raise JSONDecodeError("Expecting value", text, pos)


def loads(text: str) -> Any:
    """Decode one JSON document without recursing per nesting level."""
    # Open containers, each with the key its next value is stored under.
    stack: list[list[Any]] = []
    pos = _skip(text, 0)

    while True:
        # A value starts at pos.
        if text.startswith("{", pos):
            pos = _skip(text, pos + 1)
            if text.startswith("}", pos):
                value, pos = {}, pos + 1
            else:
                key, pos = _key(text, pos)
                stack.append([{}, key])
                continue
        elif text.startswith("[", pos):
            pos = _skip(text, pos + 1)
            if text.startswith("]", pos):
                value, pos = [], pos + 1
            else:
                stack.append([[], None])
                continue
        else:
            value, pos = _scalar(text, pos)

        # Store the finished value, closing every container it completes.
        while True:
            pos = _skip(text, pos)
            if not stack:
                if pos != len(text):
                    raise JSONDecodeError("Extra data", text, pos)
                return value

            frame = stack[-1]
            container = frame[0]
            if isinstance(container, dict):
                container[frame[1]] = value
                closer = "}"
            else:
                container.append(value)
                closer = "]"

            if text.startswith(",", pos):
                pos = _skip(text, pos + 1)
                if closer == "}":
                    frame[1], pos = _key(text, pos)
                break
            if text.startswith(closer, pos):
                stack.pop()
                value, pos = container, pos + 1
                continue
            raise JSONDecodeError(f"Expecting ',' delimiter or '{closer}'", text, pos)
