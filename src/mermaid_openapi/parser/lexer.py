"""Mermaid sequence diagram lexer.

Turns diagram text into an ordered list of tokens, one per recognised line.
Blank lines, `%%` comments and anything unrecognised are dropped, so
tokenize() never raises.

Arrows and colons are located with plain string searches; the regexes only
anchor on what follows them and cannot backtrack across a long line.
"""

import re

from .base import NoteToken, ParticipantToken, RequestToken, ResponseToken, Token

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD")

REQUEST_ARROW = "->>"
RESPONSE_ARROW = "-->>"

_PARTICIPANT = re.compile(r"participant\s+(\S+)", re.IGNORECASE)
_REQUEST_TAIL = re.compile(
    r"\s?(" + "|".join(HTTP_METHODS) + r")\s+(\S+)(.*)", re.IGNORECASE
)
_RESPONSE_TAIL = re.compile(r"\s?([0-9]{3})(.*)")
_NOTE_HEAD = re.compile(r"note\s+over\s+", re.IGNORECASE)


def tokenize(text: str) -> list[Token]:
    """Tokenize diagram text. Token lines are 1-based source line numbers."""
    tokens: list[Token] = []
    if not text:
        return tokens

    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line or line.startswith("%%"):
            continue
        token = classify_line(line, number)
        if token is not None:
            tokens.append(token)

    return tokens


def classify_line(line: str, number: int = 0) -> Token | None:
    """Classify one trimmed line, trying participant, request, response, note."""
    for matcher in (_match_participant, _match_request, _match_response, _match_note):
        token = matcher(line, number)
        if token is not None:
            return token
    return None


def split_arrow(line: str) -> tuple[str, str, str] | None:
    """Split `SRC <arrow> rest` at the first hyphen of the line.

    The source may not contain a hyphen, so the arrow has to start there.
    Returns (source, arrow, rest) or None.
    """
    index = line.find("-")
    if index <= 0:
        return None
    remainder = line[index:]
    for arrow in (RESPONSE_ARROW, REQUEST_ARROW):
        if remainder.startswith(arrow):
            source = line[:index].strip()
            if not source:
                return None
            return source, arrow, remainder[len(arrow):]
    return None


def split_target(rest: str) -> tuple[str, str] | None:
    """Split `TGT: tail` at the first colon."""
    target, colon, tail = rest.partition(":")
    target = target.strip()
    if not colon or not target:
        return None
    return target, tail


def _match_participant(line: str, number: int) -> ParticipantToken | None:
    match = _PARTICIPANT.match(line)
    if not match:
        return None
    return ParticipantToken(name=match.group(1), line=number)


def _match_request(line: str, number: int) -> RequestToken | None:
    parts = split_arrow(line)
    if parts is None or parts[1] != REQUEST_ARROW:
        return None
    source, _, rest = parts

    addressed = split_target(rest)
    if addressed is None:
        return None
    target, tail = addressed

    match = _REQUEST_TAIL.match(tail)
    if not match:
        return None
    method, path, summary = match.groups()
    return RequestToken(
        source=source,
        target=target,
        method=method.lower(),
        path=path,
        summary=summary.strip() or None,
        line=number,
    )


def _match_response(line: str, number: int) -> ResponseToken | None:
    parts = split_arrow(line)
    if parts is None or parts[1] != RESPONSE_ARROW:
        return None
    source, _, rest = parts

    addressed = split_target(rest)
    if addressed is None:
        return None
    target, tail = addressed

    match = _RESPONSE_TAIL.match(tail)
    if not match:
        return None
    status, description = match.groups()
    return ResponseToken(
        source=source,
        target=target,
        status=status,
        description=description.strip() or None,
        line=number,
    )


def _match_note(line: str, number: int) -> NoteToken | None:
    head = _NOTE_HEAD.match(line)
    if not head:
        return None

    names, colon, content = line[head.end():].partition(":")
    content = content.strip()
    if not colon or not names.strip() or not content:
        return None

    return NoteToken(
        participants=[name.strip() for name in names.split(",")],
        content=content,
        note_type="body" if content.lower().startswith("body:") else "info",
        line=number,
    )
