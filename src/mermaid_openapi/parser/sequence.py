"""Sequence diagram parser.

Folds the lexer's tokens into a DiagramAst in one forward pass. The only
state is the open request: the latest request that has not been answered.
A response closes it when addressed back from its target to its source,
and notes over its target annotate it with a JSON body and documentation
directives.

Problems are reported as diagnostics in DiagramAst.notes; parse() never
raises on token content.
"""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import TypeAdapter, ValidationError

from . import deepjson
from .base import (
    DiagramAst,
    Diagnostic,
    ExternalDocs,
    Interaction,
    NoteToken,
    ParticipantToken,
    RequestToken,
    ResponseInfo,
    ResponseToken,
    Token,
)
from .security import normalize_security

logger = logging.getLogger(__name__)

_TOKEN_ADAPTER = TypeAdapter(Token)
_TOKEN_TYPES = (ParticipantToken, RequestToken, ResponseToken, NoteToken)

_BODY = re.compile(r"Body:\s*(.+)", re.IGNORECASE)


def _directive(name: str) -> re.Pattern:
    return re.compile(rf"^[ \t]*{re.escape(name)}:[ \t]*(.+)$", re.IGNORECASE | re.MULTILINE)


_SUMMARY = _directive("Summary")
_DESCRIPTION = _directive("Description")
_TAGS = _directive("Tags")
_OPERATION_ID = _directive("Operation-Id")
_DOCS_URL = _directive("External-Docs-Url")
_DOCS_DESCRIPTION = _directive("External-Docs-Description")
_REQUEST_TYPE = _directive("Request-Type")
_RESPONSE_TYPE = _directive("Response-Type")
_SECURITY = _directive("Security")
_DEPRECATED = re.compile(r"^[ \t]*Deprecated:[ \t]*(true|false)\b", re.IGNORECASE | re.MULTILINE)


def parse(tokens: Iterable[Token | Mapping[str, Any]]) -> DiagramAst:
    """Build the AST for a token stream. The tokens are left untouched."""
    participants: list[str] = []
    interactions: list[Interaction] = []
    notes: list[Diagnostic] = []

    def register(name: str) -> None:
        if name and name not in participants:
            participants.append(name)

    open_request: Interaction | None = None

    for raw in tokens:
        token = _coerce_token(raw)
        if token is None:
            continue

        if isinstance(token, ParticipantToken):
            register(token.name)

        elif isinstance(token, RequestToken):
            register(token.source)
            register(token.target)
            # An unanswered request is replaced without a diagnostic.
            open_request = Interaction(
                from_=token.source,
                to=token.target,
                method=token.method,
                path=token.path,
                line=token.line,
            )
            interactions.append(open_request)

        elif isinstance(token, ResponseToken):
            if (
                open_request is not None
                and token.source == open_request.to
                and token.target == open_request.from_
            ):
                open_request.response = ResponseInfo(
                    status=token.status, description=token.description
                )
                open_request = None
            else:
                message = (
                    f"orphaned response from {token.source} to {token.target} "
                    f"at line {token.line}"
                )
                logger.debug(message)
                notes.append(Diagnostic(type="warning", line=token.line, message=message))

        elif isinstance(token, NoteToken):
            if open_request is None or open_request.to not in token.participants:
                continue
            if not token.content:
                continue
            diagnostic = _attach_body(open_request, token)
            if diagnostic is not None:
                notes.append(diagnostic)
            _apply_directives(open_request, token.content.replace("\\n", "\n"))

    return DiagramAst(participants=participants, interactions=interactions, notes=notes)


def _coerce_token(raw: Token | Mapping[str, Any]) -> Token | None:
    if isinstance(raw, _TOKEN_TYPES):
        return raw
    try:
        return _TOKEN_ADAPTER.validate_python(raw)
    except ValidationError as e:
        logger.debug("Skipping malformed token %r: %s", raw, e)
        return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def load_body(text: str) -> Any:
    """Parse a body note payload as strict JSON, at any nesting depth."""
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except RecursionError:
        logger.debug("Body nests past the stdlib decoder limit, decoding with an explicit stack")
        return deepjson.loads(text)


def _attach_body(interaction: Interaction, note: NoteToken) -> Diagnostic | None:
    # Matched on the raw content: JSON strings may carry their own \n escapes.
    match = _BODY.search(note.content)
    if not match:
        return None
    try:
        interaction.body = load_body(match.group(1))
    except ValueError as e:
        logger.debug("Invalid JSON in body note at line %d: %s", note.line, e)
        return Diagnostic(
            type="error",
            line=note.line,
            message=f"Invalid JSON in body note at line {note.line}: {note.content}",
        )
    return None


def _first(pattern: re.Pattern, content: str) -> str | None:
    match = pattern.search(content)
    if not match:
        return None
    return match.group(1).strip() or None


def _apply_directives(interaction: Interaction, content: str) -> None:
    for match in _SECURITY.finditer(content):
        value = match.group(1).strip()
        if not value:
            continue
        if interaction.security is None:
            interaction.security = []
        interaction.security.append(normalize_security(value))

    summary = _first(_SUMMARY, content)
    if summary:
        interaction.summary = summary

    description = _first(_DESCRIPTION, content)
    if description:
        interaction.description = description

    tags = _first(_TAGS, content)
    if tags:
        interaction.tags = [t.strip() for t in tags.split(",") if t.strip()]

    operation_id = _first(_OPERATION_ID, content)
    if operation_id:
        interaction.operation_id = operation_id

    deprecated = _DEPRECATED.search(content)
    if deprecated:
        interaction.deprecated = deprecated.group(1).lower() == "true"

    docs_url = _first(_DOCS_URL, content)
    docs_description = _first(_DOCS_DESCRIPTION, content)
    if docs_url or docs_description:
        interaction.external_docs = ExternalDocs(url=docs_url, description=docs_description)

    request_type = _first(_REQUEST_TYPE, content)
    if request_type:
        interaction.request_media_type = request_type

    response_type = _first(_RESPONSE_TYPE, content)
    if response_type:
        interaction.response_media_type = response_type
