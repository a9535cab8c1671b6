"""Advisory validation of diagram text and generated documents.

Nothing here gates conversion: the parser and generator always run, and
these checks only report what looks wrong.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any, Iterable, Literal

import yaml
from pydantic import BaseModel

from mermaid_openapi.parser.base import NoteToken, ParticipantToken, RequestToken, ResponseToken
from mermaid_openapi.parser.lexer import HTTP_METHODS, REQUEST_ARROW, split_arrow, split_target, tokenize
from mermaid_openapi.parser.sequence import load_body, parse

logger = logging.getLogger(__name__)

# Mermaid statements that carry no API information.
DIAGRAM_KEYWORDS = {
    "sequencediagram", "autonumber", "title", "actor", "activate", "deactivate",
    "loop", "alt", "else", "opt", "par", "and", "critical", "break", "rect", "end",
}
OPERATION_METHODS = {m.lower() for m in HTTP_METHODS} | {"trace"}

_METHOD_WORD = re.compile(r"\s?([A-Za-z]+)\s+\S")
_PARTICIPANT_BAD_CHARS = re.compile(r"[<>{}|\\^`\[\]]")
_PLACEHOLDER = re.compile(r"\{([^}]+)\}")
_STATUS = re.compile(r"[0-9]{3}")


class ValidationIssue(BaseModel):
    source: Literal["mermaid", "openapi"]
    severity: Literal["error", "warning", "info"]
    line: int | None = None
    message: str
    suggestion: str | None = None
    context: str | None = None


class ValidationResult(BaseModel):
    valid: bool = True
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    @classmethod
    def from_issues(cls, issues: Iterable[ValidationIssue]) -> "ValidationResult":
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        for issue in issues:
            (errors if issue.severity == "error" else warnings).append(issue)
        return cls(valid=not errors, errors=errors, warnings=warnings)


def validate_diagram(text: str) -> ValidationResult:
    """Check diagram text for syntax problems before conversion."""
    if not text or not text.strip():
        return ValidationResult.from_issues([
            _diagram_issue("error", 0, "Empty input", "Provide a Mermaid sequence diagram"),
        ])

    tokens = tokenize(text)
    by_line = {token.line: token for token in tokens}
    issues: list[ValidationIssue] = []

    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line or line.startswith("%%"):
            continue
        token = by_line.get(number)
        if token is None:
            issues.extend(_unmatched_line(line, number))
        elif isinstance(token, ParticipantToken):
            issues.extend(_participant_issues(token))
        elif isinstance(token, RequestToken):
            issues.extend(_path_issues(token.path, number))
        elif isinstance(token, ResponseToken):
            if not 100 <= int(token.status) <= 599:
                issues.append(_diagram_issue(
                    "error", number, f'Invalid HTTP status code: "{token.status}"',
                    "Use a status code between 100 and 599", token.status,
                ))

    issues.extend(_undeclared_participants(tokens))
    issues.extend(_notes_before_requests(tokens))

    for diagnostic in parse(tokens).notes:
        suggestion = (
            "Check that the request it answers is addressed in the opposite direction"
            if diagnostic.type == "warning"
            else "Ensure the body is valid JSON on a single line"
        )
        issues.append(_diagram_issue(diagnostic.type, diagnostic.line, diagnostic.message, suggestion))

    result = ValidationResult.from_issues(issues)
    logger.debug(
        "Diagram validation: %d error(s), %d warning(s)", len(result.errors), len(result.warnings)
    )
    return result


def validate_documents(docs: Mapping[str, Any]) -> ValidationResult:
    """Check generated documents, one per server."""
    issues: list[ValidationIssue] = []
    operation_ids: dict[str, str] = {}

    for server, doc in docs.items():
        if not isinstance(doc, dict):
            issues.append(_doc_issue("error", f'Document for "{server}" is not an object'))
            continue
        issues.extend(_document_issues(server, doc))

        operations = 0
        for path, method, operation in _operations(doc):
            operations += 1
            op_id = operation.get("operationId")
            if not op_id:
                continue
            first = operation_ids.setdefault(op_id, f"{server} {method.upper()} {path}")
            if first != f"{server} {method.upper()} {path}":
                issues.append(_doc_issue(
                    "error", f'Duplicate operationId "{op_id}"',
                    "Give every operation a unique Operation-Id", f"{first}; {server} {method.upper()} {path}",
                ))
        if operations == 0:
            issues.append(_doc_issue("warning", f'Service "{server}" has no operations defined'))

    return ValidationResult.from_issues(issues)


def validate_rendered(text: str, fmt: str = "yaml") -> ValidationResult:
    """Check that rendered YAML or JSON text loads back.

    JSON must be strict: NaN and Infinity are reported as errors.
    """
    try:
        if fmt == "json":
            load_body(text)
        else:
            yaml.safe_load(text)
    except RecursionError:
        return ValidationResult.from_issues([
            _doc_issue("warning", f"Rendered {fmt.upper()} is nested too deeply to load back"),
        ])
    except (yaml.YAMLError, ValueError) as e:
        return ValidationResult.from_issues([
            _doc_issue("error", f"Rendered {fmt.upper()} does not load back: {e}"),
        ])
    return ValidationResult()


def _diagram_issue(severity, line, message, suggestion=None, context=None) -> ValidationIssue:
    return ValidationIssue(
        source="mermaid", severity=severity, line=line,
        message=message, suggestion=suggestion, context=context,
    )


def _doc_issue(severity, message, suggestion=None, context=None) -> ValidationIssue:
    return ValidationIssue(
        source="openapi", severity=severity, message=message, suggestion=suggestion, context=context,
    )


def _unmatched_line(line: str, number: int) -> list[ValidationIssue]:
    words = line.split(None, 1)
    if words[0].lower() in DIAGRAM_KEYWORDS:
        return []

    parts = split_arrow(line)
    if parts is not None and parts[1] == REQUEST_ARROW:
        addressed = split_target(parts[2])
        match = _METHOD_WORD.match(addressed[1]) if addressed else None
        if match and match.group(1).lower() not in OPERATION_METHODS:
            return [_diagram_issue(
                "error", number, f'Invalid HTTP method: "{match.group(1)}"',
                f"Use one of: {', '.join(HTTP_METHODS)}", match.group(1),
            )]

    return [_diagram_issue(
        "warning", number, "Line does not match any known Mermaid pattern",
        "Check the syntax for requests, responses, participants, or notes", line,
    )]


def _participant_issues(token: ParticipantToken) -> list[ValidationIssue]:
    issues = []
    if _PARTICIPANT_BAD_CHARS.search(token.name):
        issues.append(_diagram_issue(
            "error", token.line, f'Invalid character in participant name: "{token.name}"',
            "Use only letters, digits, underscores and hyphens", token.name,
        ))
    if token.name[:1].isdigit():
        issues.append(_diagram_issue(
            "warning", token.line, f'Participant name starts with a number: "{token.name}"',
            "Consider starting with a letter", token.name,
        ))
    return issues


def _path_issues(path: str, line: int) -> list[ValidationIssue]:
    issues = []
    path_part = path.split("?", 1)[0]
    if "{{" in path_part:
        issues.append(_diagram_issue(
            "error", line, "Double braces detected in path",
            "Use single braces for path parameters: /users/{id}", path,
        ))
    if path_part.count("{") != path_part.count("}"):
        issues.append(_diagram_issue(
            "error", line, "Unclosed braces in path",
            "Ensure all opening braces have corresponding closing braces", path,
        ))
    if "}{" in path_part:
        issues.append(_diagram_issue(
            "error", line, "Adjacent path parameters detected",
            "Separate path parameters with a slash: /users/{id}/{name}", path,
        ))
    return issues


def _undeclared_participants(tokens: list) -> list[ValidationIssue]:
    declared = {t.name for t in tokens if isinstance(t, ParticipantToken)}
    if not declared:
        return []

    issues = []
    reported = set()
    for token in tokens:
        if not isinstance(token, (RequestToken, ResponseToken)):
            continue
        for name in (token.source, token.target):
            if name in declared or name in reported:
                continue
            reported.add(name)
            issues.append(_diagram_issue(
                "warning", token.line, f'Participant "{name}" is used but never declared',
                f'Declare it with "participant {name}"', name,
            ))
    return issues


def _notes_before_requests(tokens: list) -> list[ValidationIssue]:
    issues = []
    for token in tokens:
        if isinstance(token, RequestToken):
            break
        if isinstance(token, NoteToken):
            issues.append(_diagram_issue(
                "warning", token.line, "Note may be orphaned - no preceding request found",
                "Place notes after the request they describe", token.content,
            ))
    return issues


def _operations(doc: dict[str, Any]):
    paths = doc.get("paths")
    if not isinstance(paths, dict):
        return
    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        for method, operation in item.items():
            if isinstance(operation, dict):
                yield path, method, operation


def _document_issues(server: str, doc: dict[str, Any]) -> list[ValidationIssue]:
    issues = []

    for field in ("openapi", "info", "paths"):
        if field not in doc:
            issues.append(_doc_issue("error", f'Missing required field: "{field}"', context=server))
    info = doc.get("info")
    if isinstance(info, dict):
        for field in ("title", "version"):
            if not info.get(field):
                issues.append(_doc_issue("error", f'Missing required field: "info.{field}"', context=server))

    version = doc.get("openapi")
    if version is not None and not (isinstance(version, str) and version.startswith("3.")):
        issues.append(_doc_issue(
            "error", f'Unsupported OpenAPI version: "{version}"', "Use OpenAPI 3.0.x", server,
        ))

    schemes = doc.get("components", {}).get("securitySchemes", {})
    for path, method, operation in _operations(doc):
        where = f"{server} {method.upper()} {path}"
        if method.lower() not in OPERATION_METHODS:
            issues.append(_doc_issue("error", f'Invalid HTTP method: "{method}"', context=where))
        issues.extend(_response_issues(operation, where))
        issues.extend(_path_parameter_issues(path, operation, where))
        for requirement in operation.get("security", []):
            for name in requirement:
                if name not in schemes:
                    issues.append(_doc_issue(
                        "error", f'Security scheme "{name}" is not defined',
                        "Add it to components.securitySchemes", where,
                    ))

    issues.extend(_reference_issues(doc, server))
    return issues


def _response_issues(operation: dict[str, Any], where: str) -> list[ValidationIssue]:
    responses = operation.get("responses")
    if responses is None:
        return [_doc_issue("error", 'Operation missing "responses" field', context=where)]
    if not responses:
        return [_doc_issue(
            "warning", "Operation has no responses",
            "Add a response arrow answering the request", where,
        )]

    issues = []
    for status in responses:
        status = str(status)
        if status == "default":
            continue
        if not _STATUS.fullmatch(status) or not 100 <= int(status) <= 599:
            issues.append(_doc_issue("error", f'Invalid status code: "{status}"', context=where))
    return issues


def _path_parameter_issues(path: str, operation: dict[str, Any], where: str) -> list[ValidationIssue]:
    declared = {
        p.get("name"): p for p in operation.get("parameters", [])
        if isinstance(p, dict) and p.get("in") == "path"
    }
    issues = []
    for name in _PLACEHOLDER.findall(path):
        parameter = declared.get(name)
        if parameter is None:
            issues.append(_doc_issue("error", f'Path parameter "{name}" is not declared', context=where))
        elif parameter.get("required") is not True:
            issues.append(_doc_issue(
                "error", f'Path parameter "{name}" is not marked as required', context=where,
            ))
    return issues


def _reference_issues(doc: dict[str, Any], server: str) -> list[ValidationIssue]:
    issues = []
    stack: list[Any] = [doc]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str):
                if not ref.startswith("#/"):
                    issues.append(_doc_issue("error", f'Invalid reference format: "{ref}"', context=server))
                elif _resolve_pointer(doc, ref) is None:
                    issues.append(_doc_issue(
                        "error", f'Invalid reference: "{ref}" does not exist', context=server,
                    ))
            stack.extend(value for key, value in node.items() if key != "example")
        elif isinstance(node, list):
            stack.extend(node)
    return issues


def _resolve_pointer(doc: dict[str, Any], ref: str) -> Any:
    node: Any = doc
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node
