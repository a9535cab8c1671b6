"""OpenAPI document generator.

Builds one OpenAPI 3.0 document per server participant (the target of a
request) from a parsed sequence diagram.
"""

import logging
import re
from typing import Any

from mermaid_openapi.parser.base import DiagramAst, Interaction

from .components import extract_components
from .schema import generate_schema, parse_schema_from_value
from .security import resolve_security_scheme

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.0"
DEFAULT_API_VERSION = "1.0.0"
DEFAULT_MEDIA_TYPE = "application/json"
DEFAULT_RESPONSE_DESCRIPTION = "Response description"
DEFAULT_STATUS = "200"

_PATH_PARAMETER = re.compile(r"\{([^}]+)\}")


def generate_openapi_specs(ast: DiagramAst) -> dict[str, dict[str, Any]]:
    """Map each server participant to its OpenAPI document."""
    specs: dict[str, dict[str, Any]] = {}

    for interaction in ast.interactions:
        server = interaction.to
        if not server or not interaction.method or not interaction.path:
            continue

        doc = specs.get(server)
        if doc is None:
            doc = specs[server] = new_document(server)

        path, parameters = extract_parameters(interaction.path)
        operation = _build_operation(interaction, path, parameters)
        _apply_security(doc, operation, interaction.security or [])
        _collect_tags(doc, interaction.tags or [])
        doc["paths"].setdefault(path, {})[interaction.method.lower()] = operation

    for server, doc in specs.items():
        _finalize(doc)
        logger.debug("Generated %d path(s) for %s", len(doc["paths"]), server)

    return specs


def new_document(server: str) -> dict[str, Any]:
    return {
        "openapi": OPENAPI_VERSION,
        "info": {"title": f"{server} API", "version": DEFAULT_API_VERSION},
        "paths": {},
        "components": {"schemas": {}, "securitySchemes": {}},
        "tags": [],
    }


def extract_parameters(raw_path: str) -> tuple[str, list[dict[str, Any]]]:
    """Split a request path into its path key and parameters.

    Query parameters come first, then `{name}` path parameters.
    """
    path, _, query = raw_path.partition("?")
    parameters: list[dict[str, Any]] = []

    if query:
        for pair in query.split("&"):
            key, _, value = pair.partition("=")
            if key:
                parameters.append({
                    "name": key,
                    "in": "query",
                    "schema": {"type": "string", "example": value},
                })

    for name in _PATH_PARAMETER.findall(path):
        parameters.append({
            "name": name,
            "in": "path",
            "required": True,
            "schema": {"type": "string"},
        })

    return path, parameters


def body_schema(body: Any) -> dict[str, Any]:
    if isinstance(body, dict):
        return generate_schema(body)
    return parse_schema_from_value(body).schema


def _build_operation(
    interaction: Interaction, path: str, parameters: list[dict[str, Any]]
) -> dict[str, Any]:
    operation: dict[str, Any] = {"summary": interaction.summary or f"Operation for {path}"}

    if interaction.description:
        operation["description"] = interaction.description
    if interaction.operation_id:
        operation["operationId"] = interaction.operation_id
    if interaction.tags:
        operation["tags"] = list(interaction.tags)
    if interaction.deprecated is not None:
        operation["deprecated"] = interaction.deprecated
    if interaction.external_docs is not None:
        operation["externalDocs"] = interaction.external_docs.model_dump(exclude_none=True)
    if parameters:
        operation["parameters"] = parameters

    has_body = interaction.body is not None
    if has_body:
        media_type = interaction.request_media_type or DEFAULT_MEDIA_TYPE
        operation["requestBody"] = {
            "content": {media_type: {"schema": body_schema(interaction.body)}},
            "required": True,
        }

    operation["responses"] = {}
    if interaction.response is not None:
        media_type = interaction.response_media_type or DEFAULT_MEDIA_TYPE
        schema = body_schema(interaction.body) if has_body else {"type": "object", "example": {}}
        operation["responses"][interaction.response.status or DEFAULT_STATUS] = {
            "description": interaction.response.description or DEFAULT_RESPONSE_DESCRIPTION,
            "content": {media_type: {"schema": schema}},
        }

    return operation


def _apply_security(doc: dict[str, Any], operation: dict[str, Any], tokens: list[str]) -> None:
    requirements = []
    registered = doc["components"]["securitySchemes"]
    for token in tokens:
        scheme = resolve_security_scheme(token)
        if scheme is None:
            logger.debug("Dropping unknown security scheme %r", token)
            continue
        registered.setdefault(scheme.name, scheme.definition)
        requirements.append({scheme.name: list(scheme.scopes)})
    if requirements:
        operation["security"] = requirements


def _collect_tags(doc: dict[str, Any], tags: list[str]) -> None:
    known = {tag["name"] for tag in doc["tags"]}
    for name in tags:
        if name not in known:
            known.add(name)
            doc["tags"].append({"name": name})


def _finalize(doc: dict[str, Any]) -> None:
    components = doc["components"]
    components["schemas"].update(extract_components(doc))

    for key in ("schemas", "securitySchemes"):
        if not components[key]:
            del components[key]
    if not components:
        del doc["components"]
    if not doc["tags"]:
        del doc["tags"]
