"""Convert Mermaid sequence diagrams into OpenAPI 3.0 documents."""

from typing import Any

from pydantic import BaseModel

from mermaid_openapi.generator.openapi import generate_openapi_specs
from mermaid_openapi.generator.serializer import render, to_json, to_yaml
from mermaid_openapi.parser.base import DiagramAst
from mermaid_openapi.parser.lexer import tokenize
from mermaid_openapi.parser.sequence import parse

__version__ = "0.1.0"

__all__ = [
    "ConversionResult",
    "convert",
    "generate_openapi_specs",
    "parse",
    "render",
    "to_json",
    "to_yaml",
    "tokenize",
]


class ConversionResult(BaseModel):
    ast: DiagramAst
    specs: dict[str, dict[str, Any]] = {}


def convert(text: str) -> ConversionResult:
    """Run the whole pipeline: tokenize, parse, generate."""
    ast = parse(tokenize(text))
    return ConversionResult(ast=ast, specs=generate_openapi_specs(ast))
