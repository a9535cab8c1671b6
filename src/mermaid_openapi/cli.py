"""CLI entry point for mermaid-openapi."""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

import click

from mermaid_openapi import convert as run_conversion
from mermaid_openapi.generator.serializer import FORMATS, render, to_json
from mermaid_openapi.generator.validator import (
    ValidationIssue,
    validate_diagram,
    validate_documents,
    validate_rendered,
)
from mermaid_openapi.parser.lexer import tokenize
from mermaid_openapi.parser.sequence import parse


def _read_diagram(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Cannot read {path}: {e}")


def slugify(name: str) -> str:
    """File name stem for a server participant."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "api"


def file_stems(servers: Iterable[str]) -> dict[str, str]:
    """Distinct file name stems, one per server.

    Names that slugify alike ("Order API", "order-api") keep their order and
    the later ones get a numeric suffix starting at 2.
    """
    stems: dict[str, str] = {}
    taken: set[str] = set()
    for server in servers:
        base = slugify(server)
        stem = base
        suffix = 2
        while stem in taken:
            stem = f"{base}-{suffix}"
            suffix += 1
        taken.add(stem)
        stems[server] = stem
    return stems


def _format_issue(issue: ValidationIssue) -> str:
    where = f"line {issue.line}: " if issue.line else ""
    text = f"[{issue.source} {issue.severity}] {where}{issue.message}"
    if issue.context and not issue.line:
        text += f" ({issue.context})"
    if issue.suggestion:
        text += f"\n    hint: {issue.suggestion}"
    return text


def _echo_issues(issues: list[ValidationIssue]) -> None:
    for issue in issues:
        click.echo(_format_issue(issue), err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline details to stderr.")
def main(verbose: bool):
    """mermaid-openapi: generate OpenAPI 3.0 documents from Mermaid sequence diagrams."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("diagram", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(file_okay=False, path_type=Path), help="Output directory for the generated documents.")
@click.option("--format", "fmt", default="yaml", type=click.Choice(FORMATS), help="Output format.")
@click.option("--server", "servers", multiple=True, help="Only write documents for these server participants.")
@click.option("--validate/--no-validate", default=True, help="Report advisory validation findings.")
def convert(diagram: Path, output: Path, fmt: str, servers: tuple[str, ...], validate: bool):
    """Convert a diagram into one OpenAPI document per server."""
    click.echo(f"Parsing {diagram}...")
    result = run_conversion(_read_diagram(diagram))

    for note in result.ast.notes:
        click.echo(f"[{note.type}] line {note.line}: {note.message}", err=True)

    specs = result.specs
    if servers:
        unknown = [s for s in servers if s not in specs]
        if unknown:
            known = ", ".join(specs) or "none"
            raise click.BadParameter(
                f"unknown server(s): {', '.join(unknown)} (available: {known})",
                param_hint="--server",
            )
        specs = {name: doc for name, doc in specs.items() if name in servers}

    click.echo(f"Found {len(result.ast.interactions)} interactions for {len(specs)} server(s).")

    if validate:
        findings = validate_documents(specs)
        _echo_issues(findings.errors + findings.warnings)

    stems = file_stems(specs)
    try:
        output.mkdir(parents=True, exist_ok=True)
        for server, doc in specs.items():
            text = render(doc, fmt)
            if validate:
                _echo_issues(validate_rendered(text, fmt).errors)
            if stems[server] != slugify(server):
                click.echo(
                    f"[warning] {server!r} shares a file name with another server, "
                    f"writing {stems[server]}.{fmt}",
                    err=True,
                )
            file_path = output / f"{stems[server]}.{fmt}"
            file_path.write_text(text, encoding="utf-8")
            click.echo(f"  Created {file_path}")
    except OSError as e:
        raise click.ClickException(f"Cannot write to {output}: {e}")

    click.echo(f"Generated {len(specs)} files in {output}")


@main.command()
@click.argument("diagram", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(diagram: Path):
    """Check a diagram and the documents generated from it."""
    text = _read_diagram(diagram)
    diagram_result = validate_diagram(text)
    documents_result = validate_documents(run_conversion(text).specs)

    errors = diagram_result.errors + documents_result.errors
    warnings = diagram_result.warnings + documents_result.warnings
    _echo_issues(errors + warnings)
    click.echo(f"{len(errors)} error(s), {len(warnings)} warning(s)")

    if errors:
        raise SystemExit(1)


@main.command()
@click.argument("diagram", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(diagram: Path):
    """Print the parsed diagram as JSON."""
    ast = parse(tokenize(_read_diagram(diagram)))
    click.echo(to_json(ast.model_dump(mode="json", by_alias=True)))
