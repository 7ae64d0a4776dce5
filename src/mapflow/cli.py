# src/mapflow/cli.py
"""mapflow command line interface.

Loads a workflow document, validates it, shows its execution order,
compiles it to mapping records, and publishes the records.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import structlog
import typer
import yaml
from pydantic import ValidationError

from mapflow import __version__
from mapflow.contracts.collaborators import SchemaProvider
from mapflow.contracts.errors import (
    CollaboratorError,
    CompileError,
    GraphStructureError,
    NodeConfigError,
)
from mapflow.core.compiler import check_connected
from mapflow.core.config import MapflowSettings, load_settings, redacted
from mapflow.core.document import WorkflowDocument, load_document
from mapflow.core.editor import WorkflowEditor

__all__ = ["app"]

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="mapflow",
    help="mapflow: validate and compile data-integration workflow graphs.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"mapflow version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file without overriding existing ones.

    Raises:
        typer.Exit: If an explicit env_file doesn't exist
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)
    return load_dotenv(override=False)


def _fail(title: str, message: str, *, details: list[str] | None = None, hint: str | None = None) -> NoReturn:
    """Print a formatted error panel to stderr and exit with status 1."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    content = Text()
    content.append(message, style="white")
    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")
    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    Console(stderr=True).print(Panel(content, title=f"[red bold]{title}[/]", border_style="red", padding=(0, 1)))
    raise typer.Exit(1)


def _validation_details(exc: ValidationError) -> list[str]:
    return [f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()]


@dataclass(frozen=True)
class _LogFlags:
    """Logging choices made on the command line; they win over settings files."""

    verbose: bool = False
    json_logs: bool = False


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(False, "--no-dotenv", help="Skip loading .env file."),
    env_file: Path | None = typer.Option(None, "--env-file", help="Path to .env file (skips automatic search)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Output structured JSON logs."),
) -> None:
    """mapflow: validate and compile data-integration workflow graphs."""
    from mapflow.core.logging import configure_logging

    ctx.obj = _LogFlags(verbose=verbose, json_logs=json_logs)
    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "WARNING")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _read_settings(ctx: typer.Context, settings: Path | None) -> MapflowSettings:
    """Load settings and apply their logging section."""
    try:
        loaded = load_settings(settings.expanduser() if settings is not None else None)
    except FileNotFoundError:
        _fail("File Not Found", f"Settings file does not exist: {settings}")
    except ValidationError as exc:
        _fail(
            "Configuration Validation Failed",
            "Invalid settings",
            details=_validation_details(exc),
            hint="Check field names, types, and required values.",
        )
    _apply_logging(ctx, loaded)
    logger.debug("settings_loaded", settings=redacted(loaded))
    return loaded


def _apply_logging(ctx: typer.Context, config: MapflowSettings) -> None:
    from mapflow.core.logging import configure_logging

    flags = ctx.find_object(_LogFlags) or _LogFlags()
    configure_logging(
        json_output=flags.json_logs or config.logging.json_output,
        level="DEBUG" if flags.verbose else config.logging.level,
    )


def _open_workflow(path: Path, config: MapflowSettings | None = None) -> tuple[WorkflowDocument, WorkflowEditor]:
    """Load a document and open it in an editor, turning failures into CLI errors.

    Settings, when given, supply the schema endpoint and the connect debounce window.
    """
    try:
        document = load_document(path.expanduser())
    except FileNotFoundError:
        _fail("File Not Found", f"Workflow file does not exist: {path}")
    except yaml.YAMLError as exc:
        _fail("YAML Syntax Error", f"Failed to parse {path.name}", details=[str(exc)])
    except ValidationError as exc:
        # ValidationError is a ValueError; it must be caught first
        _fail(
            "Workflow Document Invalid",
            f"Invalid workflow document {path.name}",
            details=_validation_details(exc),
        )
    except ValueError as exc:
        _fail("Workflow Document Invalid", str(exc))

    try:
        if config is None:
            editor = WorkflowEditor.from_document(document)
        else:
            editor = WorkflowEditor.from_document(
                document,
                schemas=_schema_provider(config),
                debounce_seconds=config.connect_debounce_seconds,
            )
    except NodeConfigError as exc:
        _fail("Node Configuration Error", exc.message, details=[f"node: {exc.node_id}"])
    except GraphStructureError as exc:
        _fail("Workflow Graph Error", str(exc), hint="Check for cycles, extra successors, or malformed Path branches.")
    return document, editor


def _schema_provider(settings: MapflowSettings | None) -> SchemaProvider | None:
    if settings is None or settings.schema_provider is None:
        return None
    from mapflow.clients.credentials import StaticCredentialProvider
    from mapflow.clients.http import HttpSchemaProvider

    service = settings.schema_provider
    return HttpSchemaProvider(
        service.url,
        credentials=StaticCredentialProvider(service.token or os.environ.get("MAPFLOW_TOKEN")),
        timeout=service.timeout_seconds,
    )


@app.command()
def validate(
    ctx: typer.Context,
    workflow: Path = typer.Argument(..., help="Workflow document (YAML or JSON)."),
    settings: Path | None = typer.Option(None, "--settings", "-s", help="Settings YAML (for a schema endpoint)."),
) -> None:
    """Validate every node of a workflow and report all problems."""
    config = _read_settings(ctx, settings) if settings is not None else None
    _, editor = _open_workflow(workflow, config)

    problems: list[str] = []
    try:
        check_connected(editor.snapshot())
    except CompileError as exc:
        problems.append(str(exc))
    for node in editor.nodes():
        try:
            editor.validate_node(node.id)
        except NodeConfigError as exc:
            problems.append(exc.message)
        except CollaboratorError as exc:
            problems.append(f"{node.id}: {exc}")

    if problems:
        _fail("Workflow Validation Failed", f"{len(problems)} problem(s) in {workflow.name}", details=problems)

    typer.echo("✅ Workflow valid!")
    typer.echo(f"  Graph: {editor.node_count} nodes, {editor.edge_count} edges")


@app.command()
def order(
    workflow: Path = typer.Argument(..., help="Workflow document (YAML or JSON)."),
) -> None:
    """Print the execution order, levels, and labels of every node."""
    _, editor = _open_workflow(workflow)
    for node in editor.nodes():
        typer.echo(f"{node.order:>4}  L{node.level:<3} {node.label:<28} {node.id}")


@app.command("compile")
def compile_command(
    ctx: typer.Context,
    workflow: Path = typer.Argument(..., help="Workflow document (YAML or JSON)."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write records here instead of stdout."),
    settings: Path | None = typer.Option(None, "--settings", "-s", help="Settings YAML (for a schema endpoint)."),
) -> None:
    """Validate and compile a workflow into ordered mapping records (JSON)."""
    config = _read_settings(ctx, settings) if settings is not None else None
    _, editor = _open_workflow(workflow, config)
    try:
        records = editor.compile()
    except CompileError as exc:
        _fail("Compile Failed", str(exc), details=[f"node: {exc.node_id}"] if exc.node_id else None)
    except CollaboratorError as exc:
        _fail("Schema Unavailable", str(exc))

    text = json.dumps([record.to_dict() for record in records], indent=2)
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        typer.echo(f"Wrote {len(records)} records to {output}")


@app.command()
def publish(
    ctx: typer.Context,
    workflow: Path = typer.Argument(..., help="Workflow document (YAML or JSON)."),
    settings: Path = typer.Option(..., "--settings", "-s", help="Settings YAML with a persistence endpoint."),
    form_version_id: str | None = typer.Option(None, "--form-version-id", help="Overrides the document's form_version_id."),
) -> None:
    """Compile a workflow and save the records to the persistence service."""
    from mapflow.clients.credentials import EnvironmentCredentialProvider, StaticCredentialProvider
    from mapflow.clients.http import HttpPersistenceBackend

    config = _read_settings(ctx, settings)
    if config.persistence is None:
        _fail("Configuration Error", "No persistence endpoint configured", hint="Add a 'persistence.url' to the settings file.")

    document, editor = _open_workflow(workflow, config)
    version_id = form_version_id or document.form_version_id
    if not version_id:
        _fail("Missing Form Version", "No form_version_id in the document", hint="Pass --form-version-id.")

    service = config.persistence
    credentials = StaticCredentialProvider(service.token) if service.token else EnvironmentCredentialProvider()
    with HttpPersistenceBackend(service.url, timeout=service.timeout_seconds) as backend:
        try:
            receipt = editor.publish(backend, credentials, version_id)
        except CompileError as exc:
            _fail("Compile Failed", str(exc), details=[f"node: {exc.node_id}"] if exc.node_id else None)
        except CollaboratorError as exc:
            _fail("Publish Failed", str(exc))

    typer.echo(f"✅ Published {version_id}")
    if receipt.message:
        typer.echo(f"  {receipt.message}")
    if receipt.record_ids:
        typer.echo(f"  Records: {len(receipt.record_ids)}")


if __name__ == "__main__":
    app()
