import asyncio
import logging
import sys
from pathlib import Path

import rich_click as click
from graphql import GraphQLError, print_ast
from rich.traceback import install

from gqlproject import __version__, log
from gqlproject.config import ProjectConfig, load_project_config
from gqlproject.decorations import Decoration
from gqlproject.diagnostics import DiagnosticSeverity, DiagnosticsEvent, diagnostics_from_error
from gqlproject.documents import DocumentStore
from gqlproject.project import ClientProject
from gqlproject.providers import FileSchemaProvider, StaticEngineClient


def build_project(
    config_path: Path | None,
    schemas: tuple[Path, ...],
    documents: tuple[Path, ...],
    stats: Path | None = None,
) -> ClientProject:
    """Load configuration, documents and schema, and return an initialized project."""
    config: ProjectConfig = load_project_config(config_path)

    schema_paths = list(schemas) or config.local_schema_files
    if not schema_paths:
        raise click.UsageError("No service schema given: pass --schema or set a localSchemaFile in the config")

    document_paths = list(documents) or config.client.includes
    if not document_paths:
        raise click.UsageError("No documents given: pass document paths or set client.includes in the config")

    store = DocumentStore()
    store.load_files(document_paths, config.client.excludes)

    engine_client = StaticEngineClient.from_file(stats) if stats else None
    project = ClientProject(config, store, FileSchemaProvider(schema_paths), engine_client=engine_client)
    return project


def initialize(project: ClientProject) -> None:
    asyncio.run(project.initialize())
    if project.service_schema is None:
        log.error("The service schema could not be loaded.")
        sys.exit(1)


config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML project configuration file",
)

schema_option = click.option(
    "--schema",
    "-s",
    "schemas",
    type=click.Path(exists=True, path_type=Path),
    multiple=True,
    help="Service schema: SDL files / directories, or one introspection JSON file. Can be specified multiple times.",
)

documents_argument = click.argument(
    "documents",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)

stats_option = click.option(
    "--stats",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML or JSON file with schema tags, field latencies and the explorer URL root",
)


@click.group(context_settings={"auto_envvar_prefix": "GQLPROJECT"})
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="WARNING",
    help="Log level",
    show_default=True,
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Log file",
)
@click.version_option(__version__)
def cli(log_level: str, log_file: Path | None) -> None:
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(logging.Formatter("%(asctime)s:%(levelname)s:%(message)s"))
        log.addHandler(file_handler)

    log.setLevel(log_level.upper())
    if log_level.upper() == "DEBUG":
        _ = install(show_locals=True)


@cli.command()
@config_option
@schema_option
@documents_argument
def check(config_path: Path | None, schemas: tuple[Path, ...], documents: tuple[Path, ...]) -> None:
    """Validate documents against the service schema extended with the client schema."""
    project = build_project(config_path, schemas, documents)

    events: list[DiagnosticsEvent] = []
    project.on_diagnostics(events.append)
    initialize(project)

    error_count = 0
    warning_count = 0

    for document in project.documents:
        for syntax_error in document.syntax_errors:
            for diagnostic in diagnostics_from_error(syntax_error, DiagnosticSeverity.ERROR, "Syntax"):
                log.diagnostic(
                    document.uri,
                    diagnostic.range.start.line,
                    diagnostic.range.start.character,
                    diagnostic.severity,
                    diagnostic.message,
                )
                error_count += 1

    for event in events:
        for diagnostic in event.diagnostics:
            log.diagnostic(
                event.uri,
                diagnostic.range.start.line,
                diagnostic.range.start.character,
                diagnostic.severity,
                diagnostic.message,
            )
            if diagnostic.severity == DiagnosticSeverity.ERROR:
                error_count += 1
            elif diagnostic.severity == DiagnosticSeverity.WARNING:
                warning_count += 1

    if error_count:
        log.error(f"Found {error_count} error(s) and {warning_count} warning(s).")
        sys.exit(1)

    log.success(f"All documents are valid ({warning_count} warning(s)).")


@cli.command()
@config_option
@schema_option
@documents_argument
@click.option(
    "--client/--service",
    "include_client",
    default=False,
    help="Print operations as written, or as sent to the service (client directives and fields removed)",
)
def operations(
    config_path: Path | None, schemas: tuple[Path, ...], documents: tuple[Path, ...], include_client: bool
) -> None:
    """Print one self-contained document per operation."""
    project = build_project(config_path, schemas, documents)
    initialize(project)

    try:
        merged = (
            project.merged_operations_and_fragments
            if include_client
            else project.merged_operations_and_fragments_for_service
        )
    except GraphQLError as error:
        log.error(error.message)
        sys.exit(1)

    for operation_name, document in merged.items():
        log.output(f"# {operation_name}\n{print_ast(document)}\n")


@cli.command()
@config_option
@schema_option
@documents_argument
@stats_option
def decorations(
    config_path: Path | None, schemas: tuple[Path, ...], documents: tuple[Path, ...], stats: Path | None
) -> None:
    """Print field latency hints and run-in-explorer links as JSON."""
    project = build_project(config_path, schemas, documents, stats)

    collected: list[Decoration] = []

    def replace(decorations: list[Decoration]) -> None:
        collected[:] = decorations

    project.on_decorations(replace)
    initialize(project)
    project.generate_decorations()

    log.print_dict([decoration.as_dict() for decoration in collected])


@cli.command()
@config_option
@schema_option
@documents_argument
def stats(config_path: Path | None, schemas: tuple[Path, ...], documents: tuple[Path, ...]) -> None:
    """Print type counts of the service and client schemas."""
    project = build_project(config_path, schemas, documents)
    initialize(project)

    log.print_dict(project.project_stats())


if __name__ == "__main__":
    cli()
