"""Command Line Interface for the Clinical-Retrieval engine.

This module provides a CLI using Typer for running retrieve queries against
FHIR bundle files, bundle directories and DuckDB extracts, with optional
terminology filtering.

Security Impact:
    - All parameters are validated before any source is opened
    - Terminology credentials come from configuration, never from the command line
"""

import json
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError as ConfigValidationError
from rich.console import Console
from rich.table import Table

from clinical_retrieval import __version__
from clinical_retrieval.adapters.libraries import BundleLibrarySource
from clinical_retrieval.domain.models import Query, VersionedIdentifier
from clinical_retrieval.domain.ports import RetrievalError
from clinical_retrieval.infrastructure.config_manager import ConfigManager, DataSourceConfig, RetrievalConfig
from clinical_retrieval.infrastructure.parameter_parser import parse_code_parameter, parse_optional_context
from clinical_retrieval.infrastructure.settings import settings
from clinical_retrieval.infrastructure.translation_cache import TranslationCache

# Initialize Typer app and Rich console
app = typer.Typer(
    name="clinical-retrieval",
    help="Clinical-Retrieval: FHIR data retrieval for clinical logic evaluation",
    add_completion=False
)
console = Console()


def load_config(
    config_file: Optional[Path],
    sources: Optional[List[str]] = None,
    terminology: Optional[str] = None,
    fhir_version: Optional[str] = None,
    failure_policy: Optional[str] = None,
) -> RetrievalConfig:
    """Load configuration from a file or the environment, then apply CLI overrides."""
    try:
        config_manager = ConfigManager.from_file(str(config_file)) if config_file else ConfigManager.from_environment()
        config = config_manager.get_retrieval_config()

        overrides = {}
        if sources:
            overrides["sources"] = [DataSourceConfig(path=source) for source in sources]
        if terminology:
            overrides["terminology_uri"] = terminology
        if fhir_version:
            overrides["fhir_version"] = fhir_version
        if failure_policy:
            overrides["terminology_failure_policy"] = failure_policy

        if overrides:
            config = RetrievalConfig(**{**config.model_dump(), **overrides})
        return config
    except (FileNotFoundError, ValueError, ConfigValidationError) as e:
        console.print(f"[red]✗[/red] Invalid configuration: {str(e)}")
        raise typer.Exit(code=1)


def _first_code(record: dict) -> str:
    code = record.get("code")
    if not isinstance(code, dict):
        return ""
    for coding in code.get("coding") or []:
        if isinstance(coding, dict) and coding.get("code"):
            return f"{coding.get('system', '')}|{coding['code']}"
    return code.get("text", "")


@app.command()
def retrieve(
    data_type: str = typer.Argument(..., help="Resource type to retrieve (e.g. Observation)"),
    source: Optional[List[str]] = typer.Option(None, "--source", "-s", help="Data source, in priority order (repeatable)"),
    context: Optional[str] = typer.Option(None, "--context", help="Context as Name=value (e.g. Patient=123)"),
    context_path: str = typer.Option("subject", "--context-path", help="Path relating a record to the context"),
    code_path: str = typer.Option("code", "--code-path", help="Path to the coded element"),
    code: Optional[List[str]] = typer.Option(None, "--code", help="Code as system|code (repeatable)"),
    literal_id: Optional[List[str]] = typer.Option(None, "--id", help="Literal id matched against primitive code values (repeatable)"),
    value_set: Optional[str] = typer.Option(None, "--value-set", help="Value set the coded element must belong to"),
    terminology: Optional[str] = typer.Option(None, "--terminology", "-t", help="Terminology file, directory or server URL"),
    fhir_version: Optional[str] = typer.Option(None, "--fhir-version", help="FHIR version of the terminology provider"),
    failure_policy: Optional[str] = typer.Option(None, "--failure-policy", help="fail or exclude on terminology errors"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file"),
    as_json: bool = typer.Option(False, "--json", help="Print matching resources as JSON"),
) -> None:
    """Retrieve resources of DATA_TYPE from the first source that has any.

    Examples:
        clinical-retrieval retrieve Observation -s bundle.json --context Patient=123
        clinical-retrieval retrieve Condition -s extract.duckdb --value-set http://example.org/vs -t terminology/
        clinical-retrieval retrieve Observation -s primary.json -s fallback.json --code http://loinc.org|1234-5 --json
    """
    from clinical_retrieval.main import create_retriever

    try:
        context_name, context_value = parse_optional_context(context)
        codes = [parse_code_parameter(token) for token in code or []]
    except ValueError as e:
        console.print(f"[red]✗[/red] {str(e)}")
        raise typer.Exit(code=1)

    codes.extend(literal_id or [])

    config = load_config(config_file, source, terminology, fhir_version, failure_policy)
    if not config.sources:
        console.print("[red]✗[/red] No data sources given. Use --source or set CR_SOURCES.")
        raise typer.Exit(code=1)

    query = Query(
        context_name=context_name,
        context_path=context_path if context_name else None,
        context_value=context_value,
        data_type=data_type,
        code_path=code_path,
        codes=codes or None,
        value_set_id=value_set,
    )

    try:
        retriever = create_retriever(config)
        records = retriever.retrieve(query)
    except (RetrievalError, ValueError) as e:
        console.print(f"[red]✗[/red] Retrieve failed: {str(e)}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(records, indent=2))
        return

    console.print(f"[green]✓[/green] Retrieved {len(records)} {data_type} resources")
    if records:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Type", style="cyan")
        table.add_column("Id")
        table.add_column("Code")
        for record in records:
            table.add_row(record.get("resourceType", ""), str(record.get("id", "")), _first_code(record))
        console.print(table)


@app.command()
def sources(
    source: Optional[List[str]] = typer.Option(None, "--source", "-s", help="Data source (repeatable)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON configuration file"),
) -> None:
    """List the configured data sources in priority order."""
    config = load_config(config_file, source)
    if not config.sources:
        console.print("[yellow]⚠[/yellow] No data sources configured")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Path")
    table.add_column("Exists")
    for position, source_config in enumerate(config.sources, start=1):
        exists = Path(source_config.path).exists()
        table.add_row(
            str(position),
            source_config.name,
            source_config.source_type,
            source_config.path,
            "[green]yes[/green]" if exists else "[red]no[/red]",
        )
    console.print(table)


@app.command()
def library(
    name: str = typer.Argument(..., help="Library name or id"),
    bundle: Path = typer.Option(..., "--bundle", "-b", help="Bundle file containing Library resources", exists=True, dir_okay=False),
    version: Optional[str] = typer.Option(None, "--version", help="Library version (highest when omitted)"),
) -> None:
    """Print the CQL source of a Library found in a bundle."""
    try:
        with open(bundle, "r", encoding="utf-8") as f:
            document = json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]✗[/red] Invalid JSON in {bundle}: {str(e)}")
        raise typer.Exit(code=1)

    library_source = BundleLibrarySource(document, cache=TranslationCache(settings.cache_max_entries))
    text = library_source.get_library_source(VersionedIdentifier(id=name, version=version))
    if text is None:
        console.print(f"[red]✗[/red] Library {name} not found in {bundle}")
        raise typer.Exit(code=1)

    typer.echo(text)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version information"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    json_logs: Optional[bool] = typer.Option(None, "--json-logs/--plain-logs", help="Log format override"),
) -> None:
    """Clinical-Retrieval: FHIR data retrieval for clinical logic evaluation."""
    if version:
        console.print(f"{settings.app_name} v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()

    from clinical_retrieval.main import configure_logging
    configure_logging(verbose=verbose, use_json=json_logs)


if __name__ == "__main__":
    app()
