import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

# Load environment variables BEFORE importing local modules that use them
load_dotenv()

from .config.settings import Config
from .domain.enums import FailurePolicy, OutcomeStatus, StoreFormat
from .domain.models import ExportOutcome
from .errors import ConfigurationError, MappingLoadError
from .mapping import Mapping, MappingRule
from .pipeline.classify import origin_collection
from .pipeline.orchestrator import ExportOrchestrator
from .pipeline.progress import LoggingProgressListener
from .pipeline.source import LayerFeatureRepository
from .pipeline.store import open_store
from .utils import cancel_on_signals, setup_logging, timer

app = typer.Typer(help="OSM export: Repository -> Mapping -> SpatiaLite/GeoPackage")

EXIT_CONFIGURATION = 2
EXIT_MAPPING_LOAD = 3

EXIT_CODES = {
    OutcomeStatus.TABLE_CONFLICT: 4,
    OutcomeStatus.SCHEMA_CREATION_FAILURE: 5,
    OutcomeStatus.UNSUPPORTED_DESTINATION: 6,
    OutcomeStatus.DESTINATION_WRITE_FAILURE: 6,
    OutcomeStatus.INVALID_MAPPING: 7,
    OutcomeStatus.EXPORT_MECHANICS_FAILURE: 8,
    OutcomeStatus.CANCELED: 130,
}


class RunCanceller:
    """Hands out progress listeners and cancels the active one on request."""

    def __init__(self, interval: int):
        self.interval = interval
        self.active: Optional[LoggingProgressListener] = None
        self.canceled = False

    def listener_for(self, rule: MappingRule) -> LoggingProgressListener:
        self.active = LoggingProgressListener(rule.name, interval=self.interval)
        if self.canceled:
            self.active.cancel()
        return self.active

    def cancel(self) -> None:
        self.canceled = True
        if self.active is not None:
            self.active.cancel()


def exit_code_for(outcomes: list[ExportOutcome]) -> int:
    """Exit code of the first failed rule, 0 when every rule succeeded."""
    for outcome in outcomes:
        if outcome.status in EXIT_CODES:
            return EXIT_CODES[outcome.status]
    return 0


def load_mapping_or_exit(mapping_file: Optional[str]) -> Mapping:
    if not mapping_file:
        typer.echo("ERROR: A data mapping file must be specified (--mapping)", err=True)
        raise typer.Exit(EXIT_CONFIGURATION)
    try:
        return Mapping.from_file(mapping_file)
    except MappingLoadError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(EXIT_MAPPING_LOAD)


@timer
def run_export(
    orchestrator: ExportOrchestrator,
    mapping: Mapping,
    overwrite: bool,
    canceller: RunCanceller,
) -> list[ExportOutcome]:
    with cancel_on_signals(canceller.cancel):
        return orchestrator.run(mapping, overwrite=overwrite, progress_factory=canceller.listener_for)


@app.command("export-sl")
def export_sl(
    mapping: Annotated[Optional[str], typer.Option("--mapping", help="The file that contains the data mapping to use")] = None,
    overwrite: Annotated[bool, typer.Option("--overwrite", "-o", help="Overwrite output tables")] = False,
    database: Annotated[Optional[str], typer.Option("--database", "-d", help="Destination database file (default: OSMEXPORT_DATABASE)")] = None,
    store_format: Annotated[Optional[StoreFormat], typer.Option("--format", "-f", help="Destination format: gpkg | spatialite")] = None,
    repository: Annotated[Optional[str], typer.Option("--repository", "-r", help="Source file with node and way layers (default: OSMEXPORT_REPOSITORY)")] = None,
    fail_fast: Annotated[Optional[bool], typer.Option("--fail-fast/--keep-going", help="Stop at the first failed rule or export the remaining rules")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
    log_to_file: Annotated[bool, typer.Option("--log-to-file", help="Create timestamped log files")] = False,
):
    """
    Export OSM data to a SpatiaLite/GeoPackage database, using a data mapping.

    Every rule of the mapping becomes one table. Point rules read OSM nodes,
    all other rules read ways.

    Examples:
        osmexport export-sl --mapping mapping.yml -d osm.gpkg
        osmexport export-sl --mapping mapping.yml -d osm.sqlite --format spatialite -o
        osmexport export-sl --mapping mapping.yml --keep-going
    """
    target_name = Path(mapping).stem if mapping else "export"
    setup_logging(verbose, target_name, "export-sl", log_to_file)

    try:
        config = Config()
    except ConfigurationError as e:
        typer.echo(f"ERROR: Configuration error: {e}", err=True)
        raise typer.Exit(EXIT_CONFIGURATION)

    mapping_obj = load_mapping_or_exit(mapping)

    database = database or config.export.database
    store_format = store_format or config.export.store_format
    repository = repository or config.export.repository
    if fail_fast is None:
        policy = config.export.failure_policy
    else:
        policy = FailurePolicy.FAIL_FAST if fail_fast else FailurePolicy.CONTINUE

    logging.debug(f"Environment files: {', '.join(config.loaded_env_files) or 'none'}")
    logging.info(f"Mapping: {mapping} ({len(mapping_obj)} rules)")
    logging.info(f"Repository: {repository}")
    logging.info(f"Destination: {database} ({store_format.value})")
    logging.info(f"Overwrite: {overwrite}, failure policy: {policy.value}")

    orchestrator = ExportOrchestrator(
        LayerFeatureRepository(repository),
        lambda: open_store(database, store_format),
        policy=policy,
    )
    canceller = RunCanceller(config.export.progress_interval)

    try:
        outcomes = run_export(orchestrator, mapping_obj, overwrite, canceller)
    except ConfigurationError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(EXIT_CONFIGURATION)

    for outcome in outcomes:
        if outcome.succeeded:
            typer.echo(f"OSM data exported successfully to {outcome.table_name}")
        elif outcome.status == OutcomeStatus.SKIPPED:
            typer.echo(f"SKIPPED: {outcome.table_name}: {outcome.message}", err=True)
        else:
            code = f" [{outcome.status_code}]" if outcome.status_code else ""
            typer.echo(f"ERROR: {outcome.table_name}: {outcome.message}{code}", err=True)

    exit_code = exit_code_for(outcomes)
    if exit_code:
        raise typer.Exit(exit_code)


@app.command("list-rules")
def list_rules(
    mapping: Annotated[Optional[str], typer.Option("--mapping", help="The file that contains the data mapping to inspect")] = None,
):
    """
    List the rules of a data mapping.

    Shows the destination table, origin collection, geometry kind and
    attributes of each rule.

    Examples:
        osmexport list-rules --mapping mapping.yml
    """
    mapping_obj = load_mapping_or_exit(mapping)

    if len(mapping_obj) == 0:
        typer.echo("WARNING: No rules are defined in the specified mapping")
        raise typer.Exit(EXIT_CONFIGURATION)

    typer.echo(f"Mapping rules ({len(mapping_obj)})")
    typer.echo("=" * 50)

    for rule in mapping_obj:
        schema = rule.schema
        typer.echo(f"\n* {rule.name}")
        typer.echo(f"   Table: {schema.table_name}")
        typer.echo(f"   Origin: {origin_collection(schema).value}")
        typer.echo(f"   Geometry: {schema.geometry_name} ({schema.geometry_kind.value})")
        attributes = ", ".join(f"{spec.name}:{spec.type.value}" for spec in schema.attributes)
        typer.echo(f"   Attributes: {attributes}")


@app.command("version")
def version():
    """Display version information."""
    from . import __version__
    typer.echo(f"osmexport version: {__version__}")


if __name__ == "__main__":
    app()
