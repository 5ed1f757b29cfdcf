"""jdb-helper - Main entry point."""

import json
import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Set, Tuple

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import CONFIG_FILE, Settings, load_config_file, settings as default_settings
from .database import Category, Session, create_session
from .errors import ConfigurationError, ConnectionError, JDBHelperError
from .logging import RunLogger
from .pipeline import classify, extract_columns
from .selection import HEADERS, Choice, build_choices, default_selection, parse_selection

app = typer.Typer(
    name="jdb-helper",
    help="Classify database tables and extract entity columns for code generation",
    add_completion=False,
)

console = Console()
# Prompts, status and errors; stdout carries only results
err_console = Console(stderr=True)

DbmsOption = typer.Option(None, "--dbms", "-d", help="Database dialect: duckdb or snowflake")
SchemaOption = typer.Option(None, "--schema", "-s", help="Schema to introspect")
DatabaseOption = typer.Option(None, "--database", help="Path to the DuckDB database file")
ConfigOption = typer.Option(CONFIG_FILE, "--config", "-c", help="JSON configuration file")
OutputOption = typer.Option(None, "--output", "-o", help="Write JSON results to this file")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Show debug logging")

# Connection settings asked for per dialect, then the schema
PROMPTED_SETTINGS = {
    "duckdb": [
        ("duckdb_path", "DuckDB database file", False),
    ],
    "snowflake": [
        ("snowflake_account", "Snowflake account", False),
        ("snowflake_user", "Snowflake user", False),
        ("snowflake_password", "Snowflake password", True),
    ],
}
SCHEMA_PROMPT = ("db_schema", "Schema to introspect", False)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _print_error(e: Exception) -> None:
    err_console.print(f"[red]Error: {escape(str(e))}[/red]")


def _resolve_settings(
    config_path: str,
    overrides: Dict[str, Any],
) -> Tuple[Settings, Dict[str, Any], Set[str]]:
    """Merge defaults, the JSON config file and command line options.

    Returns:
        Tuple of (settings, items applied from the config file, names of
        the settings supplied by the environment, the file or an option)
    """
    resolved, applied = load_config_file(default_settings, config_path)
    resolved = resolved.model_copy()
    supplied = set(default_settings.model_fields_set) | set(applied)
    for key, value in overrides.items():
        if value is None:
            continue
        try:
            setattr(resolved, key, value)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid value for {key}: {value!r}", details={"errors": e.errors()})
        supplied.add(key)
    return resolved, applied, supplied


def _ask_missing_settings(config: Settings, supplied: Set[str]) -> Settings:
    """Prompt for the connection settings and schema nothing else supplied.

    Snowflake settings are also skipped when their SNOWFLAKE_* variable is
    set, since the executor falls back to it.
    """
    for key, text, hide_input in PROMPTED_SETTINGS[config.dbms] + [SCHEMA_PROMPT]:
        if key in supplied:
            continue
        if key.startswith("snowflake_") and os.environ.get(key.upper()):
            continue

        value = typer.prompt(
            text,
            default=None if hide_input else getattr(config, key),
            hide_input=hide_input,
            err=True,
        )
        try:
            setattr(config, key, value)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid value for {key}: {value!r}", details={"errors": e.errors()})
    return config


def _create_run_logger(config: Settings) -> RunLogger:
    return RunLogger(
        db_path=config.run_logging_db_path,
        enabled=config.run_logging_enabled,
        retention_days=config.run_logging_retention_days,
    )


@contextmanager
def _open_session(config: Settings):
    """Create a session and keep its executor connected for the block."""
    session = create_session(config)
    try:
        session.executor.connect()
    except ImportError:
        raise
    except Exception as e:
        raise ConnectionError(
            f"Could not connect to {config.dbms} database: {e}",
            details={"dbms": config.dbms},
        ) from e
    try:
        yield session
    finally:
        session.executor.close()


def _category_counts(session: Session) -> Dict[str, int]:
    return {category.value: len(tables) for category, tables in session.results.items()}


def _print_results(session: Session) -> None:
    table = Table(title=f"Tables in schema {session.schema} ({session.dialect})")
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_column("Tables")

    for category in Category:
        tables = session.get_tables(category)
        table.add_row(HEADERS[category], str(len(tables)), ", ".join(tables) or "-")

    console.print(table)


def _print_choices(choices: List[Choice]) -> None:
    table = Table(title="Select tables to extract")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Table")
    table.add_column("Category", style="magenta")
    table.add_column("Selected", justify="center", style="green")

    for index, choice in enumerate(choices, start=1):
        table.add_row(str(index), choice.table, HEADERS[choice.category], "x" if choice.checked else "")

    err_console.print(table)


def _ask_selection(choices: List[Choice]) -> List[str]:
    """Prompt until the user enters a valid selection."""
    _print_choices(choices)
    while True:
        answer = typer.prompt(
            "Tables to extract (numbers or ranges, empty keeps the selected ones)",
            default="",
            show_default=False,
            err=True,
        )
        try:
            return parse_selection(answer, choices)
        except ValueError as e:
            err_console.print(f"[yellow]{escape(str(e))}[/yellow]")


def _write_output(data: Dict[str, Any], output: Optional[str]) -> None:
    payload = json.dumps(data, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(payload + "\n")
        err_console.print(f"[green]Results written to {escape(output)}[/green]")
    else:
        typer.echo(payload)


@app.command("classify")
def classify_command(
    dbms: Optional[str] = DbmsOption,
    schema: Optional[str] = SchemaOption,
    database: Optional[str] = DatabaseOption,
    config_path: str = ConfigOption,
    output: Optional[str] = OutputOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Use defaults for missing settings without prompting"),
    verbose: bool = VerboseOption,
):
    """Classify the tables of a schema into JHipster, Liquibase, junction and entity tables."""
    _setup_logging(verbose)
    try:
        config, _, supplied = _resolve_settings(
            config_path,
            {"dbms": dbms, "db_schema": schema, "duckdb_path": database, "output_file": output},
        )
        if not yes:
            _ask_missing_settings(config, supplied)

        run_logger = _create_run_logger(config)
        with run_logger.log_run(
            command="classify",
            dbms=config.dbms,
            schema_name=config.db_schema,
        ) as ctx:
            with _open_session(config) as session:
                session = classify(session)
            ctx.category_counts = _category_counts(session)
    except (JDBHelperError, ImportError) as e:
        _print_error(e)
        raise typer.Exit(1)

    _print_results(session)
    if config.output_file:
        data = session.to_dict()
        del data["entities"]
        _write_output(data, config.output_file)


@app.command("extract")
def extract_command(
    dbms: Optional[str] = DbmsOption,
    schema: Optional[str] = SchemaOption,
    database: Optional[str] = DatabaseOption,
    config_path: str = ConfigOption,
    output: Optional[str] = OutputOption,
    tables: Optional[List[str]] = typer.Option(
        None, "--table", "-t", help="Table to extract (repeatable); skips the table prompt"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not prompt; use defaults and extract the entity tables"
    ),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--no-strict", help="Fail if the database returns columns of unrequested tables"
    ),
    verbose: bool = VerboseOption,
):
    """Classify tables, select entities and extract their columns as JSON."""
    _setup_logging(verbose)
    try:
        config, _, supplied = _resolve_settings(
            config_path,
            {
                "dbms": dbms,
                "db_schema": schema,
                "duckdb_path": database,
                "output_file": output,
                "strict_columns": strict,
            },
        )
        if not yes:
            _ask_missing_settings(config, supplied)

        run_logger = _create_run_logger(config)
        with run_logger.log_run(
            command="extract",
            dbms=config.dbms,
            schema_name=config.db_schema,
            arguments={"tables": tables, "yes": yes},
        ) as ctx:
            with _open_session(config) as session:
                session = classify(session)
                ctx.category_counts = _category_counts(session)

                choices = build_choices(session.results)
                if tables:
                    selected = list(tables)
                elif yes:
                    selected = default_selection(choices)
                else:
                    selected = _ask_selection(choices)

                session = extract_columns(session, selected, strict=config.strict_columns)
            ctx.selected_tables = selected
            ctx.columns_count = session.columns_count()
    except (JDBHelperError, ImportError) as e:
        _print_error(e)
        raise typer.Exit(1)

    err_console.print(
        f"[green]Extracted {session.columns_count()} columns from {len(session.entities)} tables[/green]",
        highlight=False,
    )
    _write_output(session.to_dict(), config.output_file)


@app.command("config")
def config_command(
    config_path: str = ConfigOption,
):
    """Show current configuration."""
    try:
        config, applied, _ = _resolve_settings(config_path, {})
    except JDBHelperError as e:
        _print_error(e)
        raise typer.Exit(1)

    console.print("[bold]Current Configuration[/bold]")
    for key, value in config.model_dump().items():
        if key == "snowflake_password":
            value = "Configured" if value else "Not set"
        source = f" [dim](from {escape(config_path)})[/dim]" if key in applied else ""
        console.print(f"  {key}: {escape(str(value))}{source}", emoji=False, highlight=False)


def _print_run(run: Dict[str, Any]) -> None:
    console.print(f"[bold]Run {escape(run['run_id'])}[/bold]")
    for key, value in run.items():
        if key in ("id", "run_id") or value is None:
            continue
        console.print(f"  {key}: {escape(str(value))}", emoji=False, highlight=False)


def _print_stats(stats: Dict[str, Any]) -> None:
    console.print(f"[bold]Runs in the last {stats['since_hours']}h[/bold]")
    console.print(f"  Total: {stats['total_runs']}")
    console.print(f"  Succeeded: [green]{stats['success_count']}[/green]")
    console.print(f"  Failed: [red]{stats['error_count']}[/red]")
    console.print(f"  Average duration: {stats['avg_duration_ms']}ms")
    console.print(f"  Entity tables found: {stats['total_entity_tables']}")


@app.command("runs")
def runs_command(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of runs to show"),
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status: success, error, started"),
    since_hours: int = typer.Option(24, "--since", help="Look back this many hours"),
    run_id: Optional[str] = typer.Option(None, "--id", help="Show the details of one run"),
    stats: bool = typer.Option(False, "--stats", help="Show run statistics instead of the list"),
    config_path: str = ConfigOption,
):
    """List recent introspection runs."""
    try:
        config, _, _ = _resolve_settings(config_path, {})
    except JDBHelperError as e:
        _print_error(e)
        raise typer.Exit(1)

    run_logger = _create_run_logger(config)
    try:
        if run_id:
            run = run_logger.get_run(run_id)
            if run is None:
                err_console.print(f"[yellow]Run {escape(run_id)} not found.[/yellow]")
                raise typer.Exit(1)
            _print_run(run)
            return

        if stats:
            run_stats = run_logger.get_stats(since_hours=since_hours)
            if "error" in run_stats:
                err_console.print(f"[yellow]{run_stats['error']}.[/yellow]")
                raise typer.Exit(1)
            _print_stats(run_stats)
            return

        runs = run_logger.query_runs(status=status, since_hours=since_hours, limit=limit)
    finally:
        run_logger.close()

    if not runs:
        console.print("[yellow]No runs found.[/yellow]")
        return

    table = Table(title=f"Runs in the last {since_hours}h")
    table.add_column("Run ID", style="cyan")
    table.add_column("Timestamp")
    table.add_column("Command")
    table.add_column("DBMS")
    table.add_column("Schema")
    table.add_column("Status")
    table.add_column("Entities", justify="right")
    table.add_column("Columns", justify="right")

    for run in runs:
        status_style = "green" if run["status"] == "success" else "red" if run["status"] == "error" else "yellow"
        table.add_row(
            run["run_id"],
            str(run["timestamp"]),
            run["command"],
            run["dbms"] or "-",
            run["schema_name"] or "-",
            f"[{status_style}]{run['status']}[/{status_style}]",
            str(run["entity_count"]) if run["entity_count"] is not None else "-",
            str(run["columns_count"]) if run["columns_count"] is not None else "-",
        )

    console.print(table)


@app.callback()
def main():
    """
    jdb-helper - Classify database tables for entity code generation.

    Tables are sorted into JHipster, Liquibase, junction and entity tables,
    then the columns of the selected tables are extracted.

    Connection settings and the schema are asked for unless the environment,
    the JSON config file or an option supplies them.

    Examples:

        jdb-helper classify --database shop.duckdb --schema main

        jdb-helper extract --database shop.duckdb --yes -o entities.json

        jdb-helper extract --dbms snowflake --schema PUBLIC -t ORDERS -t PRODUCTS
    """
    pass


if __name__ == "__main__":
    app()
