from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Optional

import typer

from datastore.influxdb import InfluxDBClient, InfluxDBError
from logging_config import configure_logging
from models.errors import MapperError
from models.query import Query
from services.encoder import describe_columns
from services.metadata import MetadataCache
from settings import get_settings
from cli.render import render_columns, render_query_result


@dataclass
class CLIState:
    client: InfluxDBClient


app = typer.Typer(
    help="Utilities for inspecting an InfluxDB server and measurement models.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        help="InfluxDB base URL (defaults to INFLUXDB_URL env or http://localhost:8086).",
    ),
    database: Optional[str] = typer.Option(
        None,
        "--database",
        "-d",
        help="Default database (defaults to INFLUXDB_DATABASE env).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    settings = get_settings()
    client = InfluxDBClient(
        url=url or settings.influx_url,
        database=database or settings.database,
        retention_policy=settings.retention_policy,
        username=settings.username,
        password=settings.password,
        timeout=settings.timeout,
    )
    ctx.obj = CLIState(client=client)
    ctx.call_on_close(client.close)


@app.command("ping")
def ping_command(ctx: typer.Context) -> None:
    """Check that the server answers and print its version."""
    state = _get_state(ctx)
    try:
        version = state.client.ping()
    except InfluxDBError as exc:
        _fail(str(exc))
    typer.secho(f"{state.client.url} is up (version {version}).", fg=typer.colors.GREEN)


@app.command("query")
def query_command(
    ctx: typer.Context,
    statement: str = typer.Argument(..., help="InfluxQL statement to run."),
    database: Optional[str] = typer.Option(
        None, "--database", "-d", help="Database the statement runs against."
    ),
) -> None:
    """Run a statement and print the returned series."""
    state = _get_state(ctx)
    try:
        result = state.client.query(Query(statement, database))
    except InfluxDBError as exc:
        _fail(str(exc))
    if result.has_error():
        _fail("; ".join(result.errors()))
    render_query_result(result)


@app.command("columns")
def columns_command(
    target: str = typer.Argument(..., help="Model class as 'package.module:ClassName'."),
) -> None:
    """Show how the columns of a measurement class are written."""
    module_name, _, class_name = target.partition(":")
    if not module_name or not class_name:
        raise typer.BadParameter("Expected 'package.module:ClassName'.")
    try:
        cls = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError) as exc:
        raise typer.BadParameter(f"Cannot load {target}: {exc}") from exc
    try:
        roles = describe_columns(MetadataCache(), cls)
    except MapperError as exc:
        _fail(str(exc))
    render_columns(cls, roles)
