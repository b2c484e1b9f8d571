from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

from models.annotations import get_measurement
from models.query import QueryResult, Series


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_cell(value: Any) -> str:
    return "" if value is None else str(value)


def render_series(series: Series) -> None:
    heading = series.name or "(unnamed)"
    if series.tags:
        heading += " " + ",".join(f"{key}={value}" for key, value in sorted(series.tags.items()))
    echo_heading(heading)

    rows: List[List[str]] = [[_format_cell(cell) for cell in row] for row in series.values]
    widths = [
        max([len(column), *(len(row[index]) for row in rows if index < len(row))])
        for index, column in enumerate(series.columns)
    ]
    typer.echo("  ".join(column.ljust(width) for column, width in zip(series.columns, widths)))
    typer.echo("  ".join("-" * width for width in widths))
    for row in rows:
        typer.echo("  ".join(cell.ljust(width) for cell, width in zip(row, widths)))


def render_query_result(result: QueryResult) -> None:
    series = [item for statement in result.results for item in statement.series]
    if not series:
        typer.echo("No series returned.")
        return
    for index, item in enumerate(series):
        if index:
            typer.echo()
        render_series(item)


def render_columns(cls: type, roles: Dict[str, str]) -> None:
    declaration = get_measurement(cls)
    echo_heading(f"Measurement {declaration.name}")
    echo_key_values(
        [
            ("database", declaration.database or "(client default)"),
            ("retention_policy", declaration.retention_policy),
            ("time_unit", declaration.time_unit.name.lower()),
        ]
    )
    typer.echo()
    echo_heading("Columns")
    for name, role in roles.items():
        typer.echo(f"  - {name}: {role}")
