from __future__ import annotations

from typing import List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app
from datastore.influxdb import InfluxDBError
from models.query import Query, QueryResult


class StubClient:
    def __init__(self, url: str, database: Optional[str] = None, **_: object) -> None:
        self.url = url
        self.database = database
        self.queries: List[Query] = []
        self.result = QueryResult.model_validate(
            {
                "results": [
                    {
                        "statement_id": 0,
                        "series": [
                            {
                                "name": "cpu",
                                "tags": {"host": "server-1"},
                                "columns": ["time", "idle"],
                                "values": [["2024-01-01T00:00:00Z", 0.5], ["2024-01-01T00:01:00Z", None]],
                            }
                        ],
                    }
                ]
            }
        )
        self.ping_error: Optional[InfluxDBError] = None
        self.closed = False

    def ping(self) -> str:
        if self.ping_error is not None:
            raise self.ping_error
        return "1.8.10"

    def query(self, query: Query) -> QueryResult:
        self.queries.append(query)
        return self.result

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stubs(monkeypatch) -> List[StubClient]:
    created: List[StubClient] = []

    def factory(**kwargs):
        stub = StubClient(**kwargs)
        created.append(stub)
        return stub

    monkeypatch.setattr("cli.app.InfluxDBClient", factory)
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)
    return created


def test_ping(runner: CliRunner, stubs: List[StubClient]) -> None:
    result = runner.invoke(app, ["--url", "http://influx:8086", "ping"])

    assert result.exit_code == 0
    assert "version 1.8.10" in result.stdout
    assert stubs[0].url == "http://influx:8086"
    assert stubs[0].closed is True


def test_ping_failure_exits_with_error(runner: CliRunner, stubs: List[StubClient], monkeypatch) -> None:
    def failing_factory(**kwargs):
        stub = StubClient(**kwargs)
        stub.ping_error = InfluxDBError("Request to http://localhost:8086/ping failed")
        stubs.append(stub)
        return stub

    monkeypatch.setattr("cli.app.InfluxDBClient", failing_factory)

    result = runner.invoke(app, ["ping"])

    assert result.exit_code == 1


def test_query_renders_series(runner: CliRunner, stubs: List[StubClient]) -> None:
    result = runner.invoke(app, ["--database", "metrics", "query", "SELECT * FROM cpu"])

    assert result.exit_code == 0
    assert "cpu host=server-1" in result.stdout
    assert "idle" in result.stdout
    assert "2024-01-01T00:01:00Z" in result.stdout
    assert stubs[0].database == "metrics"
    assert stubs[0].queries == [Query("SELECT * FROM cpu", None)]


def test_query_reports_statement_errors(runner: CliRunner, stubs: List[StubClient], monkeypatch) -> None:
    def erroring_factory(**kwargs):
        stub = StubClient(**kwargs)
        stub.result = QueryResult.model_validate({"results": [{"statement_id": 0, "error": "bad"}]})
        stubs.append(stub)
        return stub

    monkeypatch.setattr("cli.app.InfluxDBClient", erroring_factory)

    result = runner.invoke(app, ["query", "SELECT nonsense"])

    assert result.exit_code == 1


def test_columns_describes_model(runner: CliRunner, stubs: List[StubClient]) -> None:
    result = runner.invoke(app, ["columns", "sample_models:Cpu"])

    assert result.exit_code == 0
    assert "Measurement cpu" in result.stdout
    assert "database: metrics" in result.stdout
    assert "  - host: tag" in result.stdout
    assert "  - processes: integer" in result.stdout


def test_columns_rejects_unannotated_model(runner: CliRunner, stubs: List[StubClient]) -> None:
    result = runner.invoke(app, ["columns", "sample_models:Unannotated"])

    assert result.exit_code == 1


def test_columns_rejects_bad_target(runner: CliRunner, stubs: List[StubClient]) -> None:
    result = runner.invoke(app, ["columns", "sample_models"])

    assert result.exit_code != 0
