"""Unit tests for the in-memory database client."""

from __future__ import annotations

from models.point import Point
from models.precision import TimeUnit
from models.query import Query
from datastore.mock_influxdb import MockInfluxDB


def _point(host: str, value: float) -> Point:
    return (
        Point.measurement("cpu")
        .tag("host", host)
        .add_field("idle", value)
        .time(1_704_067_200, TimeUnit.SECONDS)
        .build()
    )


def test_select_returns_points_of_database() -> None:
    db = MockInfluxDB(database="default")
    db.write(_point("a", 1.0), database="metrics", retention_policy="autogen")
    db.write(_point("b", 2.0))

    result = db.query(Query('SELECT * FROM "cpu"', "metrics"))

    (series,) = result.results[0].series
    assert series.name == "cpu"
    assert series.columns == ["time", "host", "idle"]
    assert series.values == [["2024-01-01T00:00:00.000000Z", "a", 1.0]]

    default_rows = db.query(Query("SELECT * FROM cpu")).results[0].series[0].rows()
    assert default_rows == [{"time": "2024-01-01T00:00:00.000000Z", "host": "b", "idle": 2.0}]


def test_other_statements_are_recorded() -> None:
    db = MockInfluxDB()
    query = Query("DELETE FROM \"cpu\" WHERE \"host\"='a'", "metrics")

    result = db.query(query)

    assert result.results[0].series == []
    assert db.queries == [query]


def test_writes_record_target() -> None:
    db = MockInfluxDB(database="default")
    point = _point("a", 1.0)

    db.write(point, database="metrics", retention_policy="one_week")

    (written,) = db.writes
    assert (written.database, written.retention_policy, written.point) == ("metrics", "one_week", point)
