from __future__ import annotations

import re
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, List, Optional

from models.point import Point
from models.query import Query, QueryResult, Result, Series

_SELECT_ALL = re.compile(r'^\s*SELECT\s+\*\s+FROM\s+"?([^"\s;]+)"?\s*;?\s*$', re.IGNORECASE)


@dataclass(frozen=True)
class WrittenPoint:
    database: Optional[str]
    retention_policy: Optional[str]
    point: Point


def _format_time(point: Point) -> Optional[str]:
    if point.time is None:
        return None
    return point.precision.to_datetime(point.time).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class MockInfluxDB:
    """In-memory stand-in for :class:`datastore.influxdb.InfluxDBClient`.

    Stores written points and serves ``SELECT * FROM <measurement>``; any
    other statement is recorded and answered with an empty result.
    """

    def __init__(self, database: Optional[str] = None) -> None:
        self.database = database
        self._writes: List[WrittenPoint] = []
        self._queries: List[Query] = []
        self._lock = Lock()

    def write(
        self,
        point: Point,
        database: Optional[str] = None,
        retention_policy: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._writes.append(
                WrittenPoint(
                    database=database or self.database,
                    retention_policy=retention_policy,
                    point=point,
                )
            )

    def query(self, query: Query) -> QueryResult:
        with self._lock:
            self._queries.append(query)
            match = _SELECT_ALL.match(query.command)
            if match is None:
                return QueryResult(results=[Result(statement_id=0)])
            measurement = match.group(1)
            database = query.database or self.database
            points = [
                written.point
                for written in self._writes
                if written.point.measurement_name == measurement
                and written.database == database
            ]
        return QueryResult(results=[Result(statement_id=0, series=self._series(measurement, points))])

    @property
    def writes(self) -> List[WrittenPoint]:
        with self._lock:
            return list(self._writes)

    @property
    def queries(self) -> List[Query]:
        with self._lock:
            return list(self._queries)

    @staticmethod
    def _series(measurement: str, points: List[Point]) -> List[Series]:
        if not points:
            return []
        tag_keys = sorted({key for point in points for key in point.tags})
        field_keys = sorted({key for point in points for key in point.fields})
        columns = ["time", *tag_keys, *field_keys]
        values: List[List[Any]] = []
        for point in points:
            row: Dict[str, Any] = {"time": _format_time(point)}
            row.update(point.tags)
            row.update(point.fields)
            values.append([row.get(name) for name in columns])
        return [Series(name=measurement, columns=columns, values=values)]
