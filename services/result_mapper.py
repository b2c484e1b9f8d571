"""Materialization of query results into measurement instances."""

from __future__ import annotations

import dataclasses
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Type, TypeVar

from models.annotations import measurement_name, validate
from models.errors import MapperError, UnsupportedTypeError
from models.precision import TimeUnit
from models.query import QueryResult, Series
from services.metadata import ColumnBinding, ColumnBindings, MetadataCache

T = TypeVar("T")

_FRACTION = re.compile(r"\.(\d+)")


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp, dropping digits beyond microseconds."""
    candidate = value.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    candidate = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), candidate, count=1)
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise MapperError(f"Invalid timestamp {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ResultMapper:
    """Turns the series of a :class:`QueryResult` into model instances."""

    def __init__(self, cache: MetadataCache) -> None:
        self.cache = cache

    def to_objects(
        self,
        result: QueryResult,
        cls: Type[T],
        precision: TimeUnit = TimeUnit.MILLISECONDS,
    ) -> List[T]:
        validate(cls)
        if result.has_error():
            raise MapperError(f"InfluxDB returned an error: {'; '.join(result.errors())}")

        bindings = self.cache.get_column_bindings(cls)
        name = measurement_name(cls)
        objects: List[T] = []
        for statement in result.results:
            for series in statement.series:
                if series.name != name:
                    continue
                objects.extend(self._map_series(series, cls, bindings, precision))
        return objects

    def _map_series(
        self,
        series: Series,
        cls: Type[T],
        bindings: ColumnBindings,
        precision: TimeUnit,
    ) -> List[T]:
        mapped: List[T] = []
        for row in series.rows():
            row.update(series.tags)
            values: Dict[str, Any] = {}
            for wire_name, binding in bindings.items():
                raw = row.get(wire_name)
                values[binding.attribute] = (
                    None if raw is None else self._convert(binding, raw, precision)
                )
            mapped.append(self._instantiate(cls, values))
        return mapped

    @staticmethod
    def _instantiate(cls: Type[T], values: Dict[str, Any]) -> T:
        init_names = {f.name for f in dataclasses.fields(cls) if f.init}
        instance = cls(**{name: value for name, value in values.items() if name in init_names})
        for name, value in values.items():
            if name not in init_names:
                object.__setattr__(instance, name, value)
        return instance

    @staticmethod
    def _convert(binding: ColumnBinding, raw: Any, precision: TimeUnit) -> Any:
        declared = binding.declared_type
        try:
            if isinstance(declared, type) and issubclass(declared, datetime):
                if isinstance(raw, str):
                    return parse_rfc3339(raw)
                return precision.to_datetime(int(raw))
            if declared is bool:
                if isinstance(raw, str):
                    return raw.strip().lower() == "true"
                return bool(raw)
            if declared in (int, float, str):
                return declared(raw)
        except (TypeError, ValueError) as exc:
            raise MapperError(
                f"Cannot convert {raw!r} of column {binding.wire_name!r} to {declared!r}"
            ) from exc
        raise UnsupportedTypeError(
            f"Unsupported type {declared!r} for column {binding.wire_name!r}"
        )
