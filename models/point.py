"""Point representation in InfluxDB line protocol and delete statements."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from models.precision import TimeUnit

FieldValue = Union[bool, int, float, str]

_TIME_OPERATORS = (">", "<")


def _escape(value: str, characters: str) -> str:
    escaped = value.replace("\\", "\\\\")
    for character in characters:
        escaped = escaped.replace(character, f"\\{character}")
    return escaped


def _escape_measurement(value: str) -> str:
    return _escape(value, ", ")


def _escape_key(value: str) -> str:
    return _escape(value, ",= ")


def _format_field_value(value: FieldValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _quote_identifier(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _quote_string(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


@dataclass(frozen=True)
class Point:
    """A single record: measurement, optional timestamp, tags and fields."""

    measurement_name: str
    time: Optional[int] = None
    precision: TimeUnit = TimeUnit.NANOSECONDS
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, FieldValue] = field(default_factory=dict)

    @staticmethod
    def measurement(name: str) -> "PointBuilder":
        return PointBuilder(name)

    def line_protocol(self) -> str:
        """Render the point as one line of InfluxDB line protocol."""
        parts = [_escape_measurement(self.measurement_name)]
        for key in sorted(self.tags):
            value = self.tags[key]
            if value == "":
                continue
            parts.append(f"{_escape_key(key)}={_escape_key(value)}")
        line = ",".join(parts)
        rendered_fields = ",".join(
            f"{_escape_key(key)}={_format_field_value(value)}"
            for key, value in self.fields.items()
        )
        line = f"{line} {rendered_fields}"
        if self.time is not None:
            line = f"{line} {self.time}"
        return line

    def delete_query(self, time_operator: Optional[str] = None) -> str:
        """InfluxQL statement deleting series that match this point's tags.

        ``time_operator`` is ``None`` (no time bound), ``">"`` (strictly after
        the point's time) or ``"<"`` (strictly before it). Without a
        timestamp no time clause is emitted.
        """
        if time_operator is not None and time_operator not in _TIME_OPERATORS:
            raise ValueError(f"Unsupported time operator {time_operator!r}.")

        conditions = [
            f"{_quote_identifier(key)}={_quote_string(value)}"
            for key, value in sorted(self.tags.items())
        ]
        if time_operator is not None and self.time is not None:
            conditions.append(
                f"time {time_operator} {self.time}{self.precision.literal_suffix}"
            )

        statement = f"DELETE FROM {_quote_identifier(self.measurement_name)}"
        if conditions:
            statement = f"{statement} WHERE {' AND '.join(conditions)}"
        return statement


class PointBuilder:
    """Accumulates the parts of a :class:`Point`."""

    def __init__(self, measurement_name: str) -> None:
        if not measurement_name:
            raise ValueError("Point measurement name must not be empty.")
        self._measurement = measurement_name
        self._time: Optional[int] = None
        self._precision = TimeUnit.NANOSECONDS
        self._tags: Dict[str, str] = {}
        self._fields: Dict[str, FieldValue] = {}

    def time(self, value: int, unit: TimeUnit) -> "PointBuilder":
        self._time = int(value)
        self._precision = unit
        return self

    def tag(self, name: str, value: str) -> "PointBuilder":
        if not isinstance(value, str):
            raise TypeError(f"Tag {name!r} must be a string, got {type(value).__name__}.")
        self._tags[name] = value
        return self

    def add_field(self, name: str, value: FieldValue) -> "PointBuilder":
        if not isinstance(value, (bool, int, float, str)):
            raise TypeError(
                f"Field {name!r} has unsupported value type {type(value).__name__}."
            )
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"Field {name!r} must be a finite number, got {value!r}.")
        if isinstance(value, int) and not isinstance(value, bool) and not -(2**63) <= value < 2**63:
            raise ValueError(f"Field {name!r} is outside the 64-bit integer range.")
        self._fields[name] = value
        return self

    def has_fields(self) -> bool:
        return bool(self._fields)

    def build(self, include_fields: bool = True) -> Point:
        if include_fields and not self._fields:
            raise ValueError(
                f"Point for measurement {self._measurement!r} needs at least one field."
            )
        return Point(
            measurement_name=self._measurement,
            time=self._time,
            precision=self._precision,
            tags=dict(self._tags),
            fields=dict(self._fields) if include_fields else {},
        )
