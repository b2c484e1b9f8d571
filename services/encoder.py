"""Encoding of measurement instances into points and delete statements."""

from __future__ import annotations

import math
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from models.annotations import database_name, measurement_name, time_unit
from models.errors import MapperError, UnsupportedTypeError
from models.point import FieldValue, Point, PointBuilder
from models.precision import TimeUnit, epoch_millis
from models.query import Query
from services.metadata import ColumnBinding, MetadataCache, read_field_values

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class FieldKind(Enum):
    """Value types a field column can carry on the wire."""

    BOOLEAN = bool
    INTEGER = int
    FLOAT = float
    STRING = str

    @classmethod
    def of(cls, binding: ColumnBinding) -> "FieldKind":
        declared = binding.declared_type
        # bool subclasses int, so identity checks keep the two kinds apart.
        for kind in cls:
            if declared is kind.value:
                return kind
        raise UnsupportedTypeError(
            f"Unsupported type {_type_name(declared)} for column {binding.wire_name!r}"
        )

    def coerce(self, value: Any) -> FieldValue:
        """Check ``value`` against this kind; only int to float is widened."""
        is_int = isinstance(value, int) and not isinstance(value, bool)
        if self is FieldKind.FLOAT and is_int:
            return float(value)
        if self is FieldKind.INTEGER:
            if not is_int:
                raise TypeError(f"expected int, got {type(value).__name__}")
            if not INT64_MIN <= value <= INT64_MAX:
                raise ValueError(f"{value} is outside the 64-bit integer range")
            return value
        if not isinstance(value, self.value):
            raise TypeError(f"expected {self.value.__name__}, got {type(value).__name__}")
        if self is FieldKind.FLOAT and not math.isfinite(value):
            raise ValueError(f"{value!r} is not a finite number")
        return value


def _type_name(declared: Any) -> str:
    return getattr(declared, "__qualname__", None) or repr(declared)


def _require_datetime(binding: ColumnBinding) -> None:
    declared = binding.declared_type
    if not (isinstance(declared, type) and issubclass(declared, datetime)):
        raise UnsupportedTypeError(
            f"Unsupported type {_type_name(declared)} for time: should be of datetime type"
        )


def _current_time_millis() -> int:
    return time.time_ns() // 1_000_000


class PointEncoder:
    """Builds points from instances using cached column bindings."""

    def __init__(self, cache: MetadataCache, clock: Callable[[], int] = _current_time_millis) -> None:
        self.cache = cache
        self._clock = clock

    def encode(
        self,
        instance: Any,
        set_default_time: bool = True,
        include_fields: bool = True,
    ) -> Point:
        model_type = type(instance)
        bindings = self.cache.get_column_bindings(model_type)
        unit = time_unit(model_type)
        builder = Point.measurement(measurement_name(model_type))

        if set_default_time:
            builder.time(unit.from_millis(self._clock()), unit)

        values = read_field_values(instance, bindings)
        for wire_name, binding in bindings.items():
            value = values[wire_name]
            column = binding.column

            if column.is_time:
                _require_datetime(binding)
            if value is None and (column.nullable or column.is_time):
                continue
            if value is None:
                raise MapperError(
                    f"Column {wire_name!r} of {model_type.__qualname__} is not nullable but has no value."
                )

            if column.tag:
                builder.tag(wire_name, str(value))
            elif column.is_time:
                self._set_time(builder, binding, unit, value)
            elif include_fields:
                self._set_field(builder, binding, value)

        return builder.build(include_fields)

    @staticmethod
    def _set_time(
        builder: PointBuilder, binding: ColumnBinding, unit: TimeUnit, value: Any
    ) -> None:
        if not isinstance(value, datetime):
            raise MapperError(
                f"Time column {binding.wire_name!r} holds {type(value).__name__}, expected datetime"
            )
        builder.time(unit.from_millis(epoch_millis(value)), unit)

    @staticmethod
    def _set_field(builder: PointBuilder, binding: ColumnBinding, value: Any) -> None:
        kind = FieldKind.of(binding)
        try:
            coerced = kind.coerce(value)
        except (TypeError, ValueError) as exc:
            raise MapperError(
                f"Value {value!r} of column {binding.wire_name!r} cannot be written as {kind.name.lower()}"
            ) from exc
        builder.add_field(binding.wire_name, coerced)

    def build_delete_query(self, instance: Any, time_operator: Optional[str] = None) -> Query:
        """Delete statement matching the tags (and optional time) of ``instance``."""
        point = self.encode(instance, set_default_time=False, include_fields=False)
        return Query(point.delete_query(time_operator), database_name(type(instance)))


def describe_columns(cache: MetadataCache, cls: type) -> Dict[str, str]:
    """Role of each column of ``cls``: ``tag``, ``time`` or the field kind."""
    roles: Dict[str, str] = {}
    for wire_name, binding in cache.get_column_bindings(cls).items():
        if binding.column.tag:
            roles[wire_name] = "tag"
        elif binding.column.is_time:
            roles[wire_name] = "time"
        else:
            roles[wire_name] = FieldKind.of(binding).name.lower()
    return roles
