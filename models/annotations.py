"""Declarative measurement and column metadata for domain dataclasses."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type, TypeVar

from models.errors import MissingMetadataError
from models.precision import TimeUnit

MEASUREMENT_ATTRIBUTE = "__measurement__"
COLUMN_METADATA_KEY = "influx_column"
TIME_COLUMN = "time"

T = TypeVar("T")


@dataclass(frozen=True)
class Measurement:
    """Class-level declaration naming the measurement a dataclass maps to."""

    name: str
    database: Optional[str] = None
    retention_policy: str = "autogen"
    time_unit: TimeUnit = TimeUnit.MILLISECONDS


@dataclass(frozen=True)
class Column:
    """Field-level declaration binding an attribute to a wire column."""

    name: str
    tag: bool = False
    nullable: bool = True

    @property
    def is_time(self) -> bool:
        return not self.tag and self.name == TIME_COLUMN


def measurement(
    name: str,
    database: Optional[str] = None,
    retention_policy: str = "autogen",
    time_unit: TimeUnit = TimeUnit.MILLISECONDS,
) -> Callable[[Type[T]], Type[T]]:
    """Class decorator declaring a dataclass as a measurement.

    Apply it above ``@dataclass``::

        @measurement("cpu", database="metrics")
        @dataclass
        class Cpu:
            time: Optional[datetime] = column("time")
            host: Optional[str] = column("host", tag=True)
            idle: Optional[float] = column("idle")
    """
    if not name:
        raise ValueError("Measurement name must not be empty.")
    declaration = Measurement(
        name=name,
        database=database or None,
        retention_policy=retention_policy,
        time_unit=time_unit,
    )

    def decorate(cls: Type[T]) -> Type[T]:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"@measurement requires a dataclass, got {cls.__name__}.")
        setattr(cls, MEASUREMENT_ATTRIBUTE, declaration)
        return cls

    return decorate


def column(
    name: str,
    *,
    tag: bool = False,
    nullable: bool = True,
    default: Any = None,
) -> Any:
    """Dataclass field carrying a :class:`Column` declaration."""
    if not name:
        raise ValueError("Column name must not be empty.")
    return dataclasses.field(
        default=default,
        metadata={COLUMN_METADATA_KEY: Column(name=name, tag=tag, nullable=nullable)},
    )


def _as_class(target: Any) -> type:
    return target if isinstance(target, type) else type(target)


def get_measurement(target: Any) -> Measurement:
    cls = _as_class(target)
    # Only the class's own declaration counts; subclasses must redeclare.
    declaration = cls.__dict__.get(MEASUREMENT_ATTRIBUTE)
    if not isinstance(declaration, Measurement):
        raise MissingMetadataError(
            f"Class {cls.__module__}.{cls.__qualname__} is not annotated with @measurement."
        )
    return declaration


def validate(target: Any) -> None:
    get_measurement(target)


def measurement_name(target: Any) -> str:
    return get_measurement(target).name


def database_name(target: Any) -> Optional[str]:
    """Declared database, or ``None`` when the declaration leaves it unassigned."""
    return get_measurement(target).database


def retention_policy(target: Any) -> str:
    return get_measurement(target).retention_policy


def time_unit(target: Any) -> TimeUnit:
    return get_measurement(target).time_unit
