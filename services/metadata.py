"""Per-class column bindings discovered from ``column`` declarations."""

from __future__ import annotations

import dataclasses
import logging
import types
import typing
from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Mapping, Union

from models.annotations import COLUMN_METADATA_KEY, Column, validate
from models.errors import FieldAccessError, MapperError

logger = logging.getLogger(__name__)

ColumnBindings = Mapping[str, "ColumnBinding"]


@dataclass(frozen=True)
class ColumnBinding:
    """Links a wire column name to the attribute holding its value."""

    wire_name: str
    attribute: str
    column: Column
    declared_type: Any


def _unwrap_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin in (Union, types.UnionType):
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(members) == 1:
            return members[0]
    return annotation


def scan_columns(cls: type) -> ColumnBindings:
    """Collect the column bindings declared on ``cls`` in field order."""
    try:
        hints = typing.get_type_hints(cls)
    except NameError as exc:
        raise MapperError(f"Unable to resolve column types of {cls.__qualname__}: {exc}") from exc
    bindings: Dict[str, ColumnBinding] = {}
    for dc_field in dataclasses.fields(cls):
        declared = dc_field.metadata.get(COLUMN_METADATA_KEY)
        if not isinstance(declared, Column):
            continue
        if declared.name in bindings:
            raise MapperError(
                f"Column {declared.name!r} is declared twice on {cls.__qualname__}."
            )
        bindings[declared.name] = ColumnBinding(
            wire_name=declared.name,
            attribute=dc_field.name,
            column=declared,
            declared_type=_unwrap_optional(hints.get(dc_field.name, Any)),
        )
    return types.MappingProxyType(bindings)


class MetadataCache:
    """Column bindings keyed by class, populated once per class.

    Reads are lock-free; the first population of a class happens under a
    lock so concurrent callers all receive the same bindings object.
    """

    def __init__(self) -> None:
        self._entries: Dict[type, ColumnBindings] = {}
        self._lock = Lock()

    def get_column_bindings(self, cls: type) -> ColumnBindings:
        bindings = self._entries.get(cls)
        if bindings is not None:
            return bindings
        with self._lock:
            bindings = self._entries.get(cls)
            if bindings is None:
                validate(cls)
                bindings = scan_columns(cls)
                self._entries[cls] = bindings
                logger.debug(
                    "Cached column bindings",
                    extra={"model": cls.__qualname__, "column_count": len(bindings)},
                )
        return bindings

    def populated_types(self) -> list[type]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, cls: object) -> bool:
        return cls in self._entries


def read_field_values(instance: Any, bindings: ColumnBindings) -> Dict[str, Any]:
    """Read the value of every bound column from ``instance``.

    Instances may expose ``field_values()`` returning a mapping of attribute
    name to value; otherwise attributes are read directly.
    """
    provider = getattr(instance, "field_values", None)
    try:
        if callable(provider):
            raw = provider()
            return {name: raw[binding.attribute] for name, binding in bindings.items()}
        return {
            name: getattr(instance, binding.attribute) for name, binding in bindings.items()
        }
    except (AttributeError, KeyError, TypeError) as exc:
        raise FieldAccessError(
            f"Unable to read column values from {type(instance).__qualname__}: {exc}"
        ) from exc
