from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytest

import services.metadata as metadata
from models.annotations import column, measurement
from models.errors import FieldAccessError, MapperError, MissingMetadataError
from services.encoder import PointEncoder
from services.metadata import MetadataCache, read_field_values, scan_columns
from sample_models import BrokenValues, Cpu, Load, Sensor, Unannotated


def test_scan_keeps_declared_columns_in_field_order() -> None:
    bindings = scan_columns(Cpu)

    assert list(bindings) == ["time", "host", "region", "idle", "processes", "healthy", "label"]
    assert bindings["idle"].attribute == "idle"
    assert bindings["idle"].declared_type is float
    assert bindings["time"].declared_type is datetime
    assert bindings["host"].column.tag


def test_scan_unwraps_pep604_optionals() -> None:
    bindings = scan_columns(Load)

    assert bindings["value"].declared_type is float
    assert bindings["host"].declared_type is str


def test_bindings_are_read_only() -> None:
    bindings = scan_columns(Cpu)

    with pytest.raises(TypeError):
        bindings["extra"] = bindings["idle"]  # type: ignore[index]


def test_duplicate_wire_names_are_rejected() -> None:
    @measurement("dup")
    @dataclass
    class Duplicated:
        first: Optional[float] = column("value")
        second: Optional[float] = column("value")

    with pytest.raises(MapperError):
        scan_columns(Duplicated)


def test_cache_returns_same_bindings_object() -> None:
    cache = MetadataCache()

    first = cache.get_column_bindings(Cpu)
    second = cache.get_column_bindings(Cpu)

    assert first is second
    assert Cpu in cache
    assert cache.populated_types() == [Cpu]


def test_cache_rejects_unannotated_class_without_caching() -> None:
    cache = MetadataCache()

    with pytest.raises(MissingMetadataError):
        cache.get_column_bindings(Unannotated)

    assert Unannotated not in cache


def test_concurrent_first_use_populates_once(monkeypatch) -> None:
    @measurement("fresh", database="metrics")
    @dataclass
    class Fresh:
        host: Optional[str] = column("host", tag=True)
        value: Optional[float] = column("value")

    calls: list[type] = []
    original_scan = metadata.scan_columns

    def counting_scan(cls: type):
        calls.append(cls)
        return original_scan(cls)

    monkeypatch.setattr(metadata, "scan_columns", counting_scan)

    cache = MetadataCache()
    encoder = PointEncoder(cache, clock=lambda: 1_000)
    barrier = threading.Barrier(100)

    def encode(index: int):
        barrier.wait()
        return encoder.encode(Fresh(host="h", value=1.5))

    with ThreadPoolExecutor(max_workers=100) as executor:
        points = list(executor.map(encode, range(100)))

    assert calls == [Fresh]
    assert len(points) == 100
    assert all(point == points[0] for point in points)


def test_read_field_values_uses_field_values_contract() -> None:
    sensor = Sensor(_sensor_id="s-1", _reading=2.5)

    values = read_field_values(sensor, scan_columns(Sensor))

    assert values == {"sensor_id": "s-1", "reading": 2.5}


def test_read_field_values_wraps_access_failures() -> None:
    broken = BrokenValues(host="a")

    with pytest.raises(FieldAccessError) as exc_info:
        read_field_values(broken, scan_columns(BrokenValues))

    assert isinstance(exc_info.value.__cause__, KeyError)


def test_read_field_values_wraps_non_mapping_contract() -> None:
    @measurement("listed")
    @dataclass
    class Listed:
        host: Optional[str] = column("host", tag=True)

        def field_values(self):
            return [self.host]

    with pytest.raises(FieldAccessError) as exc_info:
        read_field_values(Listed(host="a"), scan_columns(Listed))

    assert isinstance(exc_info.value.__cause__, TypeError)
