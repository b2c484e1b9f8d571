from __future__ import annotations

from datastore.influxdb import build_default_client
from services.mapper import build_default_mapper
from settings import get_settings


def _clear_caches() -> None:
    for cache in (get_settings, build_default_client, build_default_mapper):
        cache.cache_clear()


def test_defaults_without_environment(monkeypatch) -> None:
    for name in (
        "INFLUXDB_URL",
        "INFLUXDB_DATABASE",
        "INFLUXDB_RETENTION_POLICY",
        "INFLUXDB_USERNAME",
        "INFLUXDB_PASSWORD",
        "INFLUXDB_TIMEOUT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    _clear_caches()

    try:
        settings = get_settings()
        assert settings.influx_url == "http://localhost:8086"
        assert settings.database is None
        assert settings.retention_policy is None
        assert settings.timeout == 30.0
        assert settings.log_level == "INFO"
    finally:
        _clear_caches()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("INFLUXDB_URL", " http://influx:8086/ ")
    monkeypatch.setenv("INFLUXDB_DATABASE", "metrics")
    monkeypatch.setenv("INFLUXDB_RETENTION_POLICY", "one_week")
    monkeypatch.setenv("INFLUXDB_TIMEOUT", "-5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    _clear_caches()

    try:
        settings = get_settings()
        mapper = build_default_mapper()
        client = build_default_client()

        assert settings.timeout == 30.0
        assert settings.log_level == "DEBUG"
        assert mapper.client is client
        assert client.url == "http://influx:8086"
        assert client.database == "metrics"
        assert client.retention_policy == "one_week"
    finally:
        build_default_client().close()
        _clear_caches()


def test_blank_optional_values_are_unset(monkeypatch) -> None:
    monkeypatch.setenv("INFLUXDB_DATABASE", "   ")
    monkeypatch.setenv("INFLUXDB_TIMEOUT", "not-a-number")
    _clear_caches()

    try:
        settings = get_settings()
        assert settings.database is None
        assert settings.timeout == 30.0
    finally:
        _clear_caches()
