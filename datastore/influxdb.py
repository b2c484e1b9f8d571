"""HTTP client for the InfluxDB 1.x write and query endpoints."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from models.point import Point
from models.query import Query, QueryResult
from settings import get_settings

logger = logging.getLogger(__name__)


class InfluxDBError(Exception):
    """Raised when the database rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InfluxDBClient:
    """Minimal synchronous client for an InfluxDB server."""

    def __init__(
        self,
        url: str,
        database: Optional[str] = None,
        retention_policy: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.database = database
        self.retention_policy = retention_policy
        auth = (username, password or "") if username else None
        self._client = httpx.Client(
            base_url=self.url, timeout=timeout, auth=auth, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "InfluxDBClient":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def ping(self) -> str:
        """Return the server version reported by ``/ping``."""
        response = self._send("GET", "/ping")
        return response.headers.get("X-Influxdb-Version", "unknown")

    def write(
        self,
        point: Point,
        database: Optional[str] = None,
        retention_policy: Optional[str] = None,
    ) -> None:
        """Write ``point``; without a database the client defaults apply."""
        target = database or self.database
        if not target:
            raise InfluxDBError("No database given and no default database configured.")
        params: Dict[str, str] = {"db": target}
        policy = retention_policy if database else self.retention_policy
        if policy:
            params["rp"] = policy
        if point.time is not None:
            params["precision"] = point.precision.precision

        logger.debug(
            "Writing point",
            extra={
                "measurement": point.measurement_name,
                "database": target,
                "retention_policy": policy,
            },
        )
        self._send("POST", "/write", params=params, content=point.line_protocol().encode("utf-8"))

    def query(self, query: Query) -> QueryResult:
        params: Dict[str, str] = {"q": query.command}
        database = query.database or self.database
        if database:
            params["db"] = database

        logger.debug("Running query", extra={"query": query.command, "database": database})
        if query.is_read_only:
            response = self._send("GET", "/query", params=params)
        else:
            response = self._send("POST", "/query", data=params)
        return QueryResult.model_validate(response.json())

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._raise_for_error(exc)
        except httpx.RequestError as exc:
            raise InfluxDBError(f"Request to {self.url}{path} failed: {exc}") from exc
        return response

    @staticmethod
    def _raise_for_error(exc: httpx.HTTPStatusError) -> None:
        detail: Optional[str] = None
        try:
            data = exc.response.json()
            detail = data.get("error") if isinstance(data, dict) else str(data)
        except ValueError:
            detail = exc.response.text.strip()
        status_code = exc.response.status_code
        logger.warning("InfluxDB request failed", extra={"status_code": status_code})
        raise InfluxDBError(
            f"Request failed with status {status_code}: {detail or 'no detail provided.'}",
            status_code=status_code,
        ) from exc


@lru_cache
def build_default_client() -> InfluxDBClient:
    settings = get_settings()
    return InfluxDBClient(
        url=settings.influx_url,
        database=settings.database,
        retention_policy=settings.retention_policy,
        username=settings.username,
        password=settings.password,
        timeout=settings.timeout,
    )
