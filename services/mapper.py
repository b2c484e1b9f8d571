"""Public entry point mapping measurement dataclasses to the database."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, List, Optional, Protocol, Type, TypeVar, Union, overload

from datastore.influxdb import build_default_client
from models.annotations import (
    Measurement,
    database_name,
    measurement_name,
    retention_policy,
    validate,
)
from models.errors import MissingRequiredAttributeError
from models.point import Point
from models.query import Query, QueryResult
from services.encoder import PointEncoder
from services.metadata import MetadataCache
from services.result_mapper import ResultMapper

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseClient(Protocol):
    """Transport used by the mapper to reach the database."""

    def write(
        self,
        point: Point,
        database: Optional[str] = None,
        retention_policy: Optional[str] = None,
    ) -> None: ...

    def query(self, query: Query) -> QueryResult: ...


class InfluxDBMapper:
    """Saves, queries and deletes ``@measurement`` dataclasses."""

    def __init__(
        self,
        client: DatabaseClient,
        cache: Optional[MetadataCache] = None,
        result_mapper: Optional[ResultMapper] = None,
    ) -> None:
        self.client = client
        self.cache = cache or MetadataCache()
        self.encoder = PointEncoder(self.cache)
        self.result_mapper = result_mapper or ResultMapper(self.cache)

    @overload
    def query(self, query_or_cls: Type[T]) -> List[T]: ...

    @overload
    def query(self, query_or_cls: Query, cls: Type[T]) -> List[T]: ...

    def query(self, query_or_cls: Union[Query, Type[T]], cls: Optional[Type[T]] = None) -> List[T]:
        """Run ``SELECT * FROM`` the measurement of a class, or an explicit query."""
        if isinstance(query_or_cls, Query):
            if cls is None:
                raise TypeError("A model class is required when passing an explicit query.")
            return self.query_with(query_or_cls, cls)
        return self._query_class(query_or_cls)

    def query_with(self, query: Query, cls: Type[T]) -> List[T]:
        validate(cls)
        result = self.client.query(query)
        return self.result_mapper.to_objects(result, cls)

    def _query_class(self, cls: Type[T]) -> List[T]:
        validate(cls)
        measurement = measurement_name(cls)
        database = database_name(cls)
        if database is None:
            raise MissingRequiredAttributeError(
                f"{Measurement.__name__} of class {cls.__module__}.{cls.__qualname__} "
                "should specify a database value for this operation"
            )

        logger.debug("Querying measurement", extra={"measurement": measurement, "database": database})
        result = self.client.query(Query(f"SELECT * FROM {measurement}", database))
        return self.result_mapper.to_objects(result, cls)

    def save(self, model: Any) -> None:
        model_type = type(model)
        validate(model_type)
        self.cache.get_column_bindings(model_type)

        point = self.create_point(model, set_default_time=True, include_fields=True)
        database = database_name(model_type)
        logger.debug(
            "Saving point",
            extra={"model": model_type.__qualname__, "measurement": point.measurement_name, "database": database},
        )
        if database is None:
            self.client.write(point)
        else:
            self.client.write(point, database=database, retention_policy=retention_policy(model_type))

    def delete_measurements_by_tags_without_time(self, model: Any) -> None:
        self._delete(model, None)

    def delete_measurements_by_tags_since_time(self, model: Any) -> None:
        self._delete(model, ">")

    def delete_measurements_by_tags_until_time(self, model: Any) -> None:
        self._delete(model, "<")

    def _delete(self, model: Any, time_operator: Optional[str]) -> None:
        model_type = type(model)
        validate(model_type)
        self.cache.get_column_bindings(model_type)

        query = self.encoder.build_delete_query(model, time_operator)
        logger.debug(
            "Deleting measurements",
            extra={"model": model_type.__qualname__, "time_operator": time_operator, "query": query.command},
        )
        self.client.query(query)

    def create_point(self, model: Any, set_default_time: bool, include_fields: bool) -> Point:
        return self.encoder.encode(
            model, set_default_time=set_default_time, include_fields=include_fields
        )


@lru_cache
def build_default_mapper() -> InfluxDBMapper:
    """Mapper wired to the client configured through the environment."""
    return InfluxDBMapper(client=build_default_client())
