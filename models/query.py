"""Query statements and the pydantic schema of query responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Query:
    """An InfluxQL statement, optionally scoped to a database."""

    command: str
    database: Optional[str] = None

    @property
    def is_read_only(self) -> bool:
        words = self.command.split(None, 1)
        return bool(words) and words[0].upper() in {"SELECT", "SHOW"}


class Series(BaseModel):
    """One series of a statement result."""

    name: Optional[str] = None
    tags: Dict[str, str] = Field(default_factory=dict)
    columns: List[str] = Field(default_factory=list)
    values: List[List[Any]] = Field(default_factory=list)

    def rows(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.values]


class Result(BaseModel):
    """Outcome of a single statement within a query."""

    statement_id: Optional[int] = None
    series: List[Series] = Field(default_factory=list)
    error: Optional[str] = None


class QueryResult(BaseModel):
    """Full response body of the ``/query`` endpoint."""

    results: List[Result] = Field(default_factory=list)
    error: Optional[str] = None

    def has_error(self) -> bool:
        return self.error is not None or any(result.error for result in self.results)

    def errors(self) -> List[str]:
        messages = [self.error] if self.error else []
        messages.extend(result.error for result in self.results if result.error)
        return messages
