"""
Database module - QueryBuilder and PostgrestClient for stationrest.

Implements a fluent API that compiles to PostgREST query strings.
Nothing is sent until a terminal call: execute(), insert(), update()
or delete().
"""

import logging
from typing import TypeVar, Generic, Optional, List, Dict, Any, Tuple, Union
from urllib.parse import quote

from .http import HTTPExecutor
from .types import RestResponse, VoidResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SAFE_CHARS = ",.*()"
_RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def _encode(value: str) -> str:
    return quote(value, safe=_SAFE_CHARS)


class QueryBuilder(Generic[T]):
    """Fluent API for building queries against one table.

    A builder is bound to a single table and is consumed by one terminal
    call. Get a new one from PostgrestClient.from_() for every operation.
    """

    def __init__(self, table: str, executor: HTTPExecutor) -> None:
        self._table = table
        self._executor = executor

        self._select_fields: Optional[str] = None
        self._filters: List[Tuple[str, str, Any]] = []
        self._order_fields: List[Tuple[str, bool, Optional[bool]]] = []
        self._limit_value: Optional[int] = None
        self._offset_value: Optional[int] = None
        self._single = False

    @property
    def table(self) -> str:
        return self._table

    def select(self, fields: str = "*") -> "QueryBuilder[T]":
        """Select specific columns."""
        self._select_fields = fields
        return self

    def filter(self, field: str, operator: str, value: Any) -> "QueryBuilder[T]":
        """Append a field=operator.value filter."""
        self._filters.append((field, operator, value))
        return self

    def eq(self, field: str, value: Any) -> "QueryBuilder[T]":
        """Filter: equal."""
        return self.filter(field, "eq", value)

    def neq(self, field: str, value: Any) -> "QueryBuilder[T]":
        """Filter: not equal."""
        return self.filter(field, "neq", value)

    def gt(self, field: str, value: Any) -> "QueryBuilder[T]":
        """Filter: greater than."""
        return self.filter(field, "gt", value)

    def gte(self, field: str, value: Any) -> "QueryBuilder[T]":
        """Filter: greater than or equal."""
        return self.filter(field, "gte", value)

    def lt(self, field: str, value: Any) -> "QueryBuilder[T]":
        """Filter: less than."""
        return self.filter(field, "lt", value)

    def lte(self, field: str, value: Any) -> "QueryBuilder[T]":
        """Filter: less than or equal."""
        return self.filter(field, "lte", value)

    def like(self, field: str, pattern: str) -> "QueryBuilder[T]":
        """Filter: LIKE pattern match (case sensitive)."""
        return self.filter(field, "like", pattern)

    def ilike(self, field: str, pattern: str) -> "QueryBuilder[T]":
        """Filter: ILIKE pattern match (case insensitive)."""
        return self.filter(field, "ilike", pattern)

    def is_(self, field: str, value: Optional[bool]) -> "QueryBuilder[T]":
        """Filter: IS null/true/false."""
        return self.filter(field, "is", value)

    def in_(self, field: str, values: List[Any]) -> "QueryBuilder[T]":
        """Filter: IN array of values."""
        return self.filter(field, "in", list(values))

    def order(
        self, field: str, ascending: bool = True, nulls_first: Optional[bool] = None
    ) -> "QueryBuilder[T]":
        """Order results. Repeated calls add secondary sort keys."""
        self._order_fields.append((field, ascending, nulls_first))
        return self

    def limit(self, count: int) -> "QueryBuilder[T]":
        """Limit number of results."""
        self._limit_value = count
        return self

    def offset(self, count: int) -> "QueryBuilder[T]":
        """Offset for pagination."""
        self._offset_value = count
        return self

    def range(self, start: int, end: int) -> "QueryBuilder[T]":
        """Rows start..end, both inclusive."""
        self._offset_value = start
        self._limit_value = end - start + 1
        return self

    def single(self) -> "QueryBuilder[T]":
        """Return the first row (or None) instead of a list."""
        self._limit_value = 1
        self._single = True
        return self

    def build_query(self) -> str:
        """Compile the accumulated state into a query string."""
        params: List[str] = []

        if self._select_fields is not None:
            params.append(f"select={_encode(self._select_fields)}")

        for field, op, value in self._filters:
            formatted = self._format_filter_value(op, value)
            params.append(f"{_encode(field)}={op}.{_encode(formatted)}")

        if self._order_fields:
            order_parts = []
            for field, ascending, nulls_first in self._order_fields:
                part = f"{field}.{'asc' if ascending else 'desc'}"
                if nulls_first is not None:
                    part += f".{'nullsfirst' if nulls_first else 'nullslast'}"
                order_parts.append(part)
            params.append(f"order={_encode(','.join(order_parts))}")

        if self._offset_value is not None:
            params.append(f"offset={self._offset_value}")
        if self._limit_value is not None:
            params.append(f"limit={self._limit_value}")

        return "&".join(params)

    def _format_filter_value(self, op: str, value: Any) -> str:
        """Format filter value based on operator."""
        if op == "in" and isinstance(value, list):
            return f"({','.join(self._format_scalar(v) for v in value)})"
        return self._format_scalar(value)

    def _format_scalar(self, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _path(self, with_query: bool = True) -> str:
        path = f"/rest/v1/{_encode(self._table)}"
        query = self.build_query() if with_query else ""
        return f"{path}?{query}" if query else path

    async def execute(self) -> RestResponse[Any]:
        """Execute SELECT query.

        Returns a list of rows, or with single() the first row or None.
        """
        result = await self._executor.request("GET", self._path())
        if result.error is not None:
            return RestResponse(data=None, error=result.error)

        rows = result.data
        if self._single:
            if isinstance(rows, list):
                return RestResponse(data=rows[0] if rows else None, error=None)
            return RestResponse(data=rows, error=None)
        return RestResponse(data=rows, error=None)

    async def insert(
        self, values: Union[Dict[str, Any], List[Dict[str, Any]]]
    ) -> RestResponse[List[T]]:
        """Insert rows. Filters, order and pagination are not used."""
        rows = [values] if isinstance(values, dict) else list(values)
        result = await self._executor.request(
            "POST",
            self._path(with_query=False),
            json_body=rows,
            headers=dict(_RETURN_REPRESENTATION),
        )
        return RestResponse(data=result.data, error=result.error)

    async def update(self, values: Dict[str, Any]) -> RestResponse[List[T]]:
        """Update rows matching the accumulated filters."""
        if not self._filters:
            logger.warning("update on %s without filters targets every row", self._table)
        result = await self._executor.request(
            "PATCH",
            self._path(),
            json_body=values,
            headers=dict(_RETURN_REPRESENTATION),
        )
        return RestResponse(data=result.data, error=result.error)

    async def delete(self) -> VoidResponse:
        """Delete rows matching the accumulated filters."""
        if not self._filters:
            logger.warning("delete on %s without filters targets every row", self._table)
        result = await self._executor.request("DELETE", self._path())
        return VoidResponse(error=result.error)


class PostgrestClient:
    """Database operations wrapper. Creates QueryBuilder instances."""

    def __init__(self, executor: HTTPExecutor) -> None:
        self._executor = executor

    def from_(self, table: str) -> QueryBuilder[Dict[str, Any]]:
        """Create a new query builder for a table.
        Uses from_ to avoid Python keyword clash."""
        return QueryBuilder(table, self._executor)
