"""Read-only sqlite access for the remote data service.

Two operations are served from one database file:

- ``query(sql)``: a single SELECT (or WITH ... SELECT) statement, rows as dicts
- ``list_records(collection, params)``: a table listing driven by the
  collection filter grammar used by the data-query executor

The database is opened with ``mode=ro`` for every call, so nothing reachable
from an automation can write to it. Blocking sqlite3 calls run in the default
executor.

Filter grammar:
    {"status": {"$in": ["open", "pending"]},      # field -> {operator: value}
     "owner": "alice",                            # bare value means $eq
     "$or": [{"priority": {"$gte": 3}}, ...]}     # OR group, ANDed with the rest

Operators: $eq $ne $gt $gte $lt $lte $in $notIn $null $notNull $includes,
plus the ``$and`` / ``$or`` groups.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..engine.exceptions import RemoteDataError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 1000

COMPARISON_OPERATORS = {
    "$eq": "=",
    "$ne": "!=",
    "$gt": ">",
    "$gte": ">=",
    "$lt": "<",
    "$lte": "<=",
}


def quote_identifier(name: str) -> str:
    """Quote a table or column name for sqlite."""
    return '"' + name.replace('"', '""') + '"'


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return list(value)
    return [] if value is None else [value]


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "")
    return bool(value)


def _as_positive_int(value: Any, name: str, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise RemoteDataError(400, f"{name} must be an integer") from None
    if number < 1:
        raise RemoteDataError(400, f"{name} must be positive")
    return number


class CollectionQueryBuilder:
    """Builds parameterized SELECT statements for one table.

    Every column referenced by a filter, field list or sort must exist in
    ``columns``; unknown names are rejected instead of being interpolated.

    Example:
        builder = CollectionQueryBuilder("tickets", ["id", "status", "owner"])
        builder.build_where({"status": {"$in": ["open"]}, "owner": {"$null": None}})
        # -> ('("status" IN (?) AND "owner" IS NULL)', ['open'])
    """

    def __init__(self, table: str, columns: list[str]):
        self.table = table
        self.columns = columns

    def _column(self, name: str) -> str:
        if name not in self.columns:
            raise RemoteDataError(400, f"Unknown field '{name}' in collection '{self.table}'")
        return quote_identifier(name)

    def build_where(self, filter: Mapping[str, Any]) -> tuple[str, list[Any]]:
        """Build a WHERE clause (without the keyword) from a filter mapping.

        Returns:
            Tuple of (SQL condition, parameter list); ("", []) for an empty filter
        """
        conditions: list[str] = []
        params: list[Any] = []

        for key, value in filter.items():
            if key in ("$and", "$or"):
                groups = [self.build_where(item) for item in _as_list(value)]
                groups = [group for group in groups if group[0]]
                if not groups:
                    continue
                joiner = " AND " if key == "$and" else " OR "
                conditions.append("(" + joiner.join(sql for sql, _ in groups) + ")")
                for _, group_params in groups:
                    params.extend(group_params)
            elif isinstance(value, Mapping):
                for op, operand in value.items():
                    sql, op_params = self._condition(key, op, operand)
                    conditions.append(sql)
                    params.extend(op_params)
            else:
                sql, op_params = self._condition(key, "$eq", value)
                conditions.append(sql)
                params.extend(op_params)

        if not conditions:
            return "", []
        return "(" + " AND ".join(conditions) + ")", params

    def _condition(self, field: str, op: str, operand: Any) -> tuple[str, list[Any]]:
        column = self._column(field)

        if op in COMPARISON_OPERATORS:
            if operand is None and op in ("$eq", "$ne"):
                return f"{column} IS {'' if op == '$eq' else 'NOT '}NULL", []
            return f"{column} {COMPARISON_OPERATORS[op]} ?", [operand]

        if op in ("$in", "$notIn"):
            values = _as_list(operand)
            if not values:
                # Empty IN matches nothing; empty NOT IN matches everything
                return ("0 = 1" if op == "$in" else "1 = 1"), []
            placeholders = ", ".join("?" for _ in values)
            keyword = "IN" if op == "$in" else "NOT IN"
            return f"{column} {keyword} ({placeholders})", values

        if op == "$null":
            return f"{column} IS NULL", []
        if op == "$notNull":
            return f"{column} IS NOT NULL", []
        if op == "$includes":
            return f"instr({column}, ?) > 0", [str(operand)]

        raise RemoteDataError(400, f"Unsupported filter operator: {op}")

    def build_order(self, sort: list[str]) -> str:
        """Build ORDER BY terms from ``field`` / ``-field`` specs."""
        parts = []
        for spec in sort:
            if spec.startswith("-"):
                parts.append(f"{self._column(spec[1:])} DESC")
            else:
                parts.append(f"{self._column(spec)} ASC")
        return ", ".join(parts)

    def select(
        self,
        filter: Mapping[str, Any] | None = None,
        fields: list[str] | None = None,
        sort: list[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[str, list[Any]]:
        """Generate the SELECT statement for one page of records.

        Returns:
            Tuple of (SQL statement, parameter list)
        """
        col_list = ", ".join(self._column(name) for name in fields) if fields else "*"
        sql = f"SELECT {col_list} FROM {quote_identifier(self.table)}"
        params: list[Any] = []

        where_sql, where_params = self.build_where(filter or {})
        if where_sql:
            sql += f" WHERE {where_sql}"
            params.extend(where_params)

        if sort:
            sql += f" ORDER BY {self.build_order(sort)}"

        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
            if offset:
                sql += " OFFSET ?"
                params.append(offset)

        return sql, params

    def count(self, filter: Mapping[str, Any] | None = None) -> tuple[str, list[Any]]:
        """Generate the COUNT statement matching ``select``'s filter."""
        sql = f"SELECT COUNT(*) AS count FROM {quote_identifier(self.table)}"
        where_sql, params = self.build_where(filter or {})
        if where_sql:
            sql += f" WHERE {where_sql}"
        return sql, params


def parse_filter(value: Any) -> dict[str, Any]:
    """Accept a filter as a mapping or its JSON text."""
    if value in (None, ""):
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise RemoteDataError(400, f"Invalid filter: {e}") from None
    if not isinstance(value, Mapping):
        raise RemoteDataError(400, "Filter must be an object")
    return dict(value)


def is_select_statement(sql: str) -> bool:
    head = sql.lstrip().split(None, 1)
    return bool(head) and head[0].lower() in ("select", "with")


class SqliteStore:
    """Read-only sqlite database.

    Example:
        store = SqliteStore("/data/app.db")
        rows = await store.query("SELECT id, name FROM users")
        page = await store.list_records("users", {"filter": '{"active": {"$eq": 1}}'})
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        if not self.path.is_file():
            raise RemoteDataError(500, f"SQL database not found: {self.path}")
        conn = sqlite3.connect(f"{self.path.resolve().as_uri()}?mode=ro", uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    async def query(self, sql: str) -> list[dict[str, Any]]:
        """Run one read-only SELECT statement.

        Raises:
            RemoteDataError: 400 for non-SELECT or failing SQL
        """
        if not is_select_statement(sql):
            raise RemoteDataError(400, "Only SELECT statements are allowed")

        def _query() -> list[dict[str, Any]]:
            conn = self._connect()
            try:
                cursor = conn.execute(sql)
                return [dict(row) for row in cursor.fetchall()]
            except (sqlite3.Error, sqlite3.Warning) as e:
                raise RemoteDataError(400, f"Query failed: {e}") from e
            finally:
                conn.close()

        loop = asyncio.get_event_loop()
        rows = await loop.run_in_executor(None, _query)
        logger.debug(f"SQL query returned {len(rows)} rows")
        return rows

    async def list_records(self, collection: str, params: Mapping[str, Any]) -> dict[str, Any]:
        """List rows of a table.

        Args:
            collection: Table name
            params: ``filter`` (mapping or JSON), ``fields``, ``sort``,
                ``page``, ``pageSize`` and ``paginate`` (default True)

        Returns:
            {"data": rows, "meta": {"count", "page", "pageSize"}}

        Raises:
            RemoteDataError: 404 for an unknown table, 400 for a bad request
        """
        filter = parse_filter(params.get("filter"))
        fields = _as_list(params.get("fields"))
        sort = _as_list(params.get("sort"))
        paginate = _as_bool(params.get("paginate"), True)
        page = _as_positive_int(params.get("page"), "page", 1)
        page_size = min(
            _as_positive_int(params.get("pageSize"), "pageSize", DEFAULT_PAGE_SIZE),
            MAX_PAGE_SIZE,
        )

        def _list() -> dict[str, Any]:
            conn = self._connect()
            try:
                columns = [
                    row["name"]
                    for row in conn.execute(
                        f"PRAGMA table_info({quote_identifier(collection)})"
                    ).fetchall()
                ]
                if not columns:
                    raise RemoteDataError(404, f"Collection not found: {collection}")

                builder = CollectionQueryBuilder(collection, columns)
                count_sql, count_params = builder.count(filter)
                total = conn.execute(count_sql, count_params).fetchone()["count"]

                if paginate:
                    sql, sql_params = builder.select(
                        filter, fields, sort, limit=page_size, offset=(page - 1) * page_size
                    )
                else:
                    sql, sql_params = builder.select(filter, fields, sort)
                rows = [dict(row) for row in conn.execute(sql, sql_params).fetchall()]
            except sqlite3.Error as e:
                raise RemoteDataError(400, f"Query failed: {e}") from e
            finally:
                conn.close()

            return {
                "data": rows,
                "meta": {
                    "count": total,
                    "page": page if paginate else 1,
                    "pageSize": page_size if paginate else total,
                },
            }

        loop = asyncio.get_event_loop()
        result = await loop.run_in_executor(None, _list)
        logger.debug(
            f"Listed {len(result['data'])} of {result['meta']['count']} records "
            f"from '{collection}'"
        )
        return result
