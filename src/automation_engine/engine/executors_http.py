"""Remote data executors - HttpRequest and DataQuery.

Both executors go through the remote client capability carried by the
execution context. Neither talks to the network directly: the remote data
service performs the request (or the collection query) on their behalf.

Features:
- Whole-config placeholder compilation before the request is built
- Header/param lists in the ``[{name, value}]`` shape stored by the config UI
- JSON body parsing for POST/PUT/PATCH with raw-string fallback
- Collection filter building (``$eq``, ``$in``, ``$null``, ``$or``, ...)
- Failures returned as ``success: false`` results (never raised)
"""

from __future__ import annotations

import json
import logging
from typing import Any, ClassVar

from pydantic import Field, field_validator

from .compiler import compile_object
from .exceptions import RemoteDataError
from .execution_context import ExecutionContext, RemoteClient
from .execution_result import ExecutorResult
from .executor_base import AutomationExecutor
from .schema import ConfigModel

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class NameValue(ConfigModel):
    """One header or query parameter row."""

    name: str = ""
    value: Any = ""


def _rows_from_mapping(value: Any) -> Any:
    """Accept ``{"X-Key": "v"}`` as shorthand for ``[{"name": "X-Key", "value": "v"}]``."""
    if isinstance(value, dict):
        return [{"name": name, "value": item} for name, item in value.items()]
    return value


# ============================================================================
# HttpRequest Executor
# ============================================================================


class HttpParams(ConfigModel):
    """Parameters for the http executor (after placeholder compilation)."""

    method: str = Field(default="GET", description="HTTP method")
    url: str = Field(default="", description="Request URL")
    headers: list[NameValue] = Field(default_factory=list, description="Request headers")
    params: list[NameValue] = Field(default_factory=list, description="Query parameters")
    data: Any = Field(default="", description="Request body (JSON text or raw string)")
    timeout: int = Field(default=5000, ge=1, description="Timeout in milliseconds")

    _rows = field_validator("headers", "params", mode="before")(_rows_from_mapping)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class HttpRequestExecutor(AutomationExecutor):
    """
    HTTP executor - calls an external API through the remote data service.

    The request sent to the service is ``{url, method, headers, params, body,
    timeout}``. A ``Content-Type: application/json`` header is always present.

    Output:
        success: true with the service's ``data`` as result data, or false with
            ``{"status": ...}`` when the service reported a status-coded error
        metadata: The request configuration that was sent
    """

    key: ClassVar[str] = "http"
    label: ClassVar[str] = "HTTP request"
    description: ClassVar[str | None] = "Call an HTTP API through the remote data service"

    async def execute(self, trigger: Any, context: ExecutionContext) -> ExecutorResult:
        compiled = compile_object(context.config, context)
        params = HttpParams.model_validate(compiled)

        request = {
            "url": params.url,
            "method": params.method,
            "headers": self.build_headers(params.headers),
            "params": self.build_params(params.params),
            "body": self.build_body(params.method, params.data),
            "timeout": params.timeout,
        }

        client = context.remote_client
        if client is None:
            message = "Remote client not available in execution context"
            return ExecutorResult.failed(self.key, message, metadata=request)

        try:
            response = await client.fetch_data("http", request)
        except RemoteDataError as e:
            logger.warning(f"HTTP request to {params.url} failed: {e}")
            return ExecutorResult.failed(
                self.key, e.message, data={"status": e.status}, metadata=request
            )
        except Exception as e:
            logger.warning(f"HTTP request to {params.url} failed: {e}")
            return ExecutorResult.failed(self.key, str(e), metadata=request)

        data = response.get("data", response) if isinstance(response, dict) else response
        return ExecutorResult.succeeded(self.key, data=data, metadata=request)

    @staticmethod
    def build_headers(rows: list[NameValue]) -> dict[str, str]:
        """Header dict from config rows (blank names dropped, JSON content type added)."""
        headers = {"Content-Type": "application/json"}
        for row in rows:
            if row.name:
                headers[row.name] = str(row.value)
        return headers

    @staticmethod
    def build_params(rows: list[NameValue]) -> dict[str, Any]:
        """Query parameter dict from config rows (blank names dropped)."""
        return {row.name: row.value for row in rows if row.name}

    @staticmethod
    def build_body(method: str, data: Any) -> Any:
        """Request body for methods that carry one; JSON text is decoded."""
        if method not in BODY_METHODS or not data:
            return None
        if isinstance(data, str):
            try:
                return json.loads(data)
            except json.JSONDecodeError:
                return data
        return data


# ============================================================================
# DataQuery Executor
# ============================================================================


class QueryCondition(ConfigModel):
    """One filter row: ``field operator value`` joined by ``logical``."""

    field: str = ""
    operator: str = "$eq"
    value: Any = None
    logical: str = "and"


class SortSpec(ConfigModel):
    field: str
    direction: str = "asc"


class DataQueryParams(ConfigModel):
    """Parameters for the data-query executor (after placeholder compilation)."""

    collection: str = Field(default="", description="Collection (table) name")
    conditions: list[QueryCondition] = Field(default_factory=list)
    fields: list[str] = Field(default_factory=list, description="Fields to return (all if empty)")
    sort: list[SortSpec] = Field(default_factory=list)
    limit: int = Field(default=20, ge=0)
    offset: int = Field(default=0, ge=0)
    enable_pagination: bool = False

    @field_validator("fields", mode="before")
    @classmethod
    def _split_fields(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


def build_filter(conditions: list[QueryCondition]) -> dict[str, Any]:
    """
    Build a collection filter from condition rows.

    The first usable condition sets its field. Later ``or`` conditions are
    appended to ``$or``; later ``and`` conditions set (or replace) their field.

    Example:
        >>> build_filter([
        ...     QueryCondition(field="status", operator="$in", value="open, pending"),
        ...     QueryCondition(field="owner", operator="$null", logical="or"),
        ... ])
        {'status': {'$in': ['open', 'pending']}, '$or': [{'owner': {'$null': None}}]}
    """
    result: dict[str, Any] = {}
    position = 0
    for condition in conditions:
        if not condition.field or not condition.operator:
            continue

        value = condition.value
        if condition.operator in ("$in", "$notIn"):
            if isinstance(value, str):
                value = [item.strip() for item in value.split(",")]
            elif not isinstance(value, list):
                value = [] if value is None else [value]
        elif condition.operator in ("$null", "$notNull"):
            value = None

        clause = {condition.operator: value}
        if position > 0 and condition.logical == "or":
            result.setdefault("$or", []).append({condition.field: clause})
        else:
            result[condition.field] = clause
        position += 1
    return result


def build_query_params(params: DataQueryParams) -> dict[str, Any]:
    """Translate query parameters into the collection list request parameters."""
    query: dict[str, Any] = {}

    if params.conditions:
        query["filter"] = json.dumps(build_filter(params.conditions), ensure_ascii=False)

    if params.fields:
        query["fields"] = ",".join(params.fields)

    if params.enable_pagination:
        if params.limit:
            query["pageSize"] = params.limit
        if params.offset:
            query["page"] = params.offset // (params.limit or 20) + 1
    else:
        query["paginate"] = False

    if params.sort:
        query["sort"] = ",".join(
            f"{'-' if spec.direction == 'desc' else ''}{spec.field}" for spec in params.sort
        )
    return query


class DataQueryExecutor(AutomationExecutor):
    """
    Data query executor - lists records of a host collection.

    Output data:
        records: Matching rows
        total / page / pageSize: Paging metadata reported by the service
        collection: Queried collection
        query: The list parameters that were sent
    """

    key: ClassVar[str] = "data-query"
    label: ClassVar[str] = "Data query"
    description: ClassVar[str | None] = "Query records from a collection"

    async def execute(self, trigger: Any, context: ExecutionContext) -> ExecutorResult:
        compiled = compile_object(context.config, context)
        params = DataQueryParams.model_validate(compiled)

        if not params.collection:
            message = "collection not specified"
            return ExecutorResult.failed(self.key, message, metadata={"error": message})

        query = build_query_params(params)
        try:
            client = self._require_client(context.remote_client)
            response = await client.list_records(params.collection, query)
        except Exception as e:
            logger.error(f"Data query on '{params.collection}' failed: {e}")
            return ExecutorResult.failed(
                self.key,
                str(e),
                metadata={"error": str(e), "collection": params.collection},
            )

        records = response.get("data") or []
        meta = response.get("meta") or {}
        total = meta.get("count") or len(records)

        return ExecutorResult.succeeded(
            self.key,
            data={
                "records": records,
                "total": total,
                "page": meta.get("page") or 1,
                "pageSize": meta.get("pageSize") or len(records),
                "collection": params.collection,
                "query": query,
            },
            metadata={
                "collection": params.collection,
                "recordCount": len(records),
                "totalCount": total,
                "queryConditions": len(params.conditions),
                "fields": params.fields or "all",
            },
        )

    @staticmethod
    def _require_client(client: RemoteClient | None) -> RemoteClient:
        if client is None:
            raise RuntimeError("Remote client not available in execution context")
        return client
