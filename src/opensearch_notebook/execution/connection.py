from __future__ import annotations

from typing import Any, Optional

from opensearch_notebook.common.errors import TransportError, TransportErrorKind
from opensearch_notebook.common.logger import get_logger
from opensearch_notebook.configs.connection import ConnectionConfig, ConnectionOverrides
from opensearch_notebook.parsing.schemas import QueryType
from .error_handler import format_error
from .request_builder import (
    build_api_request_info,
    build_auth_headers,
    build_query_request_info,
    build_response_info,
    is_bulk_endpoint,
    process_bulk_body,
    validate_json_body,
)
from .schemas import (
    ApiResponse,
    ConnectionInfo,
    ConnectionTestResult,
    RequestInfo,
    TransportRequest,
)
from .transport import HttpxTransport, Transport

logger = get_logger("connection_manager")


def join_url(endpoint: str, path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return endpoint.rstrip("/") + path


class ConnectionManager:
    """
    Dispatches requests against the effective connection of each execution.

    The base config is never mutated; overrides are merged into a fresh
    ConnectionConfig per call.

    Args:
        config: Base connection configuration.
        transport: Async transport; defaults to HttpxTransport.
    """

    def __init__(self, config: ConnectionConfig, transport: Optional[Transport] = None):
        self.config = config
        self.transport = transport or HttpxTransport()

    def effective_config(self, overrides: Optional[ConnectionOverrides] = None) -> ConnectionConfig:
        return self.config.with_overrides(overrides)

    def connection_info(self, overrides: Optional[ConnectionOverrides] = None) -> ConnectionInfo:
        effective = self.effective_config(overrides)
        return ConnectionInfo(endpoint=effective.endpoint, auth_type=effective.auth.type.value)

    async def execute_query(
        self,
        query: str,
        query_type: QueryType,
        overrides: Optional[ConnectionOverrides] = None,
        timeout: Optional[int] = None,
    ) -> ApiResponse:
        return await self._execute_plugin_query(query, query_type, overrides, timeout, is_explain=False)

    async def execute_explain_query(
        self,
        query: str,
        query_type: QueryType,
        overrides: Optional[ConnectionOverrides] = None,
        timeout: Optional[int] = None,
    ) -> ApiResponse:
        return await self._execute_plugin_query(query, query_type, overrides, timeout, is_explain=True)

    async def _execute_plugin_query(
        self,
        query: str,
        query_type: QueryType,
        overrides: Optional[ConnectionOverrides],
        timeout: Optional[int],
        is_explain: bool,
    ) -> ApiResponse:
        headers = build_auth_headers(self.config.auth, overrides)
        request_info = build_query_request_info(query_type, query, headers, is_explain=is_explain)
        return await self._dispatch(request_info, {"query": query}, False, overrides, timeout)

    async def execute_api_operation(
        self,
        method: str,
        endpoint: str,
        body: Optional[str] = None,
        overrides: Optional[ConnectionOverrides] = None,
        timeout: Optional[int] = None,
    ) -> ApiResponse:
        """
        Sends a raw REST call.

        `_bulk` bodies are sent verbatim as NDJSON; any other body is parsed
        as one JSON document.

        Raises:
            ValueError: The body is not valid JSON (or NDJSON for `_bulk`).
        """
        data: Any = None
        raw_body = False
        if body and body.strip():
            if is_bulk_endpoint(endpoint):
                data = process_bulk_body(body)
                raw_body = True
            else:
                data = validate_json_body(body)

        headers = build_auth_headers(self.config.auth, overrides)
        request_info = build_api_request_info(method, endpoint, body, headers)
        return await self._dispatch(request_info, data, raw_body, overrides, timeout)

    async def _dispatch(
        self,
        request_info: RequestInfo,
        data: Any,
        raw_body: bool,
        overrides: Optional[ConnectionOverrides],
        timeout: Optional[int],
    ) -> ApiResponse:
        effective = self.effective_config(overrides)
        connection_info = self.connection_info(overrides)
        request = TransportRequest(
            method=request_info.method,
            url=join_url(effective.endpoint, request_info.endpoint),
            headers=request_info.headers,
            data=data,
            timeout=timeout or effective.timeout,
            raw_body=raw_body,
        )

        logger.info(f"Dispatching {request.method} {request_info.endpoint} to {effective.endpoint}")
        try:
            response = await self.transport.send(request)
        except TransportError as e:
            if e.kind == TransportErrorKind.HTTP_RESPONSE and isinstance(e.response_data, dict) \
                    and e.response_data.get("error"):
                return ApiResponse(
                    data=e.response_data,
                    request_info=request_info,
                    response_info=build_response_info(e.response),
                    connection_info=connection_info,
                )
            e.request_info = request_info
            e.connection_info = connection_info
            raise

        return ApiResponse(
            data=response.data,
            request_info=request_info,
            response_info=build_response_info(response),
            connection_info=connection_info,
        )

    async def test_connection(self, overrides: Optional[ConnectionOverrides] = None) -> ConnectionTestResult:
        """Calls `GET /_cluster/health` on the effective connection."""
        effective = self.effective_config(overrides)
        request = TransportRequest(
            method="GET",
            url=join_url(effective.endpoint, "/_cluster/health"),
            headers=build_auth_headers(self.config.auth, overrides),
            timeout=effective.timeout,
        )
        try:
            response = await self.transport.send(request)
        except TransportError as e:
            return ConnectionTestResult(success=False, error=format_error(e))

        health = response.data if isinstance(response.data, dict) else {}
        version = health.get("version")
        return ConnectionTestResult(
            success=True,
            cluster_name=health.get("cluster_name"),
            version=version.get("number") if isinstance(version, dict) else None,
        )
