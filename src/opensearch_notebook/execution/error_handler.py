"""
Normalizes execution failures into failed QueryResult objects.

Three failure classes are distinguished: the server answered with an error
status, the request left the client but got no answer, or the request could
not be built at all. Anything that is not a TransportError falls in the last
class.
"""
from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from opensearch_notebook.common.errors import (
    SETUP_ERROR_DETAILS,
    NetworkErrorReason,
    TransportError,
    TransportErrorKind,
)
from opensearch_notebook.common.logger import get_logger
from .schemas import ApiResponse, ConnectionInfo, QueryResult, RequestInfo, ResponseInfo

logger = get_logger("error_handler")

UNKNOWN_ERROR = "Unknown error occurred"
NETWORK_ERROR = "Network error: Unable to connect to OpenSearch cluster"


def _error_kind(error: BaseException) -> TransportErrorKind:
    if isinstance(error, TransportError):
        return error.kind
    return TransportErrorKind.SETUP


def _error_message(error: BaseException) -> str:
    if isinstance(error, TransportError):
        return error.message or UNKNOWN_ERROR
    return str(error) or UNKNOWN_ERROR


def _body_text(data: Any) -> Optional[str]:
    if data is None or data == "":
        return None
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2)


def extract_error_info(
    error: BaseException,
) -> Tuple[Optional[RequestInfo], Optional[ResponseInfo], Optional[Any]]:
    """Pulls request info, response info and the raw response body out of an error.

    Returns:
        Tuple[Optional[RequestInfo], Optional[ResponseInfo], Optional[Any]]:
            Each item is None when the error does not carry it.
    """
    if not isinstance(error, TransportError):
        return None, None, None

    request_info = error.request_info
    if request_info is None and error.request is not None:
        request_info = RequestInfo(
            method=error.request.method.upper(),
            endpoint=error.request.url,
            headers=dict(error.request.headers),
            body=_body_text(error.request.data) or "",
        )

    response_info = None
    raw_response = None
    if error.response is not None:
        response_info = ResponseInfo(
            status=error.response.status,
            status_text=error.response.status_text,
            headers=dict(error.response.headers),
        )
        raw_response = error.response.data

    return request_info, response_info, raw_response


def create_enhanced_error_details(error: BaseException) -> Dict[str, Any]:
    """Builds the diagnostic payload shown when the server gave no usable body."""
    kind = _error_kind(error)
    details: Dict[str, Any] = {
        "error_type": kind.value,
        "message": _error_message(error),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if not isinstance(error, TransportError):
        details["details"] = SETUP_ERROR_DETAILS
        return details

    if error.code:
        details["code"] = error.code

    request = error.request
    url = request.url if request else "Unknown URL"
    method = request.method.upper() if request else "Unknown Method"

    if kind == TransportErrorKind.HTTP_RESPONSE and error.response is not None:
        details["status"] = error.response.status
        details["status_text"] = error.response.status_text
        details["url"] = url
        details["method"] = method
        if error.response.data:
            details["server_response"] = error.response.data
        if error.response.headers:
            details["response_headers"] = dict(error.response.headers)
    elif kind == TransportErrorKind.NETWORK:
        details["url"] = url
        details["method"] = method
        details["details"] = (error.reason or NetworkErrorReason.UNKNOWN).details
        if request is not None and request.timeout:
            details["timeout"] = f"{request.timeout}ms"
    else:
        details["details"] = SETUP_ERROR_DETAILS

    if request is not None:
        details["request_config"] = {
            "url": request.url,
            "method": request.method.upper(),
            "timeout": request.timeout,
            "headers": dict(request.headers),
        }
        body = _body_text(request.data)
        if body:
            details["request_config"]["body"] = body

    return details


def format_error(error: BaseException) -> str:
    """One-line summary of an error, most specific information first."""
    if isinstance(error, TransportError):
        if error.kind == TransportErrorKind.HTTP_RESPONSE and error.response is not None:
            status = error.response.status
            status_text = error.response.status_text
            data = error.response.data
            if isinstance(data, dict) and data.get("error"):
                server_error = data["error"]
                if isinstance(server_error, dict):
                    reason = server_error.get("reason") or server_error.get("type") or "Unknown error"
                else:
                    reason = str(server_error)
                return f"{status} {status_text}: {reason}"
            return f"{status} {status_text}"
        if error.kind == TransportErrorKind.NETWORK:
            return NETWORK_ERROR
    return _error_message(error)


def create_error_response(
    error: BaseException,
    start_time: float,
    custom_message: Optional[str] = None,
    connection_info: Optional[ConnectionInfo] = None,
) -> QueryResult:
    request_info, response_info, raw_response = extract_error_info(error)
    if connection_info is None and isinstance(error, TransportError):
        connection_info = error.connection_info

    if not raw_response:
        raw_response = {"error": {"details": create_enhanced_error_details(error)}}

    message = custom_message or format_error(error)
    logger.warning(f"Execution failed ({_error_kind(error).value}): {message}")

    return QueryResult(
        success=False,
        error=message,
        execution_time=int((time.time() - start_time) * 1000),
        executed_at=datetime.fromtimestamp(start_time, tz=timezone.utc),
        request_info=request_info,
        response_info=response_info,
        raw_response=raw_response,
        connection_info=connection_info,
    )


def create_api_error_response(response: ApiResponse, start_time: float) -> QueryResult:
    """Failed result for a payload carrying an OpenSearch `error` object."""
    server_error = response.error
    if isinstance(server_error, dict):
        message = f"{server_error.get('type')}: {server_error.get('reason')}"
    else:
        message = str(server_error)

    logger.warning(f"OpenSearch returned an error payload: {message}")

    return QueryResult(
        success=False,
        error=message,
        execution_time=int((time.time() - start_time) * 1000),
        executed_at=datetime.fromtimestamp(start_time, tz=timezone.utc),
        raw_response=response.data,
        request_info=response.request_info,
        response_info=response.response_info,
        connection_info=response.connection_info,
    )
