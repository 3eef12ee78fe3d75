from .schemas import (
    ApiResponse,
    ConnectionInfo,
    QueryResult,
    RequestInfo,
    ResponseInfo,
    TransportRequest,
    TransportResponse,
)

__all__ = [
    "ApiResponse",
    "ConnectionInfo",
    "QueryResult",
    "RequestInfo",
    "ResponseInfo",
    "TransportRequest",
    "TransportResponse",
]
