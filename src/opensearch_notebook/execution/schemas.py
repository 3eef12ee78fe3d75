from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RequestInfo(BaseModel):
    """Outbound request as it was (or would have been) sent."""
    method: str
    endpoint: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str = ""


class ResponseInfo(BaseModel):
    status: int
    status_text: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)


class ConnectionInfo(BaseModel):
    """Effective connection of one execution, after overrides were applied."""
    endpoint: str
    auth_type: str


class QueryResult(BaseModel):
    """Unified outcome of one execution.

    Success and failure share this shape. Diagnostics (`request_info`,
    `response_info`, `connection_info`) are populated whenever they were
    available at the point the execution ended.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    execution_time: int = Field(0, description="Wall-clock duration in milliseconds.")
    executed_at: datetime
    row_count: Optional[int] = None
    columns: Optional[List[str]] = None
    raw_response: Optional[Any] = None
    request_info: Optional[RequestInfo] = None
    response_info: Optional[ResponseInfo] = None
    connection_info: Optional[ConnectionInfo] = None


class TransportRequest(BaseModel):
    """Request handed to a transport adapter.

    When `raw_body` is True, `data` is a pre-formatted string (NDJSON) that
    must be written to the wire verbatim.
    """
    method: str
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    data: Optional[Any] = None
    timeout: int = Field(30000, description="Timeout in milliseconds.")
    raw_body: bool = False


class TransportResponse(BaseModel):
    status: int
    status_text: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    data: Optional[Any] = None


class ApiResponse(BaseModel):
    """Payload returned by the connection manager to the engine."""
    data: Optional[Any] = None
    request_info: Optional[RequestInfo] = None
    response_info: Optional[ResponseInfo] = None
    connection_info: Optional[ConnectionInfo] = None

    @property
    def error(self) -> Optional[Any]:
        if isinstance(self.data, dict):
            return self.data.get("error")
        return None


class ConnectionTestResult(BaseModel):
    success: bool
    cluster_name: Optional[str] = None
    version: Optional[str] = None
    error: Optional[str] = None
