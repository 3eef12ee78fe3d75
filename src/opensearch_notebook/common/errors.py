from __future__ import annotations

from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from opensearch_notebook.execution.schemas import (
        ConnectionInfo,
        RequestInfo,
        TransportRequest,
        TransportResponse,
    )


class TransportErrorKind(str, Enum):
    """Classification of an execution failure.

    The values double as the human-readable `error_type` tag of the
    diagnostic payload.
    """
    HTTP_RESPONSE = "HTTP Response Error"
    NETWORK = "Network/Connection Error"
    SETUP = "Request Setup Error"


class NetworkErrorReason(str, Enum):
    """Sub-reasons for requests that left the client but got no response."""
    CONNECTION_REFUSED = "ECONNREFUSED"
    DNS_FAILURE = "ENOTFOUND"
    TIMEOUT = "ETIMEDOUT"
    CONNECTION_RESET = "ECONNRESET"
    CERT_EXPIRED = "CERT_HAS_EXPIRED"
    CERT_VERIFICATION_FAILED = "UNABLE_TO_VERIFY_LEAF_SIGNATURE"
    UNKNOWN = "UNKNOWN"

    @property
    def details(self) -> str:
        return NETWORK_REASON_DETAILS[self]


NETWORK_REASON_DETAILS = {
    NetworkErrorReason.CONNECTION_REFUSED: "Connection refused - server may be down or unreachable",
    NetworkErrorReason.DNS_FAILURE: "DNS resolution failed - hostname not found",
    NetworkErrorReason.TIMEOUT: "Connection timeout - server took too long to respond",
    NetworkErrorReason.CONNECTION_RESET: "Connection reset by server",
    NetworkErrorReason.CERT_EXPIRED: "SSL certificate has expired",
    NetworkErrorReason.CERT_VERIFICATION_FAILED: "SSL certificate verification failed",
    NetworkErrorReason.UNKNOWN: "Network request failed - check connection and server availability",
}

SETUP_ERROR_DETAILS = "Error occurred while setting up the request"


class TransportError(Exception):
    """Failure raised by a transport adapter.

    Attributes:
        kind (TransportErrorKind): Which branch of the taxonomy this failure is.
        message (str): Low-level description of the failure.
        request (Optional[TransportRequest]): The outbound request, when it was built.
        response (Optional[TransportResponse]): The remote response (HTTP errors only).
        reason (Optional[NetworkErrorReason]): Sub-reason for network failures.
        code (Optional[str]): Raw error code reported by the transport.
        request_info (Optional[RequestInfo]): Diagnostics attached by the connection layer.
        connection_info (Optional[ConnectionInfo]): Effective connection of the request.
    """

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str,
        *,
        request: Optional["TransportRequest"] = None,
        response: Optional["TransportResponse"] = None,
        reason: Optional[NetworkErrorReason] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.request = request
        self.response = response
        self.reason = reason
        if code is None and reason is not None and reason is not NetworkErrorReason.UNKNOWN:
            code = reason.value
        self.code = code
        self.request_info: Optional["RequestInfo"] = None
        self.connection_info: Optional["ConnectionInfo"] = None

    @property
    def response_data(self) -> Any:
        return self.response.data if self.response is not None else None

    def __repr__(self) -> str:
        return f"TransportError(kind={self.kind.name}, message={self.message!r})"
