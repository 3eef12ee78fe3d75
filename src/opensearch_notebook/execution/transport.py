from __future__ import annotations

import json
from typing import Optional, Protocol

import httpx

from opensearch_notebook.common.errors import NetworkErrorReason, TransportError, TransportErrorKind
from opensearch_notebook.common.logger import get_logger
from .schemas import TransportRequest, TransportResponse

logger = get_logger("transport")

_CONNECT_REASONS = (
    ("refused", NetworkErrorReason.CONNECTION_REFUSED),
    ("name or service not known", NetworkErrorReason.DNS_FAILURE),
    ("nodename nor servname", NetworkErrorReason.DNS_FAILURE),
    ("getaddrinfo", NetworkErrorReason.DNS_FAILURE),
    ("name resolution", NetworkErrorReason.DNS_FAILURE),
    ("certificate has expired", NetworkErrorReason.CERT_EXPIRED),
    ("certificate verify failed", NetworkErrorReason.CERT_VERIFICATION_FAILED),
    ("reset", NetworkErrorReason.CONNECTION_RESET),
)


class Transport(Protocol):
    """Async HTTP dispatch used by the connection manager.

    Implementations raise TransportError for every failure, including non-2xx
    responses.
    """

    async def send(self, request: TransportRequest) -> TransportResponse:
        ...


def classify_network_error(exc: Exception) -> NetworkErrorReason:
    if isinstance(exc, httpx.TimeoutException):
        return NetworkErrorReason.TIMEOUT
    text = str(exc).lower()
    for needle, reason in _CONNECT_REASONS:
        if needle in text:
            return reason
    return NetworkErrorReason.UNKNOWN


def _decode_body(response: httpx.Response):
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxTransport:
    """Transport backed by `httpx.AsyncClient`.

    Args:
        client: Optional pre-built client (tests pass one wrapping
            `httpx.MockTransport`). Without one, a client is created per request.
        verify: TLS verification flag for clients created here.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, verify: bool = True):
        self._client = client
        self._verify = verify

    async def send(self, request: TransportRequest) -> TransportResponse:
        kwargs = {"headers": request.headers, "timeout": request.timeout / 1000}
        if request.data is not None:
            if request.raw_body:
                kwargs["content"] = request.data
            else:
                kwargs["content"] = json.dumps(request.data)

        logger.debug(f"{request.method.upper()} {request.url}")
        try:
            if self._client is not None:
                response = await self._client.request(request.method.upper(), request.url, **kwargs)
            else:
                async with httpx.AsyncClient(verify=self._verify) as client:
                    response = await client.request(request.method.upper(), request.url, **kwargs)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError) as e:
            raise TransportError(TransportErrorKind.SETUP, str(e), request=request) from e
        except httpx.TimeoutException as e:
            raise TransportError(
                TransportErrorKind.NETWORK,
                str(e) or "Request timed out",
                request=request,
                reason=NetworkErrorReason.TIMEOUT,
            ) from e
        except httpx.TransportError as e:
            raise TransportError(
                TransportErrorKind.NETWORK,
                str(e) or type(e).__name__,
                request=request,
                reason=classify_network_error(e),
            ) from e

        result = TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=_decode_body(response),
        )

        if not response.is_success:
            raise TransportError(
                TransportErrorKind.HTTP_RESPONSE,
                f"Request failed with status code {response.status_code}",
                request=request,
                response=result,
            )
        return result
