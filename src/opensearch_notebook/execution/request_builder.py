import base64
import json
from typing import Any, Dict, Optional, Union

from opensearch_notebook.common.json_utils import validate_and_parse, validate_bulk_json
from opensearch_notebook.configs.connection import AuthConfig, AuthType, ConnectionOverrides
from opensearch_notebook.parsing.schemas import QueryType
from .schemas import RequestInfo, ResponseInfo, TransportResponse

JSON_CONTENT_TYPE = "application/json"
NDJSON_CONTENT_TYPE = "application/x-ndjson"

QUERY_ENDPOINTS = {
    (QueryType.SQL, False): "/_plugins/_sql",
    (QueryType.PPL, False): "/_plugins/_ppl",
    (QueryType.SQL, True): "/_plugins/_sql/_explain",
    (QueryType.PPL, True): "/_plugins/_ppl/_explain",
}


def build_auth_headers(
    base_auth: AuthConfig, overrides: Optional[ConnectionOverrides] = None
) -> Dict[str, str]:
    """
    Builds the Authorization header for the effective auth settings.

    Each override field replaces the base field when it is present. Incomplete
    credentials yield no header rather than a broken one.
    """
    auth_overrides = overrides.auth if overrides and overrides.auth else None
    auth_type = (auth_overrides.type if auth_overrides else None) or base_auth.type
    username = (auth_overrides.username if auth_overrides else None) or base_auth.username
    password = (auth_overrides.password if auth_overrides else None) or base_auth.password
    api_key = (auth_overrides.api_key if auth_overrides else None) or base_auth.api_key

    headers = {}
    if auth_type == AuthType.BASIC and username and password:
        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {credentials}"
    elif auth_type == AuthType.APIKEY and api_key:
        headers["Authorization"] = f"ApiKey {api_key}"
    return headers


def build_query_request_info(
    query_type: Union[QueryType, str],
    query: str,
    auth_headers: Dict[str, str],
    is_explain: bool = False,
) -> RequestInfo:
    endpoint = QUERY_ENDPOINTS[(QueryType(query_type), is_explain)]
    return RequestInfo(
        method="POST",
        endpoint=endpoint,
        headers={"Content-Type": JSON_CONTENT_TYPE, **auth_headers},
        body=json.dumps({"query": query}, indent=2),
    )


def is_bulk_endpoint(endpoint: str) -> bool:
    return "/_bulk" in (endpoint or "")


def build_api_request_info(
    method: str,
    endpoint: str,
    body: Optional[str],
    auth_headers: Dict[str, str],
) -> RequestInfo:
    content_type = NDJSON_CONTENT_TYPE if is_bulk_endpoint(endpoint) else JSON_CONTENT_TYPE
    return RequestInfo(
        method=method.upper(),
        endpoint=endpoint,
        headers={"Content-Type": content_type, **auth_headers},
        body=body or "",
    )


def process_bulk_body(body: str) -> str:
    """Validates an NDJSON body and frames it with exactly one trailing newline.

    Raises:
        ValueError: quoting the first line that is not valid JSON.
    """
    processed = body.strip()
    validation = validate_bulk_json(processed)
    if not validation.valid:
        raise ValueError(validation.error)
    return processed + "\n"


def validate_json_body(body: str) -> Any:
    result = validate_and_parse(body)
    if not result.valid:
        raise ValueError("Invalid JSON in request body")
    return result.data


def build_response_info(response: TransportResponse) -> ResponseInfo:
    return ResponseInfo(
        status=response.status,
        status_text=response.status_text,
        headers=dict(response.headers),
    )
