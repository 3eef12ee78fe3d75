import json
from typing import Any, Optional

import yaml

from .schemas import QueryResult, RequestInfo


def format_raw_request(request_info: Optional[RequestInfo]) -> str:
    """Renders the request as an HTTP/1.1 message."""
    if request_info is None:
        return "No request information available"

    lines = [f"{request_info.method or 'POST'} {request_info.endpoint or '/'} HTTP/1.1"]
    lines.extend(f"{key}: {value}" for key, value in request_info.headers.items())
    return "\n".join(lines) + "\n\n" + (request_info.body or "")


def format_raw_response(result: QueryResult) -> str:
    """Renders the response status line, headers and body of a result."""
    if result.response_info is None and result.raw_response is None:
        return "No response information available"

    body = json.dumps(result.raw_response, indent=2, default=str) if result.raw_response is not None else ""
    if result.response_info is None:
        return body or "No response data"

    info = result.response_info
    lines = [f"HTTP/1.1 {info.status or 200} {info.status_text or 'OK'}"]
    lines.extend(f"{key}: {value}" for key, value in info.headers.items())
    return "\n".join(lines) + "\n\n" + body


def format_as_yaml(data: Any) -> str:
    """YAML rendering of a JSON-compatible value, for diagnostics output."""
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)
