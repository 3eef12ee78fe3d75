import base64
import json

import pytest

from opensearch_notebook.configs.connection import (
    AuthConfig,
    AuthOverrides,
    AuthType,
    ConnectionOverrides,
)
from opensearch_notebook.execution.request_builder import (
    build_api_request_info,
    build_auth_headers,
    build_query_request_info,
    build_response_info,
    is_bulk_endpoint,
    process_bulk_body,
    validate_json_body,
)
from opensearch_notebook.execution.schemas import TransportResponse
from opensearch_notebook.parsing import QueryType


class TestAuthHeaders:

    def test_basic(self):
        headers = build_auth_headers(AuthConfig(type=AuthType.BASIC, username="admin", password="pw"))
        expected = base64.b64encode(b"admin:pw").decode()
        assert headers == {"Authorization": f"Basic {expected}"}

    def test_apikey_override(self):
        base = AuthConfig(type=AuthType.BASIC, username="admin", password="pw")
        overrides = ConnectionOverrides(auth=AuthOverrides(type=AuthType.APIKEY, api_key="k-1"))
        assert build_auth_headers(base, overrides) == {"Authorization": "ApiKey k-1"}

    def test_incomplete_or_none(self):
        assert build_auth_headers(AuthConfig(type=AuthType.BASIC, username="admin")) == {}
        assert build_auth_headers(AuthConfig(type=AuthType.APIKEY)) == {}
        assert build_auth_headers(AuthConfig()) == {}


class TestRequestInfo:

    @pytest.mark.parametrize(
        "query_type,explain,endpoint",
        [
            (QueryType.SQL, False, "/_plugins/_sql"),
            (QueryType.PPL, False, "/_plugins/_ppl"),
            (QueryType.SQL, True, "/_plugins/_sql/_explain"),
            (QueryType.PPL, True, "/_plugins/_ppl/_explain"),
        ],
    )
    def test_query_endpoints(self, query_type, explain, endpoint):
        info = build_query_request_info(query_type, "SELECT 1", {"Authorization": "x"}, is_explain=explain)
        assert info.method == "POST"
        assert info.endpoint == endpoint
        assert info.headers == {"Content-Type": "application/json", "Authorization": "x"}
        assert info.body == json.dumps({"query": "SELECT 1"}, indent=2)

    def test_api_request_info_content_type(self):
        bulk = build_api_request_info("post", "/idx/_bulk", "{}\n", {})
        assert bulk.method == "POST"
        assert bulk.headers["Content-Type"] == "application/x-ndjson"

        put = build_api_request_info("put", "/idx", None, {})
        assert put.headers["Content-Type"] == "application/json"
        assert put.body == ""

    def test_is_bulk_endpoint(self):
        assert is_bulk_endpoint("/_bulk")
        assert is_bulk_endpoint("/logs/_bulk?refresh=true")
        assert not is_bulk_endpoint("/logs/_doc")

    def test_build_response_info(self):
        info = build_response_info(
            TransportResponse(status=201, status_text="Created", headers={"content-type": "application/json"})
        )
        assert info.status == 201
        assert info.status_text == "Created"
        assert info.headers == {"content-type": "application/json"}


class TestBodies:

    def test_process_bulk_body_single_trailing_newline(self):
        body = '\n  {"index": {"_index": "a"}}\n{"f": 1}\n\n\n'
        processed = process_bulk_body(body)
        assert processed == '{"index": {"_index": "a"}}\n{"f": 1}\n'
        assert process_bulk_body(processed) == processed

    def test_process_bulk_body_rejects_invalid_line(self):
        with pytest.raises(ValueError) as exc:
            process_bulk_body('{"index": {}}\n{oops}\n')
        assert str(exc.value) == "Invalid JSON in bulk request line: {oops}"

    def test_validate_json_body(self):
        assert validate_json_body('{"settings": {"number_of_shards": 1}}') == {"settings": {"number_of_shards": 1}}
        with pytest.raises(ValueError, match="Invalid JSON in request body"):
            validate_json_body("{")
