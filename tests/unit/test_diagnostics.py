from datetime import datetime, timezone

import yaml

from opensearch_notebook.execution.diagnostics import format_as_yaml, format_raw_request, format_raw_response
from opensearch_notebook.execution.schemas import QueryResult, RequestInfo, ResponseInfo


def result(**kwargs):
    return QueryResult(success=True, executed_at=datetime.now(timezone.utc), **kwargs)


class TestDiagnostics:

    def test_format_raw_request(self):
        info = RequestInfo(
            method="POST",
            endpoint="/_plugins/_sql",
            headers={"Content-Type": "application/json"},
            body='{\n  "query": "SELECT 1"\n}',
        )
        assert format_raw_request(info) == (
            "POST /_plugins/_sql HTTP/1.1\n"
            "Content-Type: application/json\n"
            "\n"
            '{\n  "query": "SELECT 1"\n}'
        )
        assert format_raw_request(None) == "No request information available"

    def test_format_raw_response(self):
        text = format_raw_response(
            result(
                response_info=ResponseInfo(status=200, status_text="OK", headers={"content-type": "application/json"}),
                raw_response={"a": 1},
            )
        )
        assert text.startswith("HTTP/1.1 200 OK\ncontent-type: application/json\n\n")
        assert text.endswith('{\n  "a": 1\n}')

    def test_format_raw_response_without_info(self):
        assert format_raw_response(result()) == "No response information available"
        assert format_raw_response(result(raw_response={"b": 2})) == '{\n  "b": 2\n}'

    def test_format_as_yaml(self):
        rendered = format_as_yaml({"method": "GET", "headers": {"Authorization": "ApiKey k"}})
        assert yaml.safe_load(rendered) == {"method": "GET", "headers": {"Authorization": "ApiKey k"}}
        assert rendered.startswith("method: GET")
