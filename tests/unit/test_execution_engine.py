import asyncio
from unittest.mock import AsyncMock, MagicMock

from opensearch_notebook.common.errors import NetworkErrorReason, TransportError, TransportErrorKind
from opensearch_notebook.configs.connection import AuthOverrides, AuthType, ConnectionOverrides
from opensearch_notebook.execution.engine import QueryExecutionEngine
from opensearch_notebook.execution.schemas import TransportResponse
from opensearch_notebook.parsing import QueryType, parse_document_with_overrides

SQL_RESPONSE = {
    "schema": [{"name": "name", "type": "keyword"}, {"name": "age", "type": "integer"}],
    "datarows": [["alice", 30], ["bob", 41]],
    "total": 2,
    "size": 2,
    "status": 200,
}


def ok(data, status=200):
    return TransportResponse(status=status, status_text="OK", headers={}, data=data)


class TestQueryExecutionEngine:

    def test_success_attaches_diagnostics(self, engine, fake_transport):
        fake_transport.queue(ok(SQL_RESPONSE))
        result = asyncio.run(engine.execute_query("SELECT name, age FROM people", QueryType.SQL))

        assert result.success
        assert result.data == [{"name": "alice", "age": 30}, {"name": "bob", "age": 41}]
        assert result.columns == ["name", "age"]
        assert result.row_count == 2
        assert result.raw_response == SQL_RESPONSE
        assert result.request_info.endpoint == "/_plugins/_sql"
        assert result.response_info.status == 200
        assert result.connection_info.auth_type == "basic"
        assert result.execution_time >= 0
        assert result.executed_at.tzinfo is not None

    def test_validation_failure_performs_no_io(self):
        manager = MagicMock()
        manager.execute_query = AsyncMock()
        manager.execute_api_operation = AsyncMock()
        engine = QueryExecutionEngine(manager)

        result = asyncio.run(engine.execute_query("", QueryType.API))

        assert not result.success
        assert "requires HTTP method" in result.error
        assert result.request_info is None
        manager.execute_query.assert_not_called()
        manager.execute_api_operation.assert_not_called()

    def test_invalid_override_short_circuits(self, engine, fake_transport):
        overrides = ConnectionOverrides(auth=AuthOverrides(type=AuthType.BASIC, username="bob"))
        result = asyncio.run(engine.execute_query("SELECT 1", QueryType.SQL, overrides=overrides))
        assert result.error == "Connection override error: Basic auth requires both username and password"
        assert fake_transport.requests == []

    def test_explain_on_api_rejected(self, engine, fake_transport):
        document = "```opensearch-api\nGET /_cat/indices\n```\n"
        block = parse_document_with_overrides(document)[0]
        result = asyncio.run(engine.execute_explain_query_from_block(block))
        assert not result.success
        assert result.error == "Explain is only supported for SQL and PPL queries."
        assert fake_transport.requests == []

    def test_unknown_query_type_returns_failure(self, engine, fake_transport):
        result = asyncio.run(engine.execute_query("SELECT 1", "graphql"))
        assert not result.success
        assert result.error == "Unsupported query type: graphql"
        assert result.executed_at.tzinfo is not None
        assert fake_transport.requests == []

        explained = asyncio.run(engine.execute_explain_query("SELECT 1", "graphql"))
        assert explained.error == "Unsupported query type: graphql"

    def test_string_query_types_accepted(self, engine, fake_transport):
        fake_transport.queue(ok(SQL_RESPONSE))
        result = asyncio.run(engine.execute_query("SELECT 1", "sql"))
        assert result.success

    def test_missing_query_returns_failure(self, engine, fake_transport):
        result = asyncio.run(engine.execute_query(None, QueryType.SQL))
        assert not result.success
        assert result.error
        assert fake_transport.requests == []

    def test_explain_sql(self, engine, fake_transport):
        fake_transport.queue(ok({"root": {"name": "ProjectOperator"}}))
        result = asyncio.run(engine.execute_explain_query("SELECT 1", QueryType.SQL))
        assert result.success
        assert fake_transport.requests[0].url.endswith("/_plugins/_sql/_explain")
        assert result.data == {"root": {"name": "ProjectOperator"}}

    def test_http_400_parsing_exception(self, engine, fake_transport):
        error_body = {"error": {"type": "parsing_exception", "reason": "Invalid JSON"}, "status": 400}
        fake_transport.queue(
            TransportError(
                TransportErrorKind.HTTP_RESPONSE,
                "Request failed with status code 400",
                response=TransportResponse(status=400, status_text="Bad Request", headers={}, data=error_body),
            )
        )
        result = asyncio.run(engine.execute_query("SELECT * FROM", QueryType.SQL))

        assert not result.success
        assert "parsing_exception" in result.error
        assert result.request_info is not None
        assert result.request_info.endpoint == "/_plugins/_sql"
        assert result.response_info.status == 400
        assert result.raw_response == error_body

    def test_network_error_normalized(self, engine, fake_transport):
        fake_transport.queue(
            TransportError(TransportErrorKind.NETWORK, "refused", reason=NetworkErrorReason.CONNECTION_REFUSED)
        )
        result = asyncio.run(engine.execute_query("SELECT 1", QueryType.SQL))

        assert not result.success
        assert result.error == "Network error: Unable to connect to OpenSearch cluster"
        assert result.request_info.endpoint == "/_plugins/_sql"
        assert result.response_info is None
        assert result.connection_info.endpoint == "http://localhost:9200"
        details = result.raw_response["error"]["details"]
        assert details["error_type"] == "Network/Connection Error"
        assert details["code"] == "ECONNREFUSED"

    def test_unexpected_exception_never_raises(self, engine, fake_transport):
        fake_transport.queue(RuntimeError("kaboom"))
        result = asyncio.run(engine.execute_query("SELECT 1", QueryType.SQL))
        assert not result.success
        assert result.error == "kaboom"
        assert result.raw_response["error"]["details"]["error_type"] == "Request Setup Error"

    def test_api_block_with_bulk_body(self, engine, fake_transport):
        document = (
            "```config\n@endpoint = 'http://bulk-host:9200'\n```\n\n"
            "```opensearch-api\n"
            "-- Timeout: 5s\n"
            "POST /_bulk\n"
            '{"index": {"_index": "logs"}}\n'
            '{"msg": "hello"}\n'
            "```\n"
        )
        block = parse_document_with_overrides(document)[0]
        fake_transport.queue(ok({"took": 3, "errors": False, "items": [{}]}))

        result = asyncio.run(engine.execute_query_from_block(block))

        request = fake_transport.requests[0]
        assert result.success
        assert request.url == "http://bulk-host:9200/_bulk"
        assert request.raw_body
        assert request.data.endswith("}\n")
        assert request.timeout == 5000
        assert result.connection_info.endpoint == "http://bulk-host:9200"

    def test_api_acknowledged_row_count(self, engine, fake_transport):
        fake_transport.queue(ok({"acknowledged": True, "index": "my-index"}))
        result = asyncio.run(
            engine.execute_query(
                '{"settings": {}}',
                QueryType.API,
                metadata=parse_document_with_overrides("```api\nPUT /my-index\n{}\n```\n")[0].metadata,
            )
        )
        assert result.success
        assert result.row_count == 1

    def test_concurrent_executions(self, engine, fake_transport):
        fake_transport.queue(ok(SQL_RESPONSE))
        fake_transport.queue(ok(SQL_RESPONSE))

        async def run_both():
            return await asyncio.gather(
                engine.execute_query("SELECT 1", QueryType.SQL),
                engine.execute_query("source=people", QueryType.PPL),
            )

        results = asyncio.run(run_both())
        assert all(r.success for r in results)
        assert len(fake_transport.requests) == 2
