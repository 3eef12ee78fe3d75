import time

import pytest

from opensearch_notebook.configs.connection import AuthOverrides, AuthType, ConnectionOverrides
from opensearch_notebook.parsing import QueryMetadata, QueryType, validate_query
from opensearch_notebook.validation.pipeline import (
    API_RULES,
    COMMON_RULES,
    EXPLAIN_RULES,
    create_context,
    validate_explain_query,
    validate_query as validate_query_context,
    validate_query_block,
    validate_query_content,
)


class TestValidateQuery:

    def test_api_without_metadata_requires_method(self):
        result = validate_query("", QueryType.API)
        assert not result.valid
        assert "requires HTTP method" in result.error

    def test_api_with_method_only_requires_endpoint(self):
        result = validate_query("", QueryType.API, QueryMetadata(method="GET"))
        assert not result.valid
        assert "requires endpoint" in result.error

    def test_api_with_method_and_endpoint_passes(self):
        result = validate_query("", QueryType.API, QueryMetadata(method="GET", endpoint="/_cat/indices"))
        assert result.valid

    def test_invalid_method(self):
        result = validate_query("", "api", QueryMetadata(method="FETCH", endpoint="/x"))
        assert result.error == "Invalid HTTP method: FETCH. Must be one of: GET, POST, PUT, DELETE, HEAD, PATCH"

    def test_invalid_json_body(self):
        result = validate_query("{bad", QueryType.API, QueryMetadata(method="POST", endpoint="/idx/_search"))
        assert result.error == "Invalid JSON in request body"

    def test_invalid_bulk_line_is_quoted(self):
        body = '{"index": {"_index": "a"}}\n{broken line}\n'
        result = validate_query(body, QueryType.API, QueryMetadata(method="POST", endpoint="/_bulk"))
        assert result.error == "Invalid JSON in bulk request line: {broken line}"

    def test_get_body_not_validated(self):
        result = validate_query("{bad", QueryType.API, QueryMetadata(method="GET", endpoint="/idx/_search"))
        assert result.valid

    @pytest.mark.parametrize("query_type", [QueryType.SQL, QueryType.PPL])
    def test_empty_query(self, query_type):
        assert validate_query("   ", query_type).error == "Query cannot be empty"


class TestValidationPipeline:

    def test_rule_names_and_order(self):
        assert [r.name for r in COMMON_RULES] == ["connection-overrides", "query-syntax"]
        assert [r.name for r in API_RULES] == ["api-metadata"]
        assert [r.name for r in EXPLAIN_RULES] == ["explain-query-type"]

    def test_valid_query_returns_none(self):
        assert validate_query_block("SELECT 1", QueryType.SQL) is None

    def test_override_error_is_prefixed_and_runs_first(self):
        overrides = ConnectionOverrides(auth=AuthOverrides(type=AuthType.BASIC, username="u"))
        result = validate_query_block("", QueryType.SQL, connection_overrides=overrides)
        assert result is not None
        assert not result.success
        assert result.error == "Connection override error: Basic auth requires both username and password"
        assert result.request_info is None
        assert result.response_info is None

    def test_failure_carries_execution_time(self):
        context = create_context("", QueryType.SQL, start_time=time.time() - 0.2)
        result = validate_query_context(context)
        assert result.error == "Query cannot be empty"
        assert result.execution_time >= 150

    def test_explain_api_always_rejected(self):
        # even with an invalid override, the explain type check wins
        overrides = ConnectionOverrides(endpoint="nope")
        context = create_context("GET /", QueryType.API, QueryMetadata(method="GET", endpoint="/"), overrides)
        result = validate_explain_query(context)
        assert result.error == "Explain is only supported for SQL and PPL queries."

    def test_explain_sql_passes(self):
        assert validate_explain_query(create_context("SELECT 1", QueryType.SQL)) is None


class TestValidateQueryContent:

    @pytest.mark.parametrize(
        "query",
        ["DROP TABLE users", "delete from logs where 1 = 1", "TRUNCATE   TABLE t"],
    )
    def test_dangerous_patterns(self, query):
        result = validate_query_content(query, QueryType.SQL)
        assert result.error == "Query contains potentially dangerous operations"

    def test_dangerous_pattern_applies_to_every_type(self):
        assert not validate_query_content("source=x | eval a='DROP TABLE'", QueryType.PPL).valid

    def test_sql_prefix(self):
        assert validate_query_content("  select * from t", QueryType.SQL).valid
        result = validate_query_content("UPDATE t SET a = 1", QueryType.SQL)
        assert result.error == "SQL query must start with one of: SELECT, SHOW, DESCRIBE, EXPLAIN"

    def test_ppl_prefix(self):
        assert validate_query_content("source=logs | head", QueryType.PPL).valid
        assert validate_query_content("Search source=logs", QueryType.PPL).valid
        result = validate_query_content("fields a", QueryType.PPL)
        assert result.error == 'PPL query must start with "source=" or "search"'

    def test_empty(self):
        assert validate_query_content("", QueryType.API).error == "Query cannot be empty"
