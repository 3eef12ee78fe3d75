from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from opensearch_notebook.common.contracts import ValidationResult
from opensearch_notebook.common.logger import get_logger
from opensearch_notebook.configs.connection import ConnectionOverrides, validate_connection_overrides
from opensearch_notebook.execution.schemas import QueryResult
from opensearch_notebook.parsing.document import VALID_HTTP_METHODS, validate_query as validate_query_syntax
from opensearch_notebook.parsing.schemas import QueryMetadata, QueryType

logger = get_logger("validation_pipeline")

DANGEROUS_PATTERNS = (
    re.compile(r"DROP\s+TABLE", re.IGNORECASE),
    re.compile(r"DELETE\s+FROM.*WHERE\s+1\s*=\s*1", re.IGNORECASE | re.DOTALL),
    re.compile(r"TRUNCATE\s+TABLE", re.IGNORECASE),
)
SQL_PREFIXES = ("SELECT", "SHOW", "DESCRIBE", "EXPLAIN")


class ValidationContext(BaseModel):
    """Input of every validation rule."""
    query: str
    query_type: QueryType
    metadata: Optional[QueryMetadata] = None
    connection_overrides: Optional[ConnectionOverrides] = None
    timeout: Optional[int] = None
    start_time: float

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class ValidationRule:
    name: str
    validate: Callable[[ValidationContext], ValidationResult]


def check_connection_overrides(context: ValidationContext) -> ValidationResult:
    if context.connection_overrides is None:
        return ValidationResult.ok()
    result = validate_connection_overrides(context.connection_overrides)
    if result.valid:
        return result
    return ValidationResult.fail(f"Connection override error: {result.error}")


def check_query_syntax(context: ValidationContext) -> ValidationResult:
    return validate_query_syntax(context.query, context.query_type, context.metadata)


def check_api_metadata(context: ValidationContext) -> ValidationResult:
    if context.query_type != QueryType.API:
        return ValidationResult.ok()

    metadata = context.metadata
    if metadata is None or not metadata.method or not metadata.endpoint:
        return ValidationResult.fail("API operations require method and endpoint metadata")

    if metadata.method.upper() not in VALID_HTTP_METHODS:
        return ValidationResult.fail(
            f"Invalid HTTP method: {metadata.method}. Must be one of: {', '.join(VALID_HTTP_METHODS)}"
        )

    if not metadata.endpoint.strip():
        return ValidationResult.fail("API endpoint must be a non-empty string")

    return ValidationResult.ok()


def check_explain_query_type(context: ValidationContext) -> ValidationResult:
    if context.query_type not in (QueryType.SQL, QueryType.PPL):
        return ValidationResult.fail("Explain is only supported for SQL and PPL queries.")
    return ValidationResult.ok()


COMMON_RULES = (
    ValidationRule("connection-overrides", check_connection_overrides),
    ValidationRule("query-syntax", check_query_syntax),
)
API_RULES = (ValidationRule("api-metadata", check_api_metadata),)
EXPLAIN_RULES = (ValidationRule("explain-query-type", check_explain_query_type),)


def create_context(
    query: str,
    query_type: Union[QueryType, str],
    metadata: Optional[QueryMetadata] = None,
    connection_overrides: Optional[ConnectionOverrides] = None,
    timeout: Optional[int] = None,
    start_time: Optional[float] = None,
) -> ValidationContext:
    return ValidationContext(
        query=query,
        query_type=QueryType(query_type),
        metadata=metadata,
        connection_overrides=connection_overrides,
        timeout=timeout,
        start_time=time.time() if start_time is None else start_time,
    )


def run_rules(context: ValidationContext, rules: Sequence[ValidationRule]) -> Optional[QueryResult]:
    """Runs rules in order and stops at the first failure.

    Returns:
        Optional[QueryResult]: A failed result, or None when every rule passed.
    """
    for rule in rules:
        result = rule.validate(context)
        if result.valid:
            continue

        logger.info(f"Validation rule '{rule.name}' failed: {result.error}")
        return QueryResult(
            success=False,
            error=result.error or f"Validation failed: {rule.name}",
            execution_time=int((time.time() - context.start_time) * 1000),
            executed_at=datetime.fromtimestamp(context.start_time, tz=timezone.utc),
        )
    return None


def validate_query(context: ValidationContext) -> Optional[QueryResult]:
    rules = list(COMMON_RULES)
    if context.query_type == QueryType.API:
        rules.extend(API_RULES)
    return run_rules(context, rules)


def validate_explain_query(context: ValidationContext) -> Optional[QueryResult]:
    # The type check runs first so api blocks always get the explain error.
    return run_rules(context, [*EXPLAIN_RULES, *COMMON_RULES])


def validate_query_block(
    query: str,
    query_type: Union[QueryType, str],
    metadata: Optional[QueryMetadata] = None,
    connection_overrides: Optional[ConnectionOverrides] = None,
) -> Optional[QueryResult]:
    return validate_query(create_context(query, query_type, metadata, connection_overrides))


def validate_query_content(query: str, query_type: Union[QueryType, str]) -> ValidationResult:
    """
    Advisory content checks for callers that want them.

    The denylist is a heuristic, not a security boundary; execution does not
    run these checks.
    """
    if not query or not query.strip():
        return ValidationResult.fail("Query cannot be empty")

    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(query):
            return ValidationResult.fail("Query contains potentially dangerous operations")

    query_type = QueryType(query_type)
    stripped = query.strip()
    if query_type == QueryType.SQL:
        if not stripped.upper().startswith(SQL_PREFIXES):
            return ValidationResult.fail(f"SQL query must start with one of: {', '.join(SQL_PREFIXES)}")
    elif query_type == QueryType.PPL:
        if not (stripped.startswith("source=") or stripped.lower().startswith("search")):
            return ValidationResult.fail('PPL query must start with "source=" or "search"')

    return ValidationResult.ok()


class ValidationPipeline:
    """Bundles the rule sets so the engine can take an alternative pipeline."""

    def validate_query(self, context: ValidationContext) -> Optional[QueryResult]:
        return validate_query(context)

    def validate_explain_query(self, context: ValidationContext) -> Optional[QueryResult]:
        return validate_explain_query(context)
