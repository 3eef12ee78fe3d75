from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from opensearch_notebook.common.contracts import ValidationResult
from opensearch_notebook.parsing.schemas import QueryType
from .schemas import QueryResult


class ResponseSummary(BaseModel):
    type: str
    record_count: int
    has_data: bool


def _is_tabular(response: Any) -> bool:
    return isinstance(response, dict) and "schema" in response and "datarows" in response


def _is_search(response: Any) -> bool:
    return isinstance(response, dict) and isinstance(response.get("hits"), dict)


def _hits_total(hits: Dict[str, Any]) -> int:
    total = hits.get("total")
    if isinstance(total, dict) and total.get("value"):
        return total["value"]
    return len(hits.get("hits") or [])


def _collect_field_names(source: Dict[str, Any], prefix: str, columns: Dict[str, None]) -> None:
    for key, value in source.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            _collect_field_names(value, full_key, columns)
        else:
            columns[full_key] = None


def extract_columns_from_hits(hits: List[Dict[str, Any]]) -> List[str]:
    """Column names of a search result, taken from the first hit.

    Nested `_source` objects are flattened with dotted names.
    """
    if not hits:
        return []
    columns = dict.fromkeys(["_index", "_id", "_score"])
    source = hits[0].get("_source")
    if isinstance(source, dict):
        _collect_field_names(source, "", columns)
    return list(columns)


def process_query_response(
    response: Any,
    execution_time: int,
    query_type: Optional[QueryType] = None,
    executed_at: Optional[datetime] = None,
) -> QueryResult:
    """
    Normalizes a successful payload into a QueryResult.

    Args:
        response: Decoded response body.
        execution_time: Duration in milliseconds.
        query_type: Type of the executed block; api payloads get their own row counting.
        executed_at: Start of the execution, defaults to now.

    Returns:
        QueryResult: A successful result with data, columns and row count where derivable.
    """
    data: Any = None
    row_count: Optional[int] = None
    columns: Optional[List[str]] = None

    if _is_tabular(response):
        columns = [column.get("name") for column in response["schema"]]
        data = [dict(zip(columns, row)) for row in response["datarows"]]
        row_count = len(response["datarows"])
    elif _is_search(response):
        hits = response["hits"].get("hits") or []
        data = hits
        row_count = _hits_total(response["hits"])
        columns = extract_columns_from_hits(hits)
    elif query_type == QueryType.API:
        data = response
        if isinstance(response, dict) and "acknowledged" in response:
            row_count = 1 if response["acknowledged"] else 0
        elif isinstance(response, dict) and response.get("_id"):
            row_count = 1
        elif isinstance(response, list):
            row_count = len(response)
    else:
        data = response
        row_count = len(response) if isinstance(response, list) else None

    return QueryResult(
        success=True,
        data=data,
        execution_time=execution_time,
        executed_at=executed_at or datetime.now(timezone.utc),
        row_count=row_count,
        columns=columns,
        raw_response=response,
    )


def validate_response(response: Any) -> ValidationResult:
    if response is None:
        return ValidationResult.fail("Response is null or undefined")
    if isinstance(response, dict) and response.get("error"):
        error = response["error"]
        if isinstance(error, dict):
            return ValidationResult.fail(f"{error.get('type')}: {error.get('reason')}")
        return ValidationResult.fail(str(error))
    return ValidationResult.ok()


def extract_response_summary(response: Any) -> ResponseSummary:
    if _is_tabular(response):
        count = len(response["datarows"])
        return ResponseSummary(type="sql", record_count=count, has_data=count > 0)
    if _is_search(response):
        hits = response["hits"].get("hits") or []
        return ResponseSummary(type="search", record_count=_hits_total(response["hits"]), has_data=bool(hits))
    if isinstance(response, list):
        return ResponseSummary(type="array", record_count=len(response), has_data=bool(response))
    if isinstance(response, dict):
        return ResponseSummary(type="object", record_count=1, has_data=True)
    return ResponseSummary(type="unknown", record_count=0, has_data=False)
