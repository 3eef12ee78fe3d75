from __future__ import annotations

import json
from typing import Any, List

from opensearch_notebook.common.contracts import JsonParseResult, ValidationResult

BULK_LINE_ERROR = "Invalid JSON in bulk request line: {line}"


def is_valid_json(text: str) -> bool:
    """Checks whether a string holds exactly one JSON document."""
    try:
        json.loads(text)
    except (TypeError, ValueError):
        return False
    return True


def validate_and_parse(text: str) -> JsonParseResult:
    """Parses a JSON string and reports the decoder error instead of raising."""
    try:
        return JsonParseResult(valid=True, data=json.loads(text))
    except (TypeError, ValueError) as exc:
        return JsonParseResult(valid=False, error=str(exc))


def iter_ndjson_lines(content: str) -> List[str]:
    """Returns the stripped, non-blank lines of a newline-delimited JSON body."""
    return [line.strip() for line in content.split("\n") if line.strip()]


def validate_bulk_json(content: str) -> ValidationResult:
    """Validates an NDJSON body line by line.

    Blank lines are skipped. The first line that does not parse is quoted
    verbatim (stripped) in the error so the user can locate it.
    """
    for line in iter_ndjson_lines(content):
        if not is_valid_json(line):
            return ValidationResult.fail(BULK_LINE_ERROR.format(line=line))
    return ValidationResult.ok()


def parse_ndjson(content: str) -> List[Any]:
    """Parses every non-blank line of an NDJSON body.

    Raises:
        ValueError: naming the first line that is not valid JSON.
    """
    documents = []
    for line in iter_ndjson_lines(content):
        try:
            documents.append(json.loads(line))
        except ValueError as exc:
            raise ValueError(BULK_LINE_ERROR.format(line=line)) from exc
    return documents


def format_json(text: str, indent: int = 2) -> str:
    """Pretty-prints a JSON string; input that is not JSON is returned as-is."""
    try:
        return json.dumps(json.loads(text), indent=indent)
    except (TypeError, ValueError):
        return text
