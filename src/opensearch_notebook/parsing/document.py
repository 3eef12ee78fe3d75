"""
Language-aware entry points of the document parser.

`language` is either "markdown" (the default) or "restructuredtext"; any other
value is parsed as Markdown.
"""
import json
import re
from typing import List, Optional, Union

from opensearch_notebook.common.contracts import ValidationResult
from opensearch_notebook.common.json_utils import validate_bulk_json
from opensearch_notebook.configs.connection import ConnectionOverrides, validate_connection_overrides
from .base import BaseParser, nearest_preceding_config
from .markdown import MarkdownParser
from .rst import RstParser
from .schemas import ConfigurationBlock, Position, QueryBlock, QueryMetadata, QueryType

VALID_HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "HEAD", "PATCH")

RST_LANGUAGES = {"restructuredtext", "rst"}


def get_parser(language: str = "markdown") -> BaseParser:
    if (language or "").lower() in RST_LANGUAGES:
        return RstParser()
    return MarkdownParser()


def parse_document(text: str, language: str = "markdown") -> List[QueryBlock]:
    return get_parser(language).parse_document(text)


def parse_configuration_blocks(text: str, language: str = "markdown") -> List[ConfigurationBlock]:
    return get_parser(language).parse_configuration_blocks(text)


def parse_document_with_overrides(text: str, language: str = "markdown") -> List[QueryBlock]:
    return get_parser(language).parse_document_with_overrides(text)


def find_query_block_at_position(
    text: str, position: Position, language: str = "markdown"
) -> Optional[QueryBlock]:
    return get_parser(language).find_query_block_at_position(text, position)


def resolve_configuration_for_query_at_position(
    text: str, position: Position, language: str = "markdown"
) -> Optional[ConnectionOverrides]:
    """Returns the overrides in force at `position` (nearest preceding config block)."""
    config_blocks = parse_configuration_blocks(text, language)
    lines = text.split("\n")
    offset = sum(len(line) + 1 for line in lines[: position.line]) + position.character
    return nearest_preceding_config(config_blocks, offset)


def validate_query(
    query: str,
    query_type: Union[QueryType, str],
    metadata: Optional[QueryMetadata] = None,
) -> ValidationResult:
    """
    Structural check of a query block before execution.

    Args:
        query: Executable content of the block.
        query_type: sql, ppl or api.
        metadata: Block metadata; api blocks need method and endpoint from it.

    Returns:
        ValidationResult: The first failure found, or a valid result.
    """
    query_type = QueryType(query_type)
    content = (query or "").strip()

    if query_type != QueryType.API:
        if not content:
            return ValidationResult.fail("Query cannot be empty")
        return ValidationResult.ok()

    method = metadata.method if metadata else None
    endpoint = metadata.endpoint if metadata else None
    if not method:
        return ValidationResult.fail(
            'OpenSearch API operation requires HTTP method. Use either "METHOD /endpoint" '
            'format or "-- Method: GET/POST/PUT/DELETE" metadata comment.'
        )
    if not endpoint:
        return ValidationResult.fail(
            'OpenSearch API operation requires endpoint. Use either "METHOD /endpoint" '
            'format or "-- Endpoint: /index/_doc" metadata comment.'
        )
    if method.upper() not in VALID_HTTP_METHODS:
        return ValidationResult.fail(
            f"Invalid HTTP method: {method}. Must be one of: {', '.join(VALID_HTTP_METHODS)}"
        )

    if method.upper() in ("POST", "PUT") and content:
        if "/_bulk" in endpoint:
            return validate_bulk_json(content)
        try:
            json.loads(content)
        except ValueError:
            return ValidationResult.fail("Invalid JSON in request body")

    return ValidationResult.ok()


def get_query_preview(content: str, max_length: int = 50) -> str:
    """Collapses whitespace and truncates with an ellipsis."""
    clean = re.sub(r"\s+", " ", content).strip()
    if len(clean) <= max_length:
        return clean
    return clean[: max_length - 3] + "..."


def format_query(content: str, query_type: Union[QueryType, str]) -> str:
    """Light formatting: trims sql/ppl lines, pretty-prints api JSON bodies."""
    query_type = QueryType(query_type)
    if query_type == QueryType.API:
        try:
            return json.dumps(json.loads(content), indent=2)
        except ValueError:
            return content
    return "\n".join(line.strip() for line in content.split("\n") if line.strip())


__all__ = [
    "get_parser",
    "parse_document",
    "parse_configuration_blocks",
    "parse_document_with_overrides",
    "find_query_block_at_position",
    "resolve_configuration_for_query_at_position",
    "validate_query",
    "validate_connection_overrides",
    "get_query_preview",
    "format_query",
]
