from .schemas import (
    ConfigurationBlock,
    Position,
    QueryBlock,
    QueryMetadata,
    QueryType,
    TextRange,
)
from .base import parse_timeout
from .document import (
    find_query_block_at_position,
    format_query,
    get_query_preview,
    parse_configuration_blocks,
    parse_document,
    parse_document_with_overrides,
    resolve_configuration_for_query_at_position,
    validate_connection_overrides,
    validate_query,
)

__all__ = [
    "ConfigurationBlock",
    "Position",
    "QueryBlock",
    "QueryMetadata",
    "QueryType",
    "TextRange",
    "parse_timeout",
    "find_query_block_at_position",
    "format_query",
    "get_query_preview",
    "parse_configuration_blocks",
    "parse_document",
    "parse_document_with_overrides",
    "resolve_configuration_for_query_at_position",
    "validate_connection_overrides",
    "validate_query",
]
