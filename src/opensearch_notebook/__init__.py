# opensearch_notebook package

from .execution.engine import QueryExecutionEngine
from .execution.connection import ConnectionManager
from .execution.transport import HttpxTransport, Transport
from .execution.schemas import QueryResult

# Also expose the parser entry points and core models
from .parsing import (
    QueryBlock,
    QueryMetadata,
    QueryType,
    parse_configuration_blocks,
    parse_document,
    parse_document_with_overrides,
)
from .configs.connection import ConnectionConfig, ConnectionOverrides
from .common.errors import TransportError, TransportErrorKind, NetworkErrorReason

__all__ = [
    "QueryExecutionEngine",
    "ConnectionManager",
    "HttpxTransport",
    "Transport",
    "QueryResult",
    "QueryBlock",
    "QueryMetadata",
    "QueryType",
    "parse_configuration_blocks",
    "parse_document",
    "parse_document_with_overrides",
    "ConnectionConfig",
    "ConnectionOverrides",
    "TransportError",
    "TransportErrorKind",
    "NetworkErrorReason",
]
