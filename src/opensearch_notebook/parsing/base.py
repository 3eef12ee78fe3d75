from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional

from opensearch_notebook.common.logger import get_logger
from opensearch_notebook.configs.connection import AuthOverrides, AuthType, ConnectionOverrides
from .schemas import (
    ConfigurationBlock,
    Position,
    QueryBlock,
    QueryMetadata,
    QueryType,
    TextRange,
)

logger = get_logger("parser")

QUERY_LABELS = {"sql", "ppl", "api", "opensearch-api"}
CONFIG_LABELS = {"config", "connection", "opensearch-config", "opensearch-connection"}

HTTP_REQUEST_LINE_RE = re.compile(
    r"^(GET|POST|PUT|DELETE|HEAD|PATCH)\s+(\S+)(?:\s+HTTP/[\d.]+)?\s*$", re.IGNORECASE
)
METADATA_COMMENT_RE = re.compile(
    r"^--\s*(description|timeout|connection|method|endpoint):\s*(.+)$", re.IGNORECASE
)
CONFIG_VARIABLE_RE = re.compile(r"""^@(\w+)\s*=\s*['"]([^'"]*)['"]\s*$""")
TIMEOUT_RE = re.compile(r"^(\d+)(s|ms|m)?$", re.IGNORECASE)
CONFIG_KEYS = {"endpoint", "auth_type", "authtype", "username", "password", "api_key", "apikey", "timeout"}


@dataclass(frozen=True)
class RawBlock:
    """A fenced block as found in the source text, before interpretation."""
    label: str
    body: str
    start: int
    end: int


def position_at(text: str, offset: int) -> Position:
    """Converts an absolute offset into a zero-based line/character position."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return Position(line=line, character=offset - line_start)


def parse_timeout(value: str) -> Optional[int]:
    """Parses `30s`, `5000ms`, `2m` or a bare millisecond count.

    Returns None when the value does not match, so callers can ignore it.
    """
    match = TIMEOUT_RE.match(value.strip())
    if not match:
        return None

    amount = int(match.group(1))
    unit = (match.group(2) or "ms").lower()
    if unit == "s":
        return amount * 1000
    if unit == "m":
        return amount * 60 * 1000
    return amount


def is_metadata_comment(line: str) -> bool:
    return METADATA_COMMENT_RE.match(line.strip()) is not None


def _first_http_request_line(lines: List[str]) -> Optional[re.Match]:
    # Only comments and blank lines may precede the request line.
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        match = HTTP_REQUEST_LINE_RE.match(stripped)
        if match:
            return match
        if not is_metadata_comment(stripped):
            return None
    return None


def parse_metadata(content: str, query_type: Optional[QueryType] = None) -> QueryMetadata:
    """Collects `-- Key: value` metadata and, for api blocks, the HTTP request line.

    Metadata comments win over the request line.
    """
    lines = content.split("\n")
    values = {}

    if query_type == QueryType.API:
        request_line = _first_http_request_line(lines)
        if request_line:
            values["method"] = request_line.group(1).upper()
            values["endpoint"] = request_line.group(2)

    for line in lines:
        match = METADATA_COMMENT_RE.match(line.strip())
        if not match:
            continue
        key, value = match.group(1).lower(), match.group(2).strip()
        if key == "timeout":
            timeout = parse_timeout(value)
            if timeout:
                values["timeout"] = timeout
        elif key == "method":
            values["method"] = value.upper()
        else:
            values[key] = value

    return QueryMetadata(**values)


def extract_query_content(content: str, query_type: QueryType) -> str:
    """Returns the executable part of a block.

    Blank lines and metadata comments are dropped. For api blocks the leading
    HTTP request line is dropped as well.
    """
    lines = content.split("\n")
    skip_request_line = query_type == QueryType.API and _first_http_request_line(lines) is not None

    kept = []
    for line in lines:
        stripped = line.strip()
        if not stripped or is_metadata_comment(stripped):
            continue
        if skip_request_line and HTTP_REQUEST_LINE_RE.match(stripped):
            skip_request_line = False
            continue
        kept.append(line)

    return "\n".join(kept).strip()


def parse_connection_overrides(content: str) -> ConnectionOverrides:
    """Parses `@key = 'value'` lines of a configuration block.

    Unknown keys, unknown auth types and malformed timeouts are ignored.
    """
    values = {}
    auth = {}

    for line in content.split("\n"):
        match = CONFIG_VARIABLE_RE.match(line.strip())
        if not match:
            continue
        key, value = match.group(1).lower(), match.group(2)

        if key == "endpoint":
            values["endpoint"] = value
        elif key in ("auth_type", "authtype"):
            if value.lower() in {t.value for t in AuthType}:
                auth["type"] = AuthType(value.lower())
        elif key in ("username", "password"):
            auth[key] = value
        elif key in ("api_key", "apikey"):
            auth["api_key"] = value
        elif key == "timeout":
            timeout = parse_timeout(value)
            if timeout:
                values["timeout"] = timeout

    if auth:
        values["auth"] = AuthOverrides(**auth)
    return ConnectionOverrides(**values)


def has_configuration_keys(content: str) -> bool:
    """True when the block assigns at least one recognised key, valid or not."""
    for line in content.split("\n"):
        match = CONFIG_VARIABLE_RE.match(line.strip())
        if match and match.group(1).lower() in CONFIG_KEYS:
            return True
    return False


class BaseParser(ABC):
    """
    Shared interpretation of fenced blocks.

    Subclasses only know how to find blocks in their markup language; the
    query/config semantics live here.
    """

    @abstractmethod
    def iter_blocks(self, text: str) -> Iterable[RawBlock]:
        raise NotImplementedError

    def _range(self, text: str, block: RawBlock) -> TextRange:
        return TextRange(
            start=position_at(text, block.start),
            end=position_at(text, block.end),
            start_offset=block.start,
            end_offset=block.end,
        )

    def parse_document(self, text: str) -> List[QueryBlock]:
        """Extracts query blocks in document order, without overrides."""
        blocks = []
        for raw in self.iter_blocks(text):
            if raw.label not in QUERY_LABELS:
                continue
            query_type = QueryType(raw.label)
            content = extract_query_content(raw.body, query_type)
            metadata = parse_metadata(raw.body, query_type)

            keep_empty = query_type == QueryType.API and (metadata.method or metadata.endpoint)
            if not content and not keep_empty:
                logger.debug(f"Skipping empty {query_type.value} block at offset {raw.start}")
                continue

            blocks.append(
                QueryBlock(
                    query_type=query_type,
                    content=content,
                    range=self._range(text, raw),
                    metadata=metadata,
                )
            )
        return blocks

    def parse_configuration_blocks(self, text: str) -> List[ConfigurationBlock]:
        blocks = []
        for raw in self.iter_blocks(text):
            if raw.label not in CONFIG_LABELS:
                continue
            config = parse_connection_overrides(raw.body)
            if config.is_empty() and not has_configuration_keys(raw.body):
                logger.debug(f"Skipping configuration block without settings at offset {raw.start}")
                continue
            blocks.append(ConfigurationBlock(config=config, range=self._range(text, raw), position=raw.start))
        return blocks

    def parse_document_with_overrides(self, text: str) -> List[QueryBlock]:
        """Attaches to each query block the nearest preceding configuration block.

        Configuration blocks are never merged with each other: a later block
        replaces an earlier one entirely.
        """
        config_blocks = self.parse_configuration_blocks(text)
        resolved = []
        for block in self.parse_document(text):
            overrides = nearest_preceding_config(config_blocks, block.range.start_offset)
            resolved.append(block.model_copy(update={"connection_overrides": overrides}))
        return resolved

    def find_query_block_at_position(self, text: str, position: Position) -> Optional[QueryBlock]:
        for block in self.parse_document_with_overrides(text):
            if block.range.contains(position):
                return block
        return None


def nearest_preceding_config(
    config_blocks: List[ConfigurationBlock], offset: int
) -> Optional[ConnectionOverrides]:
    nearest = None
    for config_block in config_blocks:
        if config_block.position < offset and (nearest is None or config_block.position > nearest.position):
            nearest = config_block
    if nearest is None:
        return None
    return nearest.config.model_copy(deep=True)
