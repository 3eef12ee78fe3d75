from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from opensearch_notebook.configs.connection import ConnectionOverrides


class QueryType(str, Enum):
    SQL = "sql"
    PPL = "ppl"
    API = "api"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "opensearch-api":
                return cls.API
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class QueryMetadata(BaseModel):
    """Optional attributes attached to a query block via `-- Key: value` comments."""
    method: Optional[str] = None
    endpoint: Optional[str] = None
    description: Optional[str] = None
    timeout: Optional[int] = Field(default=None, description="Timeout in milliseconds.")
    connection: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Position(BaseModel):
    """Zero-based line/character location inside a document."""
    line: int
    character: int

    model_config = ConfigDict(frozen=True)

    def as_tuple(self):
        return (self.line, self.character)


class TextRange(BaseModel):
    start: Position
    end: Position
    start_offset: int
    end_offset: int

    model_config = ConfigDict(frozen=True)

    def contains(self, position: Position) -> bool:
        return self.start.as_tuple() <= position.as_tuple() <= self.end.as_tuple()


class ConfigurationBlock(BaseModel):
    """A fenced configuration block and the overrides it declares.

    `position` is the absolute offset of the fence opening, used to find the
    nearest preceding block of each query.
    """
    config: ConnectionOverrides
    range: TextRange
    position: int

    model_config = ConfigDict(frozen=True)


class QueryBlock(BaseModel):
    """An executable query extracted from a document."""
    query_type: QueryType
    content: str
    range: TextRange
    metadata: QueryMetadata = Field(default_factory=QueryMetadata)
    connection_overrides: Optional[ConnectionOverrides] = None

    model_config = ConfigDict(frozen=True)

    @property
    def description(self) -> Optional[str]:
        return self.metadata.description
