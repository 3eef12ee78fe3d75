"""
Small result contracts shared by the parser, the validators and the JSON helpers.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ValidationResult(BaseModel):
    """Outcome of a structural check. `error` is only set when `valid` is False."""

    valid: bool = Field(..., description="Whether the check passed.")
    error: Optional[str] = Field(default=None, description="Human-readable failure reason.")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


class JsonParseResult(BaseModel):
    """Outcome of parsing a JSON document without raising."""

    valid: bool
    data: Optional[Any] = None
    error: Optional[str] = None
