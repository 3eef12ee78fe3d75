from __future__ import annotations

from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from opensearch_notebook.common.contracts import ValidationResult

MIN_TIMEOUT_MS = 1000
MAX_TIMEOUT_MS = 300000


class AuthType(str, Enum):
    NONE = "none"
    BASIC = "basic"
    APIKEY = "apikey"


class AuthConfig(BaseModel):
    """Authentication descriptor of the base connection."""

    type: AuthType = AuthType.NONE
    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class AuthOverrides(BaseModel):
    """Partial authentication settings coming from a configuration block."""

    type: Optional[AuthType] = None
    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ConnectionOverrides(BaseModel):
    """Document-scoped override layer parsed from one configuration block.

    Overrides never merge with each other: the nearest preceding block replaces
    the whole layer. Merging only happens against the base configuration.
    """

    endpoint: Optional[str] = None
    auth: Optional[AuthOverrides] = None
    timeout: Optional[int] = Field(default=None, description="Timeout in milliseconds.")

    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        auth_empty = self.auth is None or self.auth.is_empty()
        return self.endpoint is None and self.timeout is None and auth_empty


class ConnectionConfig(BaseModel):
    """Process-wide base connection, read-only during an execution."""

    endpoint: str = "http://localhost:9200"
    auth: AuthConfig = Field(default_factory=AuthConfig)
    timeout: int = Field(default=30000, description="Timeout in milliseconds.")

    model_config = ConfigDict(frozen=True)

    def with_overrides(self, overrides: Optional[ConnectionOverrides]) -> "ConnectionConfig":
        """Returns a new config where every present override field wins.

        Empty strings and zero count as absent, so a block cannot blank out a
        base credential.
        """
        if overrides is None:
            return self

        auth = overrides.auth or AuthOverrides()
        return ConnectionConfig(
            endpoint=overrides.endpoint or self.endpoint,
            auth=AuthConfig(
                type=auth.type or self.auth.type,
                username=auth.username or self.auth.username,
                password=auth.password or self.auth.password,
                api_key=auth.api_key or self.auth.api_key,
            ),
            timeout=overrides.timeout or self.timeout,
        )


def is_absolute_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def validate_connection_overrides(overrides: ConnectionOverrides) -> ValidationResult:
    """Checks an override layer for internal consistency.

    Purely structural: the endpoint is never contacted.
    """
    if overrides.endpoint and not is_absolute_url(overrides.endpoint):
        return ValidationResult.fail(f"Invalid endpoint URL: {overrides.endpoint}")

    auth = overrides.auth
    if auth is not None and auth.type == AuthType.BASIC:
        if not auth.username or not auth.password:
            return ValidationResult.fail("Basic auth requires both username and password")

    if auth is not None and auth.type == AuthType.APIKEY:
        if not auth.api_key:
            return ValidationResult.fail("API key auth requires api_key")

    if overrides.timeout and not MIN_TIMEOUT_MS <= overrides.timeout <= MAX_TIMEOUT_MS:
        return ValidationResult.fail(
            f"Timeout must be between {MIN_TIMEOUT_MS}ms and {MAX_TIMEOUT_MS}ms (5 minutes)"
        )

    return ValidationResult.ok()
