from .connection import (
    AuthConfig,
    AuthOverrides,
    AuthType,
    ConnectionConfig,
    ConnectionOverrides,
    validate_connection_overrides,
)
from .manager import ConfigManager

__all__ = [
    "AuthConfig",
    "AuthOverrides",
    "AuthType",
    "ConnectionConfig",
    "ConnectionOverrides",
    "validate_connection_overrides",
    "ConfigManager",
]
