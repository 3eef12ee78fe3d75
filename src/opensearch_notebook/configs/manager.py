import pathlib
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from opensearch_notebook.common.logger import get_logger
from opensearch_notebook.common.settings import Settings, settings as default_settings
from .connection import ConnectionConfig

logger = get_logger("config_manager")


class ConnectionFileConfig(BaseModel):
    """File-level schema for the connection YAML file."""
    version: int = Field(1, description="Schema version")
    connection: ConnectionConfig


class ConfigManager:
    """
    Supplies the base ConnectionConfig that every execution reads.

    The YAML file, when one is configured, takes precedence over the
    environment-backed settings.
    """

    def __init__(self, app_settings: Optional[Settings] = None):
        self.settings = app_settings or default_settings

    def load_connection_config(self, path: Optional[pathlib.Path] = None) -> ConnectionConfig:
        """
        Loads the base connection configuration.

        Args:
            path: Optional YAML path. Falls back to OPENSEARCH_CONFIG, then to
                  the OPENSEARCH_* environment variables.

        Raises:
            FileNotFoundError: The configured file does not exist.
            ValueError: The file is not valid YAML or fails schema validation.
        """
        target = path
        if target is None and self.settings.connection_config_path:
            target = pathlib.Path(self.settings.connection_config_path)

        if target is None:
            logger.debug("No connection file configured, using environment settings")
            return self.settings.to_connection_config()

        if not target.exists():
            raise FileNotFoundError(f"Connection config not found: {target}")

        try:
            raw = yaml.safe_load(target.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse YAML from {target}: {e}")

        try:
            file_config = ConnectionFileConfig.model_validate(raw)
        except ValidationError as e:
            raise ValueError(f"Connection Configuration Invalid: {e}")

        logger.info(f"Loaded connection config from {target}")
        return file_config.connection
