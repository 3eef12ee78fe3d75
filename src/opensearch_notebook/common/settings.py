from typing import TYPE_CHECKING, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env into os.environ
load_dotenv()

if TYPE_CHECKING:
    from opensearch_notebook.configs.connection import ConnectionConfig


class Settings(BaseSettings):
    """Application configuration settings backed by environment variables.

    These values form the base connection configuration. Configuration blocks
    inside a document only ever override them for the queries that follow.
    """

    endpoint: str = Field(
        default="http://localhost:9200",
        validation_alias="OPENSEARCH_ENDPOINT",
        description="Base URL of the OpenSearch cluster."
    )
    auth_type: str = Field(
        default="none",
        validation_alias="OPENSEARCH_AUTH_TYPE",
        description="Authentication scheme: 'none', 'basic' or 'apikey'."
    )
    username: Optional[str] = Field(default=None, validation_alias="OPENSEARCH_USERNAME")
    password: Optional[str] = Field(default=None, validation_alias="OPENSEARCH_PASSWORD")
    api_key: Optional[str] = Field(default=None, validation_alias="OPENSEARCH_API_KEY")
    timeout_ms: int = Field(
        default=30000,
        validation_alias="OPENSEARCH_TIMEOUT_MS",
        description="Request timeout in milliseconds."
    )

    connection_config_path: Optional[str] = Field(
        default=None,
        validation_alias="OPENSEARCH_CONFIG",
        description="Optional YAML file holding the base connection configuration."
    )

    log_level: str = Field(default="WARNING", validation_alias="LOG_LEVEL")
    log_json: bool = Field(
        default=False,
        validation_alias="LOG_JSON",
        description="Emit structured JSON log lines instead of plain text."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def configure_env(self, env: str) -> None:
        """Loads environment-specific variables and reloads settings."""
        if not env:
            return

        load_dotenv(f".env.{env}", override=True)
        new_settings = Settings()
        self.__dict__.update(new_settings.__dict__)

    def to_connection_config(self) -> "ConnectionConfig":
        """Builds the base ConnectionConfig from the current values."""
        # deferred: the configs package imports this module through ConfigManager
        from opensearch_notebook.configs.connection import AuthConfig, ConnectionConfig

        return ConnectionConfig(
            endpoint=self.endpoint,
            auth=AuthConfig(
                type=self.auth_type.lower(),
                username=self.username,
                password=self.password,
                api_key=self.api_key,
            ),
            timeout=self.timeout_ms,
        )


settings = Settings()
