"""Configuration management for articlesync.

All configuration comes from environment variables. Uses pydantic-settings
so missing credentials or an unknown environment name fail at startup
instead of on the first sync request.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Sync configuration loaded from environment variables."""

    cloudkit_container: str = Field(alias="CLOUDKIT_CONTAINER")
    cloudkit_api_token: SecretStr = Field(alias="CLOUDKIT_API_TOKEN")
    cloudkit_web_auth_token: SecretStr = Field(alias="CLOUDKIT_WEB_AUTH_TOKEN")
    cloudkit_environment: Literal["development", "production"] = Field(
        default="development", alias="CLOUDKIT_ENVIRONMENT"
    )
    cloudkit_api_url: str = Field(
        default="https://api.apple-cloudkit.com", alias="CLOUDKIT_API_URL"
    )
    request_timeout: float = Field(default=30.0, alias="CLOUDKIT_REQUEST_TIMEOUT")
    server_host: str = Field(default="127.0.0.1", alias="MCP_SERVER_HOST")
    server_port: int = Field(default=8000, alias="MCP_SERVER_PORT")

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


def load_config() -> Config:
    """Load and validate config from environment. Raises on missing required vars."""
    return Config()
