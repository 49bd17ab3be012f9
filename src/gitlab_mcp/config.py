"""Configuration management for GitLab MCP."""

import os
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env" if os.getenv("ENVIRONMENT") != "test" else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = "GitLab MCP"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # HTTP transport
    host: str = "127.0.0.1"
    port: int = 8000
    transport: Literal["stdio", "http"] = Field(
        default="stdio",
        validation_alias=AliasChoices("GITLAB_MCP_TRANSPORT", "transport"),
    )

    # GitLab
    gitlab_token: Optional[str] = Field(
        default=None,
        description="Personal or project access token sent as PRIVATE-TOKEN",
    )
    gitlab_uri: str = Field(
        default="https://gitlab.com/",
        description="GitLab instance URI; the REST API lives under /api/v4",
    )
    gitlab_validate_labels: bool = Field(
        default=True,
        description="Reject label names that do not exist in the project hierarchy",
    )
    gitlab_validate_labels_ancestors: bool = Field(
        default=True,
        description="Also accept labels defined on ancestor groups when validating",
    )
    gitlab_request_timeout: float = 30.0
    gitlab_max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for 429/5xx and connection errors inside the HTTP client",
    )

    # MCP
    mcp_allowed_origins: Optional[str] = Field(
        default=None,
        description="Comma-separated list of allowed origins for MCP requests",
    )

    # Feature flags
    enable_metrics: bool = Field(
        default=False,
        validation_alias=AliasChoices("GITLAB_MCP_ENABLE_METRICS", "enable_metrics"),
    )

    @field_validator("gitlab_uri")
    @classmethod
    def validate_gitlab_uri(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("GITLAB_URI must start with http:// or https://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @property
    def api_url(self) -> str:
        """Return the API v4 base URL for the configured GitLab instance."""
        return f"{self.gitlab_uri.rstrip('/')}/api/v4"

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    def get_mcp_allowed_origins(self) -> Optional[List[str]]:
        """Parse MCP allowed origins from config."""
        if self.mcp_allowed_origins:
            return [o.strip() for o in self.mcp_allowed_origins.split(",") if o.strip()]
        return None


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
