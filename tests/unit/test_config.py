"""Test configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from gitlab_mcp.config import Settings, get_settings


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self):
        with patch.dict(os.environ, {"ENVIRONMENT": "test"}, clear=True):
            settings = Settings()

        assert settings.gitlab_token is None
        assert settings.gitlab_uri == "https://gitlab.com/"
        assert settings.gitlab_validate_labels is True
        assert settings.gitlab_validate_labels_ancestors is True
        assert settings.gitlab_max_retries == 2
        assert settings.transport == "stdio"
        assert settings.enable_metrics is False
        assert settings.log_level == "INFO"

    def test_env_overrides(self):
        env = {
            "ENVIRONMENT": "test",
            "GITLAB_TOKEN": "glpat-123",
            "GITLAB_URI": "https://git.internal.example/",
            "GITLAB_VALIDATE_LABELS": "false",
            "GITLAB_VALIDATE_LABELS_ANCESTORS": "false",
            "GITLAB_MCP_TRANSPORT": "http",
            "GITLAB_MCP_ENABLE_METRICS": "true",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings()

        assert settings.gitlab_token == "glpat-123"
        assert settings.gitlab_uri == "https://git.internal.example/"
        assert settings.gitlab_validate_labels is False
        assert settings.gitlab_validate_labels_ancestors is False
        assert settings.transport == "http"
        assert settings.enable_metrics is True
        assert settings.log_level == "DEBUG"

    def test_api_url(self):
        assert Settings(gitlab_uri="https://gitlab.com/").api_url == "https://gitlab.com/api/v4"
        assert Settings(gitlab_uri="http://localhost:8080").api_url == "http://localhost:8080/api/v4"

    def test_invalid_uri_rejected(self):
        with pytest.raises(ValidationError):
            Settings(gitlab_uri="gitlab.com")

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_invalid_transport_rejected(self):
        with pytest.raises(ValidationError):
            Settings(transport="websocket")

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            Settings(gitlab_max_retries=-1)

    def test_effective_log_level(self):
        assert Settings(debug=True, log_level="ERROR").effective_log_level == "DEBUG"
        assert Settings(log_level="warning").effective_log_level == "WARNING"

    def test_allowed_origins(self):
        settings = Settings(mcp_allowed_origins="https://a.example, https://b.example,")
        assert settings.get_mcp_allowed_origins() == ["https://a.example", "https://b.example"]
        assert Settings().get_mcp_allowed_origins() is None

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
