"""Tests for the gitlab-mcp command line entry point."""

from unittest.mock import AsyncMock, patch

import pytest

from gitlab_mcp import cli
from gitlab_mcp.gitlab.exceptions import GitLabAuthError, GitLabConfigurationError


class TestParser:

    def test_defaults(self):
        args = cli.build_parser().parse_args([])

        assert args.transport is None
        assert args.host is None
        assert args.port is None

    def test_http_options(self):
        args = cli.build_parser().parse_args(["--transport", "http", "--port", "9000"])

        assert args.transport == "http"
        assert args.port == 9000

    def test_unknown_transport_rejected(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--transport", "sse"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "gitlab-mcp" in capsys.readouterr().out


class TestMain:

    @pytest.fixture(autouse=True)
    def _no_logging_setup(self):
        with patch.object(cli, "configure_logging"):
            yield

    def test_stdio_is_default(self):
        with patch.object(cli, "_serve_stdio", new_callable=AsyncMock) as serve:
            assert cli.main([]) == 0

        serve.assert_awaited_once()

    def test_http_transport(self):
        with patch.object(cli, "_serve_http") as serve:
            assert cli.main(["--transport", "http", "--host", "0.0.0.0", "--port", "9000"]) == 0

        _, host, port = serve.call_args.args
        assert (host, port) == ("0.0.0.0", 9000)

    def test_missing_token_exits_nonzero(self):
        error = GitLabConfigurationError("GITLAB_TOKEN environment variable is required")
        with patch.object(cli, "_serve_stdio", new_callable=AsyncMock, side_effect=error):
            assert cli.main([]) == 1

    def test_bad_credentials_exit_nonzero(self):
        error = GitLabAuthError("Authentication failed: HTTP 401", status_code=401)
        with patch.object(cli, "_serve_stdio", new_callable=AsyncMock, side_effect=error):
            assert cli.main([]) == 1

    def test_invalid_configuration(self, monkeypatch, capsys):
        monkeypatch.setenv("GITLAB_URI", "not-a-url")

        assert cli.main([]) == 1
        assert "Invalid configuration" in capsys.readouterr().err
