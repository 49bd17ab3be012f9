"""Command line entry point: ``gitlab-mcp``."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from . import __version__
from .config import Settings, get_settings
from .gitlab.exceptions import GitLabError
from .mcp.server import GitLabMCPServer
from .mcp.transport import run_stdio
from .observability.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitlab-mcp",
        description="MCP server for GitLab issues, labels, epics and CI pipelines",
    )
    parser.add_argument("-v", "--version", action="version", version=f"gitlab-mcp {__version__}")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default=None,
        help="Transport to serve (default: stdio, or GITLAB_MCP_TRANSPORT)",
    )
    parser.add_argument("--host", default=None, help="Bind address for the http transport")
    parser.add_argument("--port", type=int, default=None, help="Port for the http transport")
    return parser


async def _serve_stdio(settings: Settings) -> None:
    server = GitLabMCPServer.from_settings(settings)
    try:
        await server.validate_connection()
        await run_stdio(server)
    finally:
        await server.aclose()


def _serve_http(settings: Settings, host: str, port: int) -> None:
    import uvicorn

    from .main import create_app

    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level="debug" if settings.debug else "info",
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(environment=settings.environment, log_level=settings.effective_log_level)
    transport = args.transport or settings.transport

    try:
        if transport == "http":
            _serve_http(settings, args.host or settings.host, args.port or settings.port)
        else:
            asyncio.run(_serve_stdio(settings))
    except GitLabError as e:
        logger.error("Failed to start GitLab MCP server: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
