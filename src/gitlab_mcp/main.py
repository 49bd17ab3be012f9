"""FastAPI application for the HTTP transport of GitLab MCP."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from .api.routes import router as mcp_router
from .config import Settings, get_settings
from .mcp.server import GitLabMCPServer
from .observability.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    mcp_server: Optional[GitLabMCPServer] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    ``mcp_server`` is built from settings on startup unless one is supplied.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        configure_logging(
            environment=settings.environment,
            log_level=settings.effective_log_level,
        )

        server = mcp_server or GitLabMCPServer.from_settings(settings)
        await server.validate_connection()
        app.state.mcp_server = server
        app.state.mcp_allowed_origins = settings.get_mcp_allowed_origins()

        logger.info("%s v%s started", settings.app_name, settings.app_version)
        logger.info("Environment: %s", settings.environment)

        yield

        logger.info("Shutting down %s...", settings.app_name)
        await server.aclose()
        logger.info("GitLab client closed")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="MCP server for GitLab issues, labels, epics and CI pipelines",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.include_router(mcp_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "gitlab_uri": settings.gitlab_uri,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/health/live")
    async def health_live():
        """Liveness probe: process is running."""
        return {"status": "alive"}

    if settings.enable_metrics:
        @app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from .observability.metrics import generate_metrics_text
            return PlainTextResponse(
                generate_metrics_text(),
                media_type="text/plain; version=0.0.4; charset=utf-8",
            )

    return app
