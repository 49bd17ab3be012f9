"""MCP Server implementation for GitLab."""

import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server import Server

from ..config import Settings
from ..gitlab.base import RemoteResourceClient
from ..gitlab.client import GitLabClient
from ..gitlab.exceptions import GitLabError
from ..observability.logging import clear_log_context, set_log_context
from ..observability.metrics import record_tool_call
from ..services.errors import ServiceError
from .tools import GitLabTools

logger = logging.getLogger(__name__)


class ToolExecutionError(Exception):
    """Raised from the call_tool handler; the SDK turns it into an isError result."""

    pass


class GitLabMCPServer:
    """MCP server exposing GitLab tools over one GitLab client."""

    def __init__(self, settings: Settings, client: RemoteResourceClient):
        self.settings = settings
        self.client = client
        self.tools = GitLabTools(client, settings)
        self.server = Server(settings.app_name)
        self._setup_handlers()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitLabMCPServer":
        return cls(settings, GitLabClient.from_settings(settings))

    async def validate_connection(self) -> None:
        """Fail fast if the token cannot read the current user."""
        user = await self.client.current_user()
        logger.info("Connected to GitLab at %s as %s", self.settings.gitlab_uri, user.username)

    async def aclose(self) -> None:
        aclose = getattr(self.client, "aclose", None)
        if aclose is not None:
            await aclose()

    def _setup_handlers(self):
        """Set up MCP protocol handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            """List available GitLab tools."""
            tools = self.tools.definitions()
            logger.debug("Returning %d tools", len(tools))
            return tools

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Optional[Dict[str, Any]] = None
        ) -> List[types.TextContent]:
            """Handle tool calls."""
            result = await self.call_tool(name, arguments or {})
            return [types.TextContent(type="text", text=result)]

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> str:
        """Run one tool; failures are logged, counted and re-raised as ToolExecutionError."""
        if not self.tools.has_tool(name):
            raise ToolExecutionError(f"Unknown tool: {name}")

        project_path = arguments.get("project_path") or arguments.get("group_path")
        set_log_context(
            tool_name=name,
            project_path=project_path if isinstance(project_path, str) else None,
            request_id=uuid.uuid4().hex[:12],
        )
        logger.info("Tool call: %s", name)

        start = time.perf_counter()
        try:
            result = await self.tools.execute(name, arguments)
        except (ServiceError, GitLabError) as e:
            record_tool_call(name, "error", time.perf_counter() - start)
            logger.warning("Tool %s failed: %s", name, e)
            raise ToolExecutionError(f"Error executing tool '{name}': {e}") from e
        except Exception as e:
            record_tool_call(name, "error", time.perf_counter() - start)
            logger.exception("Tool %s raised an unexpected error", name)
            raise ToolExecutionError(f"Error executing tool '{name}': {e}") from e
        finally:
            clear_log_context()

        record_tool_call(name, "success", time.perf_counter() - start)
        return result
