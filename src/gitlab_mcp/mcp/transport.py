"""MCP transport layer for stdio and HTTP connections."""

import logging
from typing import Any, Dict, Optional

from mcp.server.stdio import stdio_server
from mcp.types import CallToolRequest, ListToolsRequest

from .server import GitLabMCPServer

logger = logging.getLogger(__name__)

# Supported MCP protocol versions (newest first)
SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2024-11-05"]


def _error_response(message_id: Any, code: int, message: str) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 error response."""
    return {
        "jsonrpc": "2.0",
        "id": message_id,
        "error": {"code": code, "message": message},
    }


def _result_response(message_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": message_id, "result": result}


def _negotiate_protocol_version(client_version: str) -> Optional[str]:
    """Negotiate protocol version.

    Returns the latest server-supported version that is <= client_version,
    or None if no compatible version exists.
    """
    for version in SUPPORTED_PROTOCOL_VERSIONS:
        if version <= client_version:
            return version
    return None


async def run_stdio(mcp_server: GitLabMCPServer) -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Serving MCP over stdio")
        await mcp_server.server.run(
            read_stream,
            write_stream,
            mcp_server.server.create_initialization_options(),
        )


class MCPTransport:
    """JSON-RPC message handling for the HTTP endpoint."""

    def __init__(self, mcp_server: GitLabMCPServer):
        self.mcp_server = mcp_server

    async def handle_http_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Handle single HTTP message for MCP protocol.

        Returns None for notifications (JSON-RPC 2.0 notifications
        don't receive responses).
        """
        try:
            method = message.get("method")
            message_id = message.get("id")
            params = message.get("params") or {}

            logger.debug("Received message: method=%s, id=%s", method, message_id)

            if "id" not in message or message_id is None:
                return None

            if method == "initialize":
                client_protocol = params.get("protocolVersion", "2024-11-05")
                negotiated = _negotiate_protocol_version(client_protocol)

                if negotiated is None:
                    return _error_response(
                        message_id,
                        -32602,
                        f"Unsupported protocol version: {client_protocol}. "
                        f"Supported: {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}",
                    )

                settings = self.mcp_server.settings
                return _result_response(message_id, {
                    "protocolVersion": negotiated,
                    "capabilities": {"tools": {"listChanged": False}},
                    "serverInfo": {
                        "name": settings.app_name,
                        "version": settings.app_version,
                    },
                })

            if method == "ping":
                return _result_response(message_id, {})

            if method == "tools/list":
                return await self._list_tools(message_id, params)

            if method == "tools/call":
                return await self._call_tool(message_id, params)

            return _error_response(message_id, -32601, f"Method not found: {method}")

        except Exception as e:
            logger.exception("Failed to handle MCP message")
            return _error_response(message.get("id"), -32603, f"Internal error: {str(e)}")

    async def _list_tools(self, message_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        handler = self.mcp_server.server.request_handlers[ListToolsRequest]
        result = await handler(ListToolsRequest(method="tools/list", params=params or None))

        clean_tools = []
        for tool in result.root.tools:
            clean_tools.append({
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.inputSchema,
            })
        return _result_response(message_id, {"tools": clean_tools})

    async def _call_tool(self, message_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(params.get("name"), str):
            return _error_response(message_id, -32602, "Invalid params: tool name is required")

        handler = self.mcp_server.server.request_handlers[CallToolRequest]
        result = await handler(CallToolRequest(method="tools/call", params=params))
        call_result = result.root

        clean_content = [
            {"type": content.type, "text": content.text}
            for content in call_result.content
            if content.type == "text"
        ]
        return _result_response(message_id, {
            "content": clean_content,
            "isError": bool(call_result.isError),
        })
