"""HTTP endpoint for MCP JSON-RPC messages."""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..mcp.transport import MCPTransport

logger = logging.getLogger(__name__)

router = APIRouter()


def _validate_origin(request: Request) -> Optional[Response]:
    """Validate Origin header if MCP_ALLOWED_ORIGINS is configured.

    Returns an error Response if origin is invalid, None if OK.
    """
    allowed = getattr(request.app.state, "mcp_allowed_origins", None)
    if allowed is None:
        return None

    origin = request.headers.get("origin")
    if origin and origin not in allowed:
        logger.warning("Rejected request from origin: %s", origin)
        return JSONResponse(
            status_code=403,
            content={"error": f"Origin not allowed: {origin}"},
        )
    return None


def _get_transport(request: Request) -> MCPTransport:
    mcp_server = getattr(request.app.state, "mcp_server", None)
    if mcp_server is None:
        raise HTTPException(status_code=503, detail="MCP server not initialized")
    return MCPTransport(mcp_server)


def _classify(message: Dict[str, Any]) -> str:
    if "result" in message or "error" in message:
        return "response"
    if message.get("method") is None:
        return "invalid"
    if message.get("id") is None:
        return "notification"
    return "request"


@router.post("/mcp")
async def mcp_http_post(request: Request):
    """HTTP POST endpoint for MCP protocol communication.

    - Notifications and responses (no reply expected): 202 Accepted
    - Requests: application/json with the JSON-RPC response
    - Arrays are handled as JSON-RPC batches
    """
    origin_error = _validate_origin(request)
    if origin_error:
        return origin_error

    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise HTTPException(status_code=400, detail="Content-Type must be application/json")

    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    transport = _get_transport(request)

    if isinstance(body, list):
        return await _handle_batch(transport, body)
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object or array")
    return await _handle_single_message(transport, body)


async def _handle_single_message(transport: MCPTransport, message: Dict[str, Any]) -> Response:
    kind = _classify(message)
    if kind in ("notification", "response"):
        return Response(status_code=202)
    if kind == "invalid":
        return JSONResponse(
            status_code=400,
            content={
                "jsonrpc": "2.0",
                "id": message.get("id"),
                "error": {
                    "code": -32600,
                    "message": "Invalid Request: message must be a request, response, or notification",
                },
            },
        )

    response = await transport.handle_http_message(message)
    if response is None:
        raise HTTPException(status_code=500, detail="Internal error: No response generated for request")
    return JSONResponse(content=jsonable_encoder(response), media_type="application/json")


async def _handle_batch(transport: MCPTransport, messages: List[Any]) -> Response:
    if not messages:
        return JSONResponse(
            status_code=400,
            content={
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": -32600, "message": "Invalid Request: empty batch"},
            },
        )

    responses = []
    for message in messages:
        if not isinstance(message, dict) or _classify(message) != "request":
            continue
        response = await transport.handle_http_message(message)
        if response is not None:
            responses.append(response)

    if not responses:
        return Response(status_code=202)
    return JSONResponse(content=jsonable_encoder(responses), media_type="application/json")
