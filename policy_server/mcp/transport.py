"""MCP JSON-RPC dispatcher and Streamable HTTP endpoint.

The dispatcher is transport-neutral: the HTTP router below and the stdio
loop in mcp.stdio both hand it decoded JSON and send back whatever it
returns (None means nothing to send).
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from .. import __version__
from ..api.deps import get_engine, sanitize_error_message
from ..policy_engine import PolicyEngine
from .jsonrpc import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    error_code_for,
    error_data_for,
    jsonrpc_error,
    jsonrpc_response,
)
from .prompts import PROMPT_DEFINITIONS, SERVER_INSTRUCTIONS, get_prompt
from .tool_defs import TOOL_DEFINITIONS

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "policy-server"

router = APIRouter(tags=["MCP Transport"])


async def handle_request(body: Any, engine: PolicyEngine) -> dict | None:
    """Handle a single JSON-RPC request object."""
    if not isinstance(body, dict) or body.get("jsonrpc") != "2.0" or "method" not in body:
        request_id = body.get("id") if isinstance(body, dict) else None
        return jsonrpc_error(request_id, INVALID_REQUEST, "Invalid Request")

    method = body["method"]
    params = body.get("params") or {}

    if "id" not in body:  # Notification - no response
        logger.debug(f"Notification received: {method}")
        return None
    id = body["id"]

    if not isinstance(params, dict):
        return jsonrpc_error(id, INVALID_PARAMS, "params must be an object")

    if method == "initialize":
        return jsonrpc_response(
            id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
                "capabilities": {"tools": {}, "prompts": {}},
                "instructions": SERVER_INSTRUCTIONS,
            },
        )
    elif method == "ping":
        return jsonrpc_response(id, {})
    elif method == "tools/list":
        return jsonrpc_response(id, {"tools": TOOL_DEFINITIONS})
    elif method == "tools/call":
        return await _handle_call_tool(id, params, engine)
    elif method == "prompts/list":
        return jsonrpc_response(id, {"prompts": PROMPT_DEFINITIONS})
    elif method == "prompts/get":
        return _handle_get_prompt(id, params, engine)
    else:
        return jsonrpc_error(id, METHOD_NOT_FOUND, f"Method not found: {method}")


async def _handle_call_tool(id: Any, params: dict, engine: PolicyEngine) -> dict:
    """Handle MCP tools/call request."""
    tool_name = params.get("name")
    arguments = params.get("arguments") or {}
    if not isinstance(tool_name, str) or not isinstance(arguments, dict):
        return jsonrpc_error(id, INVALID_PARAMS, "tools/call requires 'name' and object 'arguments'")

    try:
        result = await engine.execute(tool_name, arguments)
    except Exception as e:
        code = error_code_for(e)
        logger.info(f"Tool {tool_name} failed: {e}")
        return jsonrpc_error(id, code, sanitize_error_message(e), error_data_for(e))

    content = [{"type": "text", "text": result.text}]
    if result.notice:
        content.append({"type": "text", "text": result.notice})
    return jsonrpc_response(id, {"content": content, "structuredContent": result.data})


def _handle_get_prompt(id: Any, params: dict, engine: PolicyEngine) -> dict:
    """Handle MCP prompts/get request."""
    name = params.get("name")
    try:
        index = engine.state.ensure_fresh(engine.config)
    except Exception as e:
        logger.info(f"Prompt {name} failed: {e}")
        return jsonrpc_error(id, error_code_for(e), sanitize_error_message(e), error_data_for(e))

    prompt = get_prompt(name, index) if isinstance(name, str) else None
    if prompt is None:
        return jsonrpc_error(id, INVALID_PARAMS, f"Unknown prompt: {name}")
    return jsonrpc_response(id, prompt)


async def handle_payload(payload: Any, engine: PolicyEngine) -> dict | list | None:
    """Handle a decoded JSON-RPC payload, single or batch."""
    if isinstance(payload, list):
        if not payload:
            return jsonrpc_error(None, INVALID_REQUEST, "Invalid Request: empty batch")
        responses = []
        for req in payload:
            resp = await handle_request(req, engine)
            if resp:  # Skip notifications
                responses.append(resp)
        return responses or None
    return await handle_request(payload, engine)


async def handle_raw_message(raw: str | bytes, engine: PolicyEngine) -> dict | list | None:
    """Decode one JSON-RPC message and handle it."""
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return jsonrpc_error(None, PARSE_ERROR, "Parse error")
    return await handle_payload(payload, engine)


@router.post("/mcp")
async def mcp_transport_endpoint(
    request: Request,
    engine: PolicyEngine = Depends(get_engine),
):
    """
    MCP Streamable HTTP endpoint (JSON-RPC format).

    Config example (Claude Code):
    ```json
    {"mcpServers": {"policy-server": {"type": "http", "url": "http://127.0.0.1:8000/mcp"}}}
    ```
    """
    response = await handle_raw_message(await request.body(), engine)
    if response is None:
        return Response(status_code=202)
    if isinstance(response, dict) and response.get("error", {}).get("code") == PARSE_ERROR:
        return JSONResponse(response, status_code=400)
    return JSONResponse(response)
