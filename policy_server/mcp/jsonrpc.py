"""JSON-RPC 2.0 helpers for MCP transport.

This module provides utility functions for creating JSON-RPC 2.0
responses and errors, and for mapping policy engine exceptions onto
error codes.

See: https://www.jsonrpc.org/specification
"""

from typing import Any

from ..engine.core.errors import InvalidParamsError, PolicyServerError

JSONRPC_VERSION = "2.0"

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000  # Domain errors from the policy engine


def jsonrpc_response(id: Any, result: Any) -> dict:
    """Create a JSON-RPC 2.0 success response.

    Args:
        id: Request ID (must match the request)
        result: The result payload
    """
    return {"jsonrpc": JSONRPC_VERSION, "id": id, "result": result}


def jsonrpc_error(id: Any, code: int, message: str, data: Any = None) -> dict:
    """Create a JSON-RPC 2.0 error response.

    Args:
        id: Request ID (None for parse errors and invalid requests)
        code: One of the error code constants above
        message: Human-readable error message
        data: Optional structured detail
    """
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": id, "error": error}


def error_code_for(error: Exception) -> int:
    """Pick the JSON-RPC code for an exception raised by a tool call."""
    if isinstance(error, InvalidParamsError):
        return INVALID_PARAMS
    if isinstance(error, PolicyServerError):
        return SERVER_ERROR
    return INTERNAL_ERROR


def error_data_for(error: Exception) -> dict | None:
    """Structured detail for domain errors, None for anything else."""
    if not isinstance(error, PolicyServerError):
        return None
    data: dict[str, Any] = {"type": type(error).__name__}
    for attr in ("notation", "chain", "files", "prefix", "token"):
        value = getattr(error, attr, None)
        if value:
            data[attr] = value
    return data
