"""MCP (Model Context Protocol) transport module.

This module contains components for the MCP transports:
- Tool and prompt definitions for tools/list and prompts/list
- JSON-RPC 2.0 helpers
- Dispatcher and HTTP router (import from .transport directly)
- stdio loop (import from .stdio directly)
"""

from .jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    error_code_for,
    jsonrpc_error,
    jsonrpc_response,
)
from .prompts import PROMPT_DEFINITIONS
from .tool_defs import TOOL_DEFINITIONS

__all__ = [
    # Tool and prompt definitions
    "TOOL_DEFINITIONS",
    "PROMPT_DEFINITIONS",
    # JSON-RPC helpers
    "jsonrpc_response",
    "jsonrpc_error",
    "error_code_for",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "SERVER_ERROR",
]
