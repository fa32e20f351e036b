"""Tool handlers for the policy engine.

This package contains tool handlers organized by concern:
- fetch: Section retrieval with chunked output (fetch_policies)
- references: Locating, extracting and validating references
  (resolve_references, extract_references, validate_references)
- sources: Index inspection (list_sources, list_sections, reindex)

Each handler is a standalone async function that takes:
- params: dict[str, Any] - Tool parameters from MCP call
- ctx: HandlerContext - Document set config and index state

And returns:
- ToolResult with data, text, input_tokens, output_tokens
"""

from .base import HandlerContext, HandlerFunc, count_tokens, parse_params
from .fetch import continuation_notice, handle_fetch
from .references import (
    extract_references,
    handle_extract_references,
    handle_resolve_references,
    handle_validate_references,
    validate_references,
)
from .sources import (
    handle_list_indexed,
    handle_list_sources,
    handle_reindex,
    list_indexed,
)

__all__ = [
    # Base
    "HandlerContext",
    "HandlerFunc",
    "count_tokens",
    "parse_params",
    # Fetch
    "handle_fetch",
    "continuation_notice",
    # Reference handlers
    "handle_resolve_references",
    "handle_extract_references",
    "handle_validate_references",
    "extract_references",
    "validate_references",
    # Source handlers
    "handle_list_sources",
    "handle_list_indexed",
    "handle_reindex",
    "list_indexed",
]
