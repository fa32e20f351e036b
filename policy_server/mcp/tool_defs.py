"""MCP Tool Definitions for the policy server.

This module contains all tool definitions returned by the tools/list method.
Each tool definition includes the schema for its input parameters.
"""

from ..models import ToolName

SECTION_NOTATION_HELP = (
    'Section notations with § prefix (e.g. ["§APP.7", "§SYS.5", "§APP.4.1-3"]). '
    "Prefixes may carry hyphenated extensions (APP-HOOK, SYS-TPL); ranges are "
    "allowed on the last component."
)


TOOL_DEFINITIONS: list[dict] = [
    # ============ Retrieval Tools ============
    {
        "name": ToolName.FETCH_POLICIES.value,
        "description": (
            "Fetch one or more policy sections with automatic recursive § reference "
            "resolution. Supports range notation (§APP.4.1-3) and multiple mixed sections. "
            "Large responses are chunked; follow the continuation token to get the rest."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "sections": {
                    "type": "array",
                    "items": {"type": "string"},
                    "minItems": 1,
                    "description": SECTION_NOTATION_HELP,
                },
                "continuation": {
                    "type": "string",
                    "description": (
                        'Continuation token from a previous chunked response (e.g. "chunk:1"). '
                        "Omit for the first request."
                    ),
                },
            },
            "required": ["sections"],
        },
    },
    {
        "name": ToolName.RESOLVE_REFERENCES.value,
        "description": (
            "Resolve section locations with automatic recursive § reference resolution. "
            'Returns a map of policy file to sorted notations (e.g. {"policy-app.md": '
            '["§APP.7", "§APP.8"]}). Like fetch_policies but without content.'
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "sections": {
                    "type": "array",
                    "items": {"type": "string"},
                    "minItems": 1,
                    "description": SECTION_NOTATION_HELP,
                },
            },
            "required": ["sections"],
        },
    },
    # ============ Reference Inspection Tools ============
    {
        "name": ToolName.EXTRACT_REFERENCES.value,
        "description": (
            "Extract all § references from a file or a piece of text. Returns sorted, "
            "range-expanded notations. References inside code spans are ignored."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path of the file to scan (relative paths use the policy base directory)",
                },
                "text": {"type": "string", "description": "Text to scan instead of a file"},
            },
        },
    },
    {
        "name": ToolName.VALIDATE_REFERENCES.value,
        "description": (
            "Validate that policy section references exist and are unique. Reports invalid "
            "notations, unknown prefixes, missing sections, and every duplicate definition."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "references": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Section notations to validate (e.g. ["§APP.7", "§SYS.5"])',
                },
            },
            "required": ["references"],
        },
    },
    # ============ Index Tools ============
    {
        "name": ToolName.LIST_SOURCES.value,
        "description": "List all policy documentation files and their section prefixes",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": ToolName.LIST_SECTIONS.value,
        "description": "List every indexed section notation, grouped by file",
        "inputSchema": {
            "type": "object",
            "properties": {
                "prefix": {
                    "type": "string",
                    "description": "Only list sections for this base prefix (e.g. APP)",
                },
            },
        },
    },
    {
        "name": ToolName.REINDEX.value,
        "description": "Rebuild the section index now and report build statistics",
        "inputSchema": {"type": "object", "properties": {}},
    },
]
