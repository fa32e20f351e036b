"""Pydantic models for the policy server request/response schemas.

This module re-exports all models. Import from submodules directly for
narrower imports:

    from policy_server.models.enums import ToolName
    from policy_server.models.policies import FetchResult
"""

# ============ ENUMS ============
from .enums import ToolName, TransportType, ValidationIssue

# ============ POLICY RESULT MODELS ============
from .policies import (
    DuplicateDefinition,
    ExtractReferencesResult,
    FetchResult,
    IndexedFile,
    IndexedSectionsResult,
    ReferenceCheck,
    ReindexResult,
    ResolveReferencesResult,
    SourceInfo,
    SourcesResult,
    ValidationReport,
)

# ============ REQUEST MODELS ============
from .requests import (
    ExtractReferencesParams,
    FetchParams,
    ListSectionsParams,
    MCPRequest,
    ResolveReferencesParams,
    ValidateReferencesParams,
)

# ============ RESPONSE MODELS ============
from .responses import HealthResponse, MCPResponse, ToolResult, UsageInfo

__all__ = [
    # Enums
    "ToolName",
    "TransportType",
    "ValidationIssue",
    # Request models
    "MCPRequest",
    "FetchParams",
    "ResolveReferencesParams",
    "ExtractReferencesParams",
    "ValidateReferencesParams",
    "ListSectionsParams",
    # Response models
    "ToolResult",
    "MCPResponse",
    "HealthResponse",
    "UsageInfo",
    # Policy results
    "FetchResult",
    "ResolveReferencesResult",
    "ExtractReferencesResult",
    "DuplicateDefinition",
    "ReferenceCheck",
    "ValidationReport",
    "IndexedFile",
    "IndexedSectionsResult",
    "SourceInfo",
    "SourcesResult",
    "ReindexResult",
]
