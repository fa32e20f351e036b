"""Transport response models for the policy server."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ToolName


class UsageInfo(BaseModel):
    """Size and timing of one tool call."""

    input_tokens: int = Field(default=0, ge=0, description="Estimated tokens in the request")
    output_tokens: int = Field(default=0, ge=0, description="Estimated tokens in the response")
    latency_ms: int = Field(default=0, ge=0, description="Handler latency in milliseconds")


class ToolResult(BaseModel):
    """Result returned by every tool handler."""

    data: dict[str, Any] = Field(default_factory=dict, description="Structured tool output")
    text: str = Field(default="", description="Text rendering for MCP content blocks")
    notice: str | None = Field(
        default=None,
        description="Extra content block, e.g. continuation instructions for chunked output",
    )
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)


class MCPResponse(BaseModel):
    """MCP tool execution response for the REST endpoint."""

    success: bool = Field(..., description="Whether the tool call succeeded")
    tool: ToolName | None = Field(default=None, description="The tool that was called")
    result: Any = Field(default=None, description="Tool output")
    error: str | None = Field(default=None, description="Error message if failed")
    usage: UsageInfo = Field(default_factory=UsageInfo)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="'healthy' or 'stale'")
    version: str = Field(..., description="Server version")
    files: int = Field(..., ge=0, description="Configured policy files")
    sections: int = Field(..., ge=0, description="Indexed sections")
    duplicates: int = Field(..., ge=0, description="Sections defined in more than one file")
    stale: bool = Field(..., description="A rebuild is pending")
    last_indexed: datetime = Field(..., description="When the index was last built")
