"""Request models (Pydantic *Params classes) for the policy server."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from .enums import ToolName

# ============ CORE REQUEST MODELS ============


class MCPRequest(BaseModel):
    """MCP tool execution request."""

    tool: ToolName = Field(..., description="The policy tool to execute")
    params: dict[str, Any] = Field(default_factory=dict, description="Tool parameters")


# ============ TOOL PARAMS ============


class FetchParams(BaseModel):
    """Parameters for fetch_policies tool."""

    sections: list[str] = Field(
        ...,
        min_length=1,
        description="Section notations to fetch, ranges allowed (e.g. ['§APP.7', '§SYS.5.1-3'])",
    )
    continuation: str | None = Field(
        default=None,
        description="Continuation token from a previous chunked response ('chunk:N')",
    )


class ResolveReferencesParams(BaseModel):
    """Parameters for resolve_references tool."""

    sections: list[str] = Field(
        ..., min_length=1, description="Section notations to locate, ranges allowed"
    )


class ExtractReferencesParams(BaseModel):
    """Parameters for extract_references tool. Exactly one source is required."""

    text: str | None = Field(default=None, description="Text to scan for § references")
    file_path: str | None = Field(
        default=None,
        description="File to scan, absolute or relative to the policy base directory",
    )

    @model_validator(mode="after")
    def _one_source(self) -> "ExtractReferencesParams":
        if (self.text is None) == (self.file_path is None):
            raise ValueError("Provide exactly one of 'text' or 'file_path'")
        return self


class ValidateReferencesParams(BaseModel):
    """Parameters for validate_references tool."""

    references: list[str] = Field(
        ..., description="Section notations to check, ranges allowed"
    )


class ListSectionsParams(BaseModel):
    """Parameters for list_sections tool."""

    prefix: str | None = Field(
        default=None, description="Only list sections with this base prefix (e.g. 'APP')"
    )
