"""Enumeration types for the policy server."""

from enum import StrEnum


class ToolName(StrEnum):
    """Available policy tools."""

    FETCH_POLICIES = "fetch_policies"
    RESOLVE_REFERENCES = "resolve_references"
    EXTRACT_REFERENCES = "extract_references"
    VALIDATE_REFERENCES = "validate_references"
    LIST_SOURCES = "list_sources"
    LIST_SECTIONS = "list_sections"
    REINDEX = "reindex"


class TransportType(StrEnum):
    """How the server talks to its client."""

    STDIO = "stdio"
    HTTP = "http"


class ValidationIssue(StrEnum):
    """Why a notation failed validation."""

    INVALID_FORMAT = "invalid_format"
    UNKNOWN_PREFIX = "unknown_prefix"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
