"""Result models for the policy tools."""

from pydantic import BaseModel, Field

from .enums import ValidationIssue


class FetchResult(BaseModel):
    """Result of fetch_policies tool (one chunk)."""

    content: str = Field(..., description="Section text for this chunk")
    sections: list[str] = Field(..., description="Requested notations, as given")
    chunk_index: int = Field(default=0, ge=0, description="Index of this chunk")
    total_chunks: int = Field(default=1, ge=1, description="Number of chunks in the full result")
    has_more: bool = Field(default=False, description="More chunks follow")
    continuation: str | None = Field(default=None, description="Token for the next chunk")


class ResolveReferencesResult(BaseModel):
    """Result of resolve_references tool."""

    locations: dict[str, list[str]] = Field(
        ..., description="Relative file -> sorted notations it provides"
    )
    section_count: int = Field(..., ge=0)


class ExtractReferencesResult(BaseModel):
    """Result of extract_references tool."""

    references: list[str] = Field(..., description="Sorted, range-expanded notations")
    count: int = Field(..., ge=0)


class DuplicateDefinition(BaseModel):
    """A notation defined in more than one file. Reported, never raised."""

    notation: str = Field(..., description="Duplicated notation")
    files: list[str] = Field(..., description="Every file that defines it")


class ReferenceCheck(BaseModel):
    """Validation outcome for one notation."""

    notation: str = Field(..., description="Checked notation (ranges already expanded)")
    valid: bool = Field(...)
    file: str | None = Field(default=None, description="Owning file when valid")
    issue: ValidationIssue | None = Field(default=None)
    message: str | None = Field(default=None, description="Error detail when invalid")


class ValidationReport(BaseModel):
    """Result of validate_references tool."""

    valid: bool = Field(..., description="True when every reference resolves")
    checked: int = Field(..., ge=0, description="Notations checked after range expansion")
    invalid: int = Field(..., ge=0, description="Notations that failed")
    details: list[ReferenceCheck] = Field(default_factory=list)
    duplicates: list[DuplicateDefinition] = Field(
        default_factory=list, description="All cross-file duplicates in the index"
    )


class IndexedFile(BaseModel):
    """Sections indexed for one file."""

    file: str = Field(..., description="File path relative to the base directory")
    sections: list[str] = Field(..., description="Sorted notations defined in the file")


class IndexedSectionsResult(BaseModel):
    """Result of list_sections tool."""

    files: list[IndexedFile] = Field(default_factory=list)
    section_count: int = Field(default=0, ge=0)
    duplicates: list[DuplicateDefinition] = Field(default_factory=list)


class SourceInfo(BaseModel):
    """One configured policy file."""

    file: str = Field(..., description="File path relative to the base directory")
    prefixes: list[str] = Field(..., description="Base prefixes the file defines")
    section_count: int = Field(..., ge=0)
    indexed: bool = Field(..., description="False when the last build skipped the file")


class SourcesResult(BaseModel):
    """Result of list_sources tool."""

    base_dir: str = Field(...)
    sources: list[SourceInfo] = Field(default_factory=list)
    prefixes: list[str] = Field(default_factory=list, description="All known base prefixes")


class ReindexResult(BaseModel):
    """Result of reindex tool."""

    file_count: int = Field(..., ge=0)
    section_count: int = Field(..., ge=0)
    duplicate_count: int = Field(..., ge=0)
    unchanged: int = Field(default=0, ge=0)
    reparsed: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    build_ms: int = Field(default=0, ge=0)
