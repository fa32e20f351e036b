"""Reference tool handlers.

Handles:
- resolve_references: Locate sections (with dependencies) without content
- extract_references: List the § references found in text or a file
- validate_references: Check notations resolve to exactly one definition
"""

import json
import logging
import os
from typing import Any

from ...models import (
    DuplicateDefinition,
    ExtractReferencesParams,
    ExtractReferencesResult,
    ReferenceCheck,
    ResolveReferencesParams,
    ResolveReferencesResult,
    ToolName,
    ToolResult,
    ValidateReferencesParams,
    ValidationIssue,
    ValidationReport,
)
from ..core.document import SectionIndex
from ..core.errors import (
    DuplicateSectionError,
    InvalidNotationError,
    InvalidParamsError,
    SectionNotFoundError,
    UnknownPrefixError,
)
from ..core.markdown import find_embedded_references
from ..core.notation import expand_range, sort_sections
from ..indexing.builder import read_policy_file
from ..resolver import resolve_section, resolve_section_locations
from .base import HandlerContext, count_tokens, parse_params

logger = logging.getLogger(__name__)


def duplicate_report(index: SectionIndex) -> list[DuplicateDefinition]:
    """All cross-file duplicates in the index, sorted by notation."""
    return [
        DuplicateDefinition(
            notation=notation,
            files=[index.display_path(f) for f in index.duplicates[notation]],
        )
        for notation in sort_sections(index.duplicates)
    ]


async def handle_resolve_references(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> ToolResult:
    """Map requested sections and their dependencies to owning files.

    Args:
        params: Dict containing:
            - sections: Notations to locate (ranges allowed)

    Returns:
        ToolResult with {file: [notations]}, files sorted
    """
    request = parse_params(ResolveReferencesParams, params, ToolName.RESOLVE_REFERENCES)
    locations = resolve_section_locations(request.sections, ctx.fresh_index())

    result = ResolveReferencesResult(
        locations=locations,
        section_count=sum(len(notations) for notations in locations.values()),
    )
    text = json.dumps(locations, indent=2, ensure_ascii=False)
    return ToolResult(
        data=result.model_dump(),
        text=text,
        input_tokens=count_tokens(" ".join(request.sections)),
        output_tokens=count_tokens(text),
    )


def _read_source(file_path: str, base_dir: str) -> str:
    path = file_path if os.path.isabs(file_path) else os.path.join(base_dir, file_path)
    try:
        return read_policy_file(path)
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidParamsError(f"Cannot read file_path '{file_path}': {e}") from e


def extract_references(text: str) -> list[str]:
    """Find references in text, expand ranges, dedupe and sort.

    Malformed ranges are skipped rather than reported.
    """
    expanded: set[str] = set()
    for reference in find_embedded_references(text):
        try:
            expanded.update(expand_range(reference))
        except InvalidNotationError as e:
            logger.debug(f"Skipping malformed reference {reference}: {e}")
    return sort_sections(expanded)


async def handle_extract_references(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> ToolResult:
    """List the § references found in a piece of text or a file.

    Args:
        params: Dict containing exactly one of:
            - text: Text to scan
            - file_path: File to scan (relative paths use the base directory)

    Returns:
        ToolResult with ExtractReferencesResult
    """
    request = parse_params(ExtractReferencesParams, params, ToolName.EXTRACT_REFERENCES)
    if request.file_path is not None:
        text = _read_source(request.file_path, ctx.config.base_dir)
    else:
        text = request.text or ""

    references = extract_references(text)
    result = ExtractReferencesResult(references=references, count=len(references))
    output = json.dumps(references, indent=2, ensure_ascii=False)
    return ToolResult(
        data=result.model_dump(),
        text=output,
        input_tokens=count_tokens(text),
        output_tokens=count_tokens(output),
    )


def _check(notation: str, index: SectionIndex) -> ReferenceCheck:
    try:
        file = resolve_section(notation, index)
    except DuplicateSectionError as e:
        return ReferenceCheck(
            notation=notation, valid=False, issue=ValidationIssue.DUPLICATE, message=str(e)
        )
    except UnknownPrefixError as e:
        return ReferenceCheck(
            notation=notation, valid=False, issue=ValidationIssue.UNKNOWN_PREFIX, message=str(e)
        )
    except SectionNotFoundError as e:
        return ReferenceCheck(
            notation=notation, valid=False, issue=ValidationIssue.NOT_FOUND, message=str(e)
        )
    except InvalidNotationError as e:
        return ReferenceCheck(
            notation=notation, valid=False, issue=ValidationIssue.INVALID_FORMAT, message=str(e)
        )
    return ReferenceCheck(notation=notation, valid=True, file=file)


def validate_references(references: list[str], index: SectionIndex) -> ValidationReport:
    """Check each reference (ranges expanded) against the index.

    Never raises for bad input; every problem becomes a detail entry.
    """
    details: list[ReferenceCheck] = []
    seen: set[str] = set()
    for reference in references:
        try:
            notations = expand_range(reference)
        except InvalidNotationError as e:
            details.append(
                ReferenceCheck(
                    notation=str(reference),
                    valid=False,
                    issue=ValidationIssue.INVALID_FORMAT,
                    message=str(e),
                )
            )
            continue
        for notation in notations:
            if notation not in seen:
                seen.add(notation)
                details.append(_check(notation, index))

    invalid = sum(1 for d in details if not d.valid)
    return ValidationReport(
        valid=invalid == 0,
        checked=len(details),
        invalid=invalid,
        details=details,
        duplicates=duplicate_report(index),
    )


async def handle_validate_references(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> ToolResult:
    """Validate notations and report every duplicate definition.

    Args:
        params: Dict containing:
            - references: Notations to check (ranges allowed)

    Returns:
        ToolResult with ValidationReport
    """
    request = parse_params(ValidateReferencesParams, params, ToolName.VALIDATE_REFERENCES)
    report = validate_references(request.references, ctx.fresh_index())
    data = report.model_dump(mode="json", exclude_none=True)
    text = json.dumps(data, indent=2, ensure_ascii=False)
    return ToolResult(
        data=data,
        text=text,
        input_tokens=count_tokens(" ".join(request.references)),
        output_tokens=count_tokens(text),
    )
