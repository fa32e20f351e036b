"""Index inspection tool handlers.

Handles:
- list_sources: Configured files, their prefixes, and notation help
- list_sections: Indexed notations grouped by file
- reindex: Force a rebuild and report build statistics
"""

import logging
from typing import Any

from ...models import (
    IndexedFile,
    IndexedSectionsResult,
    ListSectionsParams,
    ReindexResult,
    SourceInfo,
    SourcesResult,
    ToolName,
    ToolResult,
)
from ..core.document import SectionIndex
from ..core.notation import get_base_prefix, sort_sections
from .base import HandlerContext, count_tokens, parse_params
from .references import duplicate_report

logger = logging.getLogger(__name__)

SECTION_FORMAT_HELP = """## Section Format

All section references require the § prefix:
- Single: §APP.7, §SYS.5, §META.2.3
- Range: §APP.4.1-3 (expands to §APP.4.1, §APP.4.2, §APP.4.3)
- Extension: §APP-HOOK.2 (looked up in the APP file group)
- Multiple: ["§APP.7", "§SYS.5", "§META.1"] (mixed prefixes in one call)

## Examples

- fetch_policies(sections=["§APP.7"]) - Single section
- fetch_policies(sections=["§APP.4.1-3"]) - Range of sections
- fetch_policies(sections=["§APP.7", "§SYS.5", "§META.1"]) - Sections from different files
"""


def _file_prefixes(index: SectionIndex, file_path: str) -> list[str]:
    prefixes = {
        get_base_prefix(notation[1:].split(".", 1)[0])
        for notation in index.file_sections.get(file_path, [])
    }
    return sorted(prefixes)


def _render_sources(result: SourcesResult) -> str:
    lines = ["# Policy Documentation Files", ""]
    for source in result.sources:
        prefixes = ", ".join(source.prefixes) or "no sections"
        status = "" if source.indexed else " (not indexed)"
        lines.append(f"**{source.file}** - {prefixes}, {source.section_count} sections{status}")
    lines.append("")
    lines.append(SECTION_FORMAT_HELP)
    return "\n".join(lines)


async def handle_list_sources(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> ToolResult:
    """List configured policy files with the prefixes they define."""
    index = ctx.fresh_index()
    sources = [
        SourceInfo(
            file=index.display_path(file_path),
            prefixes=_file_prefixes(index, file_path),
            section_count=len(set(index.file_sections.get(file_path, []))),
            indexed=file_path in index.file_sections,
        )
        for file_path in ctx.config.files
    ]
    result = SourcesResult(
        base_dir=ctx.config.base_dir,
        sources=sources,
        prefixes=index.known_prefixes(),
    )
    text = _render_sources(result)
    return ToolResult(data=result.model_dump(), text=text, output_tokens=count_tokens(text))


def list_indexed(index: SectionIndex, prefix: str | None = None) -> IndexedSectionsResult:
    """Group indexed notations by file, optionally for one base prefix."""
    files: list[IndexedFile] = []
    for file_path in index.files:
        notations = set(index.file_sections.get(file_path, []))
        if prefix:
            notations = {
                n for n in notations if get_base_prefix(n[1:].split(".", 1)[0]) == prefix
            }
        if notations:
            files.append(
                IndexedFile(file=index.display_path(file_path), sections=sort_sections(notations))
            )
    files.sort(key=lambda f: f.file)
    return IndexedSectionsResult(
        files=files,
        section_count=sum(len(f.sections) for f in files),
        duplicates=duplicate_report(index),
    )


async def handle_list_indexed(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> ToolResult:
    """List every indexed notation grouped by file.

    Args:
        params: Dict containing:
            - prefix: Optional base prefix filter (e.g. 'APP')

    Returns:
        ToolResult with IndexedSectionsResult
    """
    request = parse_params(ListSectionsParams, params, ToolName.LIST_SECTIONS)
    result = list_indexed(ctx.fresh_index(), request.prefix)

    lines = [f"{result.section_count} sections in {len(result.files)} files", ""]
    for entry in result.files:
        lines.append(f"{entry.file}: {', '.join(entry.sections)}")
    for duplicate in result.duplicates:
        lines.append(f"DUPLICATE {duplicate.notation}: {', '.join(duplicate.files)}")
    text = "\n".join(lines)

    return ToolResult(data=result.model_dump(), text=text, output_tokens=count_tokens(text))


async def handle_reindex(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> ToolResult:
    """Mark the index stale and rebuild it now."""
    ctx.state.mark_stale()
    index = ctx.fresh_index()
    stats = index.stats
    logger.info(f"Manual reindex: {index.section_count} sections, {stats.build_ms}ms")

    result = ReindexResult(
        file_count=index.file_count,
        section_count=index.section_count,
        duplicate_count=len(index.duplicates),
        unchanged=stats.unchanged,
        reparsed=stats.reparsed,
        errors=stats.errors,
        build_ms=stats.build_ms,
    )
    text = (
        f"Reindexed {result.file_count} files: {result.section_count} sections, "
        f"{result.duplicate_count} duplicates, {result.reparsed} re-parsed, "
        f"{result.unchanged} unchanged, {result.errors} errors ({result.build_ms}ms)"
    )
    return ToolResult(data=result.model_dump(), text=text, output_tokens=count_tokens(text))
