"""Fetch tool handler.

Handles:
- fetch_policies: Resolve sections with all their references and return
  the combined text, one chunk at a time
"""

import json
import logging
from typing import Any

from ...models import FetchParams, FetchResult, ToolName, ToolResult
from ..chunker import chunk_content, parse_continuation
from ..resolver import fetch_sections
from .base import HandlerContext, count_tokens, parse_params

logger = logging.getLogger(__name__)


def continuation_notice(sections: list[str], continuation: str) -> str:
    """Instruction block appended to every chunk except the last."""
    return (
        "\n\n---\n**CRITICAL: INCOMPLETE RESPONSE - MANDATORY CONTINUATION REQUIRED**\n\n"
        f"Call fetch_policies again with: sections={json.dumps(sections, ensure_ascii=False)}, "
        f'continuation="{continuation}"'
    )


async def handle_fetch(
    params: dict[str, Any],
    ctx: HandlerContext,
) -> ToolResult:
    """Fetch sections and everything they reference.

    The full result is recomputed on every call, then sliced; the
    continuation token selects which slice to return.

    Args:
        params: Dict containing:
            - sections: Notations to fetch (ranges allowed)
            - continuation: Optional 'chunk:N' token from a previous call

    Returns:
        ToolResult with FetchResult for the selected chunk

    Raises:
        InvalidNotationError, UnknownPrefixError, SectionNotFoundError,
        DuplicateSectionError, InvalidContinuationTokenError
    """
    request = parse_params(FetchParams, params, ToolName.FETCH_POLICIES)
    index = ctx.fresh_index()

    full_content = fetch_sections(request.sections, index)
    chunks = chunk_content(full_content, ctx.config.max_chunk_tokens)
    chunk_index = parse_continuation(request.continuation, len(chunks))
    chunk = chunks[chunk_index]
    logger.debug(
        f"fetch {request.sections}: chunk {chunk_index + 1}/{len(chunks)}, has_more={chunk.has_more}"
    )

    result = FetchResult(
        content=chunk.content,
        sections=request.sections,
        chunk_index=chunk_index,
        total_chunks=len(chunks),
        has_more=chunk.has_more,
        continuation=chunk.continuation,
    )
    notice = continuation_notice(request.sections, chunk.continuation) if chunk.has_more else None

    return ToolResult(
        data=result.model_dump(),
        text=chunk.content,
        notice=notice,
        input_tokens=count_tokens(" ".join(request.sections)),
        output_tokens=count_tokens(chunk.content),
    )
