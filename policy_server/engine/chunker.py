"""Response chunking.

Large fetch results are split at level-2 section headers so that no
section is ever cut in half. The full result is recomputed on every call
and the continuation token only names which slice to return.
"""

import logging
import re
from dataclasses import dataclass

from .core.errors import InvalidContinuationTokenError
from .core.markdown import SECTION_HEADER_RE, detect_code_block_ranges, is_in_ranges
from .core.tokens import estimate_tokens

logger = logging.getLogger(__name__)

CONTINUATION_PREFIX = "chunk:"
_CONTINUATION_RE = re.compile(r"chunk:(0|[1-9][0-9]*)")


@dataclass
class Chunk:
    """One slice of a response.

    Attributes:
        content: Slice text
        has_more: True unless this is the last chunk
        continuation: Token for the next chunk ("chunk:N"), None on the last
    """

    content: str
    has_more: bool = False
    continuation: str | None = None


def _split_boundaries(text: str) -> list[int]:
    code = detect_code_block_ranges(text)
    return [
        m.start()
        for m in SECTION_HEADER_RE.finditer(text)
        if len(m.group("hashes")) == 2 and m.start() > 0 and not is_in_ranges(code, m.start())
    ]


def split_sections(text: str) -> list[str]:
    """Split text into pieces that each start at a level-2 section header.

    Text before the first header stays attached to the first piece.
    """
    pieces: list[str] = []
    start = 0
    for boundary in _split_boundaries(text):
        pieces.append(text[start:boundary])
        start = boundary
    pieces.append(text[start:])
    return pieces


def chunk_content(text: str, max_tokens: int) -> list[Chunk]:
    """Split text into chunks of roughly max_tokens each.

    Sections are packed greedily. A single section larger than the budget
    becomes its own oversized chunk. Joining every chunk's content gives
    back the input exactly.
    """
    total = estimate_tokens(text)
    if total <= max_tokens:
        logger.debug(f"Content ~{total} tokens fits in a single chunk (max {max_tokens})")
        return [Chunk(content=text)]

    contents: list[str] = []
    current = ""
    for piece in split_sections(text):
        if current and estimate_tokens(current) + estimate_tokens(piece) > max_tokens:
            contents.append(current)
            current = piece
        else:
            current += piece
    contents.append(current)

    chunks = [
        Chunk(
            content=content,
            has_more=i < len(contents) - 1,
            continuation=f"{CONTINUATION_PREFIX}{i + 1}" if i < len(contents) - 1 else None,
        )
        for i, content in enumerate(contents)
    ]
    logger.debug(f"Content ~{total} tokens split into {len(chunks)} chunks (max {max_tokens})")
    return chunks


def parse_continuation(token: str | None, chunk_count: int) -> int:
    """Map a continuation token to a chunk index.

    Raises:
        InvalidContinuationTokenError: Malformed token or index out of range
    """
    if token is None:
        return 0
    match = _CONTINUATION_RE.fullmatch(token) if isinstance(token, str) else None
    if not match:
        raise InvalidContinuationTokenError(
            token, chunk_count, detail="expected format 'chunk:N'"
        )
    index = int(match.group(1))
    if index >= chunk_count:
        raise InvalidContinuationTokenError(
            token,
            chunk_count,
            detail=f"requested chunk {index} but only {chunk_count} chunks exist",
        )
    return index


def select_chunk(chunks: list[Chunk], continuation: str | None = None) -> Chunk:
    """Return the chunk a continuation token points at (chunk 0 for None)."""
    return chunks[parse_continuation(continuation, len(chunks))]
