"""Tests for response chunking."""

import pytest

from policy_server.engine.chunker import (
    Chunk,
    chunk_content,
    parse_continuation,
    select_chunk,
    split_sections,
)
from policy_server.engine.core.errors import InvalidContinuationTokenError
from policy_server.engine.core.tokens import estimate_tokens


def make_sections(count: int, body_chars: int = 200) -> str:
    parts = []
    for i in range(1, count + 1):
        parts.append(
            f"## {{§BIG.{i}}} Section {i}\n\n{'x' * body_chars}\n\n### {{§BIG.{i}.1}} Sub\n\nsub\n"
        )
    return "\n".join(parts)


class TestEstimateTokens:
    def test_rounds_up(self) -> None:
        assert estimate_tokens("abcde") == 2

    def test_empty(self) -> None:
        assert estimate_tokens("") == 0


class TestSplitSections:
    def test_splits_only_at_level_two(self) -> None:
        pieces = split_sections(make_sections(3))
        assert len(pieces) == 3
        assert all(p.startswith("## {§BIG.") for p in pieces)

    def test_preamble_stays_with_first_piece(self) -> None:
        pieces = split_sections("intro\n\n## {§A.1} One\n\n## {§A.2} Two\n")
        assert pieces[0].startswith("intro")
        assert len(pieces) == 2

    def test_header_in_code_block_is_not_boundary(self) -> None:
        text = "## {§A.1} One\n\n```\n## {§A.2} Example\n```\n\n## {§A.3} Three\n"
        assert len(split_sections(text)) == 2


class TestChunkContent:
    def test_small_content_single_chunk(self) -> None:
        chunks = chunk_content("## {§A.1} One\n", 100)
        assert chunks == [Chunk(content="## {§A.1} One\n", has_more=False, continuation=None)]

    def test_round_trip(self) -> None:
        text = make_sections(20)
        chunks = chunk_content(text, 150)
        assert len(chunks) > 1
        assert "".join(c.content for c in chunks) == text

    def test_never_splits_a_section(self) -> None:
        chunks = chunk_content(make_sections(10), 100)
        for chunk in chunks:
            assert chunk.content.startswith("## {§BIG.")

    def test_continuation_tokens(self) -> None:
        chunks = chunk_content(make_sections(10), 100)
        for i, chunk in enumerate(chunks[:-1]):
            assert chunk.has_more
            assert chunk.continuation == f"chunk:{i + 1}"
        assert chunks[-1].has_more is False
        assert chunks[-1].continuation is None

    def test_oversized_section_gets_own_chunk(self) -> None:
        text = make_sections(1, body_chars=2000) + "\n" + make_sections(1, body_chars=10)
        chunks = chunk_content(text, 50)
        assert "".join(c.content for c in chunks) == text
        assert estimate_tokens(chunks[0].content) > 50

    def test_chunks_respect_budget_when_possible(self) -> None:
        chunks = chunk_content(make_sections(12, body_chars=100), 200)
        assert all(estimate_tokens(c.content) <= 200 for c in chunks)


class TestSelectChunk:
    @pytest.fixture
    def chunks(self) -> list[Chunk]:
        return chunk_content(make_sections(10), 100)

    def test_none_selects_first(self, chunks) -> None:
        assert select_chunk(chunks, None) is chunks[0]

    def test_token_selects_index(self, chunks) -> None:
        assert select_chunk(chunks, "chunk:2") is chunks[2]

    def test_following_tokens_visits_every_chunk(self, chunks) -> None:
        seen = []
        token = None
        while True:
            chunk = select_chunk(chunks, token)
            seen.append(chunk.content)
            if not chunk.has_more:
                break
            token = chunk.continuation
        assert "".join(seen) == make_sections(10)

    def test_out_of_range(self, chunks) -> None:
        with pytest.raises(InvalidContinuationTokenError, match=f"only {len(chunks)} chunks exist"):
            select_chunk(chunks, f"chunk:{len(chunks)}")

    @pytest.mark.parametrize("token", ["chunk:", "chunk:-1", "chunk:x", "page:1", "chunk:01", ""])
    def test_malformed(self, chunks, token: str) -> None:
        with pytest.raises(InvalidContinuationTokenError, match="Invalid continuation token"):
            select_chunk(chunks, token)

    def test_parse_continuation_default(self) -> None:
        assert parse_continuation(None, 1) == 0
