"""Tests for policy_server.engine.core.markdown."""

from policy_server.engine.core.markdown import (
    detect_code_block_ranges,
    extract_section,
    find_embedded_references,
    find_section_definitions,
    scan_sections,
)

DOCUMENT = """# Title

## {§X.1} First

Intro text.

### {§X.1.1} Nested

Nested text mentions §Y.2.

### {§X.1.2} Second nested

More.

## {§X.2} Second

Body.

{§END}

Trailing notes that belong to no section.

## {§X.3} Third

Last section.
"""


class TestDefinitions:
    def test_finds_all_headers(self) -> None:
        assert find_section_definitions(DOCUMENT) == ["§X.1", "§X.1.1", "§X.1.2", "§X.2", "§X.3"]

    def test_ignores_headers_in_fences(self) -> None:
        text = "## {§A.1} Real\n\n```\n## {§A.2} Fake\n```\n\n~~~~\n## {§A.3} Fake\n~~~~\n"
        assert find_section_definitions(text) == ["§A.1"]

    def test_unterminated_fence_hides_rest(self) -> None:
        text = "## {§A.1} Real\n\n```python\n## {§A.2} Fake\n"
        assert find_section_definitions(text) == ["§A.1"]

    def test_keeps_repeats(self) -> None:
        text = "## {§A.1} One\n\n## {§A.1} Again\n"
        assert find_section_definitions(text) == ["§A.1", "§A.1"]

    def test_level_one_header_is_not_a_definition(self) -> None:
        assert find_section_definitions("# {§A.1} Title\n") == []

    def test_span_lines(self) -> None:
        spans = {s.notation: s for s in scan_sections(DOCUMENT)}
        assert spans["§X.1"].start_line == 3
        assert spans["§X.1"].level == 2
        assert spans["§X.1.1"].level == 3
        assert spans["§X.1"].title == "First"


class TestExtractSection:
    def test_whole_section_includes_subsections(self) -> None:
        content = extract_section(DOCUMENT, "§X.1")
        assert content is not None
        assert content.startswith("## {§X.1} First")
        assert "{§X.1.1}" in content
        assert "{§X.1.2}" in content
        assert "{§X.2}" not in content

    def test_subsection_stops_at_next_header(self) -> None:
        content = extract_section(DOCUMENT, "§X.1.1")
        assert content == "### {§X.1.1} Nested\n\nNested text mentions §Y.2.\n"

    def test_end_marker_terminates(self) -> None:
        content = extract_section(DOCUMENT, "§X.2")
        assert content == "## {§X.2} Second\n\nBody.\n"

    def test_runs_to_eof(self) -> None:
        assert extract_section(DOCUMENT, "§X.3") == "## {§X.3} Third\n\nLast section.\n"

    def test_missing_returns_none(self) -> None:
        assert extract_section(DOCUMENT, "§X.9") is None

    def test_first_occurrence_wins(self) -> None:
        text = "## {§A.1} One\n\nfirst\n\n## {§A.1} Again\n\nsecond\n"
        content = extract_section(text, "§A.1")
        assert content is not None
        assert "first" in content
        assert "second" not in content

    def test_header_inside_fence_does_not_terminate(self) -> None:
        text = "## {§A.1} One\n\n```\n## {§A.2} Example\n```\n\nstill A.1\n\n## {§A.2} Real\n"
        content = extract_section(text, "§A.1")
        assert content is not None
        assert "still A.1" in content

    def test_crlf_end_marker(self) -> None:
        text = "## {§A.1} One\r\n\r\nbody\r\n{§END}\r\nafter\r\n"
        content = extract_section(text, "§A.1")
        assert content is not None
        assert "after" not in content


class TestEmbeddedReferences:
    def test_plain_references_in_order(self) -> None:
        assert find_embedded_references("See §B.2 then §A.1 and §B.2 again.") == ["§B.2", "§A.1"]

    def test_range_kept_unexpanded(self) -> None:
        assert find_embedded_references("Covers §APP.4.1-3.") == ["§APP.4.1-3"]

    def test_extension_prefix(self) -> None:
        assert find_embedded_references("Hooks in §APP-HOOK.2.") == ["§APP-HOOK.2"]

    def test_trailing_period_not_included(self) -> None:
        assert find_embedded_references("End of sentence §SYS.5.") == ["§SYS.5"]

    def test_inline_code_excluded(self) -> None:
        assert find_embedded_references("Use `§A.1` but follow §A.2.") == ["§A.2"]

    def test_fenced_code_excluded(self) -> None:
        text = "Before §A.1\n\n```\n§A.2\n```\n\n~~~\n§A.3\n~~~\n\nAfter §A.4\n"
        assert find_embedded_references(text) == ["§A.1", "§A.4"]

    def test_definition_markers_excluded(self) -> None:
        text = "## {§A.1} Title mentioning §A.5\n\nInline {§A.2} marker and §A.3.\n"
        assert find_embedded_references(text) == ["§A.3"]

    def test_anchor_links_excluded(self) -> None:
        text = "- [§A.1 Intro](#a1-intro)\n- see §A.2\n"
        assert find_embedded_references(text) == ["§A.2"]

    def test_lowercase_is_not_reference(self) -> None:
        assert find_embedded_references("§app.1 and x§A.1") == []

    def test_empty(self) -> None:
        assert find_embedded_references("") == []


class TestCodeBlockRanges:
    def test_inline_and_fenced(self) -> None:
        text = "a `b` c\n\n```\nd\n```\n"
        ranges = detect_code_block_ranges(text)
        assert ranges[0] == (2, 5)
        assert ranges[1][0] == text.index("```")
        assert ranges[1][1] == len(text)

    def test_double_backtick_span(self) -> None:
        text = "x ``a ` §A.1`` §A.2"
        assert find_embedded_references(text) == ["§A.2"]

    def test_unclosed_backtick_runs_to_paragraph_end(self) -> None:
        text = "open `§A.1 still code\n\nnew paragraph §A.2\n"
        assert find_embedded_references(text) == ["§A.2"]
