"""Markdown scanning for section markers.

Two modes share the same grammar and the same code-span detection:

- definition mode (scan_sections / find_section_definitions) looks only at
  header lines such as ``## {§APP.7} Title`` and is used by the indexer
- reference mode (find_embedded_references) looks at body text for bare
  ``§APP.7`` mentions and is used by the resolver

Markers inside fenced blocks or inline code spans never count in either
mode. Header markers never count as references.
"""

import bisect
import re
from dataclasses import dataclass

from .notation import PATH_PATTERN, PREFIX_PATTERN, RANGE_END_PATTERN

# ## {§APP.7} Title  /  ### {§APP.4.1}
SECTION_HEADER_RE = re.compile(
    rf"^(?P<hashes>#{{2,6}})[ \t]*\{{(?P<notation>§{PREFIX_PATTERN}\.{PATH_PATTERN})\}}(?P<title>[^\n]*)$",
    re.MULTILINE,
)

# Standalone {§END} terminates the preceding section early
END_MARKER_RE = re.compile(r"^[ \t]*\{§END\}[ \t\r]*$", re.MULTILINE)

# Bare reference with optional range suffix. Brace-wrapped markers and
# notations glued to a word character are not references.
REFERENCE_RE = re.compile(
    rf"(?<![\w{{§])§{PREFIX_PATTERN}\.{PATH_PATTERN}(?:-{RANGE_END_PATTERN})?(?![\w}}])"
)

# [text](#anchor) - link text pointing at a header anchor
ANCHOR_LINK_RE = re.compile(r"\[(?P<text>[^\]\n]*)\]\(#[^)\n]*\)")

_FENCE_OPEN_RE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_BACKTICK_RUN_RE = re.compile(r"`+")
_BLANK_LINE_RE = re.compile(r"\n[ \t]*\n")


@dataclass
class SectionSpan:
    """One section definition located in a document.

    Attributes:
        notation: Full notation from the header marker
        title: Header text after the marker (stripped)
        level: Header level (2-6)
        start: Character offset of the header line
        end: Character offset where the section stops (exclusive)
        start_line: Header line number (1-indexed)
        end_line: Last line belonging to the section (1-indexed, inclusive)
    """

    notation: str
    title: str
    level: int
    start: int
    end: int
    start_line: int
    end_line: int

    @property
    def is_whole_section(self) -> bool:
        return _is_whole(self.notation)


def _is_whole(notation: str) -> bool:
    return "." not in notation.split(".", 1)[1]


def _fenced_ranges(text: str) -> list[tuple[int, int]]:
    ranges: list[tuple[int, int]] = []
    offset = 0
    open_fence: tuple[str, int, int] | None = None  # (char, length, start offset)

    for line in text.splitlines(keepends=True):
        content = line.rstrip("\r\n")
        if open_fence is None:
            match = _FENCE_OPEN_RE.match(content)
            if match:
                fence = match.group("fence")
                # A backtick fence cannot carry backticks in its info string
                if not (fence[0] == "`" and "`" in match.group("info")):
                    open_fence = (fence[0], len(fence), offset)
        else:
            char, length, start = open_fence
            stripped = content.strip()
            if (
                len(content) - len(content.lstrip(" ")) <= 3
                and len(stripped) >= length
                and stripped == char * len(stripped)
            ):
                ranges.append((start, offset + len(line)))
                open_fence = None
        offset += len(line)

    if open_fence is not None:
        # Unterminated fence runs to end of text
        ranges.append((open_fence[2], len(text)))
    return ranges


def _containing(ranges: list[tuple[int, int]], pos: int) -> tuple[int, int] | None:
    starts = [start for start, _ in ranges]
    idx = bisect.bisect_right(starts, pos) - 1
    if idx >= 0 and ranges[idx][0] <= pos < ranges[idx][1]:
        return ranges[idx]
    return None


def _paragraph_end(text: str, pos: int, fenced: list[tuple[int, int]]) -> int:
    limit = len(text)
    blank = _BLANK_LINE_RE.search(text, pos)
    if blank:
        limit = blank.start()
    for start, _ in fenced:
        if start >= pos:
            limit = min(limit, start)
            break
    return limit


def _inline_code_ranges(text: str, fenced: list[tuple[int, int]]) -> list[tuple[int, int]]:
    ranges: list[tuple[int, int]] = []
    pos = 0
    while True:
        match = _BACKTICK_RUN_RE.search(text, pos)
        if not match:
            break
        block = _containing(fenced, match.start())
        if block:
            pos = block[1]
            continue

        run_length = len(match.group())
        limit = _paragraph_end(text, match.end(), fenced)
        closing = re.compile(rf"(?<!`)`{{{run_length}}}(?!`)").search(text, match.end(), limit)
        # Unclosed span: treat the rest of the paragraph as code
        end = closing.end() if closing else limit
        ranges.append((match.start(), end))
        pos = max(end, match.end())
    return ranges


def detect_code_block_ranges(text: str) -> list[tuple[int, int]]:
    """Find fenced blocks and inline code spans.

    Returns:
        Sorted, non-overlapping (start, end) character ranges, end exclusive
    """
    fenced = _fenced_ranges(text)
    return _merge_ranges(fenced + _inline_code_ranges(text, fenced))


def _merge_ranges(ranges: list[tuple[int, int]]) -> list[tuple[int, int]]:
    merged: list[tuple[int, int]] = []
    for start, end in sorted(ranges):
        if merged and start < merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def is_in_ranges(ranges: list[tuple[int, int]], pos: int) -> bool:
    """Check whether pos falls inside any of the sorted ranges."""
    return _containing(ranges, pos) is not None


def _line_number(line_starts: list[int], pos: int) -> int:
    return bisect.bisect_right(line_starts, pos)


def scan_sections(text: str) -> list[SectionSpan]:
    """Locate every section definition and where it ends.

    A whole section (§P.N) runs until the next whole-section header, an
    explicit {§END} marker, or end of text. A subsection (§P.N.M...) runs
    until the next section header of any depth, {§END}, or end of text.
    Markers inside fenced code are ignored.

    Returns:
        Spans in document order. Repeated notations are all returned.
    """
    fenced = _fenced_ranges(text)
    headers = [m for m in SECTION_HEADER_RE.finditer(text) if not is_in_ranges(fenced, m.start())]
    end_markers = [
        m.start() for m in END_MARKER_RE.finditer(text) if not is_in_ranges(fenced, m.start())
    ]

    line_starts = [0] + [m.end() for m in re.finditer(r"\n", text)]

    spans: list[SectionSpan] = []
    for i, match in enumerate(headers):
        notation = match.group("notation")
        whole = _is_whole(notation)

        end = len(text)
        for following in headers[i + 1 :]:
            if not whole or _is_whole(following.group("notation")):
                end = following.start()
                break
        idx = bisect.bisect_right(end_markers, match.start())
        if idx < len(end_markers) and end_markers[idx] < end:
            end = end_markers[idx]

        last_char = max(match.start(), end - 1)
        spans.append(
            SectionSpan(
                notation=notation,
                title=match.group("title").strip(),
                level=len(match.group("hashes")),
                start=match.start(),
                end=end,
                start_line=_line_number(line_starts, match.start()),
                end_line=_line_number(line_starts, last_char),
            )
        )
    return spans


def find_section_definitions(text: str) -> list[str]:
    """Return notations defined by header lines, in document order."""
    return [span.notation for span in scan_sections(text)]


def extract_section(text: str, notation: str) -> str | None:
    """Extract one section's text, header line included.

    The first definition of the notation wins when a file repeats it.

    Returns:
        Section text with trailing whitespace normalized to one newline,
        or None when the text does not define the notation
    """
    for span in scan_sections(text):
        if span.notation == notation:
            return text[span.start : span.end].rstrip() + "\n"
    return None


def find_embedded_references(text: str) -> list[str]:
    """Find bare § references in body text.

    Skips code spans and fences, section header lines, and links whose
    target is a header anchor (table-of-contents entries).

    Returns:
        Notations in order of first appearance, ranges not expanded
    """
    if not text:
        return []

    excluded = detect_code_block_ranges(text)
    excluded.extend((m.start(), m.end()) for m in SECTION_HEADER_RE.finditer(text))
    excluded.extend((m.start(), m.end()) for m in ANCHOR_LINK_RE.finditer(text))
    excluded = _merge_ranges(excluded)

    seen: set[str] = set()
    references: list[str] = []
    for match in REFERENCE_RE.finditer(text):
        if is_in_ranges(excluded, match.start()):
            continue
        notation = match.group()
        if notation not in seen:
            seen.add(notation)
            references.append(notation)
    return references
