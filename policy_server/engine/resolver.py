"""Reference resolver.

Turns a list of requested notations into the complete set of sections
they depend on. Sections are read from their owning files, scanned for
embedded references, and the references are followed until nothing new
turns up. A parent section absorbs its subsections, so the result never
holds both §X.4 and §X.4.1.

Nothing here is cached across requests; each call reads the files the
index points at.
"""

import logging
from collections import deque

from .core.document import GatheredSection, SectionIndex
from .core.errors import DuplicateSectionError, SectionNotFoundError, UnknownPrefixError
from .core.markdown import extract_section, find_embedded_references
from .core.notation import (
    expand_range,
    get_base_prefix,
    is_parent_section,
    is_range_notation,
    parse_notation,
    sort_sections,
)
from .indexing.builder import read_policy_file

logger = logging.getLogger(__name__)


class _Lookup:
    """Per-request lookup helper: file groups and file text, read at most once."""

    def __init__(self, index: SectionIndex):
        self.index = index
        self._groups: dict[str, list[str]] = {}
        self._texts: dict[str, str | None] = {}

    def group(self, base_prefix: str) -> list[str]:
        if base_prefix not in self._groups:
            self._groups[base_prefix] = self.index.files_for_prefix(base_prefix)
        return self._groups[base_prefix]

    def text(self, file_path: str) -> str | None:
        if file_path not in self._texts:
            try:
                self._texts[file_path] = read_policy_file(file_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to read {file_path} during resolution: {e}")
                self._texts[file_path] = None
        return self._texts[file_path]

    def find(self, notation: str, chain: list[str], from_range: bool) -> GatheredSection:
        parsed = parse_notation(notation)
        base = parsed.base_prefix
        files = self.group(base)
        if not files:
            raise UnknownPrefixError(base, self.index.known_prefixes())

        if notation in self.index.duplicates:
            raise DuplicateSectionError(
                notation, [self.index.display_path(f) for f in self.index.duplicates[notation]]
            )

        for file_path in files:
            if notation not in self.index.file_sections.get(file_path, ()):
                continue
            text = self.text(file_path)
            if text is None:
                continue
            content = extract_section(text, notation)
            if content is not None:
                return GatheredSection(
                    notation=notation,
                    prefix=parsed.prefix,
                    section=parsed.section,
                    file=self.index.display_path(file_path),
                    content=content,
                )

        raise SectionNotFoundError(
            notation,
            files=[self.index.display_path(f) for f in files],
            chain=chain,
            from_range=from_range,
        )


def _reference_chain(
    notation: str,
    referrers: dict[str, str],
    range_origins: dict[str, str],
) -> tuple[list[str], bool]:
    chain: list[str] = []
    seen = {notation}
    current = referrers.get(notation)
    while current is not None and current not in seen:
        chain.append(current)
        seen.add(current)
        current = referrers.get(current)

    if notation in range_origins:
        chain.append(range_origins[notation])
        return chain, True
    return chain, False


def gather_sections(notations: list[str], index: SectionIndex) -> dict[str, GatheredSection]:
    """Collect the requested sections and everything they reference.

    Args:
        notations: Requested notations, ranges allowed
        index: Current section index

    Returns:
        Notation -> gathered section, unordered. No entry is a subsection
        of another entry.

    Raises:
        InvalidNotationError: A requested or embedded notation is malformed
        UnknownPrefixError: No file defines sections for a prefix
        DuplicateSectionError: A needed notation is defined in several files
        SectionNotFoundError: A needed notation is not defined anywhere in
            its file group; carries the chain of referencing sections
    """
    lookup = _Lookup(index)
    gathered: dict[str, GatheredSection] = {}
    processed: set[str] = set()
    pending: set[str] = set()
    queue: deque[str] = deque()
    referrers: dict[str, str] = {}
    range_origins: dict[str, str] = {}

    def enqueue(notation: str, referrer: str | None) -> None:
        expanded = expand_range(notation)
        for item in expanded:
            if item in processed or item in pending:
                continue
            pending.add(item)
            queue.append(item)
            if referrer is not None:
                referrers[item] = referrer
            if is_range_notation(notation):
                range_origins[item] = notation

    for notation in notations:
        enqueue(notation, None)

    while queue:
        notation = queue.popleft()
        pending.discard(notation)
        if notation in processed:
            continue
        if any(is_parent_section(existing, notation) for existing in processed):
            continue

        children = [existing for existing in list(processed) if is_parent_section(notation, existing)]
        for child in children:
            processed.discard(child)
            gathered.pop(child, None)
        if children:
            logger.debug(f"{notation} supersedes {', '.join(sort_sections(children))}")

        processed.add(notation)
        chain, from_range = _reference_chain(notation, referrers, range_origins)
        section = lookup.find(notation, chain, from_range)
        gathered[notation] = section

        for reference in find_embedded_references(section.content):
            enqueue(reference, notation)

    return gathered


def fetch_sections(notations: list[str], index: SectionIndex) -> str:
    """Resolve notations and join the section texts in sorted order."""
    gathered = gather_sections(notations, index)
    return "\n".join(gathered[n].content for n in sort_sections(gathered))


def resolve_section_locations(notations: list[str], index: SectionIndex) -> dict[str, list[str]]:
    """Resolve notations and group them by owning file.

    Returns:
        {relative file: sorted notations}, files in sorted order
    """
    by_file: dict[str, list[str]] = {}
    for notation, section in gather_sections(notations, index).items():
        by_file.setdefault(section.file, []).append(notation)
    return {file: sort_sections(by_file[file]) for file in sorted(by_file)}


def resolve_section(notation: str, index: SectionIndex) -> str:
    """Return the relative file that defines one exact notation.

    Raises:
        InvalidNotationError, UnknownPrefixError, DuplicateSectionError,
        SectionNotFoundError
    """
    parsed = parse_notation(notation)
    base = get_base_prefix(parsed.prefix)
    if not index.files_for_prefix(base):
        raise UnknownPrefixError(base, index.known_prefixes())
    if notation in index.duplicates:
        raise DuplicateSectionError(
            notation, [index.display_path(f) for f in index.duplicates[notation]]
        )
    file_path = index.section_map.get(notation)
    if file_path is None:
        raise SectionNotFoundError(
            notation, files=[index.display_path(f) for f in index.files_for_prefix(base)]
        )
    return index.display_path(file_path)
