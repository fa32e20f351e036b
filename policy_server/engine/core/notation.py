"""Section notation grammar.

A notation identifies one section across the policy files:

    §PREFIX[-EXT].N[.N...]

PREFIX is uppercase alphabetic, EXT (one or more hyphenated uppercase
words) is part of the identity but dropped for file-group lookup.
A range is only allowed at the final component: §APP.4.1-3. The end of a
range may also be spelled as a full path (§APP.4.1-4.3) or a full
notation (§APP.4.1-§APP.4.3).
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import InvalidNotationError, InvalidRangeError

SECTION_SIGN = "§"

# Shared grammar fragments (also used by the markdown scanners)
PREFIX_PATTERN = r"[A-Z]+(?:-[A-Z]+)*"
PATH_PATTERN = r"[0-9]+(?:\.[0-9]+)*"
RANGE_END_PATTERN = rf"(?:§{PREFIX_PATTERN}\.)?{PATH_PATTERN}"

_PREFIX_RE = re.compile(rf"{PREFIX_PATTERN}")
_COMPONENT_RE = re.compile(r"[0-9]+")

# Upper bound on how many notations one range may produce
MAX_RANGE_SPAN = 1000


@dataclass(frozen=True)
class ParsedNotation:
    """A parsed, exact (non-range) section notation.

    Attributes:
        prefix: Full prefix including any extension (APP, APP-HOOK)
        path: Numeric components (7,) or (4, 1)
    """

    prefix: str
    path: tuple[int, ...]

    @property
    def base_prefix(self) -> str:
        return get_base_prefix(self.prefix)

    @property
    def section(self) -> str:
        """Dotted section number without prefix, e.g. '4.1'."""
        return ".".join(str(n) for n in self.path)

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def is_whole_section(self) -> bool:
        return len(self.path) == 1

    @property
    def notation(self) -> str:
        return f"{SECTION_SIGN}{self.prefix}.{self.section}"

    def sort_key(self) -> tuple[str, tuple[int, ...]]:
        return (self.prefix, self.path)

    def __str__(self) -> str:
        return self.notation


def get_base_prefix(prefix: str) -> str:
    """Return the text before the first hyphen (APP-HOOK -> APP)."""
    return prefix.split("-", 1)[0]


def _split_notation(notation: str) -> tuple[str, str]:
    if not isinstance(notation, str):
        raise InvalidNotationError(str(notation), "notation must be a string")
    if not notation.startswith(SECTION_SIGN):
        raise InvalidNotationError(notation, f"missing leading {SECTION_SIGN}")

    prefix, sep, path = notation[1:].partition(".")
    if not sep or not path:
        raise InvalidNotationError(notation, "missing section number after prefix")
    if not _PREFIX_RE.fullmatch(prefix):
        raise InvalidNotationError(
            notation,
            "prefix must be uppercase letters, optionally with hyphenated extensions (APP-HOOK)",
        )
    return prefix, path


def _parse_path(notation: str, path: str) -> tuple[int, ...]:
    components = path.split(".")
    values: list[int] = []
    for component in components:
        if not _COMPONENT_RE.fullmatch(component):
            raise InvalidNotationError(
                notation, f"section component '{component}' is not a number"
            )
        value = int(component)
        if value < 1:
            raise InvalidNotationError(
                notation, f"section component '{component}' must be a positive integer"
            )
        values.append(value)
    return tuple(values)


def is_range_notation(notation: str) -> bool:
    """Check whether a notation carries a range at its final component."""
    if not isinstance(notation, str) or not notation.startswith(SECTION_SIGN):
        return False
    _, sep, path = notation[1:].partition(".")
    return bool(sep) and "-" in path


def parse_notation(notation: str) -> ParsedNotation:
    """Parse an exact section notation.

    Args:
        notation: Notation such as '§APP.7' or '§APP-HOOK.2.1'

    Returns:
        ParsedNotation with prefix and numeric path

    Raises:
        InvalidNotationError: If the notation does not match the grammar
            (ranges included - expand them first)
    """
    prefix, path = _split_notation(notation)
    if "-" in path:
        raise InvalidNotationError(notation, "range notation must be expanded first")
    return ParsedNotation(prefix=prefix, path=_parse_path(notation, path))


def expand_range(notation: str) -> list[str]:
    """Expand a range notation into exact notations.

    '§APP.4.1-3' -> ['§APP.4.1', '§APP.4.2', '§APP.4.3']. Exact notations
    are validated and returned unchanged as a single-element list.

    Raises:
        InvalidNotationError: If either end is malformed
        InvalidRangeError: If the range is backwards, empty, too wide, or
            its ends differ in prefix, depth, or parent path
    """
    prefix, path = _split_notation(notation)
    if "-" not in path:
        parse_notation(notation)
        return [notation]

    start_text, _, end_text = path.partition("-")
    start = ParsedNotation(prefix, _parse_path(notation, start_text))

    if end_text.startswith(SECTION_SIGN):
        end_prefix, end_path = _split_notation(end_text)
        if "-" in end_path:
            raise InvalidRangeError(notation, "range end cannot itself be a range")
        end = ParsedNotation(end_prefix, _parse_path(notation, end_path))
    elif "." in end_text:
        end = ParsedNotation(prefix, _parse_path(notation, end_text))
    else:
        end = ParsedNotation(prefix, start.path[:-1] + _parse_path(notation, end_text))

    if end.prefix != start.prefix:
        raise InvalidRangeError(notation, "range ends have different prefixes")
    if end.depth != start.depth:
        raise InvalidRangeError(notation, "range ends have different depths")
    if end.path[:-1] != start.path[:-1]:
        raise InvalidRangeError(notation, "range ends have different parent sections")

    first, last = start.path[-1], end.path[-1]
    if first >= last:
        raise InvalidRangeError(
            notation, f"range start {first} must be less than range end {last}"
        )
    if last - first + 1 > MAX_RANGE_SPAN:
        raise InvalidRangeError(
            notation, f"range covers more than {MAX_RANGE_SPAN} sections"
        )

    parent = start.path[:-1]
    return [ParsedNotation(prefix, parent + (n,)).notation for n in range(first, last + 1)]


def expand_all(notations: Iterable[str]) -> list[str]:
    """Expand every notation, keeping first-seen order and dropping repeats."""
    seen: set[str] = set()
    expanded: list[str] = []
    for notation in notations:
        for item in expand_range(notation):
            if item not in seen:
                seen.add(item)
                expanded.append(item)
    return expanded


def is_parent_section(parent: str, child: str) -> bool:
    """Check whether child's path strictly extends parent's path.

    §X.4 is parent of §X.4.1 and §X.4.1.2, but not of §X.5 or §X.41.
    Prefixes must match exactly (extension included). Malformed
    notations are never parents or children.
    """
    try:
        p = parse_notation(parent)
        c = parse_notation(child)
    except InvalidNotationError:
        return False
    return (
        p.prefix == c.prefix
        and len(c.path) > len(p.path)
        and c.path[: len(p.path)] == p.path
    )


def _sort_key(notation: str) -> tuple:
    try:
        parsed = parse_notation(notation)
    except InvalidNotationError:
        return (1, notation, ())
    return (0, parsed.prefix, parsed.path)


def sort_sections(notations: Iterable[str]) -> list[str]:
    """Sort notations by prefix, then numerically by path.

    sort_sections(['§X.10', '§X.2', '§A.1']) -> ['§A.1', '§X.2', '§X.10']
    Unparseable strings go last, in lexicographic order.
    """
    return sorted(notations, key=_sort_key)
