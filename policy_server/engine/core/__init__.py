"""Engine core module.

This module contains core utilities and data structures for the policy engine:
- Section notation grammar (parse, expand ranges, sort)
- Markdown scanning (definitions, embedded references, code spans)
- Index data structures
- Error taxonomy
- Token estimation
"""

from .document import BuildStats, GatheredSection, SectionIndex
from .errors import (
    ConfigError,
    DuplicateSectionError,
    InvalidContinuationTokenError,
    InvalidNotationError,
    InvalidParamsError,
    InvalidRangeError,
    PolicyServerError,
    SectionNotFoundError,
    UnknownPrefixError,
)
from .markdown import (
    SectionSpan,
    detect_code_block_ranges,
    extract_section,
    find_embedded_references,
    find_section_definitions,
    scan_sections,
)
from .notation import (
    MAX_RANGE_SPAN,
    ParsedNotation,
    expand_all,
    expand_range,
    get_base_prefix,
    is_parent_section,
    is_range_notation,
    parse_notation,
    sort_sections,
)
from .tokens import CHARS_PER_TOKEN, estimate_tokens

__all__ = [
    # Document structures
    "SectionIndex",
    "GatheredSection",
    "BuildStats",
    # Errors
    "PolicyServerError",
    "ConfigError",
    "InvalidParamsError",
    "InvalidNotationError",
    "InvalidRangeError",
    "UnknownPrefixError",
    "SectionNotFoundError",
    "DuplicateSectionError",
    "InvalidContinuationTokenError",
    # Notation
    "ParsedNotation",
    "parse_notation",
    "expand_range",
    "expand_all",
    "get_base_prefix",
    "is_parent_section",
    "is_range_notation",
    "sort_sections",
    "MAX_RANGE_SPAN",
    # Markdown scanning
    "SectionSpan",
    "scan_sections",
    "find_section_definitions",
    "find_embedded_references",
    "extract_section",
    "detect_code_block_ranges",
    # Token utilities
    "estimate_tokens",
    "CHARS_PER_TOKEN",
]
