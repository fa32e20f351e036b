"""Section indexing.

- builder: full index builds with mtime+size reuse and duplicate detection
- state: file watching, debounced staleness, lazy rebuilds
"""

from .builder import build_section_index, extract_all_sections, read_policy_file, validate_index
from .state import (
    IndexState,
    close_index_state,
    ensure_fresh_index,
    handle_file_change,
    initialize_index_state,
    mark_stale,
)

__all__ = [
    # Builder
    "build_section_index",
    "validate_index",
    "extract_all_sections",
    "read_policy_file",
    # State
    "IndexState",
    "initialize_index_state",
    "handle_file_change",
    "ensure_fresh_index",
    "mark_stale",
    "close_index_state",
]
