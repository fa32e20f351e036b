"""Document data structures for the policy engine.

This module contains the core data structures for the section index
and for sections gathered during a single resolution request.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime

from .notation import get_base_prefix


@dataclass
class GatheredSection:
    """A resolved section definition.

    Lives only for the duration of one request; never cached.

    Attributes:
        notation: Full notation (e.g. '§APP.4.1')
        prefix: Prefix including extension (APP, APP-HOOK)
        section: Dotted section number ('4.1')
        file: Owning file path relative to the base directory
        content: Extracted text, header line included
    """

    notation: str
    prefix: str
    section: str
    file: str
    content: str


@dataclass
class BuildStats:
    """Counters from one index build, kept for logs and the reindex tool."""

    unchanged: int = 0
    changed: int = 0
    skipped: int = 0
    reparsed: int = 0
    errors: int = 0
    build_ms: int = 0


@dataclass
class SectionIndex:
    """Index of section definitions across the configured files.

    Attributes:
        section_map: Notation -> absolute file path (unique definitions only)
        duplicates: Notation -> files defining it (excluded from section_map)
        file_mtimes: File -> mtime in nanoseconds at last scan
        file_sizes: File -> size in bytes at last scan
        file_sections: File -> notations extracted at last scan (with repeats)
        files: Files that were successfully indexed, in configured order
        base_dir: Directory used to render relative file names
    """

    section_map: dict[str, str] = field(default_factory=dict)
    duplicates: dict[str, list[str]] = field(default_factory=dict)
    file_mtimes: dict[str, int] = field(default_factory=dict)
    file_sizes: dict[str, int] = field(default_factory=dict)
    file_sections: dict[str, list[str]] = field(default_factory=dict)
    files: list[str] = field(default_factory=list)
    base_dir: str = ""
    last_indexed: datetime = field(default_factory=datetime.now)
    file_count: int = 0
    section_count: int = 0
    stats: BuildStats = field(default_factory=BuildStats)

    def display_path(self, file_path: str) -> str:
        """Render a file path relative to the base directory when inside it."""
        if self.base_dir:
            relative = os.path.relpath(file_path, self.base_dir)
            if not relative.startswith(".."):
                return relative.replace(os.sep, "/")
        return file_path

    def files_for_prefix(self, base_prefix: str) -> list[str]:
        """Return the file group for a base prefix.

        The group holds every indexed file that defines at least one
        section whose base prefix matches, in configured order.
        """
        group: list[str] = []
        for file_path in self.files:
            for notation in self.file_sections.get(file_path, []):
                prefix = notation[1:].split(".", 1)[0]
                if get_base_prefix(prefix) == base_prefix:
                    group.append(file_path)
                    break
        return group

    def known_prefixes(self) -> list[str]:
        """Sorted base prefixes that have at least one definition."""
        prefixes: set[str] = set()
        for notations in self.file_sections.values():
            for notation in notations:
                prefixes.add(get_base_prefix(notation[1:].split(".", 1)[0]))
        return sorted(prefixes)
