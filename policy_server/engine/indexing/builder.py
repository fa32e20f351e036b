"""Section index builder.

Scans every configured file for section definitions and records which
file owns each notation. Rebuilds reuse the previous index for files
whose mtime and size are both unchanged, so an edit to one file only
re-reads that file.
"""

import logging
import os
import time
from collections import defaultdict
from typing import TYPE_CHECKING

from ..core.document import BuildStats, SectionIndex
from ..core.markdown import find_section_definitions

if TYPE_CHECKING:
    from ...config import DocumentSetConfig

logger = logging.getLogger(__name__)


def read_policy_file(file_path: str) -> str:
    """Read a policy file as UTF-8 text."""
    with open(file_path, encoding="utf-8") as f:
        return f.read()


def extract_all_sections(file_path: str) -> list[str]:
    """Return the notations defined by a file's header lines, repeats kept."""
    return find_section_definitions(read_policy_file(file_path))


def _try_extract_sections(file_path: str) -> list[str] | None:
    try:
        return extract_all_sections(file_path)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to extract sections from {file_path}: {e}; skipping in this build")
        return None


def validate_index(index: SectionIndex, file_sections: dict[str, list[str]]) -> None:
    """Move cross-file duplicates out of section_map.

    Every notation defined in more than one file is removed from
    index.section_map and recorded in index.duplicates with all of its
    files. Repeats inside a single file only log a warning.

    Args:
        index: Index to update in place
        file_sections: File -> notations defined in it
    """
    owners: dict[str, list[str]] = defaultdict(list)
    for file_path, notations in file_sections.items():
        for notation in dict.fromkeys(notations):
            owners[notation].append(file_path)

    for notation, files in owners.items():
        if len(files) > 1:
            index.duplicates[notation] = files
            index.section_map.pop(notation, None)
            logger.warning(f"Duplicate section {notation} found in: {', '.join(files)}")

    for file_path, notations in file_sections.items():
        counts: dict[str, int] = defaultdict(int)
        for notation in notations:
            counts[notation] += 1
        for notation, count in counts.items():
            if count > 1:
                logger.warning(
                    f"Section {notation} appears {count} times in same file: {file_path} "
                    f"(first occurrence is used)"
                )

    index.section_count = len(index.section_map)


def build_section_index(
    config: "DocumentSetConfig",
    prev_index: SectionIndex | None = None,
) -> SectionIndex:
    """Build the section index for all configured files.

    Args:
        config: Document set with the file list and base directory
        prev_index: Previous index; files whose mtime and size both match
            it are not re-read

    Returns:
        A complete new index. The previous index is never mutated.
    """
    start = time.perf_counter()
    stats = BuildStats()

    section_map: dict[str, str] = {}
    file_mtimes: dict[str, int] = {}
    file_sizes: dict[str, int] = {}
    file_sections: dict[str, list[str]] = {}
    indexed_files: list[str] = []

    for file_path in config.files:
        try:
            st = os.stat(file_path)
        except OSError as e:
            logger.warning(f"Failed to stat {file_path}: {e}; file may have been deleted, skipping")
            stats.errors += 1
            continue

        notations: list[str] | None = None
        if prev_index is not None:
            cached = prev_index.file_sections.get(file_path)
            if (
                cached is not None
                and prev_index.file_mtimes.get(file_path) == st.st_mtime_ns
                and prev_index.file_sizes.get(file_path) == st.st_size
            ):
                stats.unchanged += 1
                stats.skipped += 1
                notations = cached
            else:
                stats.changed += 1

        if notations is None:
            notations = _try_extract_sections(file_path)
            if notations is None:
                stats.errors += 1
                continue
            stats.reparsed += 1

        file_mtimes[file_path] = st.st_mtime_ns
        file_sizes[file_path] = st.st_size
        file_sections[file_path] = notations
        indexed_files.append(file_path)
        for notation in notations:
            section_map.setdefault(notation, file_path)

    index = SectionIndex(
        section_map=section_map,
        file_mtimes=file_mtimes,
        file_sizes=file_sizes,
        file_sections=file_sections,
        files=indexed_files,
        base_dir=config.base_dir,
        file_count=len(config.files),
        stats=stats,
    )
    validate_index(index, file_sections)
    stats.build_ms = int((time.perf_counter() - start) * 1000)

    if prev_index is not None:
        logger.info(
            f"Rebuilt index: {stats.unchanged} unchanged, {stats.changed} changed, "
            f"{stats.skipped} skipped, {stats.reparsed} re-parsed"
        )
    logger.info(
        f"Indexed {index.file_count} files, {index.section_count} sections, "
        f"{len(index.duplicates)} duplicates in {stats.build_ms}ms"
    )
    if stats.errors:
        logger.warning(f"{stats.errors} files failed to process")

    return index
