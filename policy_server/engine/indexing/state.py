"""Index state with change watching and debounced staleness.

The state owns the current SectionIndex plus everything needed to keep it
current: a watchdog observer with one watch per configured file, a single
debounce timer, and the lock that serializes rebuilds. Watch events only
flip the stale flag; the rebuild itself runs lazily on the next request.
"""

import logging
import os
import threading
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..core.document import SectionIndex
from .builder import build_section_index

if TYPE_CHECKING:
    from ...config import DocumentSetConfig

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300


class PolicyFileEventHandler(FileSystemEventHandler):
    """Forward events for one policy file to its IndexState.

    Watchdog watches directories, so the handler is scheduled on the
    file's parent and drops events for any other path. Moves count when
    either end is the watched file (editors that save atomically).
    """

    def __init__(self, state: "IndexState", file_path: str):
        super().__init__()
        self.state = state
        self.file_path = os.path.abspath(file_path)

    def _matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and os.path.abspath(os.fsdecode(p)) == self.file_path for p in paths)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in ("opened", "closed_no_write"):
            return
        if self._matches(event):
            self.state.handle_file_change(self.file_path, event.event_type)


class IndexState:
    """Current index plus its freshness bookkeeping.

    Attributes:
        index: The complete index readers use
        stale: Set once a change has settled; cleared by a successful rebuild
        rebuilding: True while a rebuild is running
        watched_files: Files with an active watch
    """

    def __init__(self, index: SectionIndex, debounce_ms: int = DEFAULT_DEBOUNCE_MS):
        self.index = index
        self.stale = False
        self.rebuilding = False
        self.debounce_ms = debounce_ms
        self.watched_files: list[str] = []
        self.rebuild_count = 0

        self._lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._observer: Observer | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def handle_file_change(self, file_path: str, event_type: str) -> None:
        """Restart the debounce timer for a file change event.

        Only when the timer fires without another event in between is the
        index marked stale.
        """
        if self._closed:
            return
        logger.debug(f"{file_path} {event_type}, scheduling rebuild")
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.debounce_ms / 1000, self._debounce_expired)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _debounce_expired(self) -> None:
        with self._timer_lock:
            self._timer = None
        if self._closed:
            return
        self.stale = True
        logger.info("File changes settled, index marked stale for next request")

    def mark_stale(self) -> None:
        """Force the next ensure_fresh() to rebuild."""
        self.stale = True

    def ensure_fresh(self, config: "DocumentSetConfig") -> SectionIndex:
        """Return a fresh index, rebuilding first if the index is stale.

        Concurrent callers wait on the rebuild lock and then read the new
        index. A change that settles while a build runs keeps stale set, so
        the next call rebuilds again. If the rebuild fails the previous index
        stays in place, stale stays set, and the error propagates.
        """
        if not self.stale and not self.rebuilding:
            return self.index

        with self._lock:
            if self.stale:
                logger.info("Rebuilding stale index")
                # rebuilding goes up before stale comes down; a change that
                # settles during the build sets stale again
                self.rebuilding = True
                self.stale = False
                try:
                    self.index = build_section_index(config, self.index)
                    self.rebuild_count += 1
                except Exception:
                    self.stale = True
                    raise
                finally:
                    self.rebuilding = False
            return self.index

    def start_watching(self, files: list[str]) -> None:
        """Schedule one watch per file. Failures leave that file untracked.

        The observer starts first so each schedule() starts its own emitter
        and a bad path fails on its own.
        """
        observer = Observer()
        try:
            observer.start()
        except OSError as e:
            logger.warning(f"File watcher failed to start: {e}, continuing without watching")
            return
        self._observer = observer

        for file_path in files:
            directory = os.path.dirname(os.path.abspath(file_path))
            try:
                observer.schedule(PolicyFileEventHandler(self, file_path), directory, recursive=False)
            except OSError as e:
                logger.warning(
                    f"Failed to watch {file_path}: {e}, continuing without watching this file"
                )
                continue
            self.watched_files.append(file_path)

        logger.info(f"Watching {len(self.watched_files)} policy files for changes")

    def close(self) -> None:
        """Cancel the debounce timer and stop the observer. Safe to repeat."""
        if self._closed:
            return
        self._closed = True

        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        observer, self._observer = self._observer, None
        if observer is not None:
            observer.unschedule_all()
            observer.stop()
            if observer.is_alive() and observer is not threading.current_thread():
                observer.join(timeout=2)
        self.watched_files = []
        logger.info("Index state closed")


def initialize_index_state(
    config: "DocumentSetConfig",
    debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    watch: bool = True,
) -> IndexState:
    """Build the initial index and, if requested, start watching files."""
    state = IndexState(build_section_index(config), debounce_ms=debounce_ms)
    if watch:
        state.start_watching(config.files)
    return state


def handle_file_change(state: IndexState, file_path: str, event_type: str) -> None:
    """Record a change event for a watched file."""
    state.handle_file_change(file_path, event_type)


def ensure_fresh_index(state: IndexState, config: "DocumentSetConfig") -> SectionIndex:
    """Return the state's index, rebuilding it first when stale."""
    return state.ensure_fresh(config)


def mark_stale(state: IndexState) -> None:
    """Force a rebuild on the next read."""
    state.mark_stale()


def close_index_state(state: IndexState) -> None:
    """Release the timer and watches. Idempotent."""
    state.close()
