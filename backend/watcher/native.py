"""
Transwatch Native Notifier.

Kernel-level change notification through watchdog's inotify observer.
Requires Python 3.11+.
"""

import os
import queue
from pathlib import Path

from watchdog.events import FileClosedEvent, FileSystemEventHandler
from watchdog.observers.api import BaseObserver, ObservedWatch

from catalog.path_catalog import unique
from watcher.backend import ChangeBackend
from watcher.probe import BackendKind

# Opaque per-directory registration returned by the observer
WatchHandle = ObservedWatch

_CLOSED = object()


class _ClosedWriteHandler(FileSystemEventHandler):
    """Forwards close-after-write events for one watched directory."""

    def __init__(self, events: queue.Queue) -> None:
        super().__init__()
        self._events = events
        self.handle: WatchHandle | None = None

    def on_closed(self, event: FileClosedEvent) -> None:  # type: ignore[override]
        if event.is_directory:
            return
        # Runs on the observer thread; the consumer resolves self.handle
        self._events.put((self, os.path.basename(os.fsdecode(event.src_path))))


class NativeNotifier(ChangeBackend):
    """
    Watches directories for files closed after writing.

    One non-recursive watch is scheduled per directory. The observer
    thread feeds a queue; ``read`` blocks the consumer on that queue.
    """

    kind = BackendKind.NATIVE

    def __init__(
        self,
        directories: list[Path],
        observer_class: type[BaseObserver],
    ) -> None:
        """
        Initialize the notifier.

        Args:
            directories: Directories to watch (the session's watch target)
            observer_class: watchdog observer implementation chosen by the probe
        """
        self._targets = list(directories)
        self._observer_class = observer_class
        self._observer: BaseObserver | None = None
        self._events: queue.Queue = queue.Queue()
        self._directories: dict[WatchHandle, Path] = {}
        self._closed = False

    @property
    def handles(self) -> dict[WatchHandle, Path]:
        """Currently held watch handles and their directories."""
        return dict(self._directories)

    def start(self) -> None:
        """Register one watch per directory and start the observer thread."""
        if self._observer is not None:
            return

        observer = self._observer_class()
        for directory in self._targets:
            handler = _ClosedWriteHandler(self._events)
            try:
                handle = observer.schedule(handler, str(directory), recursive=False)
            except OSError as e:
                self.log.warning("watch_failed", directory=str(directory), error=str(e))
                continue
            handler.handle = handle
            self._directories[handle] = directory

        observer.start()
        self._observer = observer
        self.log.info("native_watch_started", directories=len(self._directories))

    def read(self, timeout: float | None = None) -> list[tuple[WatchHandle, str]]:
        """
        Block until at least one event batch arrives.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            (handle, filename) pairs, or [] when the notifier is closed

        Raises:
            TimeoutError: If ``timeout`` elapses with no events
        """
        if self._closed and self._events.empty():
            return []

        try:
            first = self._events.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"no change events within {timeout}s") from None

        entries = [first]
        while True:
            try:
                entries.append(self._events.get_nowait())
            except queue.Empty:
                break

        pairs: list[tuple[WatchHandle, str]] = []
        for entry in entries:
            if entry is _CLOSED:
                self._closed = True
                break
            handler, filename = entry
            if handler.handle is not None:
                pairs.append((handler.handle, filename))
        return pairs

    def next_changes(self) -> list[Path]:
        """Translate the next batch of handle/filename pairs into full paths."""
        while True:
            pairs = self.read()
            if not pairs:
                if self._closed:
                    return []
                continue
            paths = [
                self._directories[handle] / filename
                for handle, filename in pairs
                if handle in self._directories
            ]
            if paths:
                return unique(paths)
            if self._closed:
                return []

    def close(self) -> None:
        """Unschedule every watch handle and stop the observer."""
        observer, self._observer = self._observer, None
        if observer is not None:
            for handle in list(self._directories):
                observer.unschedule(handle)
            observer.stop()
            observer.join(timeout=5.0)
            self.log.info("native_watch_stopped", released=len(self._directories))
        self._directories.clear()
        if not self._closed:
            self._closed = True
            self._events.put(_CLOSED)
