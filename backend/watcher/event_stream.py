"""
Transwatch Event Stream.

Lazy, pull-based sequence of changed source paths.
Requires Python 3.11+.
"""

from collections import deque
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from catalog.path_catalog import HIDDEN_MARKER
from utils.logger import LoggerMixin
from watcher.backend import ChangeBackend


class EventStream(LoggerMixin):
    """
    Iterator over changed source files.

    Each ``next()`` returns a buffered path or blocks in the backend until
    one is available. The stream ends only when the backend closes; once
    ended (or closed) it cannot be iterated again, a new session needs a
    new catalog, backend and stream.
    """

    def __init__(self, backend: ChangeBackend, source_extension: str) -> None:
        """
        Initialize the stream.

        Args:
            backend: Started or unstarted change backend; the stream starts it lazily
            source_extension: Only non-hidden paths with this suffix are yielded
        """
        self._backend = backend
        self._extension = source_extension
        self._pending: deque[Path] = deque()
        self._started = False
        self._finished = False

    @property
    def backend(self) -> ChangeBackend:
        return self._backend

    @property
    def finished(self) -> bool:
        return self._finished

    def __iter__(self) -> Iterator[Path]:
        return self

    def __next__(self) -> Path:
        if self._finished:
            raise StopIteration
        if not self._started:
            self._backend.start()
            self._started = True

        while not self._pending:
            changes = self._backend.next_changes()
            if not changes:
                self.log.info("event_stream_exhausted")
                self._finished = True
                raise StopIteration
            self._pending.extend(p for p in changes if self._is_source(p))

        return self._pending.popleft()

    def _is_source(self, path: Path) -> bool:
        # Same admission rule as the catalog; native watches see every file
        # written in a directory, hidden ones included
        name = path.name
        return not name.startswith(HIDDEN_MARKER) and name.endswith(self._extension)

    def close(self) -> None:
        """End the stream and release the backend's resources."""
        self._finished = True
        self._pending.clear()
        self._backend.close()

    def __enter__(self) -> "EventStream":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
