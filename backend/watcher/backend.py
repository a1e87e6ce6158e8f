"""
Transwatch Change Backend.

Common interface of the native and polling change sources.
Requires Python 3.11+.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from catalog.path_catalog import FileSet, watch_targets
from utils.logger import LoggerMixin
from watcher.probe import BackendChoice, BackendKind


class ChangeBackend(LoggerMixin, ABC):
    """
    A source of raw "file changed" signals.

    ``next_changes`` is the backend's single suspension point: it blocks
    until at least one changed path is known and returns them in the order
    the backend observed them. An empty list means the backend is closed.
    """

    kind: BackendKind

    def start(self) -> None:
        """Acquire whatever the backend needs before the first read."""

    @abstractmethod
    def next_changes(self) -> list[Path]:
        """Block until changes are available; return [] once closed."""

    def close(self) -> None:
        """Release held resources. Safe to call more than once."""

    def __enter__(self) -> "ChangeBackend":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def create_backend(choice: BackendChoice, files: FileSet) -> ChangeBackend:
    """
    Construct the backend selected by the probe.

    Args:
        choice: Probe result for this session
        files: Catalogued source files; the native backend watches
            their parent directories, polling checks the files directly

    Returns:
        An unstarted ChangeBackend
    """
    # Imported here; both modules import ChangeBackend from this one
    from watcher.native import NativeNotifier
    from watcher.polling import PollingNotifier

    if choice.kind is BackendKind.NATIVE and choice.observer_class is not None:
        return NativeNotifier(watch_targets(files), observer_class=choice.observer_class)
    return PollingNotifier(files)
