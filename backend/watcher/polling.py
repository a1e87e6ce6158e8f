"""
Transwatch Polling Notifier.

Portable fallback that re-inspects modification times on an interval.
Requires Python 3.11+.
"""

import os
import time
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from watcher.backend import ChangeBackend
from watcher.probe import BackendKind

DEFAULT_POLL_INTERVAL = 1.0


class PollingNotifier(ChangeBackend):
    """
    Polls every catalogued file for a newer modification time.

    The first sweep runs immediately and only seeds the modification
    clock. Later sweeps report each file whose timestamp strictly
    increased, in catalog order, and sleep ``interval`` seconds between
    sweeps.
    """

    kind = BackendKind.POLLING

    def __init__(
        self,
        files: Iterable[Path],
        interval: float = DEFAULT_POLL_INTERVAL,
        *,
        mtime: Callable[[Path], float] = os.path.getmtime,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the notifier.

        Args:
            files: Source files to poll
            interval: Seconds between sweeps
            mtime: Returns a file's modification time (raises OSError if missing)
            sleep: Suspends the caller between sweeps
        """
        self._files = list(files)
        self._interval = interval
        self._mtime = mtime
        self._sleep = sleep
        self._clock: dict[Path, float] = {}
        self._swept = False
        self._closed = False

    @property
    def clock(self) -> Mapping[Path, float]:
        """Read-only view of the last observed modification times."""
        return MappingProxyType(self._clock)

    def start(self) -> None:
        self.log.info("polling_watch_started", files=len(self._files), interval=self._interval)

    def sweep(self) -> list[Path]:
        """
        Check every file once.

        Returns:
            Files whose modification time advanced since the last sweep
        """
        changed: list[Path] = []
        for path in self._files:
            try:
                current = self._mtime(path)
            except OSError as e:
                self.log.debug("stat_failed", path=str(path), error=str(e))
                continue

            previous = self._clock.get(path)
            if previous is None:
                self._clock[path] = current
            elif current > previous:
                self._clock[path] = current
                changed.append(path)
        return changed

    def next_changes(self) -> list[Path]:
        """Sweep (sleeping between sweeps) until something changes."""
        while not self._closed:
            if self._swept:
                self._sleep(self._interval)
            changed = self.sweep()
            self._swept = True
            if changed:
                return changed
        return []

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.log.info("polling_watch_stopped")
