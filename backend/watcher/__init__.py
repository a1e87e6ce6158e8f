"""
Transwatch Watcher Package.

Change detection for watch mode: backend probe, native and polling
notifiers, and the event stream built on them.
Requires Python 3.11+.
"""

from watcher.probe import BackendChoice, BackendKind, probe_backend
from watcher.backend import ChangeBackend, create_backend
from watcher.native import NativeNotifier
from watcher.polling import DEFAULT_POLL_INTERVAL, PollingNotifier
from watcher.event_stream import EventStream

__all__ = [
    "BackendChoice",
    "BackendKind",
    "probe_backend",
    "ChangeBackend",
    "create_backend",
    "NativeNotifier",
    "PollingNotifier",
    "DEFAULT_POLL_INTERVAL",
    "EventStream",
]
