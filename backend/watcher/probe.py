"""
Transwatch Backend Probe.

One-time detection of the native change-notification facility.
Requires Python 3.11+.
"""

from dataclasses import dataclass
from enum import Enum

from watchdog.observers.api import BaseObserver
from watchdog.utils import UnsupportedLibcError

from utils.logger import get_logger

logger = get_logger(__name__)


class BackendKind(str, Enum):
    """Which change backend a watch session runs on."""

    NATIVE = "native"
    POLLING = "polling"


@dataclass(frozen=True)
class BackendChoice:
    """Result of the probe, fixed for the whole watch session."""

    kind: BackendKind
    observer_class: type[BaseObserver] | None = None


def probe_backend(force_polling: bool = False) -> BackendChoice:
    """
    Decide between native notification and polling.

    The native facility is inotify via watchdog; it is the only observer
    that reports close-after-write events. An unavailable facility is not
    an error, it selects polling.

    Args:
        force_polling: Skip the probe and select polling

    Returns:
        BackendChoice for the session
    """
    if force_polling:
        logger.debug("backend_selected", kind=BackendKind.POLLING.value, reason="forced")
        return BackendChoice(BackendKind.POLLING)

    try:
        from watchdog.observers.inotify import InotifyObserver
    except (ImportError, OSError, UnsupportedLibcError) as e:
        logger.debug("native_backend_unavailable", error=str(e))
        return BackendChoice(BackendKind.POLLING)

    logger.debug("backend_selected", kind=BackendKind.NATIVE.value)
    return BackendChoice(BackendKind.NATIVE, InotifyObserver)
