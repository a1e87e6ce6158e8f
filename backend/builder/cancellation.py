"""
Transwatch Cancellation Gate.

Turns a user interrupt of the watch loop into a clean, first-class outcome.
Requires Python 3.11+.
"""

import sys
from collections.abc import Callable
from enum import Enum
from typing import TextIO

from utils.logger import LoggerMixin

SHUTDOWN_NOTICE = "Quitting..."


class SessionOutcome(str, Enum):
    """How a watch session ended."""

    CANCELLED = "cancelled"  # user interrupt, exit status 0
    EXHAUSTED = "exhausted"  # the change backend closed


class CancellationGate(LoggerMixin):
    """
    Single exit point of the pull-and-build loop.

    A KeyboardInterrupt becomes ``SessionOutcome.CANCELLED``; any other
    exception, ``OSError`` subclasses such as ``InterruptedError``
    included, propagates. Either way ``release`` runs exactly once before
    the gate returns or re-raises, and a second interrupt arriving during
    that release of a cancelled session does not escape.
    """

    def __init__(
        self,
        release: Callable[[], None],
        out: TextIO | None = None,
    ) -> None:
        """
        Initialize the gate.

        Args:
            release: Frees held watch resources (typically ``EventStream.close``)
            out: Stream for the shutdown notice (defaults to stdout)
        """
        self._release = release
        self._out = out
        self._released = False
        self._announced = False

    def run(self, body: Callable[[], None]) -> SessionOutcome:
        """
        Run the loop body under the gate.

        Args:
            body: Pulls events and builds until the stream ends

        Returns:
            CANCELLED on user interrupt, EXHAUSTED when ``body`` returns
        """
        outcome = SessionOutcome.EXHAUSTED
        try:
            body()
        except KeyboardInterrupt:
            outcome = SessionOutcome.CANCELLED
        finally:
            try:
                self._release_once()
            except KeyboardInterrupt:
                # A repeated Ctrl-C while shutting down is still one cancellation
                if outcome is not SessionOutcome.CANCELLED:
                    raise
                self.log.warning("release_interrupted")

        if outcome is SessionOutcome.CANCELLED:
            self._announce()
        self.log.info("watch_session_ended", outcome=outcome.value)
        return outcome

    def _release_once(self) -> None:
        if self._released:
            return
        self._released = True
        self._release()

    def _announce(self) -> None:
        if self._announced:
            return
        self._announced = True
        out = self._out or sys.stdout
        print(f"\n{SHUTDOWN_NOTICE}", file=out, flush=True)
