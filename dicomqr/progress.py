"""
Progress aggregation, cancellation and the observer interface.

A query run is a variable-length batch of per-server operations.  Each
operation reports its own 0–100 progress; :func:`aggregate_percent` folds
that into one value for the whole batch.  The ``101`` divisor keeps a
server that reports a raw ``100`` strictly below the starting weight of the
next server, so the overall value never jumps ahead.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from dicomqr.models import RetrievePhase, ServerDescriptor


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """One progress notification emitted by a network operation."""

    source: str
    percent: int
    label: str = ""


ProgressCallback = Callable[[ProgressEvent], None]


def aggregate_percent(server_index: int, server_count: int, intra_percent: float) -> float:
    """Return the batch-level percentage for one per-server progress value.

    Args:
        server_index: Zero-based position of the server in the checked list.
        server_count: Number of servers in the run; must be at least 1.
        intra_percent: Progress of the current server's operation (0–100).

    Returns:
        ``(server_index + intra_percent / 101) * (100 / server_count)``.

    Raises:
        ValueError: If *server_count* is not positive.
    """
    if server_count < 1:
        raise ValueError("server_count must be >= 1")
    weight = 100.0 / server_count
    return (server_index + (intra_percent / 101.0)) * weight


@dataclass(slots=True)
class ProgressState:
    """Run-scoped progress position; never shared between runs."""

    server_count: int
    server_index: int = 0
    intra_percent: int = 0
    completed: bool = False

    @property
    def percent(self) -> float:
        if self.completed or self.server_count < 1:
            return 100.0
        return aggregate_percent(self.server_index, self.server_count, self.intra_percent)

    def advance(self, server_index: int) -> None:
        self.server_index = server_index
        self.intra_percent = 0

    def force_complete(self) -> None:
        self.intra_percent = 100
        self.completed = True


class CancelToken:
    """Shared cooperative cancellation flag.

    Settable from any thread; the sessions only read it at the top of each
    per-server or per-study iteration.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


# --------------------------------------------------------------------------- #
# Observer                                                                    #
# --------------------------------------------------------------------------- #
class Observer:
    """Receiver of run notifications.

    Every hook is a no-op so subclasses only override what they display.
    """

    def query_progress(self, server_index: int, intra_percent: int, percent: float) -> None:
        """Called for each progress event of the running server query."""

    def query_label(self, text: str) -> None:
        """Called with a short status line (current step, last error)."""

    def server_failed(self, server: ServerDescriptor, message: str) -> None:
        """Called once for each server whose query failed."""

    def retrieve_event(self, study_uid: str, phase: RetrievePhase, message: str = "") -> None:
        """Called when a study retrieve starts, succeeds or fails."""

    def cancel_requested(self) -> bool:
        return False


class ProgressRelay:
    """Translate operation events into aggregate observer notifications.

    Args:
        state: Progress state of the current run.
        observer: Destination of translated notifications.
    """

    def __init__(self, state: ProgressState, observer: Observer) -> None:
        self.state = state
        self.observer = observer

    @contextmanager
    def subscribe(self, server_index: int) -> Iterator[ProgressCallback]:
        """Yield a callback bound to *server_index* for one operation.

        The callback is detached when the ``with`` block exits, whether the
        operation returned or raised; late events are dropped.
        """
        active = True

        def _on_event(event: ProgressEvent) -> None:
            if not active:
                return
            self.state.intra_percent = max(0, min(100, int(event.percent)))
            self.observer.query_progress(
                server_index, self.state.intra_percent, self.state.percent
            )
            if event.label:
                self.observer.query_label(event.label)

        self.state.advance(server_index)
        try:
            yield _on_event
        finally:
            active = False

    def complete(self) -> None:
        """Force the aggregate to 100 and notify the observer."""
        self.state.force_complete()
        self.observer.query_progress(self.state.server_index, 100, self.state.percent)


def emit(callback: Optional[ProgressCallback], source: str, percent: int, label: str = "") -> None:
    """Send a :class:`ProgressEvent` when a callback is attached."""
    if callback is not None:
        callback(ProgressEvent(source=source, percent=percent, label=label))
