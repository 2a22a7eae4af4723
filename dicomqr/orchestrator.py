"""
Controller sitting between operator intent and one-shot network operations.

The :class:`Orchestrator` exposes two entry points, :meth:`run_query` and
:meth:`run_retrieve`, and enforces the state machine::

    IDLE -> QUERYING   -> IDLE
    IDLE -> RETRIEVING -> IDLE

Runs never overlap.  A fresh in-memory staging index is opened before every
query run, and the retrieve action is only enabled once that index holds at
least one row.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterable, Iterator, Mapping, Optional, Sequence

import structlog

from dicomqr.errors import DicomQRError, OrchestratorBusyError, StagingStoreError
from dicomqr.models import (
    ErrorKind,
    QueryContext,
    QueryRunResult,
    RetrievePhase,
    RetrieveRunResult,
    ServerDescriptor,
)
from dicomqr.net.base import QueryOperation, RetrieveOperation
from dicomqr.progress import CancelToken, Observer
from dicomqr.query_session import QuerySession
from dicomqr.retrieve_session import RetrieveSession
from dicomqr.servers import ServerConfigProvider
from dicomqr.staging import MEMORY, StudyIndex

log = structlog.get_logger()


class OrchestratorState(str, Enum):
    IDLE = "idle"
    QUERYING = "querying"
    RETRIEVING = "retrieving"


class _RunObserver(Observer):
    """Forward notifications and merge the orchestrator's cancel flag."""

    def __init__(self, inner: Observer, token: CancelToken) -> None:
        self._inner = inner
        self._token = token

    def query_progress(self, server_index: int, intra_percent: int, percent: float) -> None:
        self._inner.query_progress(server_index, intra_percent, percent)

    def query_label(self, text: str) -> None:
        self._inner.query_label(text)

    def server_failed(self, server: ServerDescriptor, message: str) -> None:
        self._inner.server_failed(server, message)

    def retrieve_event(self, study_uid: str, phase: RetrievePhase, message: str = "") -> None:
        self._inner.retrieve_event(study_uid, phase, message)

    def cancel_requested(self) -> bool:
        if self._inner.cancel_requested():
            self._token.cancel()
        return self._token.cancelled


class Orchestrator:
    """Sequence query and retrieve runs against the configured servers.

    Args:
        provider: Source of checked servers and local parameters.
        query_operation: Collaborator performing one server query.
        retrieve_operation: Collaborator performing one study retrieve.
        observer: Receiver of progress and phase notifications.
        destination: Shared index recording retrieved studies; can also be
            set later with :meth:`set_retrieve_destination`.
    """

    def __init__(
        self,
        provider: ServerConfigProvider,
        query_operation: QueryOperation,
        retrieve_operation: RetrieveOperation,
        observer: Optional[Observer] = None,
        destination: Optional[StudyIndex] = None,
    ) -> None:
        self.provider = provider
        self.observer = observer or Observer()
        self.destination = destination
        self.query_session = QuerySession(query_operation, provider.calling_ae_title)
        self.retrieve_session = RetrieveSession(retrieve_operation)
        self._staging: Optional[StudyIndex] = None
        self._state = OrchestratorState.IDLE
        self._lock = threading.Lock()
        self._token = CancelToken()

    # ------------------------------------------------------------------ #
    # State                                                               #
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def staging(self) -> Optional[StudyIndex]:
        """Staging index of the last query run (``None`` before the first)."""
        return self._staging

    @property
    def study_owners(self) -> Mapping[str, QueryContext]:
        return self.query_session.contexts_by_study

    @property
    def retrieve_enabled(self) -> bool:
        return (
            self._state is OrchestratorState.IDLE
            and self._staging is not None
            and self._staging.row_count() > 0
        )

    def set_retrieve_destination(self, destination: StudyIndex) -> None:
        self.destination = destination

    def cancel(self) -> None:
        """Request a stop at the next server or study boundary."""
        log.info("run.cancel_requested", state=self._state.value)
        self._token.cancel()

    @contextmanager
    def _running(self, state: OrchestratorState) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise OrchestratorBusyError(f"Cannot start {state.value}: {self._state.value} in progress")
        self._state = state
        self._token.reset()
        try:
            yield
        finally:
            self._state = OrchestratorState.IDLE
            self._lock.release()

    # ------------------------------------------------------------------ #
    # Entry points                                                        #
    # ------------------------------------------------------------------ #
    def run_query(
        self,
        filters: Mapping[str, str],
        servers: Optional[Sequence[ServerDescriptor]] = None,
    ) -> QueryRunResult:
        """Query every checked server and stage the results.

        Args:
            filters: C-FIND match keys (keyword → value).
            servers: Explicit server sequence; defaults to the provider's
                checked servers.

        Returns:
            QueryRunResult.  When the staging index cannot be opened the
            result carries ``ErrorKind.STAGING_STORE`` and no server is
            contacted.

        Raises:
            OrchestratorBusyError: If another run is in progress.
        """
        with self._running(OrchestratorState.QUERYING):
            if self._staging is not None:
                self._staging.close()
                self._staging = None
            self.query_session.reset()

            staging = StudyIndex()
            try:
                staging.open(MEMORY)
            except StagingStoreError as exc:
                log.error("query.staging_failed", error=str(exc))
                self.observer.query_label(f"Database error: {exc}")
                return QueryRunResult(error=ErrorKind.STAGING_STORE, message=str(exc))

            targets = list(servers) if servers is not None else self.provider.checked_servers()
            log.info("query.start", servers=[s.name for s in targets], filters=dict(filters))
            try:
                result = self.query_session.run(
                    targets, filters, staging, _RunObserver(self.observer, self._token)
                )
            except Exception:
                staging.close()
                self.query_session.reset()
                raise
            if result.cancelled:
                staging.mark_partial()
            self._staging = staging
            return result

    def run_retrieve(self, study_uids: Optional[Iterable[str]] = None) -> RetrieveRunResult:
        """Retrieve *study_uids* (default: every study of the last query).

        Returns:
            RetrieveRunResult.  An empty result is returned when retrieval
            is not enabled (no staged studies).

        Raises:
            OrchestratorBusyError: If another run is in progress.
            DicomQRError: If no retrieve destination has been set.
        """
        if not self.retrieve_enabled:
            if self._state is not OrchestratorState.IDLE:
                raise OrchestratorBusyError(f"Cannot retrieve: {self._state.value} in progress")
            log.warning("retrieve.disabled", reason="no staged studies")
            return RetrieveRunResult()
        if self.destination is None:
            raise DicomQRError("No retrieve destination configured")

        with self._running(OrchestratorState.RETRIEVING):
            owners = self.query_session.contexts_by_study
            selected = list(study_uids) if study_uids is not None else list(owners)
            log.info("retrieve.start_batch", studies=len(selected))
            return self.retrieve_session.run(
                selected,
                owners,
                self.provider.storage_params(),
                self.destination,
                _RunObserver(self.observer, self._token),
            )

    def close(self) -> None:
        if self._staging is not None:
            self._staging.close()
            self._staging = None
