"""
Fan a query out to every checked server, one server at a time.

The session keeps two maps for the lifetime of one run:

* ``contexts_by_server`` – server name → :class:`QueryContext` dispatched to it;
* ``contexts_by_study``  – StudyInstanceUID → the context that reported it.

A failing server is logged and skipped; the batch always continues.
Cancellation is only observed between servers.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping, Sequence

import structlog

from dicomqr.errors import DicomQRError
from dicomqr.models import (
    ErrorKind,
    QueryContext,
    QueryOutcome,
    QueryRunResult,
    ServerDescriptor,
)
from dicomqr.net.base import QueryOperation
from dicomqr.progress import Observer, ProgressRelay, ProgressState
from dicomqr.staging import StudyIndex

log = structlog.get_logger()


class QuerySession:
    """Sequential per-server query dispatcher.

    Args:
        operation: Query collaborator executed once per server.
        calling_ae_title: Local AE title used for every association.
    """

    def __init__(self, operation: QueryOperation, calling_ae_title: str) -> None:
        self._operation = operation
        self._calling_ae_title = calling_ae_title
        self._by_server: Dict[str, QueryContext] = {}
        self._by_study: Dict[str, QueryContext] = {}

    @property
    def contexts_by_server(self) -> Mapping[str, QueryContext]:
        return MappingProxyType(self._by_server)

    @property
    def contexts_by_study(self) -> Mapping[str, QueryContext]:
        """Read-only study → owner view consumed by the retrieve session."""
        return MappingProxyType(self._by_study)

    def reset(self) -> None:
        """Forget the contexts of the previous run."""
        self._by_server = {}
        self._by_study = {}

    def run(
        self,
        servers: Sequence[ServerDescriptor],
        filters: Mapping[str, str],
        index: StudyIndex,
        observer: Observer,
    ) -> QueryRunResult:
        """Query *servers* in order and load their matches into *index*.

        Args:
            servers: Checked servers; order drives iteration and progress.
            filters: C-FIND match keys shared by every server.
            index: Open staging index receiving the study records.
            observer: Receives progress, labels and failures; also polled
                for cancellation before each server.

        Returns:
            QueryRunResult with the study → owner map and one outcome per
            dispatched server.
        """
        self.reset()
        result = QueryRunResult()
        state = ProgressState(server_count=len(servers))
        relay = ProgressRelay(state, observer)
        seen_by: Dict[str, list] = {}

        for position, server in enumerate(servers):
            if observer.cancel_requested():
                result.cancelled = True
                log.info("query.cancelled", before=server.name, completed=position)
                break

            context = QueryContext.for_server(server, self._calling_ae_title, dict(filters))
            self._by_server[server.name] = context
            log.debug("query.dispatch", server=server.name, host=context.host, port=context.port)

            try:
                with relay.subscribe(position) as on_progress:
                    found = self._operation.query(context, index, on_progress)
            except Exception as exc:
                if isinstance(exc, DicomQRError):
                    log.error("query.server_failed", server=server.name, error=str(exc))
                else:
                    log.exception("query.server_failed", server=server.name, error=repr(exc))
                observer.query_label(f"Query error: {server.name}")
                observer.server_failed(server, str(exc))
                result.outcomes.append(
                    QueryOutcome(server=server.name, error=ErrorKind.SERVER_QUERY, message=str(exc))
                )
                continue

            context.study_uids = set(found)
            for uid in found:
                previous = self._by_study.get(uid)
                if previous is not None and previous.server != server.name:
                    log.warning(
                        "query.study_owner_replaced",
                        study_uid=uid,
                        previous=previous.server,
                        owner=server.name,
                    )
                self._by_study[uid] = context
                seen_by.setdefault(uid, []).append(server.name)

            result.outcomes.append(QueryOutcome(server=server.name, study_uids=set(found)))

        relay.complete()

        result.owners = dict(self._by_study)
        result.conflicts = {
            uid: names for uid, names in seen_by.items() if len(set(names)) > 1
        }
        log.info(
            "query.finished",
            servers=len(result.outcomes),
            failed=len(result.errors),
            studies=len(result.owners),
            cancelled=result.cancelled,
        )
        return result
