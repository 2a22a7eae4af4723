"""
Retrieve studies one at a time from the servers that reported them.

Connection parameters come from the query run's study → owner map; the
move destination comes from local storage configuration.  The first
failure stops the batch: retrieved data lands in a persistent store, so
the remaining studies are left for the operator to re-run.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

import structlog

from dicomqr.errors import DicomQRError
from dicomqr.models import (
    ErrorKind,
    QueryContext,
    RetrieveContext,
    RetrieveOutcome,
    RetrievePhase,
    RetrieveRunResult,
    StorageParams,
)
from dicomqr.net.base import RetrieveOperation
from dicomqr.progress import Observer
from dicomqr.staging import StudyIndex

log = structlog.get_logger()


def _distinct(study_uids: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(study_uids))


class RetrieveSession:
    """Sequential per-study retrieve dispatcher."""

    def __init__(self, operation: RetrieveOperation) -> None:
        self._operation = operation
        self.contexts_by_study: Dict[str, RetrieveContext] = {}

    def run(
        self,
        study_uids: Iterable[str],
        owners: Mapping[str, QueryContext],
        storage: StorageParams,
        destination: StudyIndex,
        observer: Observer,
    ) -> RetrieveRunResult:
        """Retrieve every distinct UID in *study_uids*.

        Args:
            study_uids: Already-selected StudyInstanceUIDs.
            owners: Study → owning query context from the last query run.
            storage: Local move destination and calling port.
            destination: Shared index recording completed retrievals.
            observer: Receives per-study phase notifications and is polled
                for cancellation before each study.

        Returns:
            RetrieveRunResult; a failed outcome, if any, is the last entry.
        """
        self.contexts_by_study = {}
        result = RetrieveRunResult()

        for uid in _distinct(study_uids):
            if observer.cancel_requested():
                result.cancelled = True
                log.info("retrieve.cancelled", before=uid, completed=len(result.outcomes))
                break

            owner = owners.get(uid)
            if owner is None:
                message = "study was not reported by any server in the last query"
                log.error("retrieve.unknown_study", study_uid=uid)
                observer.retrieve_event(uid, RetrievePhase.FAILED, message)
                result.outcomes.append(
                    RetrieveOutcome(study_uid=uid, error=ErrorKind.UNKNOWN_STUDY, message=message)
                )
                break

            context = RetrieveContext.from_query(owner, uid, storage)
            self.contexts_by_study[uid] = context
            log.info("retrieve.start", study_uid=uid, server=owner.server, host=owner.host)
            observer.retrieve_event(uid, RetrievePhase.STARTED)

            try:
                self._operation.retrieve_study(context, destination)
            except Exception as exc:
                if isinstance(exc, DicomQRError):
                    log.error("retrieve.failed", study_uid=uid, server=owner.server, error=str(exc))
                else:
                    log.exception("retrieve.failed", study_uid=uid, server=owner.server, error=repr(exc))
                observer.retrieve_event(uid, RetrievePhase.FAILED, str(exc))
                result.outcomes.append(
                    RetrieveOutcome(
                        study_uid=uid,
                        server=owner.server,
                        error=ErrorKind.STUDY_RETRIEVE,
                        message=str(exc),
                    )
                )
                break

            log.info("retrieve.success", study_uid=uid, server=owner.server)
            observer.retrieve_event(uid, RetrievePhase.SUCCEEDED)
            result.outcomes.append(RetrieveOutcome(study_uid=uid, server=owner.server))

        return result
