"""Study-level C-FIND through dcm4che ``findscu``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Set

import structlog

from dicomqr.models import QueryContext
from dicomqr.net.base import QueryOperation
from dicomqr.net.builder import build_findscu
from dicomqr.net.parser import parse_study_records
from dicomqr.net.runner import run_tool
from dicomqr.progress import ProgressCallback, emit

if TYPE_CHECKING:
    from dicomqr.staging import StudyIndex

log = structlog.get_logger()

DEFAULT_QUERY_TAGS: List[str] = [
    "StudyInstanceUID",
    "PatientName",
    "PatientID",
    "StudyDate",
    "StudyTime",
    "StudyDescription",
    "AccessionNumber",
    "ModalitiesInStudy",
]


class DicomQuery(QueryOperation):
    """Query one node with ``findscu`` and load the matches into an index.

    Args:
        image: dcm4che tools Docker image.
        query_tags: Return keys requested from the node.
        network: Optional ``docker --network`` value.
        timeout: Seconds allowed for one ``findscu`` call.
        runner: Command runner; defaults to :func:`run_tool`.
    """

    def __init__(
        self,
        image: str,
        query_tags: Sequence[str] = DEFAULT_QUERY_TAGS,
        network: Optional[str] = None,
        timeout: Optional[float] = None,
        runner: Callable[..., str] = run_tool,
    ) -> None:
        self.image = image
        self.query_tags = list(query_tags)
        self.network = network
        self.timeout = timeout
        self._runner = runner

    def query(
        self,
        context: QueryContext,
        index: "StudyIndex",
        progress: Optional[ProgressCallback] = None,
    ) -> Set[str]:
        source = context.server
        emit(progress, source, 0, f"Connecting to {context.called_ae_title}@{context.host}:{context.port}")

        cmd = build_findscu(
            image=self.image,
            calling_ae_title=context.calling_ae_title,
            called_ae_title=context.called_ae_title,
            host=context.host,
            port=context.port,
            query_tags=self.query_tags,
            filters=context.filters,
            network=self.network,
        )
        raw = self._runner(cmd, timeout=self.timeout, server=source)

        emit(progress, source, 50, f"Parsing responses from {source}")
        records = parse_study_records(raw)

        emit(progress, source, 80, f"Storing {len(records)} studies from {source}")
        index.insert_studies(records, server=source)

        emit(progress, source, 100, f"{source}: {len(records)} studies")
        log.info("query.done", server=source, studies=len(records))
        return {rec.study_uid for rec in records}
