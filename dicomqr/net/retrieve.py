"""Study-level C-MOVE through dcm4che ``movescu``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

import structlog

from dicomqr.models import RetrieveContext
from dicomqr.net.base import RetrieveOperation
from dicomqr.net.builder import build_movescu
from dicomqr.net.runner import run_tool

if TYPE_CHECKING:
    from dicomqr.staging import StudyIndex

log = structlog.get_logger()


class DicomRetrieve(RetrieveOperation):
    """Move one study to the local storage node and record it.

    The remote node pushes the instances to ``context.move_destination``;
    once ``movescu`` reports success the study is recorded in the shared
    destination index.
    """

    def __init__(
        self,
        image: str,
        network: Optional[str] = None,
        timeout: Optional[float] = None,
        runner: Callable[..., str] = run_tool,
    ) -> None:
        self.image = image
        self.network = network
        self.timeout = timeout
        self._runner = runner

    def retrieve_study(self, context: RetrieveContext, destination: "StudyIndex") -> None:
        cmd = build_movescu(
            image=self.image,
            calling_ae_title=context.calling_ae_title,
            called_ae_title=context.called_ae_title,
            host=context.host,
            port=context.port,
            study_uid=context.study_uid,
            move_destination=context.move_destination,
            calling_port=context.calling_port,
            network=self.network,
        )
        log.debug(
            "retrieve.dispatch",
            study_uid=context.study_uid,
            server=context.server,
            destination=context.move_destination,
        )
        self._runner(cmd, timeout=self.timeout, server=context.server)
        destination.record_retrieval(context)
