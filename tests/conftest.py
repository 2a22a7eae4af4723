"""Shared fixtures and scripted collaborators for the dicomqr tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Set, Union

import pytest

from dicomqr.errors import ProtocolError
from dicomqr.models import (
    QueryContext,
    RetrieveContext,
    RetrievePhase,
    ServerDescriptor,
    StorageParams,
    StudyRecord,
)
from dicomqr.net.base import QueryOperation, RetrieveOperation
from dicomqr.progress import Observer, ProgressCallback, emit
from dicomqr.servers import ServerList
from dicomqr.staging import StudyIndex

Script = Dict[str, Union[Sequence[str], Exception]]


def make_server(name: str, port: int = 104) -> ServerDescriptor:
    return ServerDescriptor(
        name=name,
        address=f"{name.lower()}.example.org",
        port=port,
        ae_title=f"{name}_AE",
    )


class FakeQuery(QueryOperation):
    """Query collaborator answering from a per-server script.

    Each script entry is either the list of UIDs the server reports or an
    exception to raise.  ``after`` hooks run when a server's query returns.
    """

    def __init__(self, script: Script, percents: Sequence[int] = (0, 50, 100)) -> None:
        self.script = script
        self.percents = list(percents)
        self.calls: List[QueryContext] = []
        self.after: Dict[str, Callable[[], None]] = {}
        self.callbacks: List[ProgressCallback] = []

    def query(
        self,
        context: QueryContext,
        index: StudyIndex,
        progress: Optional[ProgressCallback] = None,
    ) -> Set[str]:
        self.calls.append(context)
        if progress is not None:
            self.callbacks.append(progress)
        answer = self.script[context.server]
        for pct in self.percents:
            emit(progress, context.server, pct, f"{context.server} {pct}%")
            if isinstance(answer, Exception) and pct >= 50:
                raise answer
        uids = list(answer)
        index.insert_studies(
            [StudyRecord(study_uid=uid, patient_name=f"P^{uid}") for uid in uids],
            server=context.server,
        )
        hook = self.after.get(context.server)
        if hook:
            hook()
        return set(uids)


class FakeRetrieve(RetrieveOperation):
    """Retrieve collaborator failing for the UIDs listed in ``failing``."""

    def __init__(self, failing: Sequence[str] = ()) -> None:
        self.failing = set(failing)
        self.calls: List[RetrieveContext] = []
        self.after: Dict[str, Callable[[], None]] = {}

    def retrieve_study(self, context: RetrieveContext, destination: StudyIndex) -> None:
        self.calls.append(context)
        if context.study_uid in self.failing:
            raise ProtocolError("association rejected", context.server)
        destination.record_retrieval(context)
        hook = self.after.get(context.study_uid)
        if hook:
            hook()


class RecordingObserver(Observer):
    """Observer that keeps every notification for later assertions."""

    def __init__(self) -> None:
        self.progress: List[tuple] = []
        self.labels: List[str] = []
        self.failures: List[tuple] = []
        self.events: List[tuple] = []
        self.cancel = False

    def query_progress(self, server_index: int, intra_percent: int, percent: float) -> None:
        self.progress.append((server_index, intra_percent, percent))

    def query_label(self, text: str) -> None:
        self.labels.append(text)

    def server_failed(self, server: ServerDescriptor, message: str) -> None:
        self.failures.append((server.name, message))

    def retrieve_event(self, study_uid: str, phase: RetrievePhase, message: str = "") -> None:
        self.events.append((study_uid, phase))

    def cancel_requested(self) -> bool:
        return self.cancel


@pytest.fixture
def storage() -> StorageParams:
    return StorageParams(move_destination="LOCAL_STORE", calling_port=11113)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def staging():
    index = StudyIndex().open()
    yield index
    index.close()


@pytest.fixture
def destination():
    index = StudyIndex().open()
    yield index
    index.close()


@pytest.fixture
def abc_servers() -> List[ServerDescriptor]:
    return [make_server("A"), make_server("B"), make_server("C")]


@pytest.fixture
def provider(abc_servers, storage) -> ServerList:
    return ServerList(abc_servers, calling_ae_title="DICOMQR", storage=storage)
