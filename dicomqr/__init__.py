"""
Public interface for *dicomqr*.

High-level objects are re-exported here to provide a stable import path
for external code, e.g. ::

    from dicomqr import Orchestrator, StudyIndex
"""

from importlib.metadata import PackageNotFoundError, version

from .errors import DicomQRError, OrchestratorBusyError, ProtocolError, StagingStoreError
from .models import (
    ErrorKind,
    QueryContext,
    QueryRunResult,
    RetrieveContext,
    RetrievePhase,
    RetrieveRunResult,
    ServerDescriptor,
    StorageParams,
)
from .orchestrator import Orchestrator, OrchestratorState
from .progress import CancelToken, Observer, aggregate_percent
from .staging import StudyIndex

try:
    __version__: str = version("dicomqr")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__: list[str] = [
    "CancelToken",
    "DicomQRError",
    "ErrorKind",
    "Observer",
    "Orchestrator",
    "OrchestratorBusyError",
    "OrchestratorState",
    "ProtocolError",
    "QueryContext",
    "QueryRunResult",
    "RetrieveContext",
    "RetrievePhase",
    "RetrieveRunResult",
    "ServerDescriptor",
    "StagingStoreError",
    "StorageParams",
    "StudyIndex",
    "aggregate_percent",
    "__version__",
]
