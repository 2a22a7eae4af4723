"""
Core data-model declarations for *dicomqr*.

The module centralizes the small containers shared by the sessions, the
orchestrator, the network operations and the Click commands: server
descriptors, per-run query/retrieve contexts, parsed study records and the
explicit outcome objects returned by a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set


# --------------------------------------------------------------------------- #
# Configuration-side records                                                  #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class ServerDescriptor:
    """One configured remote DICOM node.

    Attributes:
        name: Display name; doubles as the server key within a run.
        address: Hostname or IP address.
        port: DICOM port.
        ae_title: Called AE title of the remote node.
        checked: ``True`` when the node takes part in the next query.
    """

    name: str
    address: str
    port: int
    ae_title: str
    checked: bool = True


@dataclass(frozen=True, slots=True)
class StorageParams:
    """Local storage parameters used for every C-MOVE.

    Attributes:
        move_destination: AE title the remote node sends instances to.
        calling_port: Port of the local storage node.
    """

    move_destination: str
    calling_port: int


# --------------------------------------------------------------------------- #
# Per-run contexts                                                            #
# --------------------------------------------------------------------------- #
@dataclass(slots=True)
class QueryContext:
    """Connection and filter parameters of one server's query in one run."""

    server: str
    calling_ae_title: str
    called_ae_title: str
    host: str
    port: int
    filters: Dict[str, str] = field(default_factory=dict)
    study_uids: Set[str] = field(default_factory=set)

    @classmethod
    def for_server(
        cls,
        server: ServerDescriptor,
        calling_ae_title: str,
        filters: Dict[str, str],
    ) -> "QueryContext":
        """Build a fresh context for *server* using the run's filter set."""
        return cls(
            server=server.name,
            calling_ae_title=calling_ae_title,
            called_ae_title=server.ae_title,
            host=server.address,
            port=server.port,
            filters=dict(filters),
        )


@dataclass(frozen=True, slots=True)
class RetrieveContext:
    """Everything a single study retrieve needs.

    Remote parameters come from the :class:`QueryContext` that discovered
    the study; the move destination and calling port come from local
    storage configuration.
    """

    study_uid: str
    server: str
    calling_ae_title: str
    called_ae_title: str
    host: str
    port: int
    move_destination: str
    calling_port: int

    @classmethod
    def from_query(
        cls,
        owner: QueryContext,
        study_uid: str,
        storage: StorageParams,
    ) -> "RetrieveContext":
        return cls(
            study_uid=study_uid,
            server=owner.server,
            calling_ae_title=owner.calling_ae_title,
            called_ae_title=owner.called_ae_title,
            host=owner.host,
            port=owner.port,
            move_destination=storage.move_destination,
            calling_port=storage.calling_port,
        )


@dataclass(frozen=True, slots=True)
class StudyRecord:
    """One study-level C-FIND match."""

    study_uid: str
    patient_name: str = ""
    patient_id: str = ""
    study_date: str = ""
    study_time: str = ""
    study_description: str = ""
    accession_number: str = ""
    modalities: str = ""


# --------------------------------------------------------------------------- #
# Explicit run outcomes                                                       #
# --------------------------------------------------------------------------- #
class ErrorKind(str, Enum):
    """Failure categories reported in run results."""

    STAGING_STORE = "staging_store"
    SERVER_QUERY = "server_query"
    STUDY_RETRIEVE = "study_retrieve"
    UNKNOWN_STUDY = "unknown_study"


class RetrievePhase(str, Enum):
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class QueryOutcome:
    """Result of one server's query within a run."""

    server: str
    study_uids: Set[str] = field(default_factory=set)
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class QueryRunResult:
    """Aggregate result of a query run.

    Attributes:
        owners: StudyInstanceUID → owning :class:`QueryContext`.
        outcomes: One entry per server actually dispatched, in order.
        conflicts: UIDs reported by more than one server, mapped to every
            reporting server in processing order (the last one owns it).
        cancelled: ``True`` when the run stopped at a server boundary.
        error: Set only when the whole run was aborted before any server
            was contacted.
        message: Human-readable detail for *error*.
    """

    owners: Dict[str, QueryContext] = field(default_factory=dict)
    outcomes: List[QueryOutcome] = field(default_factory=list)
    conflicts: Dict[str, List[str]] = field(default_factory=dict)
    cancelled: bool = False
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def errors(self) -> Dict[str, str]:
        """Map each failed server name to its error message."""
        return {o.server: o.message for o in self.outcomes if not o.ok}

    @property
    def aborted(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class RetrieveOutcome:
    """Result of one study's retrieve within a run."""

    study_uid: str
    server: str = ""
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class RetrieveRunResult:
    """Aggregate result of a retrieve run.

    ``outcomes`` holds every attempted study in dispatch order; a failed
    outcome, when present, is always the last entry.
    """

    outcomes: List[RetrieveOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def retrieved(self) -> List[str]:
        return [o.study_uid for o in self.outcomes if o.ok]

    @property
    def failure(self) -> Optional[RetrieveOutcome]:
        for outcome in self.outcomes:
            if not outcome.ok:
                return outcome
        return None

    @property
    def ok(self) -> bool:
        return self.failure is None
