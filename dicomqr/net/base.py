"""Operation interfaces used by the query and retrieve sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Set

from dicomqr.models import QueryContext, RetrieveContext
from dicomqr.progress import ProgressCallback

if TYPE_CHECKING:
    from dicomqr.staging import StudyIndex


class QueryOperation(ABC):
    """One study-level query against one remote node.

    Implementations are stateless between calls: everything they need
    arrives through the :class:`QueryContext`.
    """

    @abstractmethod
    def query(
        self,
        context: QueryContext,
        index: "StudyIndex",
        progress: Optional[ProgressCallback] = None,
    ) -> Set[str]:
        """Run the query and load the matches into *index*.

        Args:
            context: Connection parameters and filter set.
            index: Staging index receiving the discovered study records.
            progress: Optional callback receiving incremental progress.

        Returns:
            StudyInstanceUIDs discovered on the node.

        Raises:
            ProtocolError: If the node is unreachable or the response is
                malformed.
        """
        raise NotImplementedError


class RetrieveOperation(ABC):
    """One study retrieve from one remote node."""

    @abstractmethod
    def retrieve_study(self, context: RetrieveContext, destination: "StudyIndex") -> None:
        """Pull the study described by *context* to the move destination.

        Raises:
            ProtocolError: On connection, authorization or storage failure.
        """
        raise NotImplementedError
