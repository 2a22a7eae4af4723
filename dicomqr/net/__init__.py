"""Network operations against remote DICOM nodes.

The subpackage builds and runs dcm4che ``findscu``/``movescu`` commands and
parses their output.  :mod:`dicomqr.net.base` declares the small interfaces
the sessions depend on, so other transports can be dropped in.
"""

from .base import QueryOperation, RetrieveOperation
from .query import DicomQuery
from .retrieve import DicomRetrieve

__all__ = ["QueryOperation", "RetrieveOperation", "DicomQuery", "DicomRetrieve"]
