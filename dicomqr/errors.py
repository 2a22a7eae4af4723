"""Custom exceptions used across the query/retrieve workflow."""

from __future__ import annotations


class DicomQRError(RuntimeError):
    """Base class for every error raised by *dicomqr*."""

    pass


class StagingStoreError(DicomQRError):
    """Raised when a study index cannot be opened, written or read."""

    pass


class ProtocolError(DicomQRError):
    """Raised when a query or retrieve against a remote node fails.

    Attributes:
        server: Name of the node involved, when known.
    """

    def __init__(self, message: str, server: str | None = None) -> None:
        super().__init__(message)
        self.server = server


class OrchestratorBusyError(DicomQRError):
    """Raised when a run is requested while another run is in progress."""

    pass


class ConfigError(DicomQRError):
    """Raised when the YAML configuration is missing or invalid."""

    pass
