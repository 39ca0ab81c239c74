"""Domain-specific exceptions for the ingest pipeline."""

from ..exceptions import AppError, StorageCommitError
from ..media.probe import ProbeError


class IngestError(AppError):
    """Base class for ingest-related errors."""


class ClientInputError(IngestError):
    """Raised when the upload itself is unacceptable; never retried."""


class MissingUploadError(ClientInputError):
    """Raised when the multipart file field is absent or empty."""


class InvalidIdentifierError(ClientInputError):
    """Raised when the target video identifier cannot be parsed."""


class UnsupportedMediaError(ClientInputError):
    """Raised when declared or sniffed Content-Type is not allowed."""


class PayloadTooLargeError(ClientInputError):
    """Raised when uploaded file exceeds configured limits."""


class UploadReadError(ClientInputError):
    """Raised when streaming the upload fails."""


class AuthorizationError(IngestError):
    """Raised when the authenticated user does not own the target video."""


class PersistenceError(IngestError):
    """Raised when the stored URL could not be written to the video record."""


__all__ = [
    "AuthorizationError",
    "ClientInputError",
    "IngestError",
    "InvalidIdentifierError",
    "MissingUploadError",
    "PayloadTooLargeError",
    "PersistenceError",
    "ProbeError",
    "StorageCommitError",
    "UnsupportedMediaError",
    "UploadReadError",
]
