"""Exception taxonomy for template_sync.

Cancellation by the user is an outcome value (``Decision.CANCEL``), not an
exception, and never appears here.
"""

from __future__ import annotations


class TemplateSyncError(Exception):
    """Base class for all template_sync errors."""


class FileAccessError(TemplateSyncError):
    """Reading or writing a tracked path failed.

    Attributes:
        path: The path that could not be accessed.
        reason: Short description of the underlying failure.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot access {path}: {reason}")
        self.path = path
        self.reason = reason


class FileTooLargeError(FileAccessError):
    """A file exceeds the configured size limit."""


class StoreCorruptError(TemplateSyncError):
    """The fingerprint file exists but cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Fingerprint store {path} is unreadable: {reason}")
        self.path = path
        self.reason = reason


class RemoteUnavailableError(TemplateSyncError):
    """The remote store could not serve a request.

    Attributes:
        artifact_id: Template id the request was for.
        status: HTTP status code, if a response was received.
    """

    def __init__(
        self,
        message: str,
        artifact_id: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.artifact_id = artifact_id
        self.status = status


class AuthenticationError(RemoteUnavailableError):
    """The remote rejected the credentials (HTTP 401)."""


class MalformedResponseError(TemplateSyncError):
    """A remote response matched none of the known envelope shapes."""


class StaleDecisionError(TemplateSyncError):
    """On-disk state changed between evaluation and the resumed decision."""


class InvalidDecisionError(TemplateSyncError, ValueError):
    """The decision is not valid for the pending operation."""
