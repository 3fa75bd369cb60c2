"""Custom exception hierarchy for the exam archive."""

from __future__ import annotations

from enum import Enum


class UploadErrorKind(str, Enum):
    """Discriminates why an upload attempt failed."""

    MISSING_FILE = "missing-file"
    INVALID_DESCRIPTOR = "invalid-descriptor"
    BACKEND_UNAVAILABLE = "backend-unavailable"
    ALREADY_EXISTS = "already-exists"
    COPY_FAILED = "copy-failed"
    COMMIT_FAILED = "commit-failed"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class ArchiveError(Exception):
    """Base exception for all archive-specific errors."""

    kind: UploadErrorKind = UploadErrorKind.INTERNAL

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ArchiveError):
    """Raised when configuration is invalid or missing."""
    pass


class InvalidDescriptorError(ArchiveError):
    """Raised when submitted form fields do not describe a valid document."""

    kind = UploadErrorKind.INVALID_DESCRIPTOR


class MissingFileError(ArchiveError):
    """Raised when the request carries no readable file part."""

    kind = UploadErrorKind.MISSING_FILE


class StorageError(ArchiveError):
    """Base class for object storage failures."""
    pass


class BackendUnavailableError(StorageError):
    """Raised when the storage client or write session cannot be set up."""

    kind = UploadErrorKind.BACKEND_UNAVAILABLE


class ObjectExistsError(StorageError):
    """Raised when the conditional write finds an object already at the key."""

    kind = UploadErrorKind.ALREADY_EXISTS


class CopyFailedError(StorageError):
    """Raised when streaming bytes into an open write session fails."""

    kind = UploadErrorKind.COPY_FAILED


class CommitFailedError(StorageError):
    """Raised when finalizing a write session fails."""

    kind = UploadErrorKind.COMMIT_FAILED


class UploadTimeoutError(StorageError):
    """Raised when an upload attempt runs past its deadline."""

    kind = UploadErrorKind.TIMEOUT


CLIENT_ERROR_KINDS = frozenset({UploadErrorKind.MISSING_FILE, UploadErrorKind.INVALID_DESCRIPTOR})


__all__ = [
    "UploadErrorKind",
    "ArchiveError",
    "ConfigurationError",
    "InvalidDescriptorError",
    "MissingFileError",
    "StorageError",
    "BackendUnavailableError",
    "ObjectExistsError",
    "CopyFailedError",
    "CommitFailedError",
    "UploadTimeoutError",
    "CLIENT_ERROR_KINDS",
]
