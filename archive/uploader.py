"""Conditional upload of archive documents to object storage."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable

from loguru import logger

from archive.descriptor import UploadDescriptor
from archive.exceptions import ArchiveError, CopyFailedError, ObjectExistsError, UploadTimeoutError
from archive.keys import object_key
from archive.settings import UploadSettings
from archive.storage import ObjectStorage


class UploadState(str, Enum):
    IDLE = "idle"
    SESSION_ESTABLISHED = "session-established"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadResult:
    key: str
    bucket: str
    uri: str
    size: int
    state: UploadState = UploadState.COMMITTED


class Deadline:
    """Wall-clock budget for a single upload attempt."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.seconds = seconds
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self, state: UploadState) -> None:
        if self.expired():
            raise UploadTimeoutError(
                f"upload timed out after {self.seconds:g}s",
                {"state": state.value, "timeout_seconds": f"{self.seconds:g}"},
            )


class Uploader:
    """Streams a document into storage under its derived key, never overwriting.

    The storage backend and upload limits are injected at construction so the
    bucket is resolved once at startup rather than per request.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        settings: UploadSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.storage = storage
        self.settings = settings or UploadSettings()
        self._clock = clock

    def upload(self, descriptor: UploadDescriptor, stream: BinaryIO) -> UploadResult:
        """Copy ``stream`` to the key derived from ``descriptor``.

        Raises:
            BackendUnavailableError: The write session could not be opened.
            CopyFailedError: Reading the stream or sending a chunk failed.
            ObjectExistsError: An object already exists at the derived key.
            CommitFailedError: The backend rejected or failed the final commit.
            UploadTimeoutError: The attempt ran past ``timeout_seconds``.
        """
        key = object_key(descriptor)
        deadline = Deadline(self.settings.timeout_seconds, self._clock)
        state = UploadState.IDLE
        session = None
        size = 0
        logger.info("Uploading {key} to bucket {bucket}", key=key, bucket=self.storage.bucket)

        try:
            deadline.check(state)
            session = self.storage.open_write(key, timeout=deadline.remaining())
            state = UploadState.SESSION_ESTABLISHED
            deadline.check(state)

            state = UploadState.STREAMING
            while True:
                try:
                    chunk = stream.read(self.settings.chunk_size)
                except (OSError, ValueError) as exc:
                    raise CopyFailedError(f"read: {exc}", {"key": key}) from exc
                if not chunk:
                    break
                session.write(chunk)
                size += len(chunk)
                deadline.check(state)

            state = UploadState.FINALIZING
            deadline.check(state)
            session.commit(timeout=deadline.remaining())
            if deadline.expired():
                # Committed too late; take the object back out so the attempt leaves nothing.
                session.discard()
                deadline.check(state)
            state = UploadState.COMMITTED
        except ArchiveError as exc:
            if deadline.expired() and not isinstance(exc, (UploadTimeoutError, ObjectExistsError)):
                timeout = UploadTimeoutError(
                    f"upload timed out after {deadline.seconds:g}s: {exc.message}",
                    {"state": state.value, "key": key, "cause": exc.kind.value},
                )
                logger.warning("Upload of {key} timed out while {state}", key=key, state=state.value)
                raise timeout from exc
            exc.details.setdefault("state", state.value)
            exc.details.setdefault("key", key)
            logger.warning(
                "Upload of {key} failed while {state} ({kind}): {message}",
                key=key,
                state=state.value,
                kind=exc.kind.value,
                message=exc.message,
            )
            raise
        finally:
            if session is not None and state is not UploadState.COMMITTED:
                session.abort()

        logger.info("Uploaded {key} ({size} bytes)", key=key, size=size)
        return UploadResult(key=key, bucket=self.storage.bucket, uri=self.storage.uri(key), size=size)


__all__ = ["Uploader", "UploadResult", "UploadState", "Deadline"]
