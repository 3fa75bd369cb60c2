"""Storage abstraction (S3-compatible object store or local filesystem fallback).

Backends only ever create objects conditionally: a write session commits when
no object exists at its key and fails with ``ObjectExistsError`` otherwise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from archive.settings import Settings


class WriteSession(Protocol):
    key: str

    def write(self, chunk: bytes) -> None:
        ...

    def commit(self, timeout: float | None = None) -> None:  # create-if-absent
        ...

    def abort(self) -> None:
        ...

    def discard(self) -> None:  # removes an object this session committed
        ...


class ObjectStorage(Protocol):
    bucket: str

    def open_write(self, key: str, timeout: float | None = None) -> WriteSession:
        ...

    def exists(self, key: str) -> bool:
        ...

    def read(self, key: str) -> bytes:
        ...

    def uri(self, key: str) -> str:
        ...


def create_storage(settings: "Settings") -> ObjectStorage:
    """Build the backend named by ``settings.storage.backend``."""
    storage = settings.storage
    if storage.backend == "local":
        from archive.storage.local import LocalStorage

        return LocalStorage(storage.local_root)

    from archive.storage.s3 import S3Storage

    return S3Storage(
        storage.bucket_name,
        prefix=storage.prefix,
        region=storage.region,
        endpoint_url=storage.endpoint_url,
        timeout_seconds=settings.upload.timeout_seconds,
        part_size=settings.upload.chunk_size,
    )


__all__ = ["ObjectStorage", "WriteSession", "create_storage"]
