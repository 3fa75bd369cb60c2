from __future__ import annotations

import os
import tempfile
from pathlib import Path

from archive.exceptions import (
    BackendUnavailableError,
    CommitFailedError,
    CopyFailedError,
    ObjectExistsError,
)


class LocalWriteSession:
    """Writes to a hidden temp file beside the target and links it into place on commit."""

    def __init__(self, key: str, target: Path) -> None:
        self.key = key
        self.target = target
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".part")
        self._tmp_path = Path(tmp_name)
        self._fp = os.fdopen(fd, "wb")
        self._closed = False
        self._committed = False

    def write(self, chunk: bytes) -> None:
        try:
            self._fp.write(chunk)
        except OSError as exc:
            raise CopyFailedError(f"write: {exc}", {"key": self.key}) from exc

    def commit(self, timeout: float | None = None) -> None:
        try:
            self._fp.flush()
            os.fsync(self._fp.fileno())
            self._fp.close()
            # link() refuses to replace an existing path, which makes this create-if-absent.
            os.link(self._tmp_path, self.target)
        except FileExistsError as exc:
            raise ObjectExistsError(f"Object already exists: {self.target}", {"key": self.key}) from exc
        except OSError as exc:
            raise CommitFailedError(f"link: {exc}", {"key": self.key}) from exc
        finally:
            self._fp.close()
            self._tmp_path.unlink(missing_ok=True)
        self._closed = True
        self._committed = True

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._fp.close()
        self._tmp_path.unlink(missing_ok=True)

    def discard(self) -> None:
        if not self._committed:
            return
        self._committed = False
        try:
            self.target.unlink(missing_ok=True)
        except OSError as exc:
            raise CommitFailedError(f"unlink: {exc}", {"key": self.key}) from exc


class LocalStorage:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.bucket = self.root.name
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Key escapes storage root: {key}")
        return path

    def uri(self, key: str) -> str:
        return self._path(key).as_uri()

    def open_write(self, key: str, timeout: float | None = None) -> LocalWriteSession:
        target = self._path(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            return LocalWriteSession(key, target)
        except OSError as exc:
            raise BackendUnavailableError(f"open: {exc}", {"key": key}) from exc

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def read(self, key: str) -> bytes:
        return self._path(key).read_bytes()


__all__ = ["LocalStorage", "LocalWriteSession"]
