from __future__ import annotations

from typing import Any, Callable, Optional

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from archive.exceptions import (
    BackendUnavailableError,
    CommitFailedError,
    CopyFailedError,
    ObjectExistsError,
)
from archive.settings import MIN_PART_SIZE


# Codes S3 returns when a conditional write loses against an existing object.
_CONDITION_FAILED_CODES = {"PreconditionFailed", "ConditionalRequestConflict", "412", "409"}

# botocore rejects non-positive timeouts; an expired budget still gets one short try.
_MIN_TIMEOUT = 0.1


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _is_not_found(exc: ClientError) -> bool:
    return _error_code(exc) in {"404", "NoSuchKey", "NotFound"}


class S3WriteSession:
    """Multipart upload that only becomes visible once completed.

    Parts are buffered up to ``part_size`` bytes; the final part is sent on
    :meth:`commit`, which completes the upload with ``IfNoneMatch="*"``.
    """

    def __init__(
        self,
        client: BaseClient,
        bucket: str,
        key: str,
        upload_id: str,
        part_size: int,
        client_for: Callable[[float | None], BaseClient] | None = None,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.key = key
        self.upload_id = upload_id
        self.part_size = part_size
        self._client_for = client_for
        self._buffer = bytearray()
        self._parts: list[dict[str, Any]] = []
        self._closed = False
        self._committed = False

    def _upload_part(self, body: bytes, client: BaseClient) -> None:
        part_number = len(self._parts) + 1
        try:
            response = client.upload_part(
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self.upload_id,
                PartNumber=part_number,
                Body=body,
            )
        except (BotoCoreError, ClientError) as exc:
            raise CopyFailedError(
                f"upload_part: {exc}",
                {"key": self.key, "part": str(part_number)},
            ) from exc
        self._parts.append({"ETag": response["ETag"], "PartNumber": part_number})

    def write(self, chunk: bytes) -> None:
        self._buffer.extend(chunk)
        while len(self._buffer) >= self.part_size:
            body = bytes(self._buffer[: self.part_size])
            del self._buffer[: self.part_size]
            self._upload_part(body, self.client)

    def commit(self, timeout: float | None = None) -> None:
        client = self._client_for(timeout) if self._client_for and timeout is not None else self.client
        # Empty objects still need one (empty) part to complete the upload.
        if self._buffer or not self._parts:
            body = bytes(self._buffer)
            self._buffer.clear()
            self._upload_part(body, client)
        try:
            client.complete_multipart_upload(
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self.upload_id,
                MultipartUpload={"Parts": self._parts},
                IfNoneMatch="*",
            )
        except ClientError as exc:
            if _error_code(exc) in _CONDITION_FAILED_CODES:
                raise ObjectExistsError(
                    f"Object already exists: s3://{self.bucket}/{self.key}",
                    {"key": self.key},
                ) from exc
            raise CommitFailedError(f"complete_multipart_upload: {exc}", {"key": self.key}) from exc
        except BotoCoreError as exc:
            raise CommitFailedError(f"complete_multipart_upload: {exc}", {"key": self.key}) from exc
        self._closed = True
        self._committed = True

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.client.abort_multipart_upload(Bucket=self.bucket, Key=self.key, UploadId=self.upload_id)
        except (BotoCoreError, ClientError) as exc:
            logger.warning(
                "Could not abort multipart upload {upload_id} for {key}: {error}",
                upload_id=self.upload_id,
                key=self.key,
                error=exc,
            )

    def discard(self) -> None:
        if not self._committed:
            return
        self._committed = False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self.key)
        except (BotoCoreError, ClientError) as exc:
            raise CommitFailedError(f"delete_object: {exc}", {"key": self.key}) from exc


class S3Storage:
    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        *,
        endpoint_url: Optional[str] = None,
        timeout_seconds: float = 50.0,
        part_size: int = 8 * 1024 * 1024,
        client: BaseClient | None = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.part_size = max(part_size, MIN_PART_SIZE)
        self.endpoint_url = endpoint_url
        self.timeout_seconds = timeout_seconds
        self._injected = client is not None
        if client is not None:
            self.client = client
            return
        try:
            self._session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            self.client = self._build_client(timeout_seconds)
        except BotoCoreError as exc:
            raise BackendUnavailableError(f"storage client: {exc}", {"bucket": bucket}) from exc

    def _build_client(self, timeout: float) -> BaseClient:
        timeout = max(timeout, _MIN_TIMEOUT)
        config = Config(
            signature_version="s3v4",
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"max_attempts": 1, "mode": "standard"},
        )
        return self._session.client("s3", endpoint_url=self.endpoint_url, config=config)

    def client_for(self, timeout: float | None) -> BaseClient:
        """Return a client whose connect/read timeouts fit in ``timeout`` seconds."""
        if self._injected or timeout is None:
            return self.client
        try:
            return self._build_client(min(timeout, self.timeout_seconds))
        except BotoCoreError as exc:
            raise BackendUnavailableError(f"storage client: {exc}", {"bucket": self.bucket}) from exc

    def _key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def uri(self, key: str) -> str:
        return f"s3://{self.bucket}/{self._key(key)}"

    def open_write(self, key: str, timeout: float | None = None) -> S3WriteSession:
        s3_key = self._key(key)
        client = self.client_for(timeout)
        try:
            response = client.create_multipart_upload(
                Bucket=self.bucket,
                Key=s3_key,
                ContentType="application/pdf",
            )
        except (BotoCoreError, ClientError) as exc:
            raise BackendUnavailableError(
                f"create_multipart_upload: {exc}",
                {"bucket": self.bucket, "key": s3_key},
            ) from exc
        return S3WriteSession(client, self.bucket, s3_key, response["UploadId"], self.part_size, self.client_for)

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise
        return True

    def read(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.bucket, Key=self._key(key))
        return response["Body"].read()


__all__ = ["S3Storage", "S3WriteSession"]
