"""FastAPI exception handlers for archive exceptions."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import PlainTextResponse
from loguru import logger

from archive.exceptions import CLIENT_ERROR_KINDS, ArchiveError, UploadErrorKind


ERROR_KIND_HEADER = "X-Upload-Error"


async def archive_exception_handler(request: Request, exc: ArchiveError) -> PlainTextResponse:
    """Render archive errors as the plain-text message.

    Only client-side problems get a 4xx status; storage failures keep 200 and
    are told apart through the ``X-Upload-Error`` header.
    """
    if exc.kind in CLIENT_ERROR_KINDS:
        status_code = status.HTTP_400_BAD_REQUEST
    elif exc.kind is UploadErrorKind.INTERNAL:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        status_code = status.HTTP_200_OK

    logger.error(
        "Archive exception: {type} - {message}",
        type=type(exc).__name__,
        message=exc.message,
        details=exc.details,
    )

    return PlainTextResponse(
        exc.message,
        status_code=status_code,
        headers={ERROR_KIND_HEADER: exc.kind.value},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    logger.opt(exception=exc).error("Unhandled exception on {path}", path=request.url.path)
    return PlainTextResponse(
        f"{type(exc).__name__}: {exc}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers={ERROR_KIND_HEADER: UploadErrorKind.INTERNAL.value},
    )
