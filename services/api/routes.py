from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from archive.descriptor import UploadDescriptor
from archive.exceptions import MissingFileError
from archive.uploader import Uploader
from services.api.utils import UPLOAD_FORM_HTML, uploader_provider


router = APIRouter()

DESCRIPTOR_FIELDS = ("study", "year", "code", "type", "answers", "date")


@router.get("/", response_class=HTMLResponse)
async def upload_form() -> str:
    return UPLOAD_FORM_HTML


@router.post("/upload", response_class=PlainTextResponse)
async def upload(
    request: Request,
    get_uploader: Callable[[], Uploader] = Depends(uploader_provider),
) -> str:
    """Archive the submitted file under the key derived from the form fields."""
    try:
        form = await request.form()
    except MultiPartException as exc:
        raise MissingFileError(exc.message, {"field": "file"}) from exc
    except StarletteHTTPException as exc:
        raise MissingFileError(str(exc.detail), {"field": "file"}) from exc

    file = form.get("file")
    if not isinstance(file, UploadFile):
        raise MissingFileError("http: no such file", {"field": "file"})

    try:
        descriptor = UploadDescriptor.from_form({name: form.get(name) for name in DESCRIPTOR_FIELDS})
        logger.debug("Upload form {descriptor} for {filename}", descriptor=descriptor, filename=file.filename)
        uploader = get_uploader()
        result = await run_in_threadpool(uploader.upload, descriptor, file.file)
    finally:
        await file.close()

    return f"File uploaded successfully!\nBlob {result.key} uploaded.\n"


__all__ = ["router"]
