# storage.py
import logging
import os
import shutil
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

logger = logging.getLogger(__name__)


class UploadStore(ABC):
    """Persists an uploaded file and returns a stable path for it."""

    @abstractmethod
    async def store(self, upload: UploadFile) -> str:
        ...


class DiskUploadStore(UploadStore):
    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(self.directory, exist_ok=True)

    async def store(self, upload: UploadFile) -> str:
        original = os.path.basename(upload.filename or "upload")
        filename = f"{uuid.uuid4().hex}-{original}"
        path = os.path.join(self.directory, filename)

        await upload.seek(0)
        await run_in_threadpool(self._copy, upload.file, path)

        logger.info(f"Stored upload {original!r} as {path}")
        return path

    @staticmethod
    def _copy(source, path: str):
        with open(path, "wb") as fh:
            shutil.copyfileobj(source, fh)


async def read_payload(request: Request, file_field: str) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """
    Read a JSON body or a multipart/urlencoded form.

    Returns the plain fields plus the uploaded file under `file_field`, if any.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Malformed JSON body")
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Request body must be a JSON object")
        return data, None

    form = await request.form()
    data: Dict[str, Any] = {}
    upload = None
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == file_field and value.filename:
                upload = value
            continue
        data[key] = value
    return data, upload
