from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from .errors import FileTooLarge, InvalidFileType, NoFileUploaded
from .security import client_basename
from .storage import StoragePaths, remove_files, reserve_upload_path


logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",  # .docx
    "application/msword",  # .doc
}
ALLOWED_EXTENSIONS = (".docx", ".doc")


@dataclass(frozen=True)
class UploadedDocument:
    original_filename: str
    stored_filename: str
    stored_path: Path
    content_type: str
    size_bytes: int


def is_allowed_document(filename: str, content_type: Optional[str]) -> bool:
    """Accept if either the declared MIME type or the extension looks like Word."""
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct in ALLOWED_MIME_TYPES:
        return True
    return filename.lower().endswith(ALLOWED_EXTENSIONS)


def _persist(storage: StoragePaths, original: str, data: bytes) -> Path:
    path = reserve_upload_path(storage, original)
    try:
        path.write_bytes(data)
    except BaseException:
        remove_files([path])
        raise
    return path


async def receive_upload(
    file: Optional[UploadFile],
    storage: StoragePaths,
    max_upload_bytes: int,
) -> UploadedDocument:
    """Validate the multipart upload and persist it to the upload dir.

    Type and size are both checked before anything touches the disk.
    """
    if file is None or not file.filename:
        raise NoFileUploaded()

    original = client_basename(file.filename)
    if not is_allowed_document(original, file.content_type):
        logger.info("Rejected upload %r with content type %r", original, file.content_type)
        raise InvalidFileType()

    # Limit read to one byte past the cap so oversize uploads are detected without
    # buffering the whole body.
    data = await file.read(max_upload_bytes + 1)
    if len(data) > max_upload_bytes:
        logger.info("Rejected upload %r: larger than %d bytes", original, max_upload_bytes)
        raise FileTooLarge(max_upload_bytes)

    # Up to 50MB of disk I/O; keep it off the event loop.
    path = await asyncio.to_thread(_persist, storage, original, data)

    return UploadedDocument(
        original_filename=original,
        stored_filename=path.name,
        stored_path=path,
        content_type=file.content_type or "application/octet-stream",
        size_bytes=len(data),
    )
