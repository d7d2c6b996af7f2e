"""Local file storage for uploads.

Every file in a request is checked against the extension allow-list and the
size limit before the first one is written, so a rejected request leaves no
files or records behind.
"""
import logging
import os
import secrets
import shutil
import time
from typing import Iterable, Optional

from fastapi import UploadFile
from pydantic import BaseModel

from reqhub.core.config import Settings
from reqhub.core.errors import ValidationError

logger = logging.getLogger(__name__)

ASSET_EXTENSIONS = {
    ".jpeg", ".jpg", ".png", ".gif", ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    ".ppt", ".pptx", ".zip", ".rar", ".mp4", ".mp3", ".obj", ".fbx", ".glb", ".gltf",
}
CLIENT_DOCUMENT_EXTENSIONS = {
    ".jpeg", ".jpg", ".png", ".gif", ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    ".ppt", ".pptx", ".txt", ".zip", ".rar",
}

CLIENT_DOCUMENTS_DIR = "client-documents"


class StoredFile(BaseModel):
    original_name: str
    stored_name: str
    url: str
    size: int
    mime_type: Optional[str] = None


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def _size_of(upload: UploadFile) -> int:
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def validate_uploads(files: Iterable[UploadFile], allowed_extensions, max_size: int) -> None:
    for upload in files:
        if _extension(upload.filename) not in allowed_extensions:
            raise ValidationError(f"Invalid file type: {upload.filename}")
        if _size_of(upload) > max_size:
            raise ValidationError(f"File too large: {upload.filename}")


def store_upload(upload: UploadFile, settings: Settings, subdir: str = "", prefix: str = "") -> StoredFile:
    stored_name = f"{prefix}{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{_extension(upload.filename)}"
    directory = os.path.join(settings.upload_dir, subdir) if subdir else settings.upload_dir
    os.makedirs(directory, exist_ok=True)

    path = os.path.join(directory, stored_name)
    upload.file.seek(0)
    with open(path, "wb") as out:
        shutil.copyfileobj(upload.file, out)

    url = "/uploads/" + (f"{subdir}/{stored_name}" if subdir else stored_name)
    logger.info("Stored upload %s as %s", upload.filename, url)
    return StoredFile(
        original_name=upload.filename,
        stored_name=stored_name,
        url=url,
        size=os.path.getsize(path),
        mime_type=upload.content_type,
    )


def asset_type_for_mime(mime_type: Optional[str]) -> str:
    mime = (mime_type or "").lower()
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    if mime.startswith("audio/"):
        return "audio"
    if any(k in mime for k in ("pdf", "document", "sheet", "presentation")):
        return "document"
    if any(k in mime for k in ("model", "obj", "fbx")):
        return "3d_model"
    return "other"


def document_type_for_filename(filename: str) -> str:
    ext = _extension(filename)
    if ext in (".jpg", ".jpeg", ".png", ".gif", ".webp"):
        return "image"
    if ext in (".pdf", ".doc", ".docx", ".txt", ".rtf", ".xls", ".xlsx", ".csv", ".ppt", ".pptx"):
        return "document"
    return "other"
