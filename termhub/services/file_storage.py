"""Local disk storage for project files and cover images.

Uploaded bytes live under settings.UPLOAD_DIR/<project_id>/. Only the
storage-relative path is persisted in the database, so the upload directory
can move without a data migration.
"""
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable, List, Optional

from fastapi import HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from termhub.core.config import settings
from termhub.core.security import generate_stored_filename

logger = logging.getLogger(__name__)


@dataclass
class StoredUpload:
    original_name: str
    stored_name: str
    mime_type: Optional[str]
    size: int
    path: str


def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR)


def resolve_path(relative_path: str) -> Path:
    """
    Map a storage-relative path to an absolute path inside the upload root.
    Raises:
        HTTPException: If the path escapes the upload root (404)
    """
    root = upload_root().resolve()
    target = (root / relative_path).resolve()
    if root != target and root not in target.parents:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return target


def _write_bytes(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as fh:
        fh.write(content)


async def save_upload(project_id: str, upload: UploadFile, subdir: str = "files") -> StoredUpload:
    """
    Persist one uploaded file for a project.
    Args:
        project_id: Owning project, used as the directory name
        upload: Incoming multipart file
        subdir: "files" for project files, "images" for cover images
    Returns:
        StoredUpload: Metadata for the ProjectFile row
    Raises:
        HTTPException: If the file is empty-named or larger than MAX_UPLOAD_SIZE
    """
    original_name = PurePath(upload.filename or "").name
    if not original_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file has no name")

    content = await upload.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"{original_name} exceeds the {settings.MAX_UPLOAD_SIZE} byte upload limit",
        )

    stored_name = generate_stored_filename(original_name)
    relative_path = f"{project_id}/{subdir}/{stored_name}"
    await run_in_threadpool(_write_bytes, resolve_path(relative_path), content)

    return StoredUpload(
        original_name=original_name,
        stored_name=stored_name,
        mime_type=upload.content_type,
        size=len(content),
        path=relative_path,
    )


async def save_uploads(project_id: str, uploads: Iterable[UploadFile]) -> List[StoredUpload]:
    stored = []
    try:
        for upload in uploads:
            stored.append(await save_upload(project_id, upload))
    except Exception:
        await discard([item.path for item in stored])
        raise
    return stored


def _unlink_all(paths: List[str]) -> None:
    for relative_path in paths:
        try:
            resolve_path(relative_path).unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to delete stored file %s: %s", relative_path, exc)


async def discard(paths: List[str]) -> None:
    """Remove files written for a request whose database transaction did not commit."""
    if paths:
        await run_in_threadpool(_unlink_all, list(paths))


async def remove_project_directory(project_id: str) -> None:
    """Delete everything stored for a project. Missing directories are ignored."""
    target = resolve_path(project_id)
    if target == upload_root().resolve():
        return

    def _rmtree() -> None:
        try:
            shutil.rmtree(target)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error("Failed to delete upload directory %s: %s", target, exc)

    await run_in_threadpool(_rmtree)
