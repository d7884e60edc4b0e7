"""Multipart upload handling.

Every endpoint that accepts files declares an :class:`UploadProfile`: the
multipart field names it accepts, the :class:`UploadKind` each of them maps
to, and a per-file size cap. A kind decides where a file lands on disk, how
the stored name is built and which extensions/content types are allowed.

All files of a request are checked before any of them is written, so a
rejected request never leaves partial files behind.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping

from werkzeug.datastructures import FileStorage, MultiDict

from . import config

logger = logging.getLogger(__name__)

MIB = 1024 * 1024

FILE_TOO_LARGE_MESSAGE = "File too large. Please upload a smaller file."
UNEXPECTED_FIELD_MESSAGE = "Unexpected field"
URL_PREFIX = "/uploads"


class UploadError(Exception):
    """A multipart upload was rejected (wrong type, oversize, unknown field)."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


@dataclass(frozen=True)
class UploadKind:
    prefix: str
    directory: str
    extensions: FrozenSet[str]
    mime_types: FrozenSet[str]
    error_message: str

    def accepts(self, filename: str, mimetype: str | None) -> bool:
        extension = os.path.splitext(filename or "")[1].lower().lstrip(".")
        content_type = (mimetype or "").split(";", 1)[0].strip().lower()
        return extension in self.extensions and content_type in self.mime_types


@dataclass(frozen=True)
class UploadProfile:
    fields: Mapping[str, UploadKind]
    max_size: int


@dataclass
class StoredFile:
    field: str
    original_name: str
    filename: str
    path: str
    url: str
    size: int
    content_type: str


IMAGE = UploadKind(
    prefix="image",
    directory="images",
    extensions=frozenset({"jpeg", "jpg", "png", "gif", "webp"}),
    mime_types=frozenset(
        {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
    ),
    error_message="Only image files are allowed!",
)

RESUME = UploadKind(
    prefix="resume",
    directory="resumes",
    extensions=frozenset({"pdf", "doc", "docx"}),
    mime_types=frozenset(
        {
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        }
    ),
    error_message="Only PDF and Word documents are allowed for resumes!",
)

NOTE_DOCUMENT = UploadKind(
    prefix="note",
    directory="notes",
    extensions=frozenset({"pdf", "doc", "docx", "ppt", "pptx", "txt"}),
    mime_types=frozenset(
        {
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.ms-powerpoint",
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
            "text/plain",
        }
    ),
    error_message="Only PDF, Word, PowerPoint and text documents are allowed for notes!",
)

UPLOAD_KINDS = (IMAGE, RESUME, NOTE_DOCUMENT)

IMAGE_UPLOAD = UploadProfile(fields={"image": IMAGE}, max_size=5 * MIB)
RESUME_UPLOAD = UploadProfile(fields={"resume": RESUME}, max_size=10 * MIB)
TEACHER_FILES_UPLOAD = UploadProfile(
    fields={"image": IMAGE, "resume": RESUME}, max_size=10 * MIB
)
NOTE_UPLOAD = UploadProfile(fields={"file": NOTE_DOCUMENT}, max_size=10 * MIB)


def init_upload_dirs(root: str | None = None) -> List[str]:
    """Create the upload root and one directory per kind; safe to call twice."""

    root = root or config.get_upload_root()
    directories = [root] + [os.path.join(root, kind.directory) for kind in UPLOAD_KINDS]
    for directory in directories:
        if not os.path.isdir(directory):
            os.makedirs(directory, exist_ok=True)
            logger.info("Created upload directory %s", directory)
    return directories


def generate_filename(prefix: str, original_name: str) -> str:
    """``<prefix>-<millis>-<random>`` plus the original file extension."""

    extension = os.path.splitext(original_name or "")[1]
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{prefix}-{unique_suffix}{extension}"


def _stream_size(storage: FileStorage) -> int:
    stream = storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def collect_uploads(files: MultiDict, profile: UploadProfile) -> Dict[str, FileStorage]:
    """Check every file field of a request against ``profile``.

    Returns the accepted ``{field: FileStorage}`` mapping; empty file inputs
    are skipped. Raises :class:`UploadError` on the first violation.
    """

    accepted: Dict[str, FileStorage] = {}
    for field in files.keys():
        kind = profile.fields.get(field)
        if kind is None:
            raise UploadError(UNEXPECTED_FIELD_MESSAGE, field)

        storages = [item for item in files.getlist(field) if item and item.filename]
        if not storages:
            continue
        if len(storages) > 1:
            raise UploadError(UNEXPECTED_FIELD_MESSAGE, field)

        storage = storages[0]
        if not kind.accepts(storage.filename, storage.mimetype):
            raise UploadError(kind.error_message, field)
        if _stream_size(storage) > profile.max_size:
            raise UploadError(FILE_TOO_LARGE_MESSAGE, field)

        accepted[field] = storage
    return accepted


def _write(field: str, storage: FileStorage, kind: UploadKind, root: str) -> StoredFile:
    directory = os.path.join(root, kind.directory)
    os.makedirs(directory, exist_ok=True)
    while True:
        filename = generate_filename(kind.prefix, storage.filename)
        path = os.path.join(directory, filename)
        try:
            with open(path, "xb") as handle:
                storage.stream.seek(0)
                storage.save(handle)
        except FileExistsError:
            continue
        except OSError:
            if os.path.exists(path):
                os.remove(path)
            raise
        break

    size = os.path.getsize(path)
    logger.info("Stored %s upload %s (%d bytes)", field, filename, size)
    return StoredFile(
        field=field,
        original_name=storage.filename,
        filename=filename,
        path=path,
        url=f"{URL_PREFIX}/{kind.directory}/{filename}",
        size=size,
        content_type=storage.mimetype,
    )


def save_uploads(
    files: MultiDict, profile: UploadProfile, root: str | None = None
) -> Dict[str, StoredFile]:
    """Validate then persist the files of a request.

    Nothing is written unless every file passes. If a write fails midway the
    files already stored for this request are removed before re-raising.
    """

    root = root or config.get_upload_root()
    accepted = collect_uploads(files, profile)

    stored: Dict[str, StoredFile] = {}
    try:
        for field, storage in accepted.items():
            stored[field] = _write(field, storage, profile.fields[field], root)
    except OSError:
        discard_uploads(stored.values())
        raise
    return stored


def resolve_upload_path(url: str, kind: UploadKind, root: str | None = None) -> str | None:
    """Map a stored ``/uploads/...`` reference back to a file of ``kind``.

    Only names inside the kind's own directory resolve; anything else,
    including references to another kind's files, yields ``None``.
    """

    if not url or not isinstance(url, str):
        return None
    directory = os.path.abspath(os.path.join(root or config.get_upload_root(), kind.directory))
    relative = url
    if relative.startswith(URL_PREFIX + "/"):
        relative = relative[len(URL_PREFIX) + 1 :]
    path = os.path.abspath(os.path.join(os.path.dirname(directory), relative))
    if os.path.dirname(path) != directory:
        return None
    return path


def remove_upload(url: str, kind: UploadKind, root: str | None = None) -> bool:
    path = resolve_upload_path(url, kind, root)
    if path is None or not os.path.isfile(path):
        return False
    try:
        os.remove(path)
    except OSError:
        logger.warning("Could not remove upload %s", path, exc_info=True)
        return False
    logger.debug("Removed upload %s", path)
    return True


def discard_uploads(stored: Iterable[StoredFile]) -> None:
    for item in stored:
        try:
            os.remove(item.path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not discard upload %s", item.path, exc_info=True)


__all__ = [
    "FILE_TOO_LARGE_MESSAGE",
    "IMAGE",
    "IMAGE_UPLOAD",
    "NOTE_DOCUMENT",
    "NOTE_UPLOAD",
    "RESUME",
    "RESUME_UPLOAD",
    "StoredFile",
    "TEACHER_FILES_UPLOAD",
    "UNEXPECTED_FIELD_MESSAGE",
    "UploadError",
    "UploadKind",
    "UploadProfile",
    "collect_uploads",
    "discard_uploads",
    "generate_filename",
    "init_upload_dirs",
    "remove_upload",
    "resolve_upload_path",
    "save_uploads",
]
